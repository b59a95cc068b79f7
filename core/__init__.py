"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理 Event / SwapRequest 的狀態轉換
- Manager：管理 Event 與 SwapRequest 的生命週期
- Locks：並發控制工具
"""
