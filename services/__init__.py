"""
服務層

這個 package 包含查詢與輔助邏輯，不負責狀態轉換：
- MarketplaceService：列出可交換的時段
- InboxService：交換請求收件匣
- ProfileService：顯示名稱
- ChangeFeedService：變更紀錄（前端輪詢用）
"""
