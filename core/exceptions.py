"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

每個異常類別帶有 status_code，API 層直接轉成對應的 HTTP 狀態碼
"""


class SlotSwapException(Exception):
    """所有時段交換異常的基類"""
    status_code = 500


# ============ 輸入驗證 ============

class ValidationError(SlotSwapException):
    """輸入格式錯誤（例如：結束時間早於開始時間、標題空白、跟自己交換）"""
    status_code = 422


# ============ 身分與權限 ============

class AuthenticationError(SlotSwapException):
    """缺少或無效的 bearer token"""
    status_code = 401


class AuthorizationError(SlotSwapException):
    """呼叫者不是操作所需的擁有者或接收者"""
    status_code = 403


# ============ 不存在 ============

class NotFoundError(SlotSwapException):
    """引用的資料不存在"""
    status_code = 404


class EventNotFound(NotFoundError):
    """時段不存在（或呼叫者看不到）"""
    def __init__(self, event_id):
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


class SwapRequestNotFound(NotFoundError):
    """交換請求不存在"""
    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Swap request {request_id} not found")


class ProfileNotFound(NotFoundError):
    """使用者沒有 profile"""
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"Profile for user {user_id} not found")


# ============ 狀態衝突 ============

class ConflictError(SlotSwapException):
    """狀態前置條件已不成立（通常是競態條件造成）"""
    status_code = 409


class StateError(ConflictError):
    """交換請求已經處理過（ACCEPTED / REJECTED 為終態）"""
    pass


class InvalidStateTransition(ConflictError):
    """非法的狀態轉換"""
    pass


# ============ 基礎設施 ============

class TransportError(SlotSwapException):
    """資料庫呼叫失敗（連線、逾時等基礎設施問題）"""
    status_code = 503
