"""
業務異常 -> HTTP 異常

每個 SlotSwapException 子類別都帶 status_code，這裡統一轉換
"""
from fastapi import HTTPException

from core.exceptions import SlotSwapException


def to_http_exception(exc: SlotSwapException) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
