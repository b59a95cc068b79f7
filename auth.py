"""
身分驗證

登入、登出由外部身分提供者負責，這裡只驗證它簽發的 JWT，
並把驗證後的身分包成 SessionContext，明確地傳給每個業務操作
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from database import Settings, get_settings
from core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """一次請求中已驗證的使用者"""
    user_id: UUID
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def decode_access_token(token: str, settings: Settings) -> SessionContext:
    """
    驗證 access token 並取出使用者身分

    參數：
        token: bearer token 原文
        settings: 設定（secret / algorithm / audience）

    返回：
        SessionContext

    異常：
        AuthenticationError: 簽章錯誤、過期、audience 不符、或 sub 不是 UUID
    """
    options = {}
    if not settings.jwt_audience:
        options["verify_aud"] = False

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise AuthenticationError("Invalid or expired token") from e

    try:
        user_id = UUID(str(claims.get("sub")))
    except ValueError as e:
        raise AuthenticationError("Token subject is not a user id") from e

    return SessionContext(user_id=user_id, email=claims.get("email"), claims=claims)


def get_session_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> SessionContext:
    """FastAPI dependency：每個請求取得一次 SessionContext"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        return decode_access_token(credentials.credentials, settings)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
