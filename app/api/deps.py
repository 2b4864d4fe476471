# app/api/deps.py
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import jwt
import uuid

from app.core.database import get_async_session
from app.core.auth import User, decode_access_token
from app.utils.notifications import NotificationDispatcher, notification_dispatcher

optional_security = HTTPBearer(auto_error=False)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    """
    Find the bearer token in the Authorization header, the query string
    (token / access_token) or the access_token cookie, in that order.
    """
    auth_header = request.headers.get("Authorization", "")
    token = None

    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
    elif credentials and credentials.credentials:
        token = credentials.credentials

    if not token:
        token = request.query_params.get("token") or request.query_params.get("access_token")

    if not token:
        token = request.cookies.get("access_token")
        # Remove "Bearer " prefix if present in cookie
        if token and token.startswith("Bearer "):
            token = token[7:]

    return token

async def get_user_for_token(token: Optional[str], db: AsyncSession) -> User:
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        user_id = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")
    except ValueError:
        raise _unauthorized("Invalid user ID format in token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()

    if not user:
        raise _unauthorized("User not found")

    if getattr(user, "is_active", False) is False:
        raise _unauthorized("Inactive user")

    return user

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> User:
    """
    Resolve the calling user from a bearer token found in:
    - Authorization header
    - Query parameters
    - Cookies
    """
    return await get_user_for_token(extract_token(request, credentials), db)

def get_notification_dispatcher() -> NotificationDispatcher:
    return notification_dispatcher

def get_user_id(user: User) -> uuid.UUID:
    # Convert user.id to UUID
    return uuid.UUID(str(user.id))
