# app/core/auth.py

import uuid
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Column, String, Boolean, DateTime, Uuid, func
from sqlalchemy.orm import relationship

import jwt

from .database import Base
from .config import settings

logger = logging.getLogger(__name__)

# Identity only: signup, login and password flows live in the auth service
# that issues these tokens.
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    savings_goals = relationship(
        "SavingsGoal",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User email={self.email}>"

def _secret_key() -> str:
    # Convert SecretStr to str if needed
    return str(settings.SECRET_KEY) if hasattr(settings.SECRET_KEY, "get_secret_value") else settings.SECRET_KEY

# Helper function to create JWT tokens
def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for the given subject (user ID)
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": subject,
        "exp": expire,
        "iat": datetime.utcnow(),
    }

    return jwt.encode(payload, _secret_key(), algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> uuid.UUID:
    """
    Return the user ID carried by a token.

    Raises jwt.InvalidTokenError (or its subclasses) for bad, expired or
    subject-less tokens, and ValueError when the subject is not a UUID.
    """
    payload = jwt.decode(
        token,
        _secret_key(),
        algorithms=[settings.ALGORITHM],
        options={"verify_aud": False},
    )
    user_id_str = payload.get("sub")
    if not user_id_str:
        raise jwt.InvalidTokenError("Invalid token: missing user ID")
    return uuid.UUID(user_id_str)
