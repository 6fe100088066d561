# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from fastapi import HTTPException, status  # ✅ For raising clean auth errors

from app.config import Settings

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 30  # 30 days


def _secret(settings: Settings) -> str:
    if not settings.jwt_secret_key:
        raise RuntimeError("JWT_SECRET_KEY environment variable is not set.")
    return settings.jwt_secret_key


# ✅ Signed JWT in the hosted auth provider's format (used by scripts and tests)
def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _secret(settings), algorithm=settings.jwt_algorithm)


# ✅ Verify and decode a JWT issued by the hosted auth provider
def verify_access_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(
            token,
            _secret(settings),
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
