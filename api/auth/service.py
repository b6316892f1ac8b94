"""
Bearer Token Authentication

Resolves the owner of a request from a JWT issued by the account service.
The token's `sub` claim is the user id; the user must exist.
"""

import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from api.config import get_settings
from src.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


class AuthenticationService:
    """JWT encoding and validation against the users table."""

    def __init__(self):
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY.get_secret_value()
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_minutes = settings.JWT_TOKEN_EXPIRE_MINUTES

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed access token.

        Args:
            data: Token payload; must carry `sub`
            expires_delta: Optional custom expiration time
        """
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    async def resolve_owner(self, token: str) -> str:
        """
        Validate a token and return the owner id.

        Raises:
            HTTPException: 401 if the token is invalid, expired or names an unknown user
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token validation error: {str(e)}")
            raise credentials_exception

        owner = payload.get("sub")
        if not owner:
            logger.warning("Token missing sub claim")
            raise credentials_exception

        if not await UserRepository.get_user(owner):
            logger.warning(f"Token references unknown user: {owner}")
            raise credentials_exception
        return owner


@lru_cache()
def get_auth_service() -> AuthenticationService:
    return AuthenticationService()


async def get_current_owner(token: str = Depends(oauth2_scheme)) -> str:
    """FastAPI dependency returning the authenticated owner id."""
    return await get_auth_service().resolve_owner(token)
