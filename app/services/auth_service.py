# app/services/auth_service.py
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.context import UserContext

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

def is_client(role: str) -> bool:
    return role == "client"

class AuthService:
    @staticmethod
    def decode_token(token: str) -> UserContext:
        payload = jwt.decode(
            token,
            settings.jwt_public_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
        user_id = payload.get("sub")
        if not user_id:
            raise JWTError("Token senza subject")
        role = payload.get("user_type") or payload.get("role") or "preserver"
        return UserContext(user_id=user_id, role=role)

    @staticmethod
    async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    ) -> UserContext:
        unauthorized = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        if credentials is None:
            raise unauthorized
        try:
            return AuthService.decode_token(credentials.credentials)
        except JWTError as exc:
            logger.warning("Invalid bearer token", extra={"error": str(exc)})
            raise unauthorized
