"""JWT token handling for authentication."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt, ExpiredSignatureError

from config import settings
from utils.errors import AuthenticationError
from utils.monitoring import get_logger

from .permissions import Role

logger = get_logger(__name__)

# Missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Caller identity resolved from a bearer token."""
    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Tokens are normally issued by the authentication service; this is used
    by tooling and tests.

    Args:
        data: Data to encode in the token (``user_id``, ``email``, ``role``)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token with 'exp' (expiration) and 'iat' (issued at) claims
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "nbf": now,
    })

    logger.debug(f"Creating JWT token for user_id={data.get('user_id')}")
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Validates the signature, expiry (with clock skew leeway) and the
    presence of the ``user_id``, ``email`` and ``role`` claims.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If the token is invalid, expired or incomplete
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iat": True,
                "require_exp": True,
                "leeway": settings.jwt_leeway_seconds,
            }
        )
    except ExpiredSignatureError as e:
        logger.info(f"Token expired (beyond {settings.jwt_leeway_seconds}s leeway)")
        raise AuthenticationError("Token has expired") from e
    except JWTError as e:
        logger.warning(f"JWT validation failed: {type(e).__name__}: {str(e)}")
        raise AuthenticationError("Could not validate credentials") from e

    if not all(payload.get(claim) for claim in ("user_id", "email", "role")):
        logger.warning("Token missing required claims (user_id, email or role)")
        raise AuthenticationError("Invalid token claims")

    return payload


def user_from_payload(payload: Dict[str, Any]) -> CurrentUser:
    """Build the caller identity from verified token claims."""
    try:
        role = Role(str(payload["role"]).lower())
    except ValueError as e:
        raise AuthenticationError(f"Unknown role: {payload['role']}") from e

    return CurrentUser(
        user_id=str(payload["user_id"]),
        email=payload["email"],
        role=role,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """
    Get the current authenticated user from the JWT token.

    Raises:
        AuthenticationError: If authentication fails
    """
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    payload = verify_access_token(credentials.credentials)
    return user_from_payload(payload)
