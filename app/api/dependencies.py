# ============================================================================
# FILE: app/api/dependencies.py
# Authentication dependencies for dashboard JWT tokens and public link tokens
# ============================================================================
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from uuid import UUID

from app.config.database import get_db
from app.config.settings import settings
from app.core.exceptions import LinkNotFoundError, UpstreamUnavailableError
from app.models.business import Business
from app.services.public_link.public_link_service import PublicLinkService

logger = logging.getLogger(__name__)

# ============================================================================
# Security Schemes
# ============================================================================

jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with claims (should include 'business_id')
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


# ============================================================================
# Tenant Dependencies
# ============================================================================

async def get_current_business_id(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
) -> UUID:
    """
    The authorized tenant for dashboard routes, from the token's business_id claim.

    Usage in routes:
        @router.get("/settings")
        async def get_settings(business_id: UUID = Depends(get_current_business_id)):
            ...
    """
    payload = verify_access_token(credentials.credentials)

    business_id_str: Optional[str] = payload.get("business_id")
    if business_id_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no business scope",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(business_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid business ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_public_business_id(token: str, db: Session = Depends(get_db)) -> UUID:
    """
    Resolve the {token} path parameter of a public booking route.

    A deactivated business answers exactly like an unknown link.
    """
    business_id = PublicLinkService.resolve(db, token).business_id

    try:
        business = db.get(Business, business_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load business {business_id} for booking link: {e}")
        raise UpstreamUnavailableError() from e

    if not business or not business.is_active:
        raise LinkNotFoundError()
    return business_id
