"""
Security utilities and authentication
"""

from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import settings
from app.utils.responses import unauthorized_error

security = HTTPBearer()

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify admin authentication token"""
    if credentials.credentials != settings.ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return credentials.credentials

def verify_payment_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify the payment service's token"""
    if credentials.credentials != settings.PAYMENT_SERVICE_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid payment service token"
        )
    return credentials.credentials

def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity, set by the authenticating gateway in front of this service"""
    if not x_user_id or not x_user_id.strip():
        unauthorized_error("Missing user identity")
    return x_user_id.strip()

def get_admin_id(
    token: str = Depends(verify_admin_token),
    x_user_id: Optional[str] = Header(None)
) -> str:
    """Admin identity for the audit trail; falls back to a generic id"""
    return (x_user_id or "").strip() or "admin"
