"""FastAPI authentication dependencies (static Bearer admin token)."""
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

_security = HTTPBearer(auto_error=False)

_admin_token = ""


def configure_admin_token(token: str) -> None:
    """Set the token admin routes expect. Empty disables admin routes."""
    global _admin_token
    _admin_token = token or ""


def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> None:
    """Raise 404 when admin access is disabled, 401 on a missing or wrong token."""
    if not _admin_token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials, _admin_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
