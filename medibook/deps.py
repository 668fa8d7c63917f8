# medibook/deps.py
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Query, status

from .config import settings


def require_api_key(
    x_api_key: Optional[str] = Header(None),
    api_key: Optional[str] = Query(None),
) -> bool:
    """
    Shared secret for mutating endpoints (x-api-key header or ?api_key=).
    Only enforced when API_KEY is configured.
    """
    expected = (settings.API_KEY or "").strip()
    if not expected:
        return True
    provided = (x_api_key or api_key or "").strip()
    if not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return True


def require_admin(x_admin_token: Optional[str] = Header(None)) -> bool:
    expected = (settings.ADMIN_TOKEN or "").strip()
    provided = (x_admin_token or "").strip()
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="ADMIN_TOKEN not configured")
    if not secrets.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return True
