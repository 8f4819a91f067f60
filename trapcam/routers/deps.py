# trapcam/routers/deps.py
"""Shared router dependencies."""

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: str = Header(None, alias="X-User-Id")) -> str:
    """Owner of the request. Authentication happens upstream; we only need the id."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
