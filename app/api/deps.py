"""
Shared API dependencies
"""
from fastapi import Header, HTTPException
from typing import Optional


async def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Owner identity set by the upstream auth layer in the X-User-Id header"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
