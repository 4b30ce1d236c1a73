"""Shared FastAPI dependencies."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.database import get_db


async def require_db(db: Optional[AsyncSession] = Depends(get_db)) -> AsyncSession:
    """Fail the request with 503 when the store is not configured."""
    if db is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service unavailable")
    return db
