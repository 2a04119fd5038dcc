from typing import AsyncIterator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import AsyncSessionLocal

async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session, rolled back if the request dies mid-transaction."""
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except SQLAlchemyError:
            await db.rollback()
            raise
