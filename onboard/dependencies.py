from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from onboard.config import settings

USER_ID_HEADER = "X-User-ID"

engine = create_async_engine(settings.database_url)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """Caller identity. Token verification happens upstream of this service."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail=f"Missing {USER_ID_HEADER} header")
    user_id = x_user_id.strip()
    if not user_id or len(user_id) > 255:
        raise HTTPException(status_code=400, detail=f"Invalid {USER_ID_HEADER} header")
    return user_id
