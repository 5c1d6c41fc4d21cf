"""Read-only lookups against the platform user directory."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elk.db.models_user import UserEntity


async def get_user_by_id(session: AsyncSession, user_id: str) -> UserEntity | None:
    """Look up a user by primary key."""
    stmt = select(UserEntity).where(UserEntity.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_auth_user_id(
    session: AsyncSession, auth_user_id: str
) -> UserEntity | None:
    """Look up a user by the external auth provider's subject."""
    stmt = select(UserEntity).where(UserEntity.auth_user_id == auth_user_id)
    result = await session.execute(stmt)
    return result.scalars().first()


async def resolve_user_by_id_or_external_id(
    session: AsyncSession, subject: str, *, external_lookup: bool
) -> UserEntity | None:
    """Resolve a subject to a user: primary key first, then ``auth_user_id``.

    ``external_lookup`` reflects whether the deployed schema carries the
    ``auth_user_id`` column.
    """
    user = await get_user_by_id(session, subject)
    if user is None and external_lookup:
        user = await get_user_by_auth_user_id(session, subject)
    return user
