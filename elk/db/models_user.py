"""SQLAlchemy model for the platform's users table (read-only here)."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from elk.db.base import BaseEntity


class UserEntity(BaseEntity):
    """A community platform user, as seen by the identity provider.

    ``auth_user_id`` links the row to the external auth provider's subject
    on deployments whose schema has that column.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    auth_user_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
