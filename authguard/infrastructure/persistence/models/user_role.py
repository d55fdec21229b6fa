"""UserRole ORM model: user-role assignments with validity windows."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from authguard.infrastructure.persistence.database import Base
from authguard.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class UserRole(CuidMixin, TimestampMixin, Base):
    """User-role assignment. Table: user_role.

    Rows are never deleted; replacing or removing an assignment flips
    is_active so the table doubles as the assignment history. version is
    the optimistic-lock counter.
    """

    __tablename__ = "user_role"

    user_id: Mapped[str] = mapped_column(String, nullable=False)
    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    valid_from: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    valid_to: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    assigned_by: Mapped[str | None] = mapped_column(String, nullable=True)
    assignment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_user_role_user_active", "user_id", "is_active"),
        Index("ix_user_role_role_active", "role_id", "is_active"),
    )
