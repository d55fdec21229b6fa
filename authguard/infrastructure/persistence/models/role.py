"""Role ORM model. Named, prioritized roles; system roles are immutable."""

from sqlalchemy import Boolean, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from authguard.core.constants import DEFAULT_ROLE_PRIORITY
from authguard.infrastructure.persistence.database import Base
from authguard.infrastructure.persistence.models.mixins import AuditedModel


class Role(AuditedModel, Base):
    """Role. Table: role. name unique among non-deleted rows; lower priority number ranks first."""

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_ROLE_PRIORITY
    )
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_role_name_live",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )
