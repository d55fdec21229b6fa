"""Permission and RolePermission ORM models (RBAC catalog and grant graph)."""

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from authguard.infrastructure.persistence.database import Base
from authguard.infrastructure.persistence.models.mixins import (
    AuditedModel,
    CuidMixin,
    TimestampMixin,
)


class Permission(AuditedModel, Base):
    """Permission. Table: permission. name is resource.action, unique among non-deleted rows."""

    __tablename__ = "permission"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="Other")
    resource: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_permission_name_live",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_permission_category", "category"),
        Index("ix_permission_resource_action", "resource", "action"),
    )


class RolePermission(CuidMixin, TimestampMixin, Base):
    """Role-permission grant. Table: role_permission.

    One row per (role_id, permission_id); revoking flips is_active and a
    later re-grant reactivates the same row.
    """

    __tablename__ = "role_permission"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[str] = mapped_column(
        String, ForeignKey("permission.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    granted_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permission_permission", "permission_id"),
    )
