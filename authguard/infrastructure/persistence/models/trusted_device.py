"""TrustedDevice ORM model: per-user trusted-device registry."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authguard.infrastructure.persistence.database import Base
from authguard.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class TrustedDevice(CuidMixin, TimestampMixin, Base):
    """Trusted device. Table: trusted_device. Unique (user_id, device_fingerprint).

    Revocation sets is_trusted False and stamps revoked_at; rows are never deleted.
    """

    __tablename__ = "trusted_device"

    user_id: Mapped[str] = mapped_column(String, nullable=False)
    device_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    device_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    operating_system: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_trusted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trusted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    first_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("user_id", "device_fingerprint", name="uq_trusted_device_user_fp"),
    )
