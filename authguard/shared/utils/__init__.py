"""Shared utilities: datetime and generators."""

from authguard.shared.utils.datetime import ensure_utc, utc_now
from authguard.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
