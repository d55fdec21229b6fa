"""Shared utilities: actor context, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from authguard.shared.context import (
    clear_current_actor,
    get_current_actor_id,
    set_current_actor,
)
from authguard.shared.utils import ensure_utc, generate_cuid, utc_now

__all__ = [
    "set_current_actor",
    "clear_current_actor",
    "get_current_actor_id",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
