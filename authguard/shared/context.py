"""Request context management using contextvars.

Holds the identity of whoever is performing an administrative action
(assigning roles, granting permissions, revoking sessions) so services
can stamp assigned_by / granted_by / updated_by without every caller
threading it through.

Usage:
    set_current_actor("admin-user-id")
    actor_id = get_current_actor_id()
"""

from contextvars import ContextVar

_current_actor_id: ContextVar[str | None] = ContextVar("current_actor_id", default=None)


def set_current_actor(actor_id: str | None) -> None:
    """Set the acting user for this request/task (None for system jobs)."""
    _current_actor_id.set(actor_id)


def clear_current_actor() -> None:
    """Clear the acting user."""
    _current_actor_id.set(None)


def get_current_actor_id() -> str | None:
    """Return the acting user ID, or None for system actions."""
    return _current_actor_id.get()
