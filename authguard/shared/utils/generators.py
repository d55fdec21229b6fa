"""ID and value generators (CUID primary keys, opaque session identifiers)."""

import secrets

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Used as the primary key of every table; allocation never reads
    existing rows, so concurrent inserts cannot collide.

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_session_id() -> str:
    """Return an unguessable session identifier (also used as the token id)."""
    return secrets.token_urlsafe(32)
