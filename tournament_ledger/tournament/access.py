"""
Access Control.

A single owner identity is fixed when the registry is built. Owner-only
operations call ``require_owner`` before touching any record so that an
unauthorized caller learns nothing about internal state.
"""

from ..utils.errors import Unauthorized


def is_owner(caller: str, owner: str) -> bool:
    """Flat capability check, no roles or hierarchy."""
    return caller == owner


def require_owner(caller: str, owner: str) -> None:
    """Raise ``Unauthorized`` unless caller is the registry owner."""
    if not is_owner(caller, owner):
        raise Unauthorized(caller)
