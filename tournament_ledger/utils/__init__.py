"""Utility modules."""

from .errors import ErrorCode, InvalidArgument, InvalidState, LedgerError, Unauthorized
from .json_utils import json_dumps, json_loads

__all__ = [
    "ErrorCode",
    "InvalidArgument",
    "InvalidState",
    "LedgerError",
    "Unauthorized",
    "json_dumps",
    "json_loads",
]
