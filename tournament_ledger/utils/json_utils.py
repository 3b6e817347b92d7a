"""orjson helpers shared by snapshots, the event stream and HTTP responses.

Snapshots are signed, so anything hashed goes through
``json_dumps(..., sort_keys=True)`` to get the same text for the same state.
"""

from collections.abc import Mapping
from typing import Any

import orjson
from fastapi.responses import JSONResponse

# UTC datetimes end in "Z"; int keys (participant indexes) become strings
_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_NON_STR_KEYS


def _default_serializer(obj: Any) -> Any:
    """Fallback for what orjson rejects: read-only mappings, sets, bytes."""
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, bytes):
        return obj.decode("utf-8")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(data: Any, *, sort_keys: bool = False) -> str:
    options = _OPTIONS | orjson.OPT_SORT_KEYS if sort_keys else _OPTIONS
    return orjson.dumps(data, default=_default_serializer, option=options).decode("utf-8")


def json_loads(data: str | bytes) -> Any:
    return orjson.loads(data)


class ORJSONResponse(JSONResponse):
    """Response class for the app and its error handlers."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=_default_serializer, option=_OPTIONS)
