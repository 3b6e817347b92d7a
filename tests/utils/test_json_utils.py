"""orjson helper tests."""

from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from uuid import UUID

import pytest

from tournament_ledger.utils.json_utils import ORJSONResponse, json_dumps, json_loads


class Color(Enum):
    RED = "red"


class TestJsonUtils:
    def test_extended_types(self):
        data = {
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "at": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            "color": Color.RED,
            "tags": {"a"},
        }
        assert json_loads(json_dumps(data)) == {
            "id": "12345678-1234-5678-1234-567812345678",
            "at": "2024-01-02T03:04:05Z",
            "color": "red",
            "tags": ["a"],
        }

    def test_sort_keys_is_stable(self):
        assert json_dumps({"b": 1, "a": 2}, sort_keys=True) == '{"a":2,"b":1}'

    def test_non_string_keys(self):
        assert json_loads(json_dumps({1: "x"})) == {"1": "x"}

    def test_response_render(self):
        response = ORJSONResponse(content={"ok": True})
        assert response.body == b'{"ok":true}'

    def test_read_only_mapping(self):
        scores = MappingProxyType({"0xa": 3})
        assert json_loads(json_dumps({"scores": scores})) == {"scores": {"0xa": 3}}

    def test_unknown_type_rejected(self):
        with pytest.raises(TypeError):
            json_dumps({"x": object()})
