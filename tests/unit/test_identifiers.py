"""Tests for caller-supplied identifier parsing."""

from uuid import UUID, uuid4

import pytest

from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import InvalidIdentifierError


class TestParseId:
    def test_uuid_passes_through(self):
        value = uuid4()
        assert parse_id(value, "client_id") is value

    def test_string_is_parsed(self):
        value = uuid4()
        assert parse_id(f"  {value} ", "client_id") == value

    @pytest.mark.parametrize("bad", ["", "not-a-uuid", "1234", 42, None, b"bytes"])
    def test_malformed_values_raise(self, bad):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            parse_id(bad, "plan_id")
        assert exc_info.value.field == "plan_id"
        assert exc_info.value.code == "INVALID_IDENTIFIER"

    def test_returns_uuid_type(self):
        assert isinstance(parse_id(str(uuid4()), "x"), UUID)
