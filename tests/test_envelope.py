"""
Tests for JSON-RPC envelope validation.

Every rejected body must surface as an EnvelopeError with a JSON-RPC code,
and never as a parsed message.
"""

import pytest

from opencti_mcp.envelope import best_effort_id, is_valid_id, parse_body, validate_envelope
from opencti_mcp.errors import InvalidRequestError, ParseError
from opencti_mcp.jsonrpc import (
    INVALID_REQUEST,
    PARSE_ERROR,
    JSONRPCHandler,
    JSONRPCNotification,
    JSONRPCRequest,
)


class TestParseBody:
    """Raw bytes to JSON."""

    def test_valid_json(self):
        assert parse_body(b'{"jsonrpc": "2.0"}') == {"jsonrpc": "2.0"}

    def test_accepts_str(self):
        assert parse_body('{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("raw", [b"", b"   ", b"\n\t"])
    def test_empty_body_is_parse_error(self, raw):
        with pytest.raises(ParseError) as exc_info:
            parse_body(raw)
        assert exc_info.value.code == PARSE_ERROR

    def test_malformed_json(self):
        with pytest.raises(ParseError):
            parse_body(b'{"jsonrpc": "2.0",')

    def test_invalid_utf8(self):
        with pytest.raises(ParseError):
            parse_body(b"\xff\xfe{}")

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_constant_is_parse_error(self, token):
        raw = '{"jsonrpc": "2.0", "id": ' + token + ', "method": "ping"}'

        with pytest.raises(ParseError) as exc_info:
            parse_body(raw)
        assert exc_info.value.code == PARSE_ERROR
        assert exc_info.value.request_id is None

    def test_overflowing_number_is_parse_error(self):
        with pytest.raises(ParseError):
            parse_body(b'{"jsonrpc": "2.0", "id": 1e999, "method": "ping"}')

    def test_finite_float_kept(self):
        assert parse_body(b'{"id": 1.5}') == {"id": 1.5}


class TestValidateEnvelope:
    """Decoded JSON to request/notification."""

    def test_request(self):
        message = validate_envelope({"jsonrpc": "2.0", "id": "1", "method": "tools/list"})
        assert isinstance(message, JSONRPCRequest)
        assert message.id == "1"
        assert message.method == "tools/list"

    def test_notification(self):
        message = validate_envelope({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert isinstance(message, JSONRPCNotification)
        assert JSONRPCHandler.is_request(message) is False

    def test_numeric_id_kept(self):
        message = validate_envelope({"jsonrpc": "2.0", "id": 7, "method": "ping"})
        assert message.id == 7

    def test_params_kept(self):
        message = validate_envelope(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "x"}}
        )
        assert message.params == {"name": "x"}

    def test_empty_object_is_parse_error(self):
        with pytest.raises(ParseError):
            validate_envelope({})

    @pytest.mark.parametrize("data", [[], [{"jsonrpc": "2.0", "id": 1, "method": "ping"}], "x", 3, None])
    def test_non_object_is_parse_error(self, data):
        with pytest.raises(ParseError):
            validate_envelope(data)

    def test_missing_jsonrpc_and_method(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_envelope({"foo": "bar"})
        assert exc_info.value.code == INVALID_REQUEST
        assert exc_info.value.request_id is None

    def test_wrong_version_echoes_id(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_envelope({"jsonrpc": "1.0", "id": "abc", "method": "ping"})
        assert exc_info.value.request_id == "abc"

    @pytest.mark.parametrize("method", [None, "", 42, ["ping"]])
    def test_bad_method(self, method):
        with pytest.raises(InvalidRequestError):
            validate_envelope({"jsonrpc": "2.0", "id": 1, "method": method})

    @pytest.mark.parametrize("bad_id", [None, True, {"a": 1}, [1], float("nan"), float("inf")])
    def test_bad_id(self, bad_id):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_envelope({"jsonrpc": "2.0", "id": bad_id, "method": "ping"})
        assert exc_info.value.request_id is None

    @pytest.mark.parametrize("params", [[1, 2], "x", 5])
    def test_params_must_be_object(self, params):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_envelope({"jsonrpc": "2.0", "id": 9, "method": "ping", "params": params})
        assert exc_info.value.request_id == 9


class TestIds:
    def test_is_valid_id(self):
        assert is_valid_id("x")
        assert is_valid_id(0)
        assert is_valid_id(1.5)
        assert not is_valid_id(float("nan"))
        assert not is_valid_id(float("inf"))
        assert not is_valid_id(float("-inf"))
        assert not is_valid_id(False)
        assert not is_valid_id(None)

    def test_best_effort_id(self):
        assert best_effort_id({"id": 3}) == 3
        assert best_effort_id({"id": None}) is None
        assert best_effort_id({"id": float("nan")}) is None
        assert best_effort_id(["id"]) is None
