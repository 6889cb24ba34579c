"""Tests for the newline-delimited stdio transport."""

import io
import json

import pytest

from opencti_mcp.jsonrpc import INVALID_REQUEST, PARSE_ERROR
from opencti_mcp.transports.stdio import StdioResponseSink, StdioTransport


def output_lines(stream: io.StringIO):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


@pytest.fixture
def stdout():
    return io.StringIO()


class TestStdioResponseSink:
    def test_writes_one_compact_line(self, stdout):
        sink = StdioResponseSink(stdout)
        sink.write_json({"jsonrpc": "2.0", "id": 1, "result": {}})

        assert stdout.getvalue() == '{"jsonrpc":"2.0","id":1,"result":{}}\n'
        assert sink.headers_sent

    def test_no_content_is_silent(self, stdout):
        sink = StdioResponseSink(stdout)
        sink.write_no_content()

        assert stdout.getvalue() == ""
        assert sink.headers_sent

    def test_second_write_rejected(self, stdout):
        sink = StdioResponseSink(stdout)
        sink.write_json({"a": 1})

        with pytest.raises(RuntimeError):
            sink.write_json({"b": 2})

    def test_unserializable_payload_leaves_sink_writable(self, stdout):
        sink = StdioResponseSink(stdout)

        with pytest.raises(ValueError):
            sink.write_json({"x": float("inf")})
        assert not sink.headers_sent
        assert stdout.getvalue() == ""


class TestStdioTransport:
    @pytest.mark.asyncio
    async def test_request_and_notification(self, session, server_info, stdout):
        transport = StdioTransport(session, server_info, stdout=stdout)

        await transport.handle_line('{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}')
        await transport.handle_line('{"jsonrpc":"2.0","method":"notifications/initialized"}')
        await transport.handle_line('{"jsonrpc":"2.0","id":2,"method":"tools/list"}')

        lines = output_lines(stdout)
        assert [line["id"] for line in lines] == [1, 2]
        assert lines[0]["result"]["serverInfo"]["name"] == "opencti-server"
        assert lines[1]["result"]["tools"][0]["name"] == "echo"

    @pytest.mark.asyncio
    async def test_envelope_errors_are_written(self, session, server_info, stdout):
        transport = StdioTransport(session, server_info, stdout=stdout)

        await transport.handle_line("{broken")
        await transport.handle_line('{"id": 5, "method": "ping"}')

        lines = output_lines(stdout)
        assert lines[0]["error"]["code"] == PARSE_ERROR
        assert lines[0]["id"] is None
        assert lines[1]["error"]["code"] == INVALID_REQUEST
        assert lines[1]["id"] == 5

    @pytest.mark.asyncio
    async def test_non_finite_id_does_not_stop_the_loop(self, session, server_info, stdout):
        stdin = io.StringIO(
            '{"jsonrpc":"2.0","id":NaN,"method":"ping"}\n'
            '{"jsonrpc":"2.0","id":Infinity,"method":"ping"}\n'
            '{"jsonrpc":"2.0","id":3,"method":"ping"}\n'
        )
        transport = StdioTransport(session, server_info, stdin=stdin, stdout=stdout)

        await transport.run()

        lines = output_lines(stdout)
        assert len(lines) == 3
        assert lines[0]["error"]["code"] == PARSE_ERROR
        assert lines[0]["id"] is None
        assert lines[1]["error"]["code"] == PARSE_ERROR
        assert lines[2] == {"jsonrpc": "2.0", "id": 3, "result": {}}

    @pytest.mark.asyncio
    async def test_run_until_eof(self, session, server_info, stdout):
        stdin = io.StringIO(
            '{"jsonrpc":"2.0","id":"a","method":"ping"}\n'
            "\n"
            '{"jsonrpc":"2.0","id":"b","method":"tools/call","params":{"name":"echo","arguments":{"text":"hi"}}}\n'
        )
        transport = StdioTransport(session, server_info, stdin=stdin, stdout=stdout)

        await transport.run()

        lines = output_lines(stdout)
        assert lines[0] == {"jsonrpc": "2.0", "id": "a", "result": {}}
        assert lines[1]["id"] == "b"
        assert lines[1]["result"]["structuredContent"]["echo"] == "hi"
        assert transport.running is False
