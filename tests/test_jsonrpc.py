import io
import json
import threading
import urllib.request
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from mcpcore.jsonrpc import (
    JSONRPC_VERSION,
    ErrorCode,
    JSONRPCRequest,
    JSONRPCResponse,
    Notification,
    RPCError,
    parse_jsonrpc_request,
    write_jsonrpc_error,
    write_jsonrpc_response,
)


class _RecordingHandler:
    def __init__(self):
        self.status = None
        self.headers = {}
        self.ended = False
        self.wfile = io.BytesIO()

    def send_response(self, code, message=None):
        self.status = code

    def send_header(self, keyword, value):
        self.headers[keyword] = value

    def end_headers(self):
        self.ended = True


def test_parse_valid_request():
    result = parse_jsonrpc_request(b'{"jsonrpc":"2.0", "method":"sum", "params":[1,2], "id":1}')
    assert result.method == "sum"
    assert result.params == [1, 2]
    assert result.id == 1


def test_parse_accepts_stream():
    stream = io.BytesIO(b'{"jsonrpc":"2.0", "method":"sum", "params":[1,2], "id":1}')
    assert parse_jsonrpc_request(stream).method == "sum"


def test_parse_invalid_json():
    with pytest.raises(ValueError):
        parse_jsonrpc_request('{"jsonrpc": "2.0", "method": "sum",')


def test_parse_invalid_version():
    with pytest.raises(ValueError) as info:
        parse_jsonrpc_request('{"jsonrpc": "1.0", "method": "sum", "id":1}')
    assert str(info.value) == "invalid jsonrpc version"


def test_parse_missing_method():
    with pytest.raises(ValueError) as info:
        parse_jsonrpc_request('{"jsonrpc": "2.0", "id":1}')
    assert str(info.value) == "missing method"


def test_parse_non_object_rejected():
    with pytest.raises(TypeError):
        parse_jsonrpc_request("[1, 2]")


def test_write_response():
    handler = _RecordingHandler()
    body = write_jsonrpc_response(handler, 42, 1)
    assert handler.status == 200
    assert handler.headers["Content-Type"] == "application/json"
    assert handler.ended
    assert handler.wfile.getvalue() == body
    decoded = JSONRPCResponse.from_dict(json.loads(body))
    assert decoded.jsonrpc == JSONRPC_VERSION
    assert decoded.result == 42
    assert decoded.error is None
    assert decoded.id == 1


def test_write_response_ends_with_newline():
    handler = _RecordingHandler()
    body = write_jsonrpc_response(handler, 42, 1)
    assert body == b'{"jsonrpc":"2.0","result":42,"id":1}\n'


def test_write_error_uses_standard_message():
    handler = _RecordingHandler()
    body = write_jsonrpc_error(handler, -32600, "", 1)
    decoded = JSONRPCResponse.from_dict(json.loads(body))
    assert decoded.error is not None
    assert decoded.error.code == -32600
    assert decoded.error.message == "Invalid Request"
    assert decoded.result is None


def test_write_error_keeps_given_message():
    handler = _RecordingHandler()
    body = write_jsonrpc_error(handler, ErrorCode.INTERNAL_ERROR, "boom", "abc")
    decoded = json.loads(body)
    assert decoded["error"] == {"code": -32603, "message": "boom"}
    assert decoded["id"] == "abc"
    assert "result" not in decoded


def test_write_error_unknown_code_has_empty_message():
    handler = _RecordingHandler()
    body = write_jsonrpc_error(handler, 7, "", 1)
    assert json.loads(body)["error"] == {"code": 7, "message": ""}


@pytest.mark.parametrize(
    "code, text",
    [
        (ErrorCode.PARSE_ERROR, "Parse error"),
        (ErrorCode.INVALID_REQUEST, "Invalid Request"),
        (ErrorCode.METHOD_NOT_FOUND, "Method not found"),
        (ErrorCode.INVALID_PARAMS, "Invalid params"),
        (ErrorCode.INTERNAL_ERROR, "Internal error"),
    ],
)
def test_error_code_messages(code, text):
    assert code.message() == text


def test_request_round_trip():
    request = JSONRPCRequest(method="testMethod", params={"key": "value"}, id="1")
    assert JSONRPCRequest.from_dict(request.to_dict()) == request


def test_response_omits_empty_members():
    assert JSONRPCResponse(id=1).to_dict() == {"jsonrpc": "2.0", "id": 1}


def test_response_round_trip_with_error():
    response = JSONRPCResponse(error=RPCError(code=-32600, message="Invalid request", data=[1]), id=3)
    assert JSONRPCResponse.from_dict(json.loads(json.dumps(response.to_dict()))) == response


def test_response_to_bytes_is_result_only():
    response = JSONRPCResponse(result={"ok": True}, id=1)
    assert response.to_bytes() == b'{"ok":true}'
    assert JSONRPCResponse().to_bytes() == b"null"


def test_notification_omits_null_params():
    assert Notification(method="notifications/initialized").to_dict() == {
        "jsonrpc": "2.0",
        "method": "notifications/initialized",
    }


def test_rpc_error_from_dict_rejects_bad_code():
    with pytest.raises(TypeError):
        RPCError.from_dict({"code": "x", "message": "m"})


class _EchoHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers["Content-Length"])
        try:
            request = parse_jsonrpc_request(self.rfile.read(length))
        except ValueError as exc:
            write_jsonrpc_error(self, ErrorCode.INVALID_REQUEST, str(exc), None)
            return
        write_jsonrpc_response(self, request.params, request.id)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def echo_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/"
    finally:
        server.shutdown()
        server.server_close()


def _post(url, payload):
    req = urllib.request.Request(url, data=payload, method="POST")
    with urllib.request.urlopen(req, timeout=5) as resp:
        return resp.headers["Content-Type"], json.loads(resp.read())


def test_http_round_trip(echo_url):
    content_type, body = _post(echo_url, b'{"jsonrpc":"2.0","method":"sum","params":[1,2],"id":9}')
    assert content_type == "application/json"
    decoded = JSONRPCResponse.from_dict(body)
    assert decoded == JSONRPCResponse(result=[1, 2], id=9)
    assert decoded.to_dict() == {"jsonrpc": "2.0", "result": [1, 2], "id": 9}


def test_http_error_round_trip(echo_url):
    _, body = _post(echo_url, b'{"jsonrpc":"1.0","method":"sum","id":9}')
    decoded = JSONRPCResponse.from_dict(body)
    assert decoded.error == RPCError(code=-32600, message="invalid jsonrpc version")
    assert decoded.result is None