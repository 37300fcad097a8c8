import json
import threading
import uuid
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from mcpcore.client_state import ClientState, HandshakeError
from mcpcore.jsonrpc import JSONRPCResponse, RPCError
from mcpcore.logger import Logger
from mcpcore.schema import ServerInfo


class _Recorder:
    def __init__(self):
        self.status = 204
        self.body = b""
        self.requests = []


@pytest.fixture
def server():
    recorder = _Recorder()

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", 0))
            recorder.requests.append((dict(self.headers), self.rfile.read(length)))
            self.send_response(recorder.status)
            if recorder.status == 204:
                self.end_headers()
                return
            self.send_header("Content-Length", str(len(recorder.body)))
            self.end_headers()
            self.wfile.write(recorder.body)

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}/init", recorder
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def logger(tmp_path):
    return Logger("CLIENT STATE", "test", log_dir=tmp_path)


def _state(url, logger):
    return ClientState(url, logger=logger)


def test_create_initialize_request_offers_latest_version(logger):
    body = json.loads(_state("http://127.0.0.1:1", logger).create_initialize_request())
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "initialize"
    assert body["params"]["protocolVersion"] == "2024-11-05"
    assert body["params"]["capabilities"] == {"roots": {"listChanged": True}, "sampling": {}}
    assert body["params"]["clientInfo"] == {"name": "Client", "version": "1.0.0"}
    assert str(uuid.UUID(body["id"])) == body["id"]


def test_create_initialize_request_needs_a_version(logger):
    state = _state("http://127.0.0.1:1", logger)
    state.supported_versions = []
    with pytest.raises(HandshakeError, match="at least one protocol version"):
        state.create_initialize_request()


def test_process_initialize_response_success(logger):
    state = _state("http://127.0.0.1:1", logger)
    result = {
        "protocolVersion": "2024-10-01",
        "capabilities": {"tools": {"listChanged": True}},
        "serverInfo": {"name": "srv", "version": "0.1"},
    }
    state.process_initialize_response(JSONRPCResponse(result=result, id="1"))
    assert state.negotiated_version == "2024-10-01"
    assert state.server_info == ServerInfo(name="srv", version="0.1")
    assert state.server_caps.tools.list_changed is True
    assert state.has_server_info()


def test_process_initialize_response_unsupported_version(logger):
    state = _state("http://127.0.0.1:1", logger)
    state.initialized = True
    with pytest.raises(HandshakeError, match="unsupported protocol version '1999-01-01'"):
        state.process_initialize_response(
            JSONRPCResponse(result={"protocolVersion": "1999-01-01"})
        )
    assert state.initialized is False
    assert state.negotiated_version == ""


def test_process_initialize_response_error(logger):
    state = _state("http://127.0.0.1:1", logger)
    resp = JSONRPCResponse(error=RPCError(code=-32600, message="Invalid request"))
    with pytest.raises(HandshakeError, match="code=-32600, message=Invalid request"):
        state.process_initialize_response(resp)


def test_process_initialize_response_missing_result(logger):
    with pytest.raises(HandshakeError, match="missing 'result' field"):
        _state("http://127.0.0.1:1", logger).process_initialize_response(JSONRPCResponse())


def test_process_initialize_response_malformed_result(logger):
    with pytest.raises(HandshakeError, match="failed to unmarshal initialize result"):
        _state("http://127.0.0.1:1", logger).process_initialize_response(
            JSONRPCResponse(result=[1, 2])
        )


def test_initialized_notification_requires_handshake(logger):
    state = _state("http://127.0.0.1:1", logger)
    with pytest.raises(HandshakeError, match="before successful handshake"):
        state.create_initialized_notification()
    assert state.initialized is False


def test_initialized_notification_after_handshake(logger):
    state = _state("http://127.0.0.1:1", logger)
    state.negotiated_version = "2024-11-05"
    body = state.create_initialized_notification()
    assert body == b'{"jsonrpc":"2.0","method":"notifications/initialized"}'
    assert state.initialized is True


def test_send_init_request_accepts_no_content(server, logger):
    url, recorder = server
    state = _state(url, logger)
    request = state.create_initialize_request()
    assert state.send_init_request(request) == b""
    headers, body = recorder.requests[0]
    assert body == request
    assert headers["Content-Type"] == "application/json"


def test_send_init_request_rejects_other_status(server, logger):
    url, recorder = server
    recorder.status = 200
    recorder.body = b"{}"
    with pytest.raises(HandshakeError, match="unexpected status: 200"):
        _state(url, logger).send_init_request(b"{}")


def test_send_init_request_connection_failure(logger):
    with pytest.raises(HandshakeError):
        _state("http://127.0.0.1:1/init", logger).send_init_request(b"{}")


def test_send_init_notification_returns_body(server, logger):
    url, recorder = server
    recorder.status = 200
    recorder.body = b'{"ok":true}'
    state = _state(url, logger)
    assert state.send_init_notification(b"note") == b'{"ok":true}'
    assert recorder.requests[0][1] == b"note"


def test_send_init_notification_rejects_other_status(server, logger):
    url, recorder = server
    recorder.status = 500
    with pytest.raises(HandshakeError, match="received non-200 response: 500"):
        _state(url, logger).send_init_notification(b"note")


def test_send_init_notification_connection_failure(logger):
    with pytest.raises(HandshakeError, match="failed to send init notification"):
        _state("http://127.0.0.1:1/init", logger).send_init_notification(b"note")