# mcpcore

Building blocks for Model Context Protocol (MCP) clients and servers.

## Modules

- `mcpcore.jsonrpc`: the JSON-RPC 2.0 codec.
  - Types: `JSONRPCRequest`, `JSONRPCResponse`, `RPCError`, `Notification` and the standard `ErrorCode` values.
  - `parse_jsonrpc_request` decodes and checks a request body. It raises `ValueError` when the version is wrong or the method is missing.
  - `write_jsonrpc_response` and `write_jsonrpc_error` write a response through a `BaseHTTPRequestHandler`.
- `mcpcore.schema`: the initialize handshake payloads.
  - `ClientCapabilities`, `ServerCapabilities`, `ClientInfo`, `ServerInfo`, `InitializeParams` and `InitializeResult`.
  - `new_client_capabilities()` returns client capabilities with roots list-change and sampling turned on.
- `mcpcore.protocol`: method and notification names and the handler registry.
  - The names are the `MCPMethod` and `MCPNotification` enums.
  - `Protocol` is a thread-safe handler registry. `handle_request` and `handle_notification` raise `HandlerNotFoundError` for a method that has no handler.
- `mcpcore.messages`: conversation data types.
  - Messages and roles: `Message`, `Role`.
  - Tools: `ToolCall`, `ToolDefinition`, `ToolResultMetadata`, `ChatCompletionRequest`.
  - Security records: `SecurityPolicy`, `SecurityMetadata`, `UserIdentity`, `ContextMetadata`.
- `mcpcore.context`: conversation contexts (`Context`, `new_context`), memory blocks (`MemoryBlock`) and updates (`ContextUpdate`).
- `mcpcore.client_state`: the client side of the initialize handshake.
  - `ClientState` supports protocol versions `2024-10-01` and `2024-11-05` and offers the latest one.
  - It rejects a server version it does not support, raising `HandshakeError`.
  - `Initializer` describes what `MCPClient` needs from a handshake state.
- `mcpcore.client`: `MCPClient`.
  - `send` POSTs JSON-RPC requests and expects a 204.
  - `listen` streams server-sent events, reconnects until a stop event is set and passes each `data:` payload to a handler.
  - `handshake` runs the initialize handshake.
  - It applies `context/update`, `context/clear`, `memory/append` and `memory/replace` notifications to the client's context. The method is `handle_notification`.
  - Failures raise `ClientError`.
- `mcpcore.auth`: `Token` creates and verifies HS256 JWTs whose `sub` claim carries a payload.
  - Tokens expire after one hour.
  - The signing key comes from the `GOMCP_SECRET` environment variable.
  - `validate` reads a `Bearer` token from a mapping of request headers.
  - Failures raise `TokenError`.
- `mcpcore.logger`: `Logger`, a thread-safe logger.
  - It prints messages to standard output.
  - It appends rows (Time, Component, Level, Message, ID) to `gomcp-log-dd-mm-yyyy.csv`.
  - That file is in `GOMCP_LOG_DIR` when set, otherwise in the working directory.
- `mcpcore.stdio`: `start_stdio_transport` passes each non-empty input line to a handler.
  - It reads standard input unless given a stream.
- `mcpcore.server`: `Server`, a threaded HTTP server (default `localhost:9090`).
  - It has request-id, real-IP, logging and recovery middleware, and 30-second timeouts.
  - `run()` serves until SIGHUP, SIGINT, SIGTERM or SIGQUIT.
  - `start(event)` serves until the event is set.
  - Both shut down gracefully with a ten-second grace period.
- `mcpcore.cli`: the command line.

`MCPClient`, `ClientState` and `Server` create a `Logger` unless given one, so they write a CSV log file as described above.

## Installation

```
pip install mcpcore
```

## Usage

Create and verify a token (set `GOMCP_SECRET` first to sign with your own key):

```python
from mcpcore.auth import Token

tok = Token()
jwt_string = tok.create("user-42")
assert tok.verify(jwt_string) == "user-42"
assert tok.validate({"Authorization": "Bearer " + jwt_string}) == "user-42"
```

Parse a JSON-RPC request body:

```python
from mcpcore.jsonrpc import parse_jsonrpc_request

req = parse_jsonrpc_request(b'{"jsonrpc":"2.0","method":"sum","params":[1,2],"id":1}')
print(req.method)  # sum
```

Dispatch through a handler registry:

```python
from mcpcore.protocol import MCPMethod, Protocol

proto = Protocol()
proto.set_request_handler(MCPMethod.PING, None, lambda request, extra: {})
print(proto.handle_request("ping", {}))  # {}
```

Connect a client to a server:

```python
from mcpcore.client import MCPClient

client = MCPClient("http://localhost:9090/api", "http://localhost:9090/init", "client-1")
client.handshake()
```

Run the HTTP server until an event is set:

```python
import threading
from mcpcore.server import Server

stop = threading.Event()
server = Server(port=0)
threading.Thread(target=server.start, args=(stop,)).start()
server.serving.wait()
print(server.address)
stop.set()
```

## Command line

```
mcpcore version
mcpcore server
mcpcore client
```

- `mcpcore version` prints `Version: ` followed by the contents of a `VERSION` file in the current directory. It exits with status 1 if that file is missing.
- Before any command runs, the home directory is searched for a `.cobra` configuration file, either with a supported extension or bare. If one is found, the command stops with the message `Using config file: <path>` and exit status 1.

## What this package does not do

- `mcpcore server` and `mcpcore client` accept no options and do nothing: they neither start a server nor connect a client. Use `Server` and `MCPClient` from Python instead.
- The HTTP server answers only `GET /` (with `hi`). It has no MCP endpoints for initialize, requests or server-sent events.
- Contexts are held in memory only; nothing is stored between runs.

## Tests

```
pip install "mcpcore[test]"
pytest
```