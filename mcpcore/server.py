"""HTTP server with request-id, real-IP, logging and recovery middleware."""

from __future__ import annotations

import itertools
import secrets
import signal
import socket
import sys
import threading
import time
import traceback
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, ClassVar
from urllib.parse import urlsplit

from mcpcore.logger import Logger

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9090
SHUTDOWN_GRACE = timedelta(seconds=10)
_SECONDS_PER_DAY = 24 * 60 * 60
_POLL_INTERVAL = 0.2
_TEXT = "text/plain; charset=utf-8"

_REQUEST_PREFIX = f"{socket.gethostname()}/{secrets.token_urlsafe(8)[:10]}"
_request_counter = itertools.count(1)


@dataclass(frozen=True)
class ServerConfig:
    """Connection timeouts of the HTTP server."""

    timeout_read: timedelta
    timeout_write: timedelta
    timeout_idle: timedelta


def server_configs() -> ServerConfig:
    """Default configuration: thirty seconds for every timeout."""
    return ServerConfig(
        timeout_read=timedelta(seconds=30),
        timeout_write=timedelta(seconds=30),
        timeout_idle=timedelta(seconds=30),
    )


def seconds_to_time_str(seconds: float) -> str:
    """Format whole seconds as HH:MM:SS on a 24-hour clock."""
    whole = int(seconds) % _SECONDS_PER_DAY
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _next_request_id() -> str:
    return f"{_REQUEST_PREFIX}-{next(_request_counter):06d}"


def _real_ip(headers: Any) -> str:
    for name in ("True-Client-IP", "X-Real-IP"):
        value = headers.get(name)
        if value:
            return value.strip()
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return ""


Route = Callable[["RouteHandler"], None]


def _hi(handler: "RouteHandler") -> None:
    handler.respond(200, b"hi")


class RouteHandler(BaseHTTPRequestHandler):
    """Routes requests and wraps them in request-id, real-IP, logging and recovery."""

    routes: ClassVar[dict[str, dict[str, Route]]] = {"/": {"GET": _hi}}

    request_id = ""
    remote_ip = ""
    _status = 0
    _size = 0

    def setup(self) -> None:
        config = getattr(self.server, "config", None)
        if config is not None:
            self.timeout = config.timeout_read.total_seconds()
        super().setup()

    def respond(self, status: int, body: bytes = b"", content_type: str = _TEXT) -> None:
        """Send a complete response with the given status and body."""
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)
            self._size = len(body)

    def _route(self) -> None:
        path = urlsplit(self.path).path
        methods = self.routes.get(path)
        if methods is None:
            self.respond(404, b"404 page not found\n")
        elif (route := methods.get(self.command)) is None:
            self.respond(405)
        else:
            route(self)

    def _dispatch(self) -> None:
        started = time.perf_counter()
        self._status = 0
        self._size = 0
        self.request_id = self.headers.get("X-Request-Id") or _next_request_id()
        self.remote_ip = _real_ip(self.headers) or self.client_address[0]
        try:
            self._route()
        except Exception:
            traceback.print_exc(file=sys.stderr)
            if not self._status:
                self.respond(500)
        finally:
            elapsed = (time.perf_counter() - started) * 1000
            host = self.headers.get("Host", "")
            self.log_message(
                '"%s http://%s%s %s" from %s - %d %dB in %.3fms',
                self.command,
                host,
                self.path,
                self.request_version,
                self.remote_ip,
                self._status,
                self._size,
                elapsed,
            )

    do_GET = do_HEAD = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _dispatch

    def address_string(self) -> str:
        return self.remote_ip or self.client_address[0]

    def log_request(self, code: Any = "-", size: Any = "-") -> None:
        """Record the response status; the request line is logged once by _dispatch."""
        try:
            self._status = int(code)
        except (TypeError, ValueError):
            self._status = 0

    def log_message(self, format: str, *args: Any) -> None:
        prefix = f"[{self.request_id}] " if self.request_id else ""
        sys.stderr.write(f"{prefix}{format % args}\n")


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], handler: type, config: ServerConfig) -> None:
        self.config = config
        self._active = 0
        self._idle = threading.Condition()
        super().__init__(address, handler)

    def process_request_thread(self, request: Any, client_address: Any) -> None:
        with self._idle:
            self._active += 1
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._idle:
                self._active -= 1
                self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


class Server:
    """HTTP server that can be stopped by a signal or by an event."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        config: ServerConfig | None = None,
        logger: Logger | None = None,
        handler: type[BaseHTTPRequestHandler] = RouteHandler,
    ) -> None:
        self.start_time = datetime.now(timezone.utc)
        self.host = host
        self.port = port
        self.config = config if config is not None else server_configs()
        self.handler = handler
        self.serving = threading.Event()
        self._log = logger if logger is not None else Logger("Server", str(uuid.uuid4()))
        self._httpd: _HTTPServer | None = None
        self._loop: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def address(self) -> tuple[str, int]:
        """The bound address while serving, else the configured one."""
        with self._lock:
            if self._httpd is not None:
                return self._httpd.server_address[:2]
        return (self.host, self.port)

    def run_time(self) -> str:
        """Time since the server was created, as HH:MM:SS."""
        return seconds_to_time_str((datetime.now(timezone.utc) - self.start_time).total_seconds())

    def shutdown(self) -> str:
        """Close the server at once and return its run time."""
        with self._lock:
            httpd, loop = self._httpd, self._loop
            self._httpd = self._loop = None
        if httpd is not None:
            try:
                if loop is not None and loop.ident is not None:
                    httpd.shutdown()
                httpd.server_close()
            except OSError as exc:
                raise RuntimeError(f"server shutdown failed: {exc}") from exc
            if loop is not None and loop.ident is not None:
                loop.join()
        self.serving.clear()
        return self.run_time()

    def _serve(
        self, stop: threading.Event, on_timeout: Callable[[str], None], log_run_time: bool
    ) -> None:
        httpd = _HTTPServer((self.host, self.port), self.handler, self.config)
        loop = threading.Thread(target=httpd.serve_forever, name="mcpcore-server", daemon=True)
        with self._lock:
            self._httpd, self._loop = httpd, loop
        self._log.info("starting server...")
        loop.start()
        self.serving.set()
        while not stop.wait(_POLL_INTERVAL):
            if not loop.is_alive():
                return
        self._graceful(on_timeout, log_run_time)

    def _graceful(self, on_timeout: Callable[[str], None], log_run_time: bool) -> None:
        with self._lock:
            httpd = self._httpd
        if httpd is None:
            return
        self._log.info("shutting down server...")
        httpd.shutdown()
        if not httpd.wait_idle(SHUTDOWN_GRACE.total_seconds()):
            on_timeout("shutdown timed out. forcing exit.")
            self.shutdown()
            self._log.info(f"server run time: {self.run_time()}")
            raise TimeoutError("server shutdown timed out")
        self.shutdown()
        if log_run_time:
            self._log.info(f"server run time: {self.run_time()}")

    def run(self) -> None:
        """Serve until SIGHUP, SIGINT, SIGTERM or SIGQUIT arrives."""
        stop = threading.Event()

        def _on_signal(signum: int, frame: Any) -> None:
            stop.set()

        previous = {}
        for name in ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT"):
            sig = getattr(signal, name, None)
            if sig is not None:
                previous[sig] = signal.signal(sig, _on_signal)
        try:
            self._serve(stop, self._log.warn, log_run_time=True)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def start(self, shutdown_event: threading.Event) -> None:
        """Serve until the shutdown event is set."""
        self._serve(shutdown_event, self._log.error, log_run_time=False)