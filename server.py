"""Static preview server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import socket
import time
from pathlib import Path

from config import (
    HOST,
    INDEX_DOCUMENT,
    KEEPALIVE_TIMEOUT_SECS,
    LOG_FORMAT,
    MAX_KEEPALIVE_REQUESTS,
    PORT,
    REQUEST_QUEUE_SIZE,
    SOCKET_TIMEOUT_SECS,
    STATIC_DIR,
    WORKER_COUNT,
)
from handlers.static_files import StaticFileHandler
from request import HTTPRequest, HTTPRequestParseError
from response import HTTPResponse, error_response
from socket_handler import (
    HTTPReadError,
    read_http_request_message,
    write_http_response_message,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")


class HTTPServer:
    """Serves files under ``root`` until ``stop`` is called.

    The server is either stopped or listening; ``start`` blocks for as long as
    it is listening.
    """

    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        root: str | Path = STATIC_DIR,
        index_document: str | None = INDEX_DOCUMENT,
        worker_count: int = WORKER_COUNT,
        request_queue_size: int = REQUEST_QUEUE_SIZE,
        *,
        keepalive_timeout_secs: int = KEEPALIVE_TIMEOUT_SECS,
        log_format: str = LOG_FORMAT,
    ) -> None:
        self.host = host
        self.port = port
        self.root = Path(root)
        self.handler = StaticFileHandler(root=self.root, index_document=index_document)
        self.worker_count = worker_count
        self.request_queue_size = request_queue_size
        self.keepalive_timeout_secs = keepalive_timeout_secs
        self.log_format = log_format

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False

    @property
    def listening(self) -> bool:
        return self._running

    def start(self) -> None:
        """Bind, listen and hand accepted connections to the worker pool."""
        if not self.root.is_dir():
            raise FileNotFoundError(f"Static root does not exist: {self.root}")

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
            server_socket.settimeout(0.2)
            self.port = server_socket.getsockname()[1]
            pool = ThreadPool(
                worker_count=self.worker_count,
                queue_size=self.request_queue_size,
                handler=self._handle_client,
            )
            self._pool = pool
            pool.start()

            self._running = True
            logger.info("Serving %s on http://%s:%s", self.root, self.host, self.port)
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break

                    if not pool.submit(client_socket, address):
                        self._send_queue_full_response(client_socket, address)
            finally:
                self._running = False
                pool.shutdown()
                self._pool = None
                logger.info("Server stopped")

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None
        pool = self._pool
        if pool is not None:
            pool.shutdown()

    def _send_queue_full_response(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
    ) -> None:
        with client_socket:
            self._reject(client_socket, address, 503, time.perf_counter(), bytes_in=0)

    def _reject(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        status_code: int,
        started_at: float,
        *,
        bytes_in: int,
    ) -> None:
        response = error_response(status_code, headers={"Connection": "close"})
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError:
            return
        self._record_and_log(
            address=address,
            method="-",
            path="-",
            response=response,
            bytes_out=bytes_sent,
            bytes_in=bytes_in,
            started_at=started_at,
            connection_reused=False,
        )

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(min(SOCKET_TIMEOUT_SECS, self.keepalive_timeout_secs))
            request_count = 0
            carry = b""
            while request_count < MAX_KEEPALIVE_REQUESTS:
                started_at = time.perf_counter()
                try:
                    raw_request, carry = read_http_request_message(client_socket, carry)
                except HTTPReadError as exc:
                    logger.debug("Read error from %s: %s", address[0], exc)
                    self._reject(client_socket, address, exc.status_code, started_at, bytes_in=0)
                    return
                except OSError:
                    return

                if not raw_request:
                    return

                try:
                    request = HTTPRequest.from_bytes(raw_request)
                except HTTPRequestParseError as exc:
                    logger.debug("Parse error from %s: %s", address[0], exc)
                    self._reject(
                        client_socket,
                        address,
                        exc.status_code,
                        started_at,
                        bytes_in=len(raw_request),
                    )
                    return

                request_count += 1
                response = self._dispatch(request)
                should_close = (
                    not request.keep_alive
                    or request_count >= MAX_KEEPALIVE_REQUESTS
                    or not self._running
                )
                if should_close:
                    response.headers.setdefault("Connection", "close")
                else:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive",
                        (
                            f"timeout={self.keepalive_timeout_secs}, "
                            f"max={MAX_KEEPALIVE_REQUESTS - request_count}"
                        ),
                    )

                try:
                    bytes_sent = write_http_response_message(client_socket, response)
                except OSError as exc:
                    logger.debug("Client %s went away: %s", address[0], exc)
                    return

                self._record_and_log(
                    address=address,
                    method=request.method,
                    path=request.path,
                    response=response,
                    bytes_out=bytes_sent,
                    bytes_in=len(raw_request),
                    started_at=started_at,
                    connection_reused=request_count > 1,
                )
                if should_close:
                    return

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in ALLOWED_METHODS:
            return error_response(405, headers={"Allow": ", ".join(ALLOWED_METHODS)})

        try:
            response = self.handler(request)
        except Exception:
            logger.exception("Unhandled error in static handler")
            response = error_response(500)

        if request.method == "HEAD":
            return self._as_head_response(response)
        return response

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_out: int,
        bytes_in: int,
        started_at: float,
        connection_reused: bool,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_in": bytes_in,
            "bytes_out": bytes_out,
            "latency_ms": round(duration_ms, 3),
            "connection_reused": connection_reused,
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            (
                "client=%s method=%s path=%s status=%s bytes_in=%s bytes_out=%s "
                "duration_ms=%.2f connection_reused=%s"
            ),
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
            event["connection_reused"],
        )

    def _as_head_response(self, get_response: HTTPResponse) -> HTTPResponse:
        return HTTPResponse(
            status_code=get_response.status_code,
            reason_phrase=get_response.reason_phrase,
            headers=dict(get_response.headers),
            body=b"",
            content_length_override=len(get_response.body),
        )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Preview a static site over HTTP")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--root", default=STATIC_DIR, help="directory to serve")
    parser.add_argument(
        "--index",
        default=INDEX_DOCUMENT,
        help="document served for directory paths; empty string disables it",
    )
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    server = HTTPServer(
        host=args.host,
        port=args.port,
        root=args.root,
        index_document=args.index or None,
        log_format=args.log_format,
    )
    signal.signal(signal.SIGTERM, lambda _signum, _frame: server.stop())
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
