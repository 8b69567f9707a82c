"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket

from config import BUFFER_SIZE, MAX_BODY_BYTES, MAX_HEADER_BYTES
from response import HTTPResponse


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""

    status_code = 400


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""

    status_code = 431


class PayloadTooLargeError(HTTPReadError):
    """Raised when request body exceeds configured maximum size."""

    status_code = 413


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out part way through sending a request."""

    status_code = 408


def _extract_content_length(header_bytes: bytes) -> int:
    for line in header_bytes.decode("iso-8859-1").split("\r\n")[1:]:
        name, separator, value = line.partition(":")
        if not separator or name.strip().lower() != "content-length":
            continue
        try:
            parsed_length = int(value.strip())
        except ValueError as exc:
            raise MalformedRequestError("Invalid Content-Length header") from exc
        if parsed_length < 0:
            raise MalformedRequestError("Negative Content-Length header")
        return parsed_length
    return 0


def extract_http_request_message(buffer: bytes) -> tuple[bytes, bytes] | None:
    """Split one complete request off the front of ``buffer``.

    Returns ``(request_bytes, leftover_bytes)`` or ``None`` when more bytes are
    needed. Bodies are framed by Content-Length only.
    """
    header_end_index = buffer.find(b"\r\n\r\n")
    if header_end_index == -1:
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
        return None

    body_start = header_end_index + 4
    if body_start > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")

    expected_body_length = _extract_content_length(buffer[:header_end_index])
    if expected_body_length > MAX_BODY_BYTES:
        raise PayloadTooLargeError("Body exceeded MAX_BODY_BYTES")

    request_length = body_start + expected_body_length
    if len(buffer) < request_length:
        return None
    return buffer[:request_length], buffer[request_length:]


def read_http_request_message(
    client_socket: socket.socket,
    initial_buffer: bytes = b"",
) -> tuple[bytes, bytes]:
    """Read one HTTP request and return (request_bytes, leftover_bytes).

    An idle connection that closes or times out before sending anything yields
    ``(b"", b"")``.
    """
    buffer = bytearray(initial_buffer)

    while True:
        extracted = extract_http_request_message(bytes(buffer))
        if extracted is not None:
            return extracted

        try:
            chunk = client_socket.recv(BUFFER_SIZE)
        except socket.timeout as exc:
            if not buffer:
                return b"", b""
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b"", b""
            raise MalformedRequestError("Connection closed before request completed")

        buffer.extend(chunk)


def write_http_response_message(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write a serialized response and return the number of bytes sent."""
    payload = response.to_bytes()
    client_socket.sendall(payload)
    return len(payload)
