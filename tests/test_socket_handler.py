"""Unit tests for request framing over sockets."""

import socket

import pytest

from config import MAX_BODY_BYTES, MAX_HEADER_BYTES
from response import HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    extract_http_request_message,
    read_http_request_message,
    write_http_response_message,
)


class FakeSocket:
    def __init__(self, chunks: list[bytes | Exception]) -> None:
        self._chunks = list(chunks)
        self.sent = bytearray()

    def recv(self, _size: int) -> bytes:
        if not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        if isinstance(chunk, Exception):
            raise chunk
        return chunk

    def sendall(self, payload: bytes) -> None:
        self.sent.extend(payload)


def test_extract_returns_none_until_headers_complete() -> None:
    assert extract_http_request_message(b"GET / HTTP/1.1\r\nHost: x\r\n") is None


def test_extract_splits_pipelined_requests() -> None:
    first = b"GET /a.css HTTP/1.1\r\nHost: x\r\n\r\n"
    second = b"GET /b.js HTTP/1.1\r\nHost: x\r\n\r\n"

    assert extract_http_request_message(first + second) == (first, second)


def test_extract_waits_for_declared_body() -> None:
    head = b"GET / HTTP/1.1\r\nHost: x\r\nContent-Length: 4\r\n\r\n"

    assert extract_http_request_message(head + b"ab") is None
    assert extract_http_request_message(head + b"abcd") == (head + b"abcd", b"")


def test_extract_rejects_oversized_headers() -> None:
    with pytest.raises(HeaderTooLargeError):
        extract_http_request_message(b"GET / HTTP/1.1\r\nX: " + b"a" * MAX_HEADER_BYTES)


def test_extract_rejects_oversized_body() -> None:
    head = f"GET / HTTP/1.1\r\nContent-Length: {MAX_BODY_BYTES + 1}\r\n\r\n".encode()

    with pytest.raises(PayloadTooLargeError) as exc_info:
        extract_http_request_message(head)

    assert exc_info.value.status_code == 413


def test_extract_rejects_bad_content_length() -> None:
    with pytest.raises(MalformedRequestError):
        extract_http_request_message(b"GET / HTTP/1.1\r\nContent-Length: -1\r\n\r\n")


def test_read_collects_split_request_and_keeps_leftover() -> None:
    fake = FakeSocket([b"GET / HTTP/1.1\r\n", b"Host: x\r\n\r\nGET /next"])

    request_bytes, leftover = read_http_request_message(fake)  # type: ignore[arg-type]

    assert request_bytes == b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"
    assert leftover == b"GET /next"


def test_read_idle_close_returns_empty() -> None:
    assert read_http_request_message(FakeSocket([])) == (b"", b"")  # type: ignore[arg-type]


def test_read_idle_timeout_returns_empty() -> None:
    fake = FakeSocket([socket.timeout("idle")])

    assert read_http_request_message(fake) == (b"", b"")  # type: ignore[arg-type]


def test_read_partial_timeout_raises_408() -> None:
    fake = FakeSocket([b"GET / HTTP/1.1\r\n", socket.timeout("slow")])

    with pytest.raises(SocketTimeoutError) as exc_info:
        read_http_request_message(fake)  # type: ignore[arg-type]

    assert exc_info.value.status_code == 408


def test_read_partial_close_is_malformed() -> None:
    with pytest.raises(MalformedRequestError):
        read_http_request_message(FakeSocket([b"GET / HT"]))  # type: ignore[arg-type]


def test_write_returns_bytes_sent() -> None:
    fake = FakeSocket([])
    response = HTTPResponse(status_code=200, body=b"ok")

    sent = write_http_response_message(fake, response)  # type: ignore[arg-type]

    assert sent == len(fake.sent)
    assert bytes(fake.sent).endswith(b"\r\n\r\nok")
