"""HTTP request model and parser."""

from dataclasses import dataclass, field
from urllib.parse import unquote, urlsplit

from config import MAX_TARGET_LENGTH

ALLOWED_HTTP_VERSIONS = {"HTTP/1.1", "HTTP/1.0"}
KNOWN_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "OPTIONS",
    "PATCH",
    "TRACE",
    "CONNECT",
}


class HTTPRequestParseError(ValueError):
    """Request parse error carrying an HTTP status code."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    method: str
    path: str
    http_version: str
    headers: dict[str, str] = field(default_factory=dict)
    keep_alive: bool = False

    @classmethod
    def from_bytes(cls, raw: bytes) -> "HTTPRequest":
        """Parse one framed request message.

        ``path`` comes back percent-decoded with the query string dropped; it
        is still untrusted input. Any body is validated against
        Content-Length and then discarded.
        """
        head, separator, body = raw.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPRequestParseError("Missing CRLF CRLF request separator")

        request_line, *header_lines = head.decode("iso-8859-1").split("\r\n")
        method, path, http_version = _parse_request_line(request_line)
        headers = _parse_headers(header_lines)

        if http_version == "HTTP/1.1" and "host" not in headers:
            raise HTTPRequestParseError("Host header required for HTTP/1.1")
        _check_body_framing(headers, body)

        return cls(
            method=method,
            path=path,
            http_version=http_version,
            headers=headers,
            keep_alive=_is_keep_alive(http_version, headers.get("connection", "")),
        )


def _parse_request_line(request_line: str) -> tuple[str, str, str]:
    parts = request_line.split(" ")
    if len(parts) != 3:
        raise HTTPRequestParseError("Invalid request line")
    method, target, http_version = parts
    if not method or not target or not http_version:
        raise HTTPRequestParseError("Request line contains empty tokens")

    method = method.upper()
    if method not in KNOWN_METHODS:
        raise HTTPRequestParseError("Method not implemented", status_code=501)
    if http_version not in ALLOWED_HTTP_VERSIONS:
        raise HTTPRequestParseError("Unsupported HTTP version", status_code=505)
    if len(target) > MAX_TARGET_LENGTH:
        raise HTTPRequestParseError("Request target too long", status_code=414)

    # Origin form ("/a/b") or absolute form ("http://host/a/b").
    parsed_target = urlsplit(target)
    if not target.startswith("/") and not parsed_target.scheme:
        raise HTTPRequestParseError("Request target must be origin or absolute form")
    return method, unquote(parsed_target.path or "/"), http_version


def _parse_headers(lines: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in lines:
        name, separator, value = line.partition(":")
        if not separator:
            raise HTTPRequestParseError("Malformed header line")
        header_name = name.strip().lower()
        if not header_name:
            raise HTTPRequestParseError("Header name cannot be empty")
        headers[header_name] = value.strip()
    return headers


def _check_body_framing(headers: dict[str, str], body: bytes) -> None:
    if "transfer-encoding" in headers:
        raise HTTPRequestParseError(
            "Transfer-Encoding request bodies are not supported",
            status_code=501,
        )
    if "content-length" not in headers:
        return
    try:
        expected_body_length = int(headers["content-length"])
    except ValueError as exc:
        raise HTTPRequestParseError("Invalid Content-Length") from exc
    if expected_body_length < 0 or len(body) != expected_body_length:
        raise HTTPRequestParseError("Body length does not match Content-Length")


def _is_keep_alive(http_version: str, connection_header: str) -> bool:
    token = connection_header.lower()
    if http_version == "HTTP/1.1":
        return "close" not in token
    if http_version == "HTTP/1.0":
        return "keep-alive" in token
    return False
