"""HTTP response model and serializer."""

from dataclasses import dataclass, field
from email.utils import formatdate

from config import SERVER_NAME

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    304: "Not Modified",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    413: "Payload Too Large",
    414: "URI Too Long",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
    505: "HTTP Version Not Supported",
}


@dataclass(slots=True)
class HTTPResponse:
    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    content_length_override: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    @property
    def reason(self) -> str:
        return self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")

    def to_bytes(self) -> bytes:
        """Serialize the response into HTTP/1.1 wire format bytes."""
        return build_response_head(self) + self.body


def error_response(status_code: int, headers: dict[str, str] | None = None) -> HTTPResponse:
    """Plaintext response whose body is the reason phrase for ``status_code``."""
    return HTTPResponse(
        status_code=status_code,
        headers=dict(headers or {}),
        body=REASON_PHRASES.get(status_code, "Error"),
    )


def build_response_head(response: HTTPResponse) -> bytes:
    normalized_headers = dict(response.headers)
    normalized_headers.setdefault(
        "Date",
        formatdate(timeval=None, localtime=False, usegmt=True),
    )
    normalized_headers.setdefault("Server", SERVER_NAME)
    if response.status_code != 304:
        normalized_headers.setdefault("Content-Type", "text/plain; charset=utf-8")

    content_length = response.content_length_override
    if content_length is None:
        content_length = len(response.body)
    normalized_headers["Content-Length"] = str(content_length)

    header_lines = [f"HTTP/1.1 {response.status_code} {response.reason}"]
    header_lines.extend(f"{key}: {value}" for key, value in normalized_headers.items())
    return "\r\n".join(header_lines).encode("iso-8859-1") + b"\r\n\r\n"
