"""Utility helpers shared across server modules."""

import errno
import mimetypes
from pathlib import Path

from config import INDEX_DOCUMENT

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
}


MISSING_PATH_ERRNOS = frozenset({errno.ENAMETOOLONG, errno.ENOTDIR, errno.ELOOP})


class ForbiddenPathError(ValueError):
    """Raised when a request path would resolve outside the static root."""


def get_content_type(file_path: Path) -> str:
    suffix = file_path.suffix.lower()
    if suffix in CONTENT_TYPES:
        return CONTENT_TYPES[suffix]
    content_type, _encoding = mimetypes.guess_type(file_path.name)
    return content_type or "application/octet-stream"


def _ensure_within_root(candidate: Path, static_root: Path) -> None:
    try:
        candidate.relative_to(static_root)
    except ValueError as exc:
        raise ForbiddenPathError(f"{candidate} escapes {static_root}") from exc


def resolve_static_file(
    request_path: str,
    static_dir: str | Path,
    index_document: str | None = INDEX_DOCUMENT,
) -> Path | None:
    """Map a decoded request path to a regular file under ``static_dir``.

    Returns None when nothing servable exists. Raises ForbiddenPathError when
    the normalized path (symlinks included) leaves the root.
    """
    if "\x00" in request_path:
        raise ForbiddenPathError("NUL byte in request path")

    static_root = Path(static_dir).resolve()
    candidate = (static_root / request_path.lstrip("/")).resolve()
    _ensure_within_root(candidate, static_root)

    try:
        if candidate.is_dir():
            if not index_document:
                return None
            candidate = (candidate / index_document).resolve()
            _ensure_within_root(candidate, static_root)

        if not candidate.is_file():
            return None
    except OSError as exc:
        if exc.errno in MISSING_PATH_ERRNOS:
            return None
        raise
    return candidate
