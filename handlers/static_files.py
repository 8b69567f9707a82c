"""Static file handler: maps request paths to files under a content root."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path

from config import INDEX_DOCUMENT, STATIC_DIR
from request import HTTPRequest
from response import HTTPResponse, error_response
from utils import ForbiddenPathError, get_content_type, resolve_static_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StaticFileHandler:
    root: str | Path = STATIC_DIR
    index_document: str | None = INDEX_DOCUMENT

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        try:
            static_path = resolve_static_file(
                request.path,
                self.root,
                index_document=self.index_document,
            )
        except ForbiddenPathError:
            logger.warning("Rejected path outside static root: %r", request.path)
            return error_response(403)
        except OSError:
            logger.exception("Failed to resolve %r", request.path)
            return error_response(500)

        if static_path is None:
            return error_response(404)

        try:
            file_stat = static_path.stat()
            validators = {
                "ETag": f'W/"{file_stat.st_mtime_ns:x}-{file_stat.st_size:x}"',
                "Last-Modified": formatdate(file_stat.st_mtime, usegmt=True),
            }
            if _is_not_modified(request, validators["ETag"], file_stat.st_mtime):
                return HTTPResponse(status_code=304, headers=validators)
            body = static_path.read_bytes()
        except FileNotFoundError:
            return error_response(404)
        except OSError:
            logger.exception("Failed to read static file %s", static_path)
            return error_response(500)

        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": get_content_type(static_path), **validators},
            body=body,
        )


def _is_not_modified(request: HTTPRequest, etag: str, mtime: float) -> bool:
    if_none_match = request.headers.get("if-none-match")
    if if_none_match is not None:
        return _etag_matches(if_none_match, etag)

    if_modified_since = request.headers.get("if-modified-since")
    if if_modified_since is None:
        return False
    try:
        since_ts = parsedate_to_datetime(if_modified_since).timestamp()
    except (TypeError, ValueError, OverflowError):
        return False
    return int(mtime) <= int(since_ts)


def _etag_matches(if_none_match: str, etag: str) -> bool:
    candidates = [token.strip() for token in if_none_match.split(",")]
    if "*" in candidates:
        return True
    return _opaque_tag(etag) in {_opaque_tag(token) for token in candidates if token}


def _opaque_tag(etag: str) -> str:
    return etag.removeprefix("W/")

