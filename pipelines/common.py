"""Shared utilities for retrieving remote report documents."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Mapping

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; county-market-stats/0.1)"
_DEFAULT_WAIT = wait_exponential(multiplier=0.5, min=0.5, max=2)
_DEFAULT_STOP = stop_after_attempt(2)

logger = logging.getLogger(__name__)

Headers = Mapping[str, str] | None


class DocumentType(str, Enum):
    PDF = "pdf"
    HTML = "html"
    TEXT = "text"


_ACCEPT = {
    DocumentType.PDF: "application/pdf,*/*;q=0.8",
    DocumentType.HTML: "text/html,application/xhtml+xml,*/*;q=0.8",
    DocumentType.TEXT: "text/plain,*/*;q=0.8",
}


class FetchFailure(Exception):
    """A remote document could not be retrieved (network, timeout or HTTP status)."""


class UnexpectedContentType(FetchFailure):
    """A document came back but is not the kind of document that was asked for."""


@dataclass(frozen=True)
class FetchedDocument:
    url: str
    content: bytes
    content_type: str
    kind: DocumentType
    last_modified: datetime | None = None
    encoding: str | None = None


Fetcher = Callable[..., Awaitable[FetchedDocument]]


def parse_http_date(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _looks_like_pdf(content: bytes) -> bool:
    return content[:1024].lstrip().startswith(b"%PDF-")


def _check_content(url: str, content_type: str, content: bytes, expect: DocumentType) -> None:
    lowered = content_type.lower()
    if expect is DocumentType.PDF:
        if _looks_like_pdf(content) or ("pdf" in lowered and "html" not in lowered):
            return
        raise UnexpectedContentType(
            f"Expected a PDF from {url} but got {content_type or 'no content type'}."
        )
    if expect is DocumentType.HTML:
        if _looks_like_pdf(content) or "pdf" in lowered:
            raise UnexpectedContentType(f"Expected HTML from {url} but got a PDF.")
        return


@asynccontextmanager
async def _client_scope(
    client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
        yield owned


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    wait=_DEFAULT_WAIT,
    stop=_DEFAULT_STOP,
    reraise=True,
)
async def _request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: Headers,
    timeout: float,
) -> httpx.Response:
    return await client.request(method, url, headers=headers, timeout=timeout)


async def fetch_document(
    url: str,
    *,
    expect: DocumentType = DocumentType.PDF,
    headers: Headers = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    client: httpx.AsyncClient | None = None,
) -> FetchedDocument:
    """Download ``url`` and return its bytes along with the response metadata.

    Transport errors (connect failures, read timeouts) are retried with a short
    exponential backoff; HTTP status errors are not. Every failure surfaces as
    :class:`FetchFailure` so callers only need to handle one exception family, and a
    response of the wrong kind (an HTML login page instead of a PDF) raises
    :class:`UnexpectedContentType`.
    """

    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": _ACCEPT[expect]}
    if headers:
        request_headers.update(headers)

    async with _client_scope(client, timeout) as active:
        try:
            response = await _request(
                active, "GET", url, headers=request_headers, timeout=timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchFailure(
                f"{url} returned HTTP {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchFailure(f"{url} could not be fetched: {exc!r}") from exc

    content_type = response.headers.get("content-type", "")
    _check_content(url, content_type, response.content, expect)
    return FetchedDocument(
        url=str(response.url),
        content=response.content,
        content_type=content_type,
        kind=expect,
        last_modified=parse_http_date(response.headers.get("last-modified")),
        encoding=response.encoding,
    )


async def fetch_last_modified(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    client: httpx.AsyncClient | None = None,
) -> datetime | None:
    """Return the ``Last-Modified`` header of ``url`` without downloading the body.

    Tries a HEAD request first and falls back to a one-byte ranged GET for servers that
    reject HEAD. Any failure yields ``None``.
    """

    attempts = (
        ("HEAD", {"User-Agent": DEFAULT_USER_AGENT}),
        ("GET", {"User-Agent": DEFAULT_USER_AGENT, "Range": "bytes=0-0"}),
    )
    async with _client_scope(client, timeout) as active:
        for method, headers in attempts:
            try:
                response = await _request(
                    active, method, url, headers=headers, timeout=timeout
                )
            except httpx.HTTPError as exc:
                logger.debug("%s %s failed: %r", method, url, exc)
                continue
            if not response.is_success:
                continue
            return parse_http_date(response.headers.get("last-modified"))
    return None


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "DocumentType",
    "FetchFailure",
    "FetchedDocument",
    "Fetcher",
    "UnexpectedContentType",
    "fetch_document",
    "fetch_last_modified",
    "parse_http_date",
]
