"""Turn fetched PDF/HTML documents into plain text for the extraction engine."""

from __future__ import annotations

import io
import logging
import re

import pdfplumber
from bs4 import BeautifulSoup
from pdfminer.pdfparser import PDFSyntaxError
from pdfplumber.utils.exceptions import PdfminerException

from pipelines.common import DocumentType, FetchedDocument, UnexpectedContentType

logger = logging.getLogger(__name__)

_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_LINE_BREAKS_RE = re.compile(r"\s*\n\s*")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to one space and line-break runs to one newline."""

    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    collapsed = _HORIZONTAL_WS_RE.sub(" ", unified)
    return _LINE_BREAKS_RE.sub("\n", collapsed).strip()


def pdf_to_text(content: bytes, *, source: str = "<memory>") -> str:
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except (PdfminerException, PDFSyntaxError) as exc:
        raise UnexpectedContentType(f"Unreadable PDF from {source}: {exc}") from exc
    logger.debug("Extracted %s pages of text from %s.", len(pages), source)
    return "\n".join(pages)


def html_to_text(html: str | bytes) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return soup.get_text("\n")


def to_plain_text(document: FetchedDocument) -> str:
    """Convert a fetched document into plain text according to its type."""

    if document.kind is DocumentType.PDF:
        return pdf_to_text(document.content, source=document.url)
    if document.kind is DocumentType.HTML:
        return html_to_text(document.content)
    return document.content.decode(document.encoding or "utf-8", errors="replace")


__all__ = ["html_to_text", "normalize_whitespace", "pdf_to_text", "to_plain_text"]
