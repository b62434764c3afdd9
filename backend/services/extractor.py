"""HTML to plain text extraction."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

import config

_WHITESPACE = re.compile(r"\s+")


def extract_text_from_html(html: str, limit: int = config.MAX_EXTRACTED_CHARS) -> str:
    """
    Drop <script>/<style> blocks and markup, collapse whitespace and keep the
    first ``limit`` characters.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = _WHITESPACE.sub(" ", soup.get_text(" ")).strip()
    return text[:limit]
