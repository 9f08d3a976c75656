"""
Career / about page text extraction for company summaries.

Fetches the page with a browser-like User-Agent, drops chrome (scripts, nav,
header, footer...) and keeps the main content area, falling back to <body>.
Pages rendered client-side will usually yield too little text and return None.
"""
from __future__ import annotations

from typing import Optional

import requests
from bs4 import BeautifulSoup

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0 Safari/537.36"
    )
}

STRIP_TAGS = ["script", "style", "nav", "header", "footer", "iframe", "noscript"]
MAIN_SELECTORS = "main, article, .content, .main-content, #content, #main-content"
MIN_TEXT_LENGTH = 50
MAX_TEXT_LENGTH = 5000


def _clean(text: str) -> str:
    """Collapse whitespace runs (including newlines) to single spaces."""
    if not text:
        return ""
    return " ".join(text.split()).strip()


def extract_page_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(STRIP_TAGS):
        tag.decompose()

    main_text = _clean(" ".join(el.get_text(" ") for el in soup.select(MAIN_SELECTORS)))
    if main_text:
        return main_text
    return _clean(soup.body.get_text(" ") if soup.body else soup.get_text(" "))


def fetch_career_text(
    url: str,
    timeout: float = 20.0,
    session: Optional[requests.Session] = None,
) -> Optional[str]:
    """
    Return cleaned page text (truncated to MAX_TEXT_LENGTH), or None when the
    URL is not http(s) or the page has under MIN_TEXT_LENGTH characters of text.
    Network errors propagate; the enrichment service decides what to do with them.
    """
    if not url or not url.startswith("http"):
        return None

    http = session or requests
    resp = http.get(url, headers=DEFAULT_HEADERS, timeout=timeout)
    resp.raise_for_status()

    text = extract_page_text(resp.text)
    if len(text) < MIN_TEXT_LENGTH:
        return None
    return text[:MAX_TEXT_LENGTH]
