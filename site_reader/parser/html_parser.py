# === FILE: site_reader/parser/html_parser.py ===
"""HTML parsing utilities for SiteReader.

Turns raw page markup into the readable parts the service returns:

* the main article (via :mod:`trafilatura`), converted to Markdown with
  :func:`markdownify.markdownify` and to plain text with BeautifulSoup;
* metadata: title, author (byline) and site name;
* outbound ``<a href>`` links, absolute;
* JSON-LD blocks (``<script type="application/ld+json">``), parsed but
  otherwise untouched.

When trafilatura finds no main content the whole ``<body>`` is used instead,
so a page never comes back empty just because it does not look like an
article.
"""
from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urljoin

import trafilatura
from bs4 import BeautifulSoup
from markdownify import markdownify

from site_reader.utils import remove_duplicates

__all__: Sequence[str] = ("Article", "extract_article", "extract_links", "extract_json_ld")

_STRIP_TAGS = ("script", "style", "noscript", "template", "iframe")


@dataclass(slots=True)
class Article:
    """Readable representation of an HTML page."""

    title: str
    content_html: str
    markdown: str
    text_content: str
    byline: Optional[str] = None
    site_name: Optional[str] = None


def _meta_value(meta: Any, name: str) -> Optional[str]:
    # trafilatura returns a Document object (older releases: a dict)
    if meta is None:
        return None
    value = meta.get(name) if isinstance(meta, dict) else getattr(meta, name, None)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _fallback_body(soup: BeautifulSoup) -> str:
    for element in soup(_STRIP_TAGS):
        element.decompose()
    body = soup.body or soup
    return body.decode_contents() if hasattr(body, "decode_contents") else str(body)


def extract_article(html: str, url: Optional[str] = None) -> Article:
    """Extract the readable article from *html*.

    Parameters
    ----------
    html
        Full page markup.
    url
        Page URL; helps trafilatura resolve relative links and site name.
    """
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    page_title = title_tag.get_text(strip=True) if title_tag else ""

    meta = trafilatura.extract_metadata(html, default_url=url)
    content_html = trafilatura.extract(
        html,
        url=url,
        output_format="html",
        include_links=True,
        include_images=False,
        include_tables=True,
        favor_recall=True,
    )
    if not content_html:
        content_html = _fallback_body(soup)

    markdown = markdownify(content_html, heading_style="ATX", code_language="").strip()
    text_content = BeautifulSoup(content_html, "html.parser").get_text("\n", strip=True)

    return Article(
        title=_meta_value(meta, "title") or page_title,
        content_html=content_html,
        markdown=markdown,
        text_content=text_content,
        byline=_meta_value(meta, "author"),
        site_name=_meta_value(meta, "sitename"),
    )


def extract_links(html: str, base_url: str) -> List[str]:
    """Return unique absolute http(s) hrefs of every ``<a>`` in document order."""
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        href = tag.get("href")
        if not isinstance(href, str):
            continue
        try:
            absolute = urljoin(base_url, href.strip())
        except ValueError:
            # e.g. an unterminated IPv6 literal
            continue
        if absolute.startswith("http"):
            links.append(absolute)
    return remove_duplicates(links)


def extract_json_ld(html: str) -> List[Any]:
    """Parse every JSON-LD script block; blocks that are not valid JSON are skipped."""
    soup = BeautifulSoup(html, "html.parser")
    blobs: List[Any] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            blobs.append(json.loads(script.string or script.get_text() or ""))
        except json.JSONDecodeError:
            continue
    return blobs
