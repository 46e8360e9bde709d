"""
Generic HTML capture strategy

Fallback for listing systems without a read API (Workday, BambooHR, custom
pages) and for API strategies that came back empty. Fetches the career page
once and:

1. Returns its JSON-LD JobPostings when the page has any (no model needed)
2. Otherwise returns a single RawJobData carrying the page reduced to text
   (scripts, styles, head and navigation chrome removed; links kept inline
   as absolute URLs), truncated to MAX_HTML_CHARS, for AI extraction
"""

import html
import re
from typing import List
from urllib.parse import urljoin

from strategies.json_ld import JsonLdStrategy
from workers.types import RawJobData, WorkUnitData

MAX_HTML_CHARS = 10_000

_NON_CONTENT = re.compile(
    r'<(script|style|head|noscript|svg|template|nav|footer|header)\b[^>]*>.*?</\1\s*>',
    re.DOTALL | re.IGNORECASE,
)
_COMMENT = re.compile(r'<!--.*?-->', re.DOTALL)
_LINK = re.compile(r'<a\b[^>]*?href\s*=\s*["\']([^"\'#][^"\']*)["\'][^>]*>', re.IGNORECASE)


def clean_page_text(page: str, base_url: str = "") -> str:
    """Reduce career page markup to the text a model needs to find postings."""
    text = _COMMENT.sub(' ', page)
    text = _NON_CONTENT.sub(' ', text)
    text = _LINK.sub(lambda m: f' ({urljoin(base_url, html.unescape(m.group(1)))}) ', text)
    text = re.sub(r'<br\s*/?>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<li[^>]*>', '\n- ', text, flags=re.IGNORECASE)
    text = re.sub(r'</(p|div|h[1-6]|tr|section|article|ul|ol)>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]+>', ' ', text)
    text = html.unescape(text)
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n +', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


class HtmlCaptureStrategy(JsonLdStrategy):
    """Capture career page content for AI extraction, JSON-LD first"""

    def from_page(self, page: str, unit: WorkUnitData, page_url: str) -> List[RawJobData]:
        postings = super().from_page(page, unit, page_url)
        if postings:
            return postings

        text = clean_page_text(page, base_url=page_url)
        if not text:
            return []

        return [RawJobData(
            company=unit.company_name,
            source_url=page_url,
            raw_html=text[:MAX_HTML_CHARS],
        )]
