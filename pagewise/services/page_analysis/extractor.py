"""Page text lookup over OCR output with per-page markers."""

from __future__ import annotations

import re

# OCR output wraps every page as:
#   ==Start of OCR for page 3== ... ==End of OCR for page 3==
PAGE_PATTERN = re.compile(
    r"==Start of OCR for page (\d+)==([\s\S]*?)==End of OCR for page \1=="
)


def iter_pages(full_text: str) -> list[tuple[int, str]]:
    """Return ``(page_number, text)`` pairs in document order."""
    return [
        (int(match.group(1)), match.group(2).strip())
        for match in PAGE_PATTERN.finditer(full_text or "")
    ]


def count_pages(full_text: str) -> int:
    """Number of distinct marked pages in the OCR text."""
    return len({number for number, _ in iter_pages(full_text)})


def extract_page_range(full_text: str, start: int, end: int) -> str:
    """
    Return the text of pages ``start..end`` inclusive.

    Pages are joined with a blank line. Missing pages contribute nothing,
    so the result may be an empty string.
    """
    if start > end:
        start, end = end, start
    texts = [text for number, text in iter_pages(full_text) if start <= number <= end]
    return "\n\n".join(t for t in texts if t)


class PageExtractor:
    """Extractor bound to one document's OCR text."""

    def __init__(self, full_text: str) -> None:
        self.full_text = full_text

    async def extract_range(self, start: int, end: int) -> str:
        return extract_page_range(self.full_text, start, end)

    async def extract_page(self, page_number: int) -> str:
        return extract_page_range(self.full_text, page_number, page_number)
