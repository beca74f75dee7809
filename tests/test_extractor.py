"""Tests for OCR page extraction."""

from __future__ import annotations

import pytest

from conftest import make_ocr_text
from pagewise.services.page_analysis import PageExtractor, count_pages, extract_page_range


@pytest.fixture
def full_text() -> str:
    return make_ocr_text({1: "First page.", 2: "  Second page.  ", 3: "", 4: "Fourth page."})


def test_single_page(full_text):
    assert extract_page_range(full_text, 2, 2) == "Second page."


def test_range_joined_with_blank_line(full_text):
    assert extract_page_range(full_text, 1, 2) == "First page.\n\nSecond page."


def test_reversed_range_is_swapped(full_text):
    assert extract_page_range(full_text, 2, 1) == extract_page_range(full_text, 1, 2)


def test_empty_pages_contribute_nothing(full_text):
    assert extract_page_range(full_text, 3, 4) == "Fourth page."
    assert extract_page_range(full_text, 3, 3) == ""


def test_missing_pages_give_empty_string(full_text):
    assert extract_page_range(full_text, 9, 10) == ""
    assert extract_page_range("", 1, 1) == ""


def test_mismatched_markers_are_ignored():
    text = "==Start of OCR for page 1==orphan==End of OCR for page 2=="

    assert extract_page_range(text, 1, 2) == ""


def test_count_pages(full_text):
    assert count_pages(full_text) == 4


@pytest.mark.asyncio
async def test_extractor_is_bound_to_text(full_text):
    extractor = PageExtractor(full_text)

    assert await extractor.extract_page(4) == "Fourth page."
    assert await extractor.extract_range(1, 2) == "First page.\n\nSecond page."
