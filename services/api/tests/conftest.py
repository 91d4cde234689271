"""
Shared fixtures for the API tests.

Run with: pytest services/api/tests -v
"""
import asyncio
import os
import sys
from typing import Dict, List, Optional

import pytest
from fpdf import FPDF

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.base import DocumentNotFound, FetchError


def build_pdf(n_pages: int, label: str = "DOC") -> bytes:
    """A small PDF whose page i carries the text '<label> page <i>'."""
    pdf = FPDF(unit="pt", format="A4")
    for i in range(n_pages):
        pdf.add_page()
        pdf.set_font("Helvetica", size=14)
        pdf.text(72, 72, f"{label} page {i + 1}")
    return bytes(pdf.output())


class FakeStore:
    """
    In-memory document store.

    - objects:  locator -> bytes (missing locator = DocumentNotFound)
    - broken:   locators whose fetch fails with FetchError
    - delays:   locator -> seconds to wait inside fetch_bytes
    """

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.broken: set = set()
        self.delays: Dict[str, float] = {}
        self.resolved: List[str] = []
        self.fetched: List[str] = []

    def resolve_locator_to_url(self, locator: str, expires_in: Optional[int] = None) -> str:
        self.resolved.append(locator)
        if locator not in self.objects and locator not in self.broken:
            raise DocumentNotFound(f"Object not found: {locator}")
        return f"memory://{locator}"

    async def fetch_bytes(self, url: str) -> bytes:
        locator = url[len("memory://"):]
        await asyncio.sleep(self.delays.get(locator, 0))
        self.fetched.append(locator)
        if locator in self.broken:
            raise FetchError("Failed to fetch PDF: HTTP 500 Internal Server Error")
        return self.objects[locator]


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def fake_store():
    return FakeStore()
