# services/api/models/packet.py

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from typing import Optional, Tuple, Union


# Cover page + table of contents
FRONT_MATTER_PAGE_COUNT = 2


@dataclass(frozen=True)
class PacketMetadata:
    """
    Everything printed on the cover page. Immutable for one build.
    """
    title: Optional[str]
    prepared_by: Optional[str]
    submitted_to: Optional[str]
    date: Optional[Union[dt.date, dt.datetime]]
    project_number: Optional[str] = None


@dataclass(frozen=True)
class DocumentReference:
    """One selected document; list order is the order in the packet."""
    display_title: str
    source_locator: str


@dataclass(frozen=True)
class PageContribution:
    """A successfully parsed source document, ready to be merged."""
    reference: DocumentReference
    page_count: int


@dataclass(frozen=True)
class ResolutionFailure:
    """
    A document that could not be looked up, fetched or parsed.
    It contributes zero pages; the build carries on without it.
    """
    reference: DocumentReference
    reason: str


@dataclass(frozen=True)
class ResolvedDocumentEntry:
    display_title: str
    page_count: int          # 0 when the document failed to resolve
    start_page_number: int   # 1-based page in the merged packet
    resolved: bool = True


@dataclass(frozen=True)
class PacketBuildReport:
    entries: Tuple[ResolvedDocumentEntry, ...]
    failures: Tuple[ResolutionFailure, ...]
    total_pages: int
