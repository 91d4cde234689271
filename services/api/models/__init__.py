from __future__ import annotations

from .document import DOCUMENT_TYPES, PRODUCT_TYPES, Document
from .packet import (
    FRONT_MATTER_PAGE_COUNT,
    DocumentReference,
    PacketBuildReport,
    PacketMetadata,
    PageContribution,
    ResolutionFailure,
    ResolvedDocumentEntry,
)

__all__ = [
    "DOCUMENT_TYPES",
    "PRODUCT_TYPES",
    "Document",
    "FRONT_MATTER_PAGE_COUNT",
    "DocumentReference",
    "PacketBuildReport",
    "PacketMetadata",
    "PageContribution",
    "ResolutionFailure",
    "ResolvedDocumentEntry",
]
