from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Product categories a document can belong to (`documents.product_type`)
PRODUCT_TYPES: Dict[str, str] = {
    "structural-floor": "Structural Floor",
    "underlayment": "Underlayment",
}

# Document kinds (`documents.type`)
DOCUMENT_TYPES = (
    "TDS",
    "ESR",
    "MSDS",
    "LEED",
    "Installation",
    "warranty",
    "Acoustic",
    "PartSpec",
    "Guide",
    "Other",
)


@dataclass
class Document:
    """
    Domain model for a product document.

    This is a pure data object that is easy to map:
      - from store rows (Supabase / JSON dicts)
      - to Pydantic schemas (DocumentOut, etc.)
    """
    id: str
    name: str
    filename: str
    file_path: str                         # storage locator (bucket-relative)
    product_type: str

    description: str = ""
    size: int = 0                          # bytes
    type: str = "Other"
    required: bool = False
    products: List[str] = field(default_factory=list)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None
