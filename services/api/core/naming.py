# services/api/core/naming.py
"""
Filename heuristics for uploaded documents and packet naming.
"""
from __future__ import annotations

import re
from typing import Dict, Tuple

from models import PRODUCT_TYPES

# Checked in order; first keyword hit wins
_TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("TDS", ("tds", "technical data")),
    ("ESR", ("esr", "evaluation report")),
    ("MSDS", ("msds", "safety data")),
    ("LEED", ("leed",)),
    ("Installation", ("installation", "install")),
    ("warranty", ("warranty",)),
    ("Acoustic", ("acoustic", "esl")),
    ("PartSpec", ("spec", "3-part")),
    ("Guide", ("scraper", "setup", "guide")),
)

CANONICAL_NAMES: Dict[str, str] = {
    "TDS": "Technical Data Sheet",
    "ESR": "Evaluation Report",
    "MSDS": "Material Safety Data Sheet",
    "LEED": "LEED Credit Guide",
    "Installation": "Installation Guide",
    "warranty": "Limited Warranty",
    "Acoustic": "Acoustical Performance",
    "PartSpec": "3-Part Specifications",
}


def detect_document_type(filename: str) -> str:
    lower = filename.lower()
    for doc_type, keywords in _TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return doc_type
    return "Other"


def extract_document_name(filename: str, doc_type: str) -> str:
    """
    Display name for an uploaded file.

    Known types get their canonical name; Other/Guide keep the cleaned
    filename with every word capitalized.
    """
    name = re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE)
    name = re.sub(r"[-_]", " ", name)
    name = re.sub(r"\s+", " ", name).strip()

    if doc_type in CANONICAL_NAMES:
        return CANONICAL_NAMES[doc_type]

    return " ".join(w[:1].upper() + w[1:].lower() for w in name.split(" ") if w)


def packet_title(product_type: str) -> str:
    label = PRODUCT_TYPES.get(product_type, product_type)
    return f"{label} Document Packet"


def packet_filename(product_type: str, project_number: str | None = None) -> str:
    parts = [product_type or "document", "packet"]
    if project_number:
        parts.insert(0, re.sub(r"[^A-Za-z0-9._-]+", "-", project_number).strip("-"))
    return "-".join(p for p in parts if p) + ".pdf"
