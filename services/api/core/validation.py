"""
Validation utilities for the submittal packet service.
Ensures uploaded files and request values are usable and provides clear error messages.
"""
from typing import Optional
from fastapi import HTTPException

from models import PRODUCT_TYPES

PDF_SIGNATURE = b"%PDF"


def validate_pdf_upload(
    filename: str,
    content_type: Optional[str],
    data: bytes,
    *,
    max_bytes: int = 50 * 1024 * 1024,
    min_bytes: int = 1024,
) -> None:
    """
    Validate an uploaded file before it is stored.

    Rules:
    - Content type must be application/pdf
    - Size must not exceed max_bytes (50MB by default)
    - Size must be at least min_bytes (smaller files cannot be real PDFs)
    - File must start with the %PDF signature

    Raises:
        HTTPException: 400 if validation fails
    """
    if content_type != "application/pdf":
        raise HTTPException(
            status_code=400,
            detail=f"File must be a PDF document (got {content_type or 'unknown'} for {filename})"
        )

    if len(data) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds {max_bytes // (1024 * 1024)}MB limit"
        )

    if len(data) < min_bytes:
        raise HTTPException(
            status_code=400,
            detail="File is too small to be a valid PDF"
        )

    if not data[:5].startswith(PDF_SIGNATURE):
        raise HTTPException(
            status_code=400,
            detail="File does not appear to be a valid PDF"
        )


def validate_product_type(product_type: Optional[str]) -> str:
    """
    Ensure product_type is one of the known categories.

    Returns:
        The product type, stripped

    Raises:
        HTTPException: 400 for unknown values
    """
    value = (product_type or "").strip()
    if value not in PRODUCT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown product_type '{value}', expected one of: {', '.join(PRODUCT_TYPES)}"
        )
    return value
