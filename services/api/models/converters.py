from __future__ import annotations

from typing import Any, Dict

from . import Document


def _bool_from_row(v: Any) -> bool:
    """
    Convert a stored boolean-ish value to Python bool.
    Accepts: True/False, TRUE/FALSE, 1/0, yes/no, y/n (case-insensitive).
    """
    if v is None:
        return False
    if isinstance(v, bool):
        return v
    s = str(v).strip().upper()
    return s in ("TRUE", "1", "YES", "Y")


def document_from_row(row: Dict[str, Any]) -> Document:
    """
    Convert a raw `documents` row (Supabase or JSON store) into a Document.
    """
    return Document(
        id=str(row.get("id", "")),
        name=row.get("name") or "",
        filename=row.get("filename") or "",
        file_path=row.get("file_path") or "",
        product_type=row.get("product_type") or "",
        description=row.get("description") or "",
        size=int(row.get("size") or 0),
        type=row.get("type") or "Other",
        required=_bool_from_row(row.get("required")),
        products=list(row.get("products") or []),
        created_at=row.get("created_at") or None,
        updated_at=row.get("updated_at") or None,
    )


def document_to_row(doc: Document) -> Dict[str, Any]:
    """Inverse of document_from_row (column names of the `documents` table)."""
    return {
        "id": doc.id,
        "name": doc.name,
        "description": doc.description,
        "filename": doc.filename,
        "size": doc.size,
        "type": doc.type,
        "required": doc.required,
        "products": list(doc.products),
        "product_type": doc.product_type,
        "file_path": doc.file_path,
        "created_at": doc.created_at,
        "updated_at": doc.updated_at,
    }
