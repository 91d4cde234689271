"""
Pydantic schemas for API request/response validation.
"""
from .document import DocumentExportOut, DocumentOut, DocumentUpdate, SignedUrlOut
from .packet import PacketRequest

__all__ = [
    "DocumentExportOut",
    "DocumentOut",
    "DocumentUpdate",
    "SignedUrlOut",
    "PacketRequest",
]
