"""
Pydantic schemas for documents.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DocumentOut(BaseModel):
    """Schema for document output."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Document ID")
    name: str
    description: str = ""
    filename: str
    file_path: str = Field(..., description="Storage locator inside the bucket")
    size: int = 0
    type: str = "Other"
    required: bool = False
    products: List[str] = Field(default_factory=list)
    product_type: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DocumentUpdate(BaseModel):
    """Editable document fields. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=2000)
    type: Optional[str] = Field(None, description="Document type (TDS, ESR, MSDS, ...)")


class SignedUrlOut(BaseModel):
    document_id: str
    url: str
    expires_in: int


class DocumentExportOut(DocumentOut):
    """A document together with its stored PDF (base64)."""
    file_data: str = Field(..., description="Base64-encoded PDF bytes")
