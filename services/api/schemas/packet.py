"""
Pydantic schemas for packet generation.
"""
import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class PacketRequest(BaseModel):
    """
    Request body for POST /packets/generate.

    The packet title is derived from product_type ("<Label> Document Packet");
    documents appear in the packet in the order of document_ids.
    """
    product_type: str = Field(..., description="structural-floor | underlayment")
    project_number: Optional[str] = Field(None, max_length=100)
    prepared_by: str = Field(..., description="Shown on the cover page")
    submitted_to: str = Field(..., description="Shown on the cover page")
    date: dt.date
    document_ids: List[str] = Field(default_factory=list, description="Ordered document IDs")
    disposition: Literal["attachment", "inline"] = Field(
        "attachment",
        description="attachment = download, inline = preview in the browser",
    )

    @field_validator("project_number")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

