# services/api/routers/packets.py

from __future__ import annotations

import io
import logging
from contextlib import nullcontext
from typing import List

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from adapters.base import StorageError
from core.errors import InvalidMetadata, SerializationFailure
from core.naming import packet_filename, packet_title
from core.packet_pdf import PacketBuilder
from core.validation import validate_product_type
from models import DocumentReference, PacketMetadata
from routers.deps import AppSettings, Storage
from schemas import PacketRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/packets", tags=["packets"])


def _references(storage, document_ids: List[str]) -> List[DocumentReference]:
    """
    Resolve document ids to packet references, keeping the requested order.
    Unknown ids are a client error; unreadable files are handled by the builder.
    """
    refs: List[DocumentReference] = []
    for document_id in document_ids:
        try:
            doc = storage.get_document(document_id)
        except StorageError as e:
            logger.error(f"Failed to get document {document_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to retrieve document: {e}",
            )
        if doc is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"DOCUMENT_NOT_FOUND: {document_id}",
            )
        refs.append(DocumentReference(display_title=doc.name, source_locator=doc.file_path))
    return refs


@router.post("/generate")
async def generate_packet(
    body: PacketRequest,
    request: Request,
    storage: Storage,
    settings: AppSettings,
):
    """
    Build a submittal packet PDF (cover page + table of contents + documents).

    - Documents are merged in the order of document_ids.
    - A document that cannot be fetched or parsed is skipped; it keeps its
      table-of-contents line and is reported in X-Packet-Failed-Documents.
    - disposition=inline returns the PDF for in-browser preview.
    """
    product_type = validate_product_type(body.product_type)
    refs = _references(storage, body.document_ids)

    metadata = PacketMetadata(
        title=packet_title(product_type),
        project_number=body.project_number,
        prepared_by=body.prepared_by,
        submitted_to=body.submitted_to,
        date=body.date,
    )

    builder = PacketBuilder.from_settings(storage, settings)

    # Limit concurrent heavy builds per instance
    sem = getattr(request.app.state, "packet_semaphore", None)
    try:
        async with (sem if sem is not None else nullcontext()):
            pdf_bytes, report = await builder.build_with_report(metadata, refs)
    except InvalidMetadata as e:
        raise HTTPException(
            status_code=422,
            detail=str(e),
        )
    except SerializationFailure as e:
        logger.exception(f"Packet generation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Packet generation failed: {e}",
        )

    fname = packet_filename(product_type, body.project_number)
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'{body.disposition}; filename="{fname}"',
            "Cache-Control": "no-store",
            "X-Packet-Pages": str(report.total_pages),
            "X-Packet-Failed-Documents": str(len(report.failures)),
        },
    )
