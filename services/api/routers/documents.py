# services/api/routers/documents.py
from __future__ import annotations

from dataclasses import asdict
import io
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from adapters.base import DocumentNotFound, StorageError
from core.naming import detect_document_type, extract_document_name
from core.validation import validate_pdf_upload, validate_product_type
from models import DOCUMENT_TYPES, Document
from routers.deps import AppSettings, Storage
from schemas import DocumentExportOut, DocumentOut, DocumentUpdate, SignedUrlOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


# ====== Helpers ======

def _out(doc: Document) -> DocumentOut:
    return DocumentOut(**asdict(doc))


def _require_document(storage, document_id: str) -> Document:
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
    return doc


# ====== Endpoints ======

@router.get("", response_model=List[DocumentOut])
async def list_documents(
    storage: Storage,
    product_type: Optional[str] = Query(None, description="structural-floor | underlayment"),
):
    """List documents, newest first, optionally for one product type."""
    if product_type:
        product_type = validate_product_type(product_type)
    try:
        docs = storage.list_documents(product_type)
    except StorageError as e:
        logger.error(f"Error fetching documents: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to list documents: {e}",
        )
    return [_out(d) for d in docs]


@router.get("/export", response_model=List[DocumentExportOut])
async def export_documents(
    storage: Storage,
    product_type: Optional[str] = Query(None, description="structural-floor | underlayment"),
):
    """
    Every document with its PDF inlined as base64 (backup / migration).
    Documents whose stored file is missing are left out.
    """
    if product_type:
        product_type = validate_product_type(product_type)
    try:
        exported = storage.export_documents(product_type)
    except StorageError as e:
        logger.error(f"Error exporting documents: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to export documents: {e}",
        )
    return [DocumentExportOut(**asdict(doc), file_data=data) for doc, data in exported]


@router.get("/{document_id}", response_model=DocumentOut)
async def get_document(document_id: str, storage: Storage):
    return _out(_require_document(storage, document_id))


@router.get("/{document_id}/signed-url", response_model=SignedUrlOut)
async def get_signed_url(
    document_id: str,
    storage: Storage,
    settings: AppSettings,
    expires_in: Optional[int] = Query(None, gt=0, le=7 * 24 * 3600),
):
    """Time-limited download URL for the stored PDF (default validity from settings)."""
    doc = _require_document(storage, document_id)
    expires_in = expires_in or settings.signed_url_expires_in
    try:
        url = storage.resolve_locator_to_url(doc.file_path, expires_in)
    except DocumentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"OBJECT_NOT_FOUND: {doc.file_path}",
        )
    except StorageError as e:
        logger.error(f"Error generating signed URL for {document_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate document URL",
        )
    return SignedUrlOut(document_id=document_id, url=url, expires_in=expires_in)


@router.get("/{document_id}/download")
async def download_document(document_id: str, storage: Storage):
    doc = _require_document(storage, document_id)
    data = storage.download_document(document_id)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"OBJECT_NOT_FOUND: {doc.file_path}",
        )
    return StreamingResponse(
        io.BytesIO(data),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{doc.filename}"'},
    )


@router.post("", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def upload_document(
    storage: Storage,
    settings: AppSettings,
    file: UploadFile = File(...),
    product_type: str = Form(...),
):
    """
    Upload a PDF for a product type.

    - Validates content type, size and %PDF signature.
    - Detects the document type and display name from the filename.
    """
    product_type = validate_product_type(product_type)
    data = await file.read()
    filename = file.filename or "document.pdf"

    validate_pdf_upload(
        filename,
        file.content_type,
        data,
        max_bytes=settings.max_upload_bytes,
        min_bytes=settings.min_upload_bytes,
    )

    doc_type = detect_document_type(filename)
    name = extract_document_name(filename, doc_type)

    try:
        doc = storage.create_document(
            data=data,
            filename=filename,
            name=name,
            doc_type=doc_type,
            product_type=product_type,
            description=f"{doc_type} Document",
        )
    except StorageError as e:
        logger.error(f"Error in upload_document: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to upload document: {e}",
        )

    logger.info(f"Uploaded '{filename}' as {doc_type} document {doc.id}")
    return _out(doc)


@router.patch("/{document_id}", response_model=DocumentOut)
async def update_document(document_id: str, body: DocumentUpdate, storage: Storage):
    if body.type is not None and body.type not in DOCUMENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown document type '{body.type}'",
        )
    try:
        doc = storage.update_document(document_id, body.model_dump(exclude_none=True))
    except DocumentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"DOCUMENT_NOT_FOUND: {document_id}",
        )
    except StorageError as e:
        logger.error(f"Error updating document {document_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to update document: {e}",
        )
    return _out(doc)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: str, storage: Storage):
    try:
        storage.delete_document(document_id)
    except DocumentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"DOCUMENT_NOT_FOUND: {document_id}",
        )
    except StorageError as e:
        logger.error(f"Error deleting document {document_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to delete document: {e}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
