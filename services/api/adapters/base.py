"""
Storage adapter interface for the submittal packet service.
Defines the contract that all document stores must implement.
"""

from typing import Protocol, List, Dict, Any, Optional, Tuple

from models import Document


class StorageError(Exception):
    """Generic failure talking to the document store."""


class DocumentNotFound(StorageError):
    """No document / stored object exists for the given id or locator."""


class FetchError(StorageError):
    """Downloading bytes from a (signed) URL returned a non-success response."""


class DocumentStore(Protocol):
    """
    Protocol defining the interface for all document stores.

    This allows swapping between Supabase and the local JSON store
    without changing the router or packet-building code.

    NOTE:
    - PacketBuilder only needs resolve_locator_to_url + fetch_bytes.
    - Everything else backs the /documents admin endpoints.
    """

    # ========== Packet resolution ==========

    def resolve_locator_to_url(self, locator: str, expires_in: Optional[int] = None) -> str:
        """
        Turn a storage locator (documents.file_path) into a time-limited URL.

        Args:
            locator: Bucket-relative object path
            expires_in: Validity window in seconds (defaults to settings, 3600)

        Raises:
            DocumentNotFound if the object does not exist.
        """
        ...

    async def fetch_bytes(self, url: str) -> bytes:
        """
        Download the raw bytes behind a URL returned by resolve_locator_to_url.

        Raises:
            FetchError on a non-success transport response.
        """
        ...

    # ========== Documents ==========

    def list_documents(self, product_type: Optional[str] = None) -> List[Document]:
        """
        Return documents, newest first, optionally filtered by product_type.
        """
        ...

    def get_document(self, document_id: str) -> Optional[Document]:
        """
        Fetch a document by id.

        Returns:
            Document, or None if not found.
        """
        ...

    def create_document(
        self,
        *,
        data: bytes,
        filename: str,
        name: str,
        doc_type: str,
        product_type: str,
        description: str = "",
    ) -> Document:
        """
        Store the PDF object and insert its metadata row.

        Implementations must remove the stored object again if the
        metadata insert fails.
        """
        ...

    def update_document(self, document_id: str, updates: Dict[str, Any]) -> Document:
        """
        Update name / description / type on a document.

        Raises:
            DocumentNotFound if the document does not exist.
        """
        ...

    def delete_document(self, document_id: str) -> None:
        """
        Delete the metadata row, then the stored object.

        Raises:
            DocumentNotFound if the document does not exist.
        """
        ...

    def download_document(self, document_id: str) -> Optional[bytes]:
        """
        Return the stored PDF bytes for a document, or None if missing.
        """
        ...

    def export_documents(self, product_type: Optional[str] = None) -> List[Tuple[Document, str]]:
        """
        Every document (newest first) paired with its file as base64.
        Documents whose stored object is missing are left out.
        """
        ...

    def ping(self) -> None:
        """Cheap connectivity check used by /readyz. Raises on failure."""
        ...
