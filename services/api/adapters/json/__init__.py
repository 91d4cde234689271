"""
JSON file storage adapter for the submittal packet service.
Simple file-based storage for local development and testing.
Not production-ready (no proper locking, not suitable for concurrent access).
"""
import base64
import json
import logging
import secrets
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

from adapters.base import DocumentNotFound, FetchError
from models import Document
from models.converters import document_from_row, document_to_row

logger = logging.getLogger(__name__)


class JsonAdapter:
    """
    JSON file-based document store.
    Metadata lives in documents.json, PDF objects under files/<product_type>/.
    Uses atomic file operations for basic consistency.
    """

    def __init__(self, data_dir: str = "data"):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store documents.json and the files/ tree
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.documents_file = self.data_dir / "documents.json"
        self.files_dir = self.data_dir / "files"
        self.files_dir.mkdir(parents=True, exist_ok=True)

        if not self.documents_file.exists():
            self._write_file(self.documents_file, [])

    def _read_file(self, filepath: Path) -> List[Dict[str, Any]]:
        """Read and parse a JSON file."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return []

    def _write_file(self, filepath: Path, data: List[Dict[str, Any]]) -> None:
        """Write data to a JSON file atomically."""
        # Write to temporary file first
        tmp_file = filepath.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        # Atomic rename
        tmp_file.replace(filepath)

    def _object_path(self, locator: str) -> Path:
        """Map a locator to a path under files/, refusing anything that escapes it."""
        root = self.files_dir.resolve()
        path = (root / locator).resolve()
        if root not in path.parents:
            raise DocumentNotFound(f"Invalid locator: {locator}")
        return path

    # ========== Packet resolution ==========

    def resolve_locator_to_url(self, locator: str, expires_in: Optional[int] = None) -> str:
        """Local objects never expire; expires_in is accepted for interface parity."""
        path = self._object_path(locator)
        if not path.is_file():
            raise DocumentNotFound(f"Object not found: {locator}")
        return path.as_uri()

    async def fetch_bytes(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise FetchError(f"JsonAdapter can only fetch file:// URLs, got {url}")

        path = Path(url2pathname(parsed.path))
        try:
            return path.read_bytes()
        except OSError as e:
            raise FetchError(f"Failed to read {path}: {e}") from e

    # ========== Documents ==========

    def list_documents(self, product_type: Optional[str] = None) -> List[Document]:
        rows = self._read_file(self.documents_file)
        if product_type:
            rows = [r for r in rows if r.get("product_type") == product_type]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return [document_from_row(r) for r in rows]

    def get_document(self, document_id: str) -> Optional[Document]:
        rows = self._read_file(self.documents_file)
        row = next((r for r in rows if r.get("id") == document_id), None)
        return document_from_row(row) if row else None

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
        """Store the PDF under files/ and append its metadata row."""
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "pdf"
        file_path = f"{product_type}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"

        obj = self._object_path(file_path)
        obj.parent.mkdir(parents=True, exist_ok=True)
        obj.write_bytes(data)

        now = datetime.now(timezone.utc).isoformat()
        doc = Document(
            id=str(uuid.uuid4()),
            name=name,
            filename=filename,
            file_path=file_path,
            product_type=product_type,
            description=description,
            size=len(data),
            type=doc_type,
            created_at=now,
            updated_at=now,
        )

        try:
            rows = self._read_file(self.documents_file)
            rows.append(document_to_row(doc))
            self._write_file(self.documents_file, rows)
        except OSError:
            # Don't leave an orphaned object behind
            obj.unlink(missing_ok=True)
            raise

        logger.info(f"Stored document {doc.id} at {file_path} ({len(data)} bytes)")
        return doc

    def update_document(self, document_id: str, updates: Dict[str, Any]) -> Document:
        rows = self._read_file(self.documents_file)
        row = next((r for r in rows if r.get("id") == document_id), None)
        if not row:
            raise DocumentNotFound(f"Document {document_id} not found")

        for key in ("name", "description", "type"):
            if updates.get(key) is not None:
                row[key] = updates[key]
        row["updated_at"] = datetime.now(timezone.utc).isoformat()

        self._write_file(self.documents_file, rows)
        return document_from_row(row)

    def delete_document(self, document_id: str) -> None:
        rows = self._read_file(self.documents_file)
        row = next((r for r in rows if r.get("id") == document_id), None)
        if not row:
            raise DocumentNotFound(f"Document {document_id} not found")

        self._write_file(self.documents_file, [r for r in rows if r.get("id") != document_id])
        self._object_path(row["file_path"]).unlink(missing_ok=True)

    def download_document(self, document_id: str) -> Optional[bytes]:
        doc = self.get_document(document_id)
        if not doc:
            return None
        try:
            return self._object_path(doc.file_path).read_bytes()
        except (OSError, DocumentNotFound) as e:
            logger.error(f"Error downloading document {document_id}: {e}")
            return None

    def export_documents(self, product_type: Optional[str] = None) -> List[Tuple[Document, str]]:
        exported = []
        for doc in self.list_documents(product_type):
            data = self.download_document(doc.id)
            if data is None:
                logger.warning(f"Skipping export of document {doc.id}: stored object is missing")
                continue
            exported.append((doc, base64.b64encode(data).decode("ascii")))
        return exported

    def ping(self) -> None:
        self._read_file(self.documents_file)
