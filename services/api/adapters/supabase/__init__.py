# services/api/adapters/supabase/__init__.py
"""
Supabase storage adapter.

Talks to the hosted project over plain HTTP (httpx):
  - PostgREST   /rest/v1/<table>                     -> document metadata
  - Storage     /storage/v1/object/<bucket>/<path>   -> PDF objects
  - Signed URLs /storage/v1/object/sign/<bucket>/<path>
"""
from __future__ import annotations

import base64
import logging
import secrets
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from cachetools import TTLCache

from adapters.base import DocumentNotFound, FetchError, StorageError
from models import Document
from models.converters import document_from_row

logger = logging.getLogger(__name__)

# Re-sign a cached URL this many seconds before it actually expires
_SIGNED_URL_MARGIN = 60


class SupabaseAdapter:
    """
    Document store backed by a Supabase project (service-role key).
    """

    def __init__(
        self,
        *,
        url: str,
        key: str,
        bucket: str = "documents",
        table: str = "documents",
        signed_url_expires_in: int = 3600,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url or not key:
            raise ValueError("Supabase requires SUPABASE_URL and SUPABASE_KEY")

        self.base_url = url.rstrip("/")
        self.bucket = bucket
        self.table = table
        self.signed_url_expires_in = signed_url_expires_in
        self.timeout = timeout
        self._async_transport = async_transport

        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self._headers,
            timeout=timeout,
            transport=transport,
        )

        ttl = max(signed_url_expires_in - _SIGNED_URL_MARGIN, 1)
        self._signed_urls: TTLCache = TTLCache(maxsize=512, ttl=ttl)
        # TTLCache is not thread-safe; builds sign URLs from worker threads
        self._signed_urls_lock = threading.Lock()

    def close(self) -> None:
        self._client.close()

    # ---------- low-level helpers ----------

    def _rest(self, method: str, params: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        try:
            r = self._client.request(method, f"/rest/v1/{self.table}", params=params, **kwargs)
        except httpx.RequestError as e:
            raise StorageError(f"Supabase request failed: {e}") from e
        if r.is_error:
            raise StorageError(f"Supabase {method} {self.table} failed: HTTP {r.status_code} {r.text}")
        return r

    def _object_url(self, locator: str) -> str:
        return f"/storage/v1/object/{self.bucket}/{quote(locator)}"

    def _rows(self, **filters: str) -> List[Dict[str, Any]]:
        params = {"select": "*", "order": "created_at.desc"}
        for column, value in filters.items():
            params[column] = f"eq.{value}"
        return self._rest("GET", params=params).json() or []

    # ========== Packet resolution ==========

    def resolve_locator_to_url(self, locator: str, expires_in: Optional[int] = None) -> str:
        """
        Create a signed download URL for a stored object.
        URLs issued with the default validity are cached until shortly before expiry.
        """
        expires_in = expires_in or self.signed_url_expires_in
        cacheable = expires_in == self.signed_url_expires_in
        if cacheable:
            with self._signed_urls_lock:
                cached = self._signed_urls.get(locator)
            if cached is not None:
                return cached

        try:
            r = self._client.post(
                f"/storage/v1/object/sign/{self.bucket}/{quote(locator)}",
                json={"expiresIn": expires_in},
            )
        except httpx.RequestError as e:
            raise StorageError(f"Failed to sign {locator}: {e}") from e

        # Storage answers 400 (with an inner 404) for unknown objects
        if r.status_code in (400, 404):
            raise DocumentNotFound(f"Object not found: {locator}")
        if r.is_error:
            raise StorageError(f"Failed to sign {locator}: HTTP {r.status_code}")

        signed_path = r.json().get("signedURL") or r.json().get("signedUrl")
        if not signed_path:
            raise StorageError(f"Sign response for {locator} had no signedURL")

        signed_url = f"{self.base_url}/storage/v1{signed_path}"
        if cacheable:
            with self._signed_urls_lock:
                self._signed_urls[locator] = signed_url
        return signed_url

    async def fetch_bytes(self, url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._async_transport,
        ) as client:
            try:
                r = await client.get(url)
            except httpx.RequestError as e:
                raise FetchError(f"Failed to fetch PDF: {e}") from e
            if r.status_code != 200:
                raise FetchError(f"Failed to fetch PDF: HTTP {r.status_code} {r.reason_phrase}")
            return r.content

    # ========== Documents ==========

    def list_documents(self, product_type: Optional[str] = None) -> List[Document]:
        rows = self._rows(product_type=product_type) if product_type else self._rows()
        return [document_from_row(r) for r in rows]

    def get_document(self, document_id: str) -> Optional[Document]:
        rows = self._rows(id=document_id)
        return document_from_row(rows[0]) if rows else None

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
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "pdf"
        file_path = f"{product_type}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"

        # 1) Upload the object
        try:
            r = self._client.post(
                self._object_url(file_path),
                content=data,
                headers={"Content-Type": "application/pdf"},
            )
        except httpx.RequestError as e:
            raise StorageError(f"Upload failed: {e}") from e
        if r.is_error:
            raise StorageError(f"Upload failed: HTTP {r.status_code} {r.text}")

        # 2) Insert metadata; roll the upload back if that fails
        row = {
            "name": name,
            "description": description,
            "filename": filename,
            "size": len(data),
            "type": doc_type,
            "required": False,
            "products": [],
            "product_type": product_type,
            "file_path": file_path,
        }
        try:
            inserted = self._rest(
                "POST",
                json=[row],
                headers={"Prefer": "return=representation"},
            ).json()
        except StorageError:
            logger.error(f"Metadata insert failed, removing uploaded object {file_path}")
            self._remove_objects([file_path])
            raise

        return document_from_row(inserted[0])

    def update_document(self, document_id: str, updates: Dict[str, Any]) -> Document:
        if self.get_document(document_id) is None:
            raise DocumentNotFound(f"Document {document_id} not found")

        patch = {k: updates[k] for k in ("name", "description", "type") if updates.get(k) is not None}
        rows = self._rest(
            "PATCH",
            params={"id": f"eq.{document_id}"},
            json=patch,
            headers={"Prefer": "return=representation"},
        ).json()
        return document_from_row(rows[0])

    def delete_document(self, document_id: str) -> None:
        doc = self.get_document(document_id)
        if doc is None:
            raise DocumentNotFound(f"Document {document_id} not found")

        self._rest("DELETE", params={"id": f"eq.{document_id}"})
        self._remove_objects([doc.file_path])
        with self._signed_urls_lock:
            self._signed_urls.pop(doc.file_path, None)

    def _remove_objects(self, paths: List[str]) -> None:
        try:
            r = self._client.request(
                "DELETE",
                f"/storage/v1/object/{self.bucket}",
                json={"prefixes": paths},
            )
            if r.is_error:
                logger.warning(f"Failed to remove objects {paths}: HTTP {r.status_code}")
        except httpx.RequestError as e:
            logger.warning(f"Failed to remove objects {paths}: {e}")

    def download_document(self, document_id: str) -> Optional[bytes]:
        doc = self.get_document(document_id)
        if not doc:
            return None
        try:
            r = self._client.get(self._object_url(doc.file_path))
        except httpx.RequestError as e:
            logger.error(f"Error downloading document {document_id}: {e}")
            return None
        if r.is_error:
            logger.error(f"Error downloading document {document_id}: HTTP {r.status_code}")
            return None
        return r.content

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
        self._rest("GET", params={"select": "id", "limit": "1"})
