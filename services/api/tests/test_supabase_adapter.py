"""
Tests for the Supabase document store, against a mocked HTTP transport.

Run with: pytest tests/test_supabase_adapter.py -v
"""
import asyncio
import json
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from cachetools import TTLCache

from adapters.base import DocumentNotFound, FetchError, StorageError
from adapters.supabase import SupabaseAdapter

BASE = "https://proj.supabase.co"

ROW = {
    "id": "doc-1",
    "name": "Technical Data Sheet",
    "description": "TDS Document",
    "filename": "floor_tds.pdf",
    "size": 2048,
    "type": "TDS",
    "required": False,
    "products": [],
    "product_type": "underlayment",
    "file_path": "underlayment/1700000000000-abcd.pdf",
    "created_at": "2024-01-01T00:00:00+00:00",
    "updated_at": "2024-01-01T00:00:00+00:00",
}


class FakeClock:
    """TTLCache timer; each read returns `now`, then moves it forward by `step`."""

    def __init__(self):
        self.now = 0.0
        self.step = 0.0

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class Recorder:
    """httpx MockTransport handler that records requests and replays canned responses."""

    def __init__(self):
        self.requests = []
        self.sign_status = 200
        self.rows = [ROW]
        self.insert_status = 201

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.startswith("/storage/v1/object/sign/"):
            if self.sign_status != 200:
                return httpx.Response(self.sign_status, json={"statusCode": "404", "error": "not_found"})
            locator = path[len("/storage/v1/object/sign/documents/"):]
            return httpx.Response(200, json={"signedURL": f"/object/sign/documents/{locator}?token=t{len(self.requests)}"})

        if path == "/rest/v1/documents" and request.method == "GET":
            return httpx.Response(200, json=self.rows)

        if path.startswith("/storage/v1/object/documents/") and request.method == "POST":
            return httpx.Response(200, json={"Key": path})

        if path == "/storage/v1/object/documents" and request.method == "DELETE":
            return httpx.Response(200, json=[])

        if path == "/rest/v1/documents" and request.method == "POST":
            if self.insert_status != 201:
                return httpx.Response(self.insert_status, json={"message": "insert failed"})
            row = dict(json.loads(request.content)[0], id="doc-new", created_at="now", updated_at="now")
            return httpx.Response(201, json=[row])

        return httpx.Response(404)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def store(recorder):
    return SupabaseAdapter(
        url=BASE + "/",
        key="service-key",
        transport=httpx.MockTransport(recorder),
    )


class TestSignedUrls:
    def test_signed_url(self, store, recorder):
        url = store.resolve_locator_to_url(ROW["file_path"])

        assert url.startswith(f"{BASE}/storage/v1/object/sign/documents/underlayment/")
        sent = recorder.requests[0]
        assert json.loads(sent.content) == {"expiresIn": 3600}
        assert sent.headers["apikey"] == "service-key"
        assert sent.headers["authorization"] == "Bearer service-key"

    def test_default_validity_is_cached(self, store, recorder):
        first = store.resolve_locator_to_url(ROW["file_path"])
        second = store.resolve_locator_to_url(ROW["file_path"])

        assert first == second
        assert len(recorder.requests) == 1

    def test_custom_validity_is_not_cached(self, store, recorder):
        store.resolve_locator_to_url(ROW["file_path"], expires_in=60)
        store.resolve_locator_to_url(ROW["file_path"], expires_in=60)

        assert len(recorder.requests) == 2
        assert json.loads(recorder.requests[0].content) == {"expiresIn": 60}

    def test_expired_entry_is_signed_again(self, store, recorder):
        clock = FakeClock()
        store._signed_urls = TTLCache(maxsize=8, ttl=100, timer=clock)

        store.resolve_locator_to_url(ROW["file_path"])
        clock.now = 500
        store.resolve_locator_to_url(ROW["file_path"])

        assert len(recorder.requests) == 2

    def test_entry_expiring_mid_lookup(self, store, recorder):
        """Every timer read is later than the previous one; a lookup must not fail."""
        clock = FakeClock()
        store._signed_urls = TTLCache(maxsize=8, ttl=100, timer=clock)
        first = store.resolve_locator_to_url(ROW["file_path"])

        clock.now, clock.step = 50, 100
        url = store.resolve_locator_to_url(ROW["file_path"])

        assert url.startswith(f"{BASE}/storage/v1/object/sign/documents/")
        assert url == first or len(recorder.requests) == 2

    def test_concurrent_signing(self, store, recorder):
        locators = [f"underlayment/doc-{i}.pdf" for i in range(4)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            urls = list(pool.map(store.resolve_locator_to_url, locators * 25))

        assert len(urls) == 100
        for locator, url in zip(locators * 25, urls):
            assert f"/sign/documents/{locator}?" in url

    def test_unknown_object(self, store, recorder):
        recorder.sign_status = 400
        with pytest.raises(DocumentNotFound):
            store.resolve_locator_to_url("underlayment/missing.pdf")

    def test_server_error(self, store, recorder):
        recorder.sign_status = 500
        with pytest.raises(StorageError):
            store.resolve_locator_to_url("underlayment/x.pdf")


class TestFetchBytes:
    def _store(self, handler):
        return SupabaseAdapter(
            url=BASE,
            key="k",
            async_transport=httpx.MockTransport(handler),
        )

    def test_success(self):
        store = self._store(lambda request: httpx.Response(200, content=b"%PDF-1.7 data"))
        assert asyncio.run(store.fetch_bytes(f"{BASE}/storage/v1/object/sign/x")) == b"%PDF-1.7 data"

    def test_non_success_status(self):
        store = self._store(lambda request: httpx.Response(403, content=b"expired"))
        with pytest.raises(FetchError) as exc:
            asyncio.run(store.fetch_bytes(f"{BASE}/storage/v1/object/sign/x"))
        assert "403" in str(exc.value)


class TestDocuments:
    def test_list_by_product_type(self, store, recorder):
        docs = store.list_documents("underlayment")

        assert [d.id for d in docs] == ["doc-1"]
        params = recorder.requests[0].url.params
        assert params["product_type"] == "eq.underlayment"
        assert params["order"] == "created_at.desc"

    def test_get_missing(self, store, recorder):
        recorder.rows = []
        assert store.get_document("nope") is None

    def test_create_uploads_then_inserts(self, store, recorder):
        doc = store.create_document(
            data=b"%PDF-1.7 body",
            filename="floor_tds.pdf",
            name="Technical Data Sheet",
            doc_type="TDS",
            product_type="underlayment",
        )

        assert doc.id == "doc-new"
        assert doc.size == len(b"%PDF-1.7 body")
        assert doc.file_path.startswith("underlayment/")

        upload, insert = recorder.requests
        assert upload.url.path == f"/storage/v1/object/documents/{doc.file_path}"
        assert upload.content == b"%PDF-1.7 body"
        assert insert.headers["prefer"] == "return=representation"

    def test_failed_insert_removes_upload(self, store, recorder):
        recorder.insert_status = 409

        with pytest.raises(StorageError):
            store.create_document(
                data=b"%PDF-1.7 body",
                filename="floor_tds.pdf",
                name="Technical Data Sheet",
                doc_type="TDS",
                product_type="underlayment",
            )

        cleanup = recorder.requests[-1]
        assert cleanup.method == "DELETE"
        assert cleanup.url.path == "/storage/v1/object/documents"
        uploaded = recorder.requests[0].url.path[len("/storage/v1/object/documents/"):]
        assert json.loads(cleanup.content) == {"prefixes": [uploaded]}
