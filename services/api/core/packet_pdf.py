# services/api/core/packet_pdf.py

from __future__ import annotations

import asyncio
import io
import logging
from typing import List, Optional, Sequence, Tuple, Union

from pypdf import PdfReader, PdfWriter

from adapters.base import DocumentStore
from core.errors import InvalidMetadata, SerializationFailure
from core.front_matter import FrontMatterRenderer, toc_rows
from models import (
    FRONT_MATTER_PAGE_COUNT,
    DocumentReference,
    PacketBuildReport,
    PacketMetadata,
    PageContribution,
    ResolutionFailure,
    ResolvedDocumentEntry,
)

logger = logging.getLogger(__name__)

# 0-based position of the table of contents in the packet
TOC_PAGE_INDEX = 1

MergeResult = Union[PageContribution, ResolutionFailure]


# ---------- Public API -------------------------------------------------------

async def generate_packet_pdf(
    *,
    store: DocumentStore,
    metadata: PacketMetadata,
    references: Sequence[DocumentReference],
    page_format: str = "A4",
    date_format: str = "%m/%d/%Y",
    fetch_concurrency: int = 4,
) -> bytes:
    """
    Build a submittal packet: cover page, table of contents, then every
    referenced document's pages in the given order. Returns PDF bytes.
    """
    builder = PacketBuilder(
        store,
        renderer=FrontMatterRenderer(page_format=page_format, date_format=date_format),
        fetch_concurrency=fetch_concurrency,
    )
    return await builder.build(metadata, references)


def validate_metadata(metadata: PacketMetadata) -> None:
    """Raise InvalidMetadata if any field the cover page needs is missing."""
    missing = [
        name
        for name in ("title", "prepared_by", "submitted_to")
        if not (getattr(metadata, name) or "").strip()
    ]
    if metadata.date is None or not hasattr(metadata.date, "strftime"):
        missing.append("date")
    if missing:
        raise InvalidMetadata(missing)


def account_pages(results: Sequence[MergeResult]) -> Tuple[ResolvedDocumentEntry, ...]:
    """
    Fold per-document merge results (in packet order) into table-of-contents entries.

    The first document starts right after the front matter; each following one
    starts where the previous one ended. A failed document contributes zero
    pages, so it shares its start page with the next document and leaves no gap.
    """
    entries: List[ResolvedDocumentEntry] = []
    cursor = FRONT_MATTER_PAGE_COUNT + 1

    for result in results:
        if isinstance(result, PageContribution):
            entries.append(
                ResolvedDocumentEntry(
                    display_title=result.reference.display_title,
                    page_count=result.page_count,
                    start_page_number=cursor,
                )
            )
            cursor += result.page_count
        else:
            entries.append(
                ResolvedDocumentEntry(
                    display_title=result.reference.display_title,
                    page_count=0,
                    start_page_number=cursor,
                    resolved=False,
                )
            )

    return tuple(entries)


class PacketBuilder:
    """
    Two-pass packet assembly:
      1) draw the front matter with placeholder page numbers
      2) fetch + append every document, in order
      3) paint over the table of contents with the real page numbers
      4) serialize

    One instance can run many builds; each build owns its own PdfWriter.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        renderer: Optional[FrontMatterRenderer] = None,
        fetch_concurrency: int = 4,
        signed_url_expires_in: Optional[int] = None,
    ):
        self.store = store
        self.renderer = renderer or FrontMatterRenderer()
        self.fetch_concurrency = max(1, fetch_concurrency)
        self.signed_url_expires_in = signed_url_expires_in

    @classmethod
    def from_settings(cls, store: DocumentStore, settings) -> "PacketBuilder":
        return cls(
            store,
            renderer=FrontMatterRenderer(
                page_format=settings.packet_page_format,
                date_format=settings.packet_date_format,
            ),
            fetch_concurrency=settings.packet_fetch_concurrency,
            signed_url_expires_in=settings.signed_url_expires_in,
        )

    async def build(
        self,
        metadata: PacketMetadata,
        references: Sequence[DocumentReference],
    ) -> bytes:
        pdf_bytes, _ = await self.build_with_report(metadata, references)
        return pdf_bytes

    async def build_with_report(
        self,
        metadata: PacketMetadata,
        references: Sequence[DocumentReference],
    ) -> Tuple[bytes, PacketBuildReport]:
        validate_metadata(metadata)
        references = list(references)
        logger.info(f"Building packet '{metadata.title}' with {len(references)} document(s)")

        # 1) Front matter (draft table of contents)
        writer = PdfWriter()
        draft = self._render(
            lambda: self.renderer.draft(metadata, [r.display_title for r in references])
        )
        for page in draft.pages:
            writer.add_page(page)

        # 2) Fetch concurrently, merge strictly in reference order
        fetched = await self._fetch_all(references)
        results: List[MergeResult] = []
        for ref, data in zip(references, fetched):
            result = data if isinstance(data, ResolutionFailure) else self._merge(writer, ref, data)
            if isinstance(result, ResolutionFailure):
                logger.warning(
                    f"Skipping document '{ref.display_title}' ({ref.source_locator}): {result.reason}"
                )
            results.append(result)

        entries = account_pages(results)

        # 3) Rewrite the table of contents with the real start pages
        overlay = self._render(lambda: self.renderer.toc_overlay(toc_rows(entries)))
        writer.pages[TOC_PAGE_INDEX].merge_page(overlay.pages[0])

        writer.add_metadata(
            {
                "/Title": metadata.title,
                "/Author": metadata.prepared_by,
                "/Subject": f"Submittal packet for {metadata.submitted_to}",
            }
        )

        # 4) Serialize
        try:
            out = io.BytesIO()
            writer.write(out)
            pdf_bytes = out.getvalue()
        except Exception as e:
            logger.error(f"Failed to serialize packet '{metadata.title}': {e}")
            raise SerializationFailure(f"Failed to write packet PDF: {e}") from e

        failures = tuple(r for r in results if isinstance(r, ResolutionFailure))
        report = PacketBuildReport(
            entries=entries,
            failures=failures,
            total_pages=len(writer.pages),
        )
        logger.info(
            f"Packet '{metadata.title}' built: {report.total_pages} pages, "
            f"{len(entries) - len(failures)} merged, {len(failures)} skipped"
        )
        return pdf_bytes, report

    # ---------- Internals ----------

    @staticmethod
    def _render(draw) -> PdfReader:
        try:
            return PdfReader(io.BytesIO(draw()))
        except Exception as e:
            raise SerializationFailure(f"Failed to render front matter: {e}") from e

    async def _fetch_all(
        self, references: Sequence[DocumentReference]
    ) -> List[Union[bytes, ResolutionFailure]]:
        sem = asyncio.Semaphore(self.fetch_concurrency)
        # gather keeps results in argument order
        return await asyncio.gather(*(self._fetch(ref, sem) for ref in references))

    async def _fetch(
        self, ref: DocumentReference, sem: asyncio.Semaphore
    ) -> Union[bytes, ResolutionFailure]:
        """Locator -> signed URL -> bytes. Never raises: failures become values."""
        async with sem:
            try:
                url = await asyncio.to_thread(
                    self.store.resolve_locator_to_url,
                    ref.source_locator,
                    self.signed_url_expires_in,
                )
                return await self.store.fetch_bytes(url)
            except Exception as e:
                return ResolutionFailure(reference=ref, reason=str(e) or type(e).__name__)

    @staticmethod
    def _merge(writer: PdfWriter, ref: DocumentReference, data: bytes) -> MergeResult:
        """
        Parse a source PDF and append all its pages to the writer.
        Everything is parsed before the writer is touched, so a broken file
        adds no pages at all.
        """
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted and not reader.decrypt(""):
                return ResolutionFailure(reference=ref, reason="PDF is password protected")
            pages = list(reader.pages)
            for page in pages:
                if page.mediabox.width <= 0 or page.mediabox.height <= 0:
                    raise ValueError("page has an empty media box")
                page.get_contents()
        except Exception as e:
            return ResolutionFailure(reference=ref, reason=f"Not a readable PDF: {e}")

        for page in pages:
            writer.add_page(page)
        return PageContribution(reference=ref, page_count=len(pages))
