"""RAG pipeline — extract, chunk, embed, store and retrieve course documents."""

import io
import json
import math
import asyncio
import logging
from dataclasses import dataclass, field

import pdfplumber

from unilearn.config import settings
from unilearn.services.document_store import DocumentStore, SqlDocumentStore
from unilearn.services.embedding import Embedder

logger = logging.getLogger(__name__)


class PDFExtractionError(RuntimeError):
    """Raised when an uploaded file cannot be parsed as a PDF."""


def extract_pdf_text(data: bytes) -> str:
    """Extract text from PDF bytes, one block per page."""
    try:
        text_parts = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
        return "\n\n".join(text_parts)
    except Exception as e:
        raise PDFExtractionError(f"PDF extraction failed: {e}") from e


def chunk_text(text: str, words_per_chunk: int | None = None) -> list[str]:
    """Split text into consecutive, non-overlapping windows of N words."""
    if words_per_chunk is None:
        words_per_chunk = settings.RAG_CHUNK_WORDS
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be at least 1")

    words = text.split()
    chunks = []
    for start in range(0, len(words), words_per_chunk):
        chunk = " ".join(words[start:start + words_per_chunk]).strip()
        if chunk:
            chunks.append(chunk)
    return chunks


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 for vectors of different length or zero magnitude."""
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


# ─────────────────────────────────────────────────────────────────────────────
# Ingestion
# ─────────────────────────────────────────────────────────────────────────────

async def ingest_document(
    document_id: str,
    data: bytes,
    store: DocumentStore,
    embedder: Embedder,
    words_per_chunk: int | None = None,
) -> int:
    """Full pipeline for one uploaded PDF: extract → chunk → embed → store.

    Marks the document processed only after every chunk is stored, and
    returns the number of chunks. Errors propagate; the document then stays
    unprocessed.
    """
    document = store.get_document(document_id)
    if document is None:
        raise KeyError(f"Unknown document {document_id}")

    text = await asyncio.to_thread(extract_pdf_text, data)
    chunks = chunk_text(text, words_per_chunk)

    for i, content in enumerate(chunks):
        embedding = await embedder.embed(content)
        store.add_chunk(
            document_id=document_id,
            chunk_index=i,
            content=content,
            embedding=embedding,
            metadata={
                "fileName": document.file_name,
                "chunkIndex": i,
                "totalChunks": len(chunks),
                "wordCount": len(content.split()),
            },
        )

    store.mark_processed(document_id)
    logger.info("Processed document %s (%s) into %d chunks", document_id, document.file_name, len(chunks))
    return len(chunks)


async def process_document_in_background(
    document_id: str,
    data: bytes,
    session_factory,
    embedder: Embedder,
    words_per_chunk: int | None = None,
) -> None:
    """Background-task entry point: runs ingestion with its own DB session.

    Nobody awaits the outcome, so failures end here: they are logged and the
    document keeps is_processed=False.
    """
    db = session_factory()
    try:
        await ingest_document(document_id, data, SqlDocumentStore(db), embedder, words_per_chunk)
    except Exception:
        logger.exception("Processing failed for document %s", document_id)
        db.rollback()
    finally:
        db.close()


# ─────────────────────────────────────────────────────────────────────────────
# Retrieval
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class SearchResult:
    content: str
    similarity: float
    file_name: str
    chunk_index: int
    metadata: dict = field(default_factory=dict)


class Retriever:
    """Ranks a course's stored chunks against a query by cosine similarity."""

    def __init__(self, store: DocumentStore, embedder: Embedder):
        self.store = store
        self.embedder = embedder

    async def search(self, query: str, course_id: str, limit: int | None = None) -> list[SearchResult]:
        if limit is None:
            limit = settings.RAG_SEARCH_LIMIT
        if limit < 1:
            return []

        chunks = self.store.list_course_chunks(course_id)
        if not chunks:
            return []

        query_vec = await self.embedder.embed(query)

        scored = []
        for chunk in chunks:
            try:
                chunk_vec = json.loads(chunk.embedding)
            except (json.JSONDecodeError, TypeError):
                logger.warning("Skipping chunk %s with unreadable embedding", chunk.id)
                continue
            scored.append(SearchResult(
                content=chunk.content,
                similarity=cosine_similarity(query_vec, chunk_vec),
                file_name=chunk.file_name or "Unknown",
                chunk_index=chunk.chunk_index,
                metadata=chunk.metadata,
            ))

        # Stable sort: equal scores keep store order (upload time, then chunk ordinal).
        scored.sort(key=lambda r: r.similarity, reverse=True)
        return scored[:limit]
