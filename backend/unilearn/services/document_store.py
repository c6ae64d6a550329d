"""Persistence for course documents and their embedded chunks.

The RAG pipeline talks to a DocumentStore, not to SQLAlchemy directly:
SqlDocumentStore backs the running service, InMemoryDocumentStore lets the
pipeline run without a database.
"""

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.orm import Session

from unilearn.models.course_document import CourseDocument
from unilearn.models.document_chunk import DocumentChunk


@dataclass(frozen=True)
class DocumentRecord:
    id: str
    course_id: str
    file_name: str
    file_path: str
    file_size: int
    uploaded_by: str
    is_processed: bool
    created_at: datetime
    file_type: str = "pdf"


@dataclass(frozen=True)
class StoredChunk:
    id: str
    document_id: str
    chunk_index: int
    content: str
    embedding: str  # JSON-serialized float vector
    file_name: str
    metadata: dict = field(default_factory=dict)


class DocumentStore(Protocol):
    def create_document(
        self,
        course_id: str,
        file_name: str,
        file_path: str,
        file_size: int,
        uploaded_by: str,
    ) -> DocumentRecord: ...

    def get_document(self, document_id: str) -> DocumentRecord | None: ...

    def list_documents(self, course_id: str) -> list[DocumentRecord]: ...

    def add_chunk(
        self,
        document_id: str,
        chunk_index: int,
        content: str,
        embedding: list[float],
        metadata: dict,
    ) -> StoredChunk: ...

    def mark_processed(self, document_id: str) -> None: ...

    def delete_document(self, document_id: str) -> None: ...

    def list_course_chunks(self, course_id: str) -> list[StoredChunk]: ...


def _to_record(doc: CourseDocument) -> DocumentRecord:
    return DocumentRecord(
        id=doc.id,
        course_id=doc.course_id,
        file_name=doc.file_name,
        file_path=doc.file_path,
        file_size=doc.file_size,
        uploaded_by=doc.uploaded_by,
        is_processed=doc.is_processed,
        created_at=doc.created_at,
        file_type=doc.file_type,
    )


class SqlDocumentStore:
    """DocumentStore over the course_documents / document_chunks tables."""

    def __init__(self, db: Session):
        self.db = db

    def create_document(self, course_id, file_name, file_path, file_size, uploaded_by):
        doc = CourseDocument(
            id=str(uuid.uuid4()),
            course_id=course_id,
            file_name=file_name,
            file_path=file_path,
            file_type="pdf",
            file_size=file_size,
            uploaded_by=uploaded_by,
            is_processed=False,
        )
        self.db.add(doc)
        self.db.commit()
        self.db.refresh(doc)
        return _to_record(doc)

    def get_document(self, document_id):
        doc = self.db.query(CourseDocument).filter(CourseDocument.id == document_id).first()
        return _to_record(doc) if doc else None

    def list_documents(self, course_id):
        docs = (
            self.db.query(CourseDocument)
            .filter(CourseDocument.course_id == course_id)
            .order_by(CourseDocument.created_at.desc())
            .all()
        )
        return [_to_record(d) for d in docs]

    def add_chunk(self, document_id, chunk_index, content, embedding, metadata):
        chunk = DocumentChunk(
            id=str(uuid.uuid4()),
            document_id=document_id,
            chunk_index=chunk_index,
            content=content,
            embedding=json.dumps(embedding),
            chunk_metadata=metadata,
        )
        self.db.add(chunk)
        self.db.commit()
        return StoredChunk(
            id=chunk.id,
            document_id=document_id,
            chunk_index=chunk_index,
            content=content,
            embedding=chunk.embedding,
            file_name=metadata.get("fileName", ""),
            metadata=dict(metadata),
        )

    def mark_processed(self, document_id):
        doc = self.db.query(CourseDocument).filter(CourseDocument.id == document_id).first()
        if doc is None:
            raise KeyError(document_id)
        doc.is_processed = True
        self.db.commit()

    def delete_document(self, document_id):
        doc = self.db.query(CourseDocument).filter(CourseDocument.id == document_id).first()
        if doc is not None:
            self.db.delete(doc)
            self.db.commit()

    def list_course_chunks(self, course_id):
        rows = (
            self.db.query(DocumentChunk, CourseDocument.file_name)
            .join(CourseDocument, DocumentChunk.document_id == CourseDocument.id)
            .filter(CourseDocument.course_id == course_id)
            .filter(DocumentChunk.embedding.isnot(None))
            .order_by(CourseDocument.created_at.asc(), CourseDocument.id.asc(), DocumentChunk.chunk_index.asc())
            .all()
        )
        return [
            StoredChunk(
                id=chunk.id,
                document_id=chunk.document_id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                embedding=chunk.embedding,
                file_name=file_name,
                metadata=chunk.chunk_metadata or {},
            )
            for chunk, file_name in rows
        ]


class InMemoryDocumentStore:
    """Dictionary-backed DocumentStore. Insertion order stands in for upload time."""

    def __init__(self):
        self.documents: dict[str, DocumentRecord] = {}
        self.chunks: dict[str, list[StoredChunk]] = {}

    def create_document(self, course_id, file_name, file_path, file_size, uploaded_by):
        record = DocumentRecord(
            id=str(uuid.uuid4()),
            course_id=course_id,
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            uploaded_by=uploaded_by,
            is_processed=False,
            created_at=datetime.now(timezone.utc),
        )
        self.documents[record.id] = record
        self.chunks[record.id] = []
        return record

    def get_document(self, document_id):
        return self.documents.get(document_id)

    def list_documents(self, course_id):
        docs = [d for d in self.documents.values() if d.course_id == course_id]
        return list(reversed(docs))

    def add_chunk(self, document_id, chunk_index, content, embedding, metadata):
        if document_id not in self.documents:
            raise KeyError(document_id)
        existing = self.chunks[document_id]
        if any(c.chunk_index == chunk_index for c in existing):
            raise ValueError(f"chunk {chunk_index} already stored for document {document_id}")
        chunk = StoredChunk(
            id=str(uuid.uuid4()),
            document_id=document_id,
            chunk_index=chunk_index,
            content=content,
            embedding=json.dumps(embedding),
            file_name=self.documents[document_id].file_name,
            metadata=dict(metadata),
        )
        existing.append(chunk)
        existing.sort(key=lambda c: c.chunk_index)
        return chunk

    def mark_processed(self, document_id):
        self.documents[document_id] = replace(self.documents[document_id], is_processed=True)

    def delete_document(self, document_id):
        self.documents.pop(document_id, None)
        self.chunks.pop(document_id, None)

    def list_course_chunks(self, course_id):
        result = []
        for doc in self.documents.values():
            if doc.course_id == course_id:
                result.extend(self.chunks[doc.id])
        return result
