"""Course documents router — PDF upload, semantic search, and study questions."""

import uuid
import logging
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from unilearn.config import settings
from unilearn.database import get_db, get_session_factory
from unilearn.dependencies import get_document_store, get_embedder, get_rag_service, get_retriever
from unilearn.middleware.auth import get_current_user, require_instructor
from unilearn.models.user import User
from unilearn.routers.courses import ensure_course_access, ensure_course_owner, get_course_or_404
from unilearn.schemas.document import (
    DocumentListResponse,
    DocumentResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    StudyQuestionsResponse,
    UploadAcceptedResponse,
)
from unilearn.services.answering import RagService
from unilearn.services.document_store import DocumentRecord, DocumentStore
from unilearn.services.embedding import Embedder
from unilearn.services.rag import Retriever, process_document_in_background

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["documents"])

ALLOWED_CONTENT_TYPES = {"application/pdf"}


def _document_to_response(doc: DocumentRecord) -> DocumentResponse:
    return DocumentResponse(
        id=doc.id,
        course_id=doc.course_id,
        file_name=doc.file_name,
        file_type=doc.file_type,
        file_size=doc.file_size,
        uploaded_by=doc.uploaded_by,
        is_processed=doc.is_processed,
        created_at=doc.created_at.isoformat(),
    )


@router.get("/{course_id}/documents", response_model=DocumentListResponse)
def list_documents(
    course_id: str,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    current_user: User = Depends(get_current_user),
):
    course = get_course_or_404(db, course_id)
    ensure_course_access(db, course, current_user)

    documents = store.list_documents(course_id)
    return DocumentListResponse(
        documents=[_document_to_response(d) for d in documents],
        total=len(documents),
    )


@router.post("/{course_id}/documents/upload", response_model=UploadAcceptedResponse, status_code=202)
async def upload_document(
    course_id: str,
    background_tasks: BackgroundTasks,
    document: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    embedder: Embedder = Depends(get_embedder),
    session_factory=Depends(get_session_factory),
    current_user: User = Depends(require_instructor),
):
    """Accept a PDF and process it in the background.

    The response only acknowledges the upload; poll the document list for
    isProcessed to know when it is searchable.
    """
    course = get_course_or_404(db, course_id)
    ensure_course_owner(course, current_user)

    if document.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    content = await document.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"File too large (max {max_mb}MB)")

    file_name = Path(document.filename or "upload.pdf").name
    upload_dir = Path(settings.UPLOAD_DIR) / course_id
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{uuid.uuid4()}-{file_name}"
    file_path.write_bytes(content)

    record = store.create_document(
        course_id=course_id,
        file_name=file_name,
        file_path=str(file_path),
        file_size=len(content),
        uploaded_by=current_user.id,
    )
    logger.info("Accepted %s (%d bytes) for course %s", file_name, len(content), course_id)

    background_tasks.add_task(
        process_document_in_background,
        record.id,
        content,
        session_factory,
        embedder,
        settings.RAG_CHUNK_WORDS,
    )

    return UploadAcceptedResponse(
        message="Document uploaded successfully and is being processed",
        file_name=file_name,
        document_id=record.id,
    )


@router.delete("/{course_id}/documents/{document_id}", status_code=204)
def delete_document(
    course_id: str,
    document_id: str,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    current_user: User = Depends(require_instructor),
):
    course = get_course_or_404(db, course_id)
    ensure_course_owner(course, current_user)

    record = store.get_document(document_id)
    if not record or record.course_id != course_id:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        Path(record.file_path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove %s: %s", record.file_path, e)

    store.delete_document(document_id)


@router.post("/{course_id}/search", response_model=SearchResponse)
async def search_documents(
    course_id: str,
    req: SearchRequest,
    db: Session = Depends(get_db),
    retriever: Retriever = Depends(get_retriever),
    current_user: User = Depends(get_current_user),
):
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    course = get_course_or_404(db, course_id)
    ensure_course_access(db, course, current_user)

    results = await retriever.search(req.query, course_id, req.limit)
    return SearchResponse(
        results=[
            SearchResultItem(
                content=r.content,
                similarity=r.similarity,
                file_name=r.file_name,
                metadata=r.metadata,
            )
            for r in results
        ]
    )


@router.get("/{course_id}/study-questions", response_model=StudyQuestionsResponse)
async def study_questions(
    course_id: str,
    db: Session = Depends(get_db),
    rag: RagService = Depends(get_rag_service),
    current_user: User = Depends(get_current_user),
):
    course = get_course_or_404(db, course_id)
    ensure_course_access(db, course, current_user)

    return StudyQuestionsResponse(questions=await rag.study_questions(course_id))
