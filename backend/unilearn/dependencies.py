"""
FastAPI dependencies wiring services to their collaborators.

Tests replace any of these through app.dependency_overrides.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from unilearn.config import settings
from unilearn.database import get_db
from unilearn.services.ai_client import AIProvider, build_ai_provider
from unilearn.services.answering import RagService
from unilearn.services.document_store import DocumentStore, SqlDocumentStore
from unilearn.services.embedding import Embedder
from unilearn.services.rag import Retriever
from unilearn.services.tutor import TutorService


def get_ai_provider(request: Request) -> AIProvider:
    """The provider built at startup (built lazily if startup hooks never ran)."""
    provider = getattr(request.app.state, "ai_provider", None)
    if provider is None:
        provider = build_ai_provider(settings)
        request.app.state.ai_provider = provider
    return provider


def get_embedder(provider: AIProvider = Depends(get_ai_provider)) -> Embedder:
    return Embedder(provider.embedding_client)


def get_document_store(db: Session = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)


def get_retriever(
    store: DocumentStore = Depends(get_document_store),
    embedder: Embedder = Depends(get_embedder),
) -> Retriever:
    return Retriever(store, embedder)


def get_rag_service(
    retriever: Retriever = Depends(get_retriever),
    provider: AIProvider = Depends(get_ai_provider),
) -> RagService:
    return RagService(retriever, provider.chat_client)


def get_tutor_service(provider: AIProvider = Depends(get_ai_provider)) -> TutorService:
    return TutorService(provider.chat_client)
