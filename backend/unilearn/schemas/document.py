"""Course document, search and study-question schemas."""

from pydantic import Field

from unilearn.schemas.common import APIModel


class DocumentResponse(APIModel):
    id: str
    course_id: str
    file_name: str
    file_type: str
    file_size: int
    uploaded_by: str
    is_processed: bool
    created_at: str


class DocumentListResponse(APIModel):
    documents: list[DocumentResponse]
    total: int


class UploadAcceptedResponse(APIModel):
    message: str
    file_name: str
    document_id: str


class SearchRequest(APIModel):
    query: str
    limit: int = Field(default=5, ge=1, le=50)


class SearchResultItem(APIModel):
    content: str
    similarity: float
    file_name: str
    metadata: dict


class SearchResponse(APIModel):
    results: list[SearchResultItem]


class StudyQuestionsResponse(APIModel):
    questions: list[str]
