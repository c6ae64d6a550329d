"""API tests for document upload, search, RAG chat and study questions."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import FakeChatClient, build_pdf
from unilearn.config import settings
from unilearn.services.answering import NO_DOCUMENTS_MESSAGE, STARTER_QUESTIONS

NEWTON_TEXT = "Newton's laws describe motion. The first law is inertia."


def _upload(client, course_id, headers, data, file_name="physics.pdf", content_type="application/pdf"):
    return client.post(
        f"/api/courses/{course_id}/documents/upload",
        files={"document": (file_name, data, content_type)},
        headers=headers,
    )


class TestUpload:
    """PDF upload and background processing."""

    def test_upload_is_processed_and_listed(self, client, course_setup):
        """An uploaded PDF is accepted, processed and listed."""
        course_id = course_setup["course"]["id"]

        res = _upload(client, course_id, course_setup["instructor_headers"], build_pdf(NEWTON_TEXT))

        assert res.status_code == 202
        body = res.json()
        assert body["fileName"] == "physics.pdf"
        document_id = body["documentId"]

        res = client.get(f"/api/courses/{course_id}/documents", headers=course_setup["student_headers"])
        assert res.status_code == 200
        [doc] = res.json()["documents"]
        assert doc["id"] == document_id
        assert doc["isProcessed"] is True
        assert doc["fileType"] == "pdf"
        assert os.path.isdir(os.path.join(settings.UPLOAD_DIR, course_id))

    def test_corrupt_pdf_stays_unprocessed(self, client, course_setup):
        """A broken PDF is accepted but never marked processed."""
        course_id = course_setup["course"]["id"]

        res = _upload(client, course_id, course_setup["instructor_headers"], b"%PDF-garbage")
        assert res.status_code == 202

        res = client.get(f"/api/courses/{course_id}/documents", headers=course_setup["instructor_headers"])
        [doc] = res.json()["documents"]
        assert doc["isProcessed"] is False

    def test_rejects_non_pdf(self, client, course_setup):
        """Only PDFs are accepted."""
        res = _upload(
            client,
            course_setup["course"]["id"],
            course_setup["instructor_headers"],
            b"plain text",
            file_name="notes.txt",
            content_type="text/plain",
        )
        assert res.status_code == 400

    def test_rejects_empty_file(self, client, course_setup):
        """Empty uploads are rejected."""
        res = _upload(client, course_setup["course"]["id"], course_setup["instructor_headers"], b"")
        assert res.status_code == 400

    def test_rejects_oversized_file(self, client, course_setup, monkeypatch):
        """Files over the size cap are rejected."""
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 100)
        res = _upload(client, course_setup["course"]["id"], course_setup["instructor_headers"], b"x" * 101)
        assert res.status_code == 413

    def test_students_cannot_upload(self, client, course_setup):
        """Uploads are staff-only."""
        res = _upload(client, course_setup["course"]["id"], course_setup["student_headers"], build_pdf("hi"))
        assert res.status_code == 403

    def test_other_instructor_cannot_upload(self, client, course_setup, make_user):
        """Only the course owner uploads."""
        _, other = make_user("instructor")
        res = _upload(client, course_setup["course"]["id"], other, build_pdf("hi"))
        assert res.status_code == 403

    def test_delete_document(self, client, course_setup):
        """Deleting a document removes it from listing and search."""
        course_id = course_setup["course"]["id"]
        headers = course_setup["instructor_headers"]
        document_id = _upload(client, course_id, headers, build_pdf(NEWTON_TEXT)).json()["documentId"]

        res = client.delete(f"/api/courses/{course_id}/documents/{document_id}", headers=headers)
        assert res.status_code == 204

        assert client.get(f"/api/courses/{course_id}/documents", headers=headers).json()["total"] == 0
        res = client.post(f"/api/courses/{course_id}/search", json={"query": "inertia"}, headers=headers)
        assert res.json()["results"] == []


class TestSearch:
    """Semantic search over a course."""

    def test_search_finds_uploaded_content(self, client, course_setup):
        """Search returns the uploaded chunk with metadata."""
        course_id = course_setup["course"]["id"]
        _upload(client, course_id, course_setup["instructor_headers"], build_pdf(NEWTON_TEXT))

        res = client.post(
            f"/api/courses/{course_id}/search",
            json={"query": "What is inertia?"},
            headers=course_setup["student_headers"],
        )

        assert res.status_code == 200
        [result] = res.json()["results"]
        assert "inertia" in result["content"]
        assert result["fileName"] == "physics.pdf"
        assert result["metadata"]["chunkIndex"] == 0
        assert result["metadata"]["totalChunks"] == 1

    def test_search_empty_course(self, client, course_setup):
        """A course without documents returns no results."""
        res = client.post(
            f"/api/courses/{course_setup['course']['id']}/search",
            json={"query": "anything"},
            headers=course_setup["student_headers"],
        )
        assert res.status_code == 200
        assert res.json() == {"results": []}

    def test_blank_query(self, client, course_setup):
        """Blank queries are rejected."""
        res = client.post(
            f"/api/courses/{course_setup['course']['id']}/search",
            json={"query": "   "},
            headers=course_setup["student_headers"],
        )
        assert res.status_code == 400

    def test_not_enrolled(self, client, course_setup, make_user):
        """Outsiders cannot search a course."""
        _, outsider = make_user("student")
        res = client.post(
            f"/api/courses/{course_setup['course']['id']}/search",
            json={"query": "inertia"},
            headers=outsider,
        )
        assert res.status_code == 403


class TestRagChat:
    """Course-document chat."""

    def test_answer_without_documents(self, client, course_setup):
        """No documents yields the fixed message."""
        res = client.post(
            "/api/chat/rag",
            json={"message": "What is inertia?", "courseId": course_setup["course"]["id"]},
            headers=course_setup["student_headers"],
        )

        assert res.status_code == 200
        body = res.json()
        assert body["isRAGResponse"] is True
        assert body["aiMessage"]["content"] == NO_DOCUMENTS_MESSAGE
        assert body["userMessage"]["content"] == "What is inertia?"

    def test_fallback_answer_from_uploaded_pdf(self, client, course_setup):
        """Without a model the answer quotes the PDF and cites it."""
        course_id = course_setup["course"]["id"]
        _upload(client, course_id, course_setup["instructor_headers"], build_pdf(NEWTON_TEXT))

        res = client.post(
            "/api/chat/rag",
            json={"message": "What is inertia?", "courseId": course_id},
            headers=course_setup["student_headers"],
        )

        answer = res.json()["aiMessage"]["content"]
        assert "inertia" in answer
        assert "📚 Sources:\n1. physics.pdf" in answer

    def test_model_answer_with_sources(self, client, course_setup, ai_provider):
        """The model answer is followed by its sources."""
        course_id = course_setup["course"]["id"]
        _upload(client, course_id, course_setup["instructor_headers"], build_pdf(NEWTON_TEXT))
        ai_provider.chat_client = FakeChatClient(reply="Inertia resists changes in motion.")

        res = client.post(
            "/api/chat/rag",
            json={"message": "What is inertia?", "courseId": course_id},
            headers=course_setup["student_headers"],
        )

        assert res.json()["aiMessage"]["content"] == (
            "Inertia resists changes in motion.\n\n📚 Sources:\n1. physics.pdf"
        )
        assert "physics.pdf" in ai_provider.chat_client.calls[0]["system"]

    def test_messages_are_saved_with_course(self, client, course_setup):
        """Both sides of the exchange are stored with the course id."""
        course_id = course_setup["course"]["id"]
        headers = course_setup["student_headers"]
        client.post("/api/chat/rag", json={"message": "Hello?", "courseId": course_id}, headers=headers)

        messages = client.get("/api/chat/messages", headers=headers).json()["messages"]

        assert [m["type"] for m in messages] == ["user", "ai"]
        assert all(m["courseId"] == course_id for m in messages)

    def test_blank_message(self, client, course_setup):
        """Blank questions are rejected."""
        res = client.post(
            "/api/chat/rag",
            json={"message": " ", "courseId": course_setup["course"]["id"]},
            headers=course_setup["student_headers"],
        )
        assert res.status_code == 400

    def test_unknown_course(self, client, course_setup):
        """A missing course is 404."""
        res = client.post(
            "/api/chat/rag",
            json={"message": "Hi", "courseId": "missing"},
            headers=course_setup["student_headers"],
        )
        assert res.status_code == 404


class TestStudyQuestions:
    """Study questions endpoint."""

    def test_starters_for_empty_course(self, client, course_setup):
        """An empty course gets the starter questions."""
        res = client.get(
            f"/api/courses/{course_setup['course']['id']}/study-questions",
            headers=course_setup["student_headers"],
        )
        assert res.status_code == 200
        assert res.json()["questions"] == STARTER_QUESTIONS

    def test_questions_from_course_content(self, client, course_setup):
        """Uploaded content drives the local questions."""
        course_id = course_setup["course"]["id"]
        _upload(client, course_id, course_setup["instructor_headers"], build_pdf(NEWTON_TEXT))

        res = client.get(f"/api/courses/{course_id}/study-questions", headers=course_setup["student_headers"])

        questions = res.json()["questions"]
        assert len(questions) == 5
        # Every word appears once, so the first distinct term leads.
        assert questions[0] == 'What is meant by "newton" in the course materials?'
