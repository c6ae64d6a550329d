"""API tests for assignments, tutor chat, recommendations and dashboard stats."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import FakeChatClient
from unilearn.services.tutor import DEFAULT_RECOMMENDATIONS


def _create_assignment(client, course_setup, **overrides):
    payload = {
        "title": "Problem set 1",
        "description": "Newton's laws",
        "courseId": course_setup["course"]["id"],
        "maxPoints": 50,
    }
    payload.update(overrides)
    res = client.post("/api/assignments", json=payload, headers=course_setup["instructor_headers"])
    assert res.status_code == 201, res.text
    return res.json()


class TestAssignments:
    """Assignment lifecycle."""

    def test_new_assignment_is_not_started(self, client, course_setup):
        """Unsubmitted assignments report not_started with their course."""
        assignment = _create_assignment(client, course_setup)

        res = client.get("/api/assignments", headers=course_setup["student_headers"])

        assert res.status_code == 200
        [item] = res.json()["assignments"]
        assert item["id"] == assignment["id"]
        assert item["status"] == "not_started"
        assert item["course"] == {"id": course_setup["course"]["id"], "title": "Physics 101"}

    def test_submit_marks_completed(self, client, course_setup):
        """Submitting completes the assignment."""
        assignment = _create_assignment(client, course_setup)
        headers = course_setup["student_headers"]

        res = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "F = ma"}, headers=headers)

        assert res.status_code == 200
        assert res.json()["status"] == "completed"
        assert res.json()["submittedAt"] is not None
        [item] = client.get("/api/assignments", headers=headers).json()["assignments"]
        assert item["status"] == "completed"

    def test_resubmission_replaces_content(self, client, course_setup):
        """A second submission updates the first."""
        assignment = _create_assignment(client, course_setup)
        headers = course_setup["student_headers"]
        first = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "v1"}, headers=headers)
        second = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "v2"}, headers=headers)

        assert first.json()["id"] == second.json()["id"]
        assert second.json()["content"] == "v2"

    def test_grading(self, client, course_setup):
        """Scores are capped at max points and staff-only."""
        assignment = _create_assignment(client, course_setup)
        submission = client.post(
            f"/api/assignments/{assignment['id']}/submit",
            json={"content": "F = ma"},
            headers=course_setup["student_headers"],
        ).json()
        url = f"/api/assignments/{assignment['id']}/submissions/{submission['id']}/grade"

        res = client.patch(url, json={"score": 60}, headers=course_setup["instructor_headers"])
        assert res.status_code == 400

        res = client.patch(url, json={"score": 45}, headers=course_setup["instructor_headers"])
        assert res.status_code == 200
        assert res.json()["score"] == 45

        res = client.patch(url, json={"score": 45}, headers=course_setup["student_headers"])
        assert res.status_code == 403

    def test_unenrolled_student_cannot_submit(self, client, course_setup, make_user):
        """Only enrolled students submit."""
        assignment = _create_assignment(client, course_setup)
        _, outsider = make_user("student")

        res = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "x"}, headers=outsider)
        assert res.status_code == 403

    def test_only_owner_creates_assignments(self, client, course_setup, make_user):
        """Other instructors cannot add assignments."""
        _, other = make_user("instructor")
        res = client.post(
            "/api/assignments",
            json={"title": "Fake", "courseId": course_setup["course"]["id"]},
            headers=other,
        )
        assert res.status_code == 403


class TestTutorChat:
    """General tutor chat."""

    def test_fallback_reply_is_saved(self, client, course_setup):
        """The local reply is returned and both messages stored."""
        headers = course_setup["student_headers"]

        res = client.post("/api/chat/message", json={"content": "Explain derivatives"}, headers=headers)

        assert res.status_code == 200
        assert "rate of change" in res.json()["aiMessage"]["content"]
        history = client.get("/api/chat/messages", headers=headers).json()["messages"]
        assert [m["content"] for m in history][0] == "Explain derivatives"
        assert len(history) == 2

    def test_model_reply(self, client, course_setup, ai_provider):
        """The model reply is returned as is."""
        ai_provider.chat_client = FakeChatClient(reply="Derivatives are slopes.")
        res = client.post(
            "/api/chat/message",
            json={"content": "Explain derivatives"},
            headers=course_setup["student_headers"],
        )
        assert res.json()["aiMessage"]["content"] == "Derivatives are slopes."

    def test_blank_message(self, client, course_setup):
        """Empty messages are rejected."""
        res = client.post("/api/chat/message", json={"content": ""}, headers=course_setup["student_headers"])
        assert res.status_code == 400


class TestRecommendations:
    """Study recommendations."""

    def test_generate_and_mark_read(self, client, course_setup):
        """Generated recommendations can be marked read."""
        headers = course_setup["student_headers"]

        res = client.post("/api/recommendations/generate", headers=headers)
        assert res.status_code == 201
        created = res.json()["recommendations"]
        assert [r["description"] for r in created] == DEFAULT_RECOMMENDATIONS
        assert not any(r["isRead"] for r in created)

        res = client.patch(f"/api/recommendations/{created[0]['id']}/read", headers=headers)
        assert res.status_code == 200
        assert res.json()["isRead"] is True

        assert len(client.get("/api/recommendations", headers=headers).json()["recommendations"]) == 3

    def test_other_users_recommendation(self, client, course_setup, make_user):
        """Other users' recommendations are invisible."""
        created = client.post(
            "/api/recommendations/generate", headers=course_setup["student_headers"]
        ).json()["recommendations"]
        _, other = make_user("student")

        res = client.patch(f"/api/recommendations/{created[0]['id']}/read", headers=other)
        assert res.status_code == 404


class TestStats:
    """Dashboard stats and study sessions."""

    def test_dashboard_counters(self, client, course_setup):
        """Stats count courses, sessions and questions asked."""
        headers = course_setup["student_headers"]
        client.post("/api/chat/message", json={"content": "Hi"}, headers=headers)

        session = client.post("/api/study-sessions", json={}, headers=headers)
        assert session.status_code == 201

        res = client.get("/api/analytics/stats", headers=headers)

        assert res.status_code == 200
        assert res.json() == {
            "activeCourses": 1,
            "pendingAssignments": 0,
            "studyStreak": 1,
            "aiInteractions": 1,
        }

    def test_end_study_session(self, client, course_setup):
        """Ending sets duration once; a second end conflicts."""
        headers = course_setup["student_headers"]
        session = client.post(
            "/api/study-sessions",
            json={"courseId": course_setup["course"]["id"]},
            headers=headers,
        ).json()

        res = client.post(f"/api/study-sessions/{session['id']}/end", headers=headers)
        assert res.status_code == 200
        assert res.json()["endedAt"] is not None
        assert res.json()["duration"] >= 0

        res = client.post(f"/api/study-sessions/{session['id']}/end", headers=headers)
        assert res.status_code == 409
