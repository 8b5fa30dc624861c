"""
Route tests with FastAPI's TestClient and dependency overrides.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from aily.api import ai_students, sessions, topics, users
from aily.core.exceptions import NotFoundError, SessionAlreadyEnded
from aily.main import app
from aily.models.aily import AIResponse, Emotion
from aily.models.session import SessionEndResponse, TeacherStats
from aily.models.user import User
from aily.services.rate_limiter import InMemoryRateLimitStore, RateLimiter

from tests.conftest import NOW


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def override(dependency, value):
    app.dependency_overrides[dependency] = lambda: value
    return value


def turn_state(next_action="done", degraded=False, xp=5, emotion=Emotion.UNDERSTANDING, delta=0.1):
    return {
        "next_action": next_action,
        "reply": AIResponse(message="I see 😊", emotion=emotion, understanding_delta=delta),
        "degraded": degraded,
        "xp_gained": xp,
        "knowledge_update": None,
        "errors": ["Session sess1 not found"] if next_action == "not_found" else [],
    }


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_root(self, client):
        assert client.get("/").json()["message"] == "Aily API"


class TestUsers:
    def test_register_creates_aily(self, client, make_aily):
        user_crud = override(users.get_user_crud, MagicMock())
        aily_crud = override(users.get_aily_crud, MagicMock())
        user_crud.get_user_by_email.return_value = None
        user_crud.create_user.return_value = User(key="user1", email="maria@aily.dev", name="Maria", created_at=NOW)
        aily_crud.create_for_user.return_value = make_aily()

        response = client.post("/api/users", json={"email": "maria@aily.dev", "name": "Maria"})

        assert response.status_code == 201
        assert response.json()["aily_id"] == "aily1"
        assert response.json()["user"]["key"] == "user1"
        aily_crud.create_for_user.assert_called_once_with("user1")

    def test_duplicate_email(self, client):
        user_crud = override(users.get_user_crud, MagicMock())
        override(users.get_aily_crud, MagicMock())
        user_crud.get_user_by_email.return_value = User(key="u", email="maria@aily.dev", name="M", created_at=NOW)

        response = client.post("/api/users", json={"email": "maria@aily.dev", "name": "Maria"})

        assert response.status_code == 409

    def test_invalid_email(self, client):
        override(users.get_user_crud, MagicMock())
        override(users.get_aily_crud, MagicMock())

        response = client.post("/api/users", json={"email": "not-an-email", "name": "Maria"})

        assert response.status_code == 422

    def test_unknown_user(self, client):
        user_crud = override(users.get_user_crud, MagicMock())
        user_crud.get_user_by_key.return_value = None
        assert client.get("/api/users/nope").status_code == 404


class TestSessionMessages:
    @pytest.fixture
    def session_crud(self, make_session):
        crud = override(sessions.get_session_crud, MagicMock())
        crud.get.return_value = make_session()
        return crud

    @pytest.fixture
    def orchestrator(self):
        orch = override(sessions.get_teaching_orchestrator, MagicMock())
        orch.ainvoke = AsyncMock(return_value=turn_state())
        return orch

    @pytest.fixture
    def limiter(self):
        return override(
            sessions.get_message_rate_limiter,
            RateLimiter(InMemoryRateLimitStore(), limit=2, window_seconds=60)
        )

    def test_message_turn(self, client, session_crud, orchestrator, limiter):
        response = client.post("/api/sessions/sess1/message", json={"message": "let makes a variable"})

        assert response.status_code == 200
        body = response.json()
        assert body["ai_response"] == "I see 😊"
        assert body["emotion"] == "understanding"
        assert body["xp_gained"] == 5
        assert body["degraded"] is False
        orchestrator.ainvoke.assert_awaited_once_with("sess1", "let makes a variable")

    def test_degraded_turn(self, client, session_crud, orchestrator, limiter):
        orchestrator.ainvoke.return_value = turn_state(degraded=True, xp=0, emotion=Emotion.CONFUSED, delta=0.0)

        body = client.post("/api/sessions/sess1/message", json={"message": "hi"}).json()

        assert body["degraded"] is True
        assert body["xp_gained"] == 0
        assert body["understanding_delta"] == 0

    def test_rate_limited(self, client, session_crud, orchestrator, limiter):
        for _ in range(2):
            assert client.post("/api/sessions/sess1/message", json={"message": "hi"}).status_code == 200

        response = client.post("/api/sessions/sess1/message", json={"message": "hi"})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert orchestrator.ainvoke.await_count == 2

    def test_empty_message(self, client, session_crud, orchestrator, limiter):
        assert client.post("/api/sessions/sess1/message", json={"message": ""}).status_code == 422

    def test_unknown_session(self, client, session_crud, orchestrator, limiter):
        session_crud.get.return_value = None
        response = client.post("/api/sessions/nope/message", json={"message": "hi"})
        assert response.status_code == 404
        orchestrator.ainvoke.assert_not_called()

    @pytest.mark.parametrize("next_action,status", [("session_ended", 409), ("conflict", 409),
                                                    ("not_found", 404), ("error", 500)])
    def test_workflow_outcomes(self, client, session_crud, orchestrator, limiter, next_action, status):
        orchestrator.ainvoke.return_value = turn_state(next_action=next_action)
        response = client.post("/api/sessions/sess1/message", json={"message": "hi"})
        assert response.status_code == status


class TestSessionLifecycle:
    def test_start(self, client, make_aily):
        from aily.models.session import SessionStartResponse

        service = override(sessions.get_session_service, MagicMock())
        service.start_session = AsyncMock(return_value=SessionStartResponse(
            id="sess1", session_id="sess1", student_id="user1", ai_student_id="aily1",
            topic="Loops", ai_student=make_aily(), initial_message="Hi! 🙂",
            initial_emotion=Emotion.CURIOUS,
        ))

        response = client.post(
            "/api/sessions/start",
            json={"studentId": "user1", "aiStudentId": "aily1", "topic": "Loops"}
        )

        assert response.status_code == 200
        assert response.json()["initial_emotion"] == "curious"
        service.start_session.assert_awaited_once_with("user1", "aily1", "Loops")

    def test_start_unknown_aily(self, client):
        service = override(sessions.get_session_service, MagicMock())
        service.start_session = AsyncMock(side_effect=NotFoundError("Aily instance nope not found"))

        response = client.post(
            "/api/sessions/start",
            json={"studentId": "user1", "aiStudentId": "nope", "topic": "Loops"}
        )

        assert response.status_code == 404

    def test_end(self, client):
        service = override(sessions.get_session_service, MagicMock())
        service.end_session.return_value = SessionEndResponse(
            duration_minutes=2, xp_earned=20, messages_exchanged=9,
            leveled_up=False, new_level=0, total_xp=20,
        )

        response = client.post("/api/sessions/sess1/end")

        assert response.status_code == 200
        assert response.json()["xp_earned"] == 20

    def test_end_twice(self, client):
        service = override(sessions.get_session_service, MagicMock())
        service.end_session.side_effect = SessionAlreadyEnded("Session sess1 has already ended")

        assert client.post("/api/sessions/sess1/end").status_code == 409

    def test_history_limit(self, client, make_session):
        crud = override(sessions.get_session_crud, MagicMock())
        crud.history_for_agent.return_value = [make_session()]

        response = client.get("/api/sessions/ai-student/aily1/history?limit=5")

        assert response.status_code == 200
        assert len(response.json()) == 1
        crud.history_for_agent.assert_called_once_with("aily1", 5)

    def test_stats(self, client):
        service = override(sessions.get_session_service, MagicMock())
        service.teacher_stats.return_value = TeacherStats()

        response = client.get("/api/sessions/student/user1/stats")

        assert response.status_code == 200
        assert response.json()["total_sessions"] == 0

    def test_unexpected_error_becomes_500(self, client):
        crud = override(sessions.get_session_crud, MagicMock())
        crud.get.side_effect = RuntimeError("db down")

        response = client.get("/api/sessions/sess1")

        assert response.status_code == 500
        assert response.json()["type"] == "RuntimeError"


class TestAIStudents:
    def test_characters(self, client):
        response = client.get("/api/ai-students/characters")
        assert response.status_code == 200
        assert len(response.json()) == 6

    def test_random_character(self, client):
        response = client.get("/api/ai-students/random-character")
        assert response.status_code == 200
        assert "personality" in response.json()

    def test_knowledge_requires_aily(self, client):
        aily_crud = override(ai_students.get_aily_crud, MagicMock())
        override(ai_students.get_knowledge_crud, MagicMock())
        aily_crud.get.return_value = None

        assert client.get("/api/ai-students/nope/knowledge").status_code == 404

    def test_user_list_is_empty_without_instance(self, client):
        aily_crud = override(ai_students.get_aily_crud, MagicMock())
        override(ai_students.get_knowledge_crud, MagicMock())
        aily_crud.get_by_user.return_value = None

        response = client.get("/api/ai-students/user/user1")

        assert response.status_code == 200
        assert response.json() == []

    def test_change_mood(self, client, make_aily):
        aily_crud = override(ai_students.get_aily_crud, MagicMock())
        aily_crud.get.return_value = make_aily()
        aily_crud.set_character.return_value = make_aily()

        response = client.post("/api/ai-students/aily1/change-mood", json={"characterId": "quick-learner"})

        assert response.status_code == 200
        character = aily_crud.set_character.call_args.args[1]
        assert character.id == "quick-learner"

    def test_change_mood_unknown_character(self, client):
        override(ai_students.get_aily_crud, MagicMock())
        response = client.post("/api/ai-students/aily1/change-mood", json={"characterId": "pirate"})
        assert response.status_code == 404


class TestTopics:
    def test_curriculum(self, client):
        body = client.get("/api/topics").json()
        assert body["total_topics"] == sum(s["topic_count"] for s in body["sections"].values())
        assert set(body["sections"]) == {"basics", "intermediate", "advanced", "oop", "applications", "web"}

    def test_section_is_case_insensitive(self, client):
        response = client.get("/api/topics/section/OOP")
        assert response.status_code == 200
        assert response.json()["section"] == "oop"

    def test_unknown_section(self, client):
        assert client.get("/api/topics/section/cooking").status_code == 404

    def test_topic_by_id(self, client):
        assert client.get("/api/topics/basics-1").json()["section"] == "basics"
        assert client.get("/api/topics/nope").status_code == 404

    def test_progress(self, client, make_aily):
        aily_crud = override(topics.get_aily_crud, MagicMock())
        knowledge_crud = override(topics.get_knowledge_crud, MagicMock())
        aily_crud.get.return_value = make_aily()
        knowledge_crud.views_for_agent.return_value = []

        body = client.get("/api/topics/progress/aily1").json()

        assert body["basics"]["progressed_topics"] == 0
        assert body["basics"]["total_topics"] == 8
