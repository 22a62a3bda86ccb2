import pytest
from fastapi.testclient import TestClient

from conftest import LONG_PARAGRAPHS, FakeLLMService, FakeRedisClient, build_docx, make_question_items
from db.mongo_db import MongoDB
from db.redis_db import RedisDB
from main import app
from services import service

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALICE = {"X-User-Id": "alice"}


class FakeMongoClient:
    def __init__(self):
        self.closed = False

    def __getitem__(self, name):
        return {}

    def close(self):
        self.closed = True


@pytest.fixture
def fresh_singletons(monkeypatch):
    for name in (
        "REDIS_DB",
        "MONGO_DB",
        "DOCUMENT_LOADER",
        "SESSION_STORE",
        "RESULT_STORE",
        "GENERATE_QUESTION_SERVICE",
        "QUIZ_SERVICE",
        "SCORING_SERVICE",
        "HISTORY_SERVICE",
    ):
        monkeypatch.setattr(service, name, None)
    monkeypatch.setattr(
        service, "LLM_SERVICE", FakeLLMService({"questions": make_question_items(40)})
    )
    app.dependency_overrides.clear()


def test_empty_session_store_is_reused(fresh_singletons):
    store = service.get_session_store()

    assert len(store) == 0
    assert service.get_session_store() is store
    assert service.get_quiz_service().session_store is store
    assert service.get_scoring_service().session_store is store
    assert service.get_generate_question_service().session_store is store

    store.evict_idle()
    assert service.get_session_store() is store


def test_start_before_any_upload_does_not_detach_the_store(fresh_singletons):
    client = TestClient(app)

    response = client.post(
        "/quiz/start", json={"sessionId": "bogus", "numberOfQuestions": 30}, headers=ALICE
    )
    assert response.status_code == 404

    response = client.post(
        "/quiz/generate",
        files={"file": ("notes.docx", build_docx(LONG_PARAGRAPHS), DOCX_MIME)},
        headers=ALICE,
    )
    assert response.status_code == 200
    session_id = response.json()["sessionId"]

    response = client.post(
        "/quiz/start", json={"sessionId": session_id, "numberOfQuestions": 30}, headers=ALICE
    )
    assert response.status_code == 200
    assert response.json()["totalQuestions"] == 30


def test_shutdown_closes_database_clients(fresh_singletons, monkeypatch):
    redis_client = FakeRedisClient()
    mongo_client = FakeMongoClient()
    monkeypatch.setattr(service, "REDIS_DB", RedisDB(None, None, client=redis_client))
    monkeypatch.setattr(service, "MONGO_DB", MongoDB(None, "quiz", client=mongo_client))

    with TestClient(app) as client:
        assert client.get("/ping").status_code == 200
        assert not redis_client.closed

    assert redis_client.closed
    assert mongo_client.closed
