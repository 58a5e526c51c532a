import json

import pytest
from cachetools import TTLCache
from fastapi.testclient import TestClient

from flashdeck.api.main import app
from flashdeck.core.container import get_storage, get_study_service
from flashdeck.domain.project.service import StudyService
from flashdeck.repositories.project_repository import ProjectRepository
from flashdeck.storage.memory import DictionaryBackend

DRAFTS = [
    {"question": "What is ATP?", "answer": "Energy currency", "options": ["ATP", "DNA", "RNA", "NAD"], "correctOptionIndex": 0},
    {"question": "Where is DNA?", "answer": "Nucleus", "options": ["Cytosol", "Nucleus", "Membrane", "Wall"], "correctOptionIndex": 1},
]


@pytest.fixture
def client(tmp_path, clock):
    storage = DictionaryBackend()
    service = StudyService(ProjectRepository(storage, cache=TTLCache(maxsize=10, ttl=60)), clock=clock, export_dir=str(tmp_path))
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_study_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def project_id(client):
    response = client.post("/projects", json={"name": "Biology"})
    assert response.status_code == 201
    return response.json()["id"]


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_and_list_projects(client, project_id):
    response = client.get("/projects")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [project_id]
    assert response.json()[0]["card_count"] == 0


def test_create_project_rejects_empty_name(client):
    assert client.post("/projects", json={"name": ""}).status_code == 422


def test_unknown_project_returns_404(client):
    response = client.get("/projects/missing")

    assert response.status_code == 404
    assert response.json()["detail"]["error_code"] == "RESOURCE_NOT_FOUND"


def test_add_cards_and_refuse_repeated_source(client, project_id):
    body = {"drafts": DRAFTS, "source_content": "Cell biology notes"}

    first = client.post(f"/projects/{project_id}/cards", json=body)
    assert first.status_code == 200
    assert first.json()["added"] == 2

    repeated = client.post(f"/projects/{project_id}/cards", json=body)
    assert repeated.status_code == 409
    assert repeated.json()["detail"]["error_code"] == "CONTENT_ALREADY_PROCESSED"

    forced = client.post(f"/projects/{project_id}/cards", json={**body, "force": True})
    assert forced.status_code == 200
    assert forced.json()["duplicates"] == 2
    assert forced.json()["added"] == 0


def test_content_check(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS, "source_content": "notes"})

    response = client.post(
        f"/projects/{project_id}/content-check", json={"source_content": "notes", "questions": ["What is ATP?"]}
    )

    assert response.json()["already_processed"] is True
    assert response.json()["duplicates"] == 1


def test_study_session_flow(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS})
    session = f"/projects/{project_id}/session"

    for _ in range(2):
        next_card = client.get(f"{session}/next").json()
        assert next_card["state"] == "active"
        card = next_card["card"]
        answer = client.post(
            f"{session}/answer", json={"card_id": card["id"], "selected_option_index": card["correct_option_index"]}
        )
        assert answer.status_code == 200
        assert answer.json()["correct"] is True

    done = client.get(f"{session}/next").json()
    assert done == {"card": None, "state": "complete", "remaining": 0}

    assert client.post(f"{session}/reset").status_code == 204
    assert client.get(f"{session}/next").json()["state"] == "active"


def test_answer_requires_outcome(client, project_id):
    response = client.post(f"/projects/{project_id}/session/answer", json={"card_id": "abc"})

    assert response.status_code == 422


def test_skip_and_seen(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS})
    session = f"/projects/{project_id}/session"
    first = client.get(f"{session}/next").json()["card"]

    assert client.post(f"{session}/skip", json={"card_id": first["id"]}).status_code == 204
    second = client.get(f"{session}/next").json()["card"]
    assert second["id"] != first["id"]

    assert client.post(f"{session}/seen", json={"card_id": second["id"]}).status_code == 204
    assert client.get(f"{session}/next").json()["card"]["id"] == first["id"]


def test_list_delete_and_stats(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS})

    cards = client.get(f"/projects/{project_id}/cards", params={"search": "dna"}).json()
    assert [c["question"] for c in cards] == ["Where is DNA?"]

    deleted = client.delete(f"/projects/{project_id}/cards/{cards[0]['id']}")
    assert deleted.json() == {"deleted": True}

    stats = client.get(f"/projects/{project_id}/stats").json()
    assert stats["total_cards"] == 1
    assert stats["never_seen"] == 1

    assert client.delete(f"/projects/{project_id}/cards").json() == {"deleted": 1}


def test_export_and_import(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS})

    exported = client.get(f"/projects/{project_id}/export", params={"format": "json"})
    assert exported.status_code == 200
    assert len(json.loads(exported.content)) == 2

    other = client.post("/projects", json={"name": "Copy"}).json()["id"]
    imported = client.post(f"/projects/{other}/import", content=exported.content)
    assert imported.json() == {"success": True, "count": 2, "skipped": 0, "duplicates": 0, "error": None}


def test_csv_export_content_type(client, project_id):
    client.post(f"/projects/{project_id}/cards", json={"drafts": DRAFTS})

    response = client.get(f"/projects/{project_id}/export", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")


def test_import_of_invalid_json_reports_failure(client, project_id):
    response = client.post(f"/projects/{project_id}/import", content=b"{oops")

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["error"].startswith("Invalid JSON")


def test_delete_project(client, project_id):
    assert client.delete(f"/projects/{project_id}").status_code == 204
    assert client.get(f"/projects/{project_id}").status_code == 404
