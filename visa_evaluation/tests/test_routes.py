"""
Test the /visa HTTP endpoints against the application built in main.py.
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def test_evaluate_success(client, professor_profile):
    response = client.post("/visa/evaluate", json={"visa_type": "E-1", "mode": "new", "data": professor_profile})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["eligible"] is True
    assert body["result"]["score"] == 78.8
    assert body["result"]["next_steps"]["template_name"] == "eligible-path"
    assert body["metadata"]["visa_type"] == "E-1"


def test_evaluate_invalid_visa_returns_400(client):
    response = client.post("/visa/evaluate", json={"visa_type": "Z-9", "mode": "new", "data": {}})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_VISA_TYPE"
    assert "E-1" in body["error"]["details"]["supported"]


def test_evaluate_missing_fields_returns_400(client):
    response = client.post("/visa/evaluate", json={"data": {}})

    assert response.status_code == 400
    assert response.json()["error"]["details"]["fields"] == ["visa_type", "mode"]


def test_batch_evaluate(client, professor_profile):
    response = client.post("/visa/batch-evaluate", json={"evaluations": [
        {"visa_type": "E-1", "mode": "new", "data": professor_profile},
        {"visa_type": "E-1", "mode": "renewal", "data": {}},
    ]})

    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["successful"], body["failed"]) == (2, 1, 1)
    assert body["results"][1]["error"]["code"] == "INVALID_APPLICATION_TYPE"


def test_workflow_advance(client):
    response = client.post("/visa/workflow/advance", json={
        "template": "eligible-path",
        "current_step": "evaluation-complete",
        "action": "skip-legal-matching",
    })

    assert response.status_code == 200
    assert response.json()["current_step"] == "payment-required"


def test_workflow_advance_unknown_template(client):
    response = client.post("/visa/workflow/advance", json={
        "template": "no-such-path",
        "current_step": "evaluation-complete",
    })

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_supported_types(client):
    body = client.get("/visa/supported-types").json()

    assert body["count"] == len(body["visa_types"])
    assert "E-7" in [visa["code"] for visa in body["visa_types"]]


def test_requirements(client):
    response = client.get("/visa/requirements/E-7/new")

    assert response.status_code == 200
    body = response.json()
    assert body["passing_score"] == 70
    assert body["base_requirements"]["points"] == 52


def test_requirements_unsupported_mode(client):
    response = client.get("/visa/requirements/F-5/extension")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_APPLICATION_TYPE"


def test_change_paths(client):
    response = client.get("/visa/change-paths/D-2")

    assert response.status_code == 200
    body = response.json()
    assert body["from_visa"] == "D-2"
    assert "D-10" in [path["to_visa"] for path in body["paths"]]

    assert client.get("/visa/change-paths/Z-9").status_code == 404


def test_health(client):
    body = client.get("/visa/health").json()
    assert body["status"] == "ok"
    assert body["engine"] == "visa-evaluation"
