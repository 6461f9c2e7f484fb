"""Call simulations and their one-shot coaching feedback."""
from fastapi.testclient import TestClient

from callsight.services.errors import InsightGenerationError
from callsight.services.feedback import format_call_log

PERSONA = {
    "prospectName": "Dana Reyes",
    "jobTitle": "Head of Operations",
    "industry": "Logistics",
    "arroganceLevel": "low",
    "objectionLevel": "high",
    "talkativeness": "medium",
    "confidenceLevel": "high",
    "trustLevel": "low",
    "emotionalTone": "skeptical",
    "decisionMakingStyle": "analytical",
    "problemAwareness": "aware",
    "currentSolution": "spreadsheets",
    "urgencyLevel": "medium",
    "budgetConstraints": "tight",
    "painPoints": ["manual scheduling", "late deliveries"],
}

CALL_LOG = [
    {"type": "transcript", "role": "assistant", "transcript": "Dana speaking."},
    {"type": "transcript", "role": "user", "transcript": "Hi Dana, quick question about your routing."},
    {"type": "function-call", "role": "assistant", "name": "lookup"},
    {"type": "transcript", "role": "assistant", "transcript": "We already use spreadsheets."},
]


def _create(client: TestClient, headers: dict) -> str:
    r = client.post("/simulations", headers=headers, json={"personaDetails": PERSONA})
    assert r.status_code == 201, r.text
    return r.json()["id"]


def _finish_call(client: TestClient, headers: dict, simulation_id: str, call_log=CALL_LOG):
    r = client.patch(
        f"/simulations/{simulation_id}",
        headers=headers,
        json={"duration": 270, "transcript": call_log, "callStatus": "COMPLETED"},
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_format_call_log_maps_roles_and_skips_other_entries():
    assert format_call_log(CALL_LOG) == (
        "Prospect: Dana speaking.\n"
        "Salesperson: Hi Dana, quick question about your routing.\n"
        "Prospect: We already use spreadsheets."
    )
    assert format_call_log(None) == ""
    assert format_call_log([{"type": "status-update"}]) == ""


def test_create_get_and_update_simulation(client: TestClient, auth_headers):
    simulation_id = _create(client, auth_headers)

    r = client.get(f"/simulations/{simulation_id}", headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert j["callStatus"] == "NOT_STARTED"
    assert j["personaDetails"]["prospectName"] == "Dana Reyes"
    assert j["feedback"] is None

    updated = _finish_call(client, auth_headers, simulation_id)
    assert updated["callStatus"] == "COMPLETED"
    assert updated["duration"] == 270
    assert len(updated["transcript"]) == len(CALL_LOG)


def test_update_rejects_unknown_call_status(client: TestClient, auth_headers):
    simulation_id = _create(client, auth_headers)
    r = client.patch(f"/simulations/{simulation_id}", headers=auth_headers, json={"callStatus": "ON_HOLD"})
    assert r.status_code == 422


def test_generate_feedback_once_then_reuse(client: TestClient, auth_headers, fake_insights):
    simulation_id = _create(client, auth_headers)
    _finish_call(client, auth_headers, simulation_id)

    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)
    assert r.status_code == 200, r.text
    feedback = r.json()["feedback"]
    assert feedback["leadStatus"] == "warm"
    assert feedback["feedbackSummary"]["finalScore"] == 74

    prompt, schema, temperature = fake_insights.calls[0]
    assert schema.__name__ == "SalesCallAnalysis"
    assert temperature == 0.7
    assert "Test User" in prompt
    assert "Dana Reyes" in prompt
    assert "Salesperson: Hi Dana, quick question about your routing." in prompt

    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)
    assert r.json()["feedback"] == feedback
    assert len(fake_insights.calls) == 1

    stored = client.get(f"/simulations/{simulation_id}", headers=auth_headers).json()
    assert stored["feedback"] == feedback


def test_generate_feedback_without_call_log_is_400(client: TestClient, auth_headers, fake_insights):
    simulation_id = _create(client, auth_headers)

    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)

    assert r.status_code == 400
    assert r.json()["error"] == "Transcript is required to generate feedback"
    assert fake_insights.calls == []


def test_generation_failure_leaves_simulation_unchanged(client: TestClient, auth_headers, fake_insights):
    simulation_id = _create(client, auth_headers)
    _finish_call(client, auth_headers, simulation_id)
    fake_insights.error = InsightGenerationError("AI provider rate limited the request.", retryable=True)

    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)
    assert r.status_code == 503
    assert client.get(f"/simulations/{simulation_id}", headers=auth_headers).json()["feedback"] is None

    fake_insights.error = None
    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)
    assert r.status_code == 200


def test_non_retryable_generation_failure_is_502(client: TestClient, auth_headers, fake_insights):
    simulation_id = _create(client, auth_headers)
    _finish_call(client, auth_headers, simulation_id)
    fake_insights.error = InsightGenerationError("AI response did not match the SalesCallAnalysis schema.")

    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=auth_headers)
    assert r.status_code == 502


def test_other_users_simulation_is_not_found(client: TestClient, auth_headers, other_auth_headers):
    simulation_id = _create(client, auth_headers)

    assert client.get(f"/simulations/{simulation_id}", headers=other_auth_headers).status_code == 404
    r = client.post(f"/simulations/{simulation_id}/generate-feedback", headers=other_auth_headers)
    assert r.status_code == 404


def test_simulations_require_auth(client: TestClient):
    assert client.post("/simulations", json={"personaDetails": PERSONA}).status_code == 401
