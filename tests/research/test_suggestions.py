"""Tests for product suggestions built from a research session."""

import json
from types import SimpleNamespace

from manymarkets.ai.suggestions import fallback_suggestions, parse_suggestions
from manymarkets.exceptions import AIProviderError

SKILLS = {"skills": ["writing", "design", "python"], "experienceLevel": "beginner", "timeCommitment": "5h/week"}


def make_session(client, headers):
    session_id = client.post(
        "/api/sessions", json={"title": "Dogs", "industry": "Pet Industry"}, headers=headers
    ).json()["session"]["id"]
    client.patch(f"/api/sessions/{session_id}", json={"selected_niche": "Reactive dogs"}, headers=headers)
    client.post(
        f"/api/sessions/{session_id}/messages",
        json={"role": "user", "content": "Owners of reactive dogs need help"},
        headers=headers,
    )
    return session_id


class TestParseSuggestions:
    def test_array_inside_prose(self):
        assert parse_suggestions('Here:\n[{"id": "a"}]\nDone') == [{"id": "a"}]

    def test_no_array(self):
        assert parse_suggestions('{"id": "a"}') is None
        assert parse_suggestions("[not json]") is None


def test_fallback_uses_niche_and_first_two_skills():
    session = SimpleNamespace(selected_niche=None, industry="Pets", selected_uvz=None)

    suggestions = fallback_suggestions(session, ["a", "b", "c"])

    assert [s["type"] for s in suggestions] == ["ebook", "template", "community"]
    assert suggestions[0]["name"] == "Pets Success Guide"
    assert suggestions[0]["skillsMatch"] == ["a", "b"]


class TestSuggestionsEndpoint:
    def test_model_suggestions(self, client, headers, llm):
        session_id = make_session(client, headers)
        llm.text = json.dumps([{"id": "s1", "type": "course", "name": "Calm Walks Course"}])

        response = client.post("/api/research/suggestions", json={"sessionId": session_id, "skills": SKILLS}, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["suggestions"] == [{"id": "s1", "type": "course", "name": "Calm Walks Course"}]
        assert data["researchSummary"] == {
            "niche": "Reactive dogs",
            "uvz": "Your unique value zone",
            "targetAudience": "Your target audience",
        }
        prompt = llm.calls[-1]["prompt"]
        assert "Skills: writing, design, python" in prompt
        assert "user: Owners of reactive dogs need help" in prompt

    def test_unparseable_reply_falls_back(self, client, headers, llm):
        session_id = make_session(client, headers)
        llm.text = "I would build a course."

        data = client.post("/api/research/suggestions", json={"sessionId": session_id, "skills": SKILLS}, headers=headers).json()

        assert data["suggestions"][0]["id"] == "fallback-ebook"
        assert data["suggestions"][0]["name"] == "Reactive dogs Success Guide"

    def test_provider_failure_falls_back(self, client, headers, llm):
        session_id = make_session(client, headers)
        llm.error = AIProviderError("down")

        response = client.post("/api/research/suggestions", json={"sessionId": session_id, "skills": SKILLS}, headers=headers)

        assert response.status_code == 200
        assert len(response.json()["suggestions"]) == 3

    def test_missing_fields(self, client, headers):
        assert client.post("/api/research/suggestions", json={"skills": SKILLS}, headers=headers).status_code == 400
        assert client.post("/api/research/suggestions", json={"sessionId": "x"}, headers=headers).status_code == 400
        bad_skills = client.post(
            "/api/research/suggestions", json={"sessionId": "x", "skills": {"skills": "writing"}}, headers=headers
        )
        assert bad_skills.status_code == 400

    def test_foreign_session(self, client, headers, headers_for):
        session_id = make_session(client, headers)
        response = client.post(
            "/api/research/suggestions",
            json={"sessionId": session_id, "skills": SKILLS},
            headers=headers_for("user-9", "other@example.com"),
        )
        assert response.status_code == 404

    def test_requires_auth(self, client):
        assert client.post("/api/research/suggestions", json={"sessionId": "x", "skills": SKILLS}).status_code == 401
