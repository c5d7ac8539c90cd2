"""Tests for the streaming chat endpoint and daily prompts."""

from datetime import datetime, timezone

from manymarkets.ai.prompts import CHATBOT_SYSTEM_PROMPT
from manymarkets.chat.router import split_system_messages
from manymarkets.exceptions import AIProviderError


class TestSplitSystemMessages:
    def test_system_messages_join_the_prompt(self):
        system, turns = split_system_messages(
            [
                {"role": "system", "content": "Focus on pets."},
                {"role": "user", "content": [{"type": "text", "text": "Hi"}, {"type": "image", "url": "x"}]},
                {"role": "tool", "content": "ignored"},
                {"role": "assistant", "content": ""},
            ]
        )

        assert system == CHATBOT_SYSTEM_PROMPT + "\n\nFocus on pets."
        assert turns == [{"role": "user", "content": "Hi"}]


class TestChat:
    def test_streams_plain_text(self, client, llm):
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Ideas?"}]})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Hello there"
        assert llm.calls[0]["messages"] == [{"role": "user", "content": "Ideas?"}]

    def test_messages_required(self, client):
        assert client.post("/api/chat", json={}).status_code == 400
        assert client.post("/api/chat", json={"messages": []}).status_code == 400

    def test_system_only_is_rejected(self, client):
        response = client.post("/api/chat", json={"messages": [{"role": "system", "content": "x"}]})
        assert response.status_code == 400
        assert response.json()["detail"] == "Messages are required"

    def test_provider_down(self, client, llm):
        llm.error = AIProviderError("overloaded")
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]})
        assert response.status_code == 502
        assert response.json()["detail"] == "AI provider unavailable"


class TestDailyPrompts:
    def test_generates_then_serves_cache(self, client, llm):
        llm.text = '["Pitch your product in a sentence", "Name three niches"]'
        today = datetime.now(timezone.utc).date().isoformat()

        first = client.get("/api/chat/daily-prompts")
        second = client.get("/api/chat/daily-prompts")

        assert first.json() == {
            "prompts": ["Pitch your product in a sentence", "Name three niches"],
            "date": today,
            "source": "ai",
        }
        assert first.headers["cache-control"] == "public, max-age=3600"
        assert second.json()["source"] == "cache"
        assert second.json()["prompts"] == first.json()["prompts"]
        assert len(llm.calls) == 1

    def test_fallback_when_provider_fails(self, client, llm):
        llm.error = AIProviderError("down")

        data = client.get("/api/chat/daily-prompts").json()

        assert data["source"] == "fallback"
        assert len(data["prompts"]) == 5
