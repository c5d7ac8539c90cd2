"""Tests for daily niche ideas, saved ideas and the generation cron."""

import json
from datetime import date, timedelta

import pytest

from manymarkets.config import FREE_SAVED_IDEAS_LIMIT, settings
from manymarkets.exceptions import IdeaGenerationError
from manymarkets.ideas.gating import GATED_SECTIONS
from manymarkets.ideas.generator import (
    GENERATED_BY,
    INDUSTRIES,
    industry_for_day,
    parse_idea_json,
    utc_today,
)
from manymarkets.models import DailyNicheIdea, SavedIdea

IDEA_JSON = json.dumps(
    {
        "name": "Sleep coaching for night shift nurses",
        "one_liner": "Better sleep for people who work while others rest",
        "opportunity_score": "8.5",
        "demand_level": "HIGH",
        "trending_score": 72,
        "pain_points": ["Daytime noise", "Rotating schedules"],
        "monetization_ideas": [{"model": "SaaS", "price_range": "$9-$19"}],
    }
)


@pytest.fixture
def add_idea(db_session):
    def _add(featured_date, name="Niche", industry="Pet Industry", **fields):
        idea = DailyNicheIdea(featured_date=featured_date, name=name, industry=industry, **fields)
        db_session.add(idea)
        db_session.commit()
        db_session.refresh(idea)
        return idea

    return _add


class TestGenerator:
    def test_industry_rotates_by_day_of_year(self):
        assert industry_for_day(date(2026, 1, 1)) == INDUSTRIES[1]
        assert industry_for_day(date(2026, 1, 20)) == INDUSTRIES[0]

    def test_parse_idea_json_extracts_object(self):
        assert parse_idea_json('Sure!\n{"name": "X"}\n')["name"] == "X"

    @pytest.mark.parametrize("text", ["", "no json", "{broken", '{"industry": "nameless"}'])
    def test_parse_idea_json_rejects(self, text):
        with pytest.raises(IdeaGenerationError):
            parse_idea_json(text)


class TestListDailyIdeas:
    def test_free_users_see_recent_window(self, client, add_idea):
        today = utc_today()
        add_idea(today, name="Today")
        add_idea(today - timedelta(days=3), name="Three days ago", industry="Food & Beverage")
        add_idea(today - timedelta(days=10), name="Old")

        data = client.get("/api/daily-ideas").json()

        assert [i["name"] for i in data["ideas"]] == ["Today", "Three days ago"]
        assert data["isGenerating"] is False
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}
        assert data["filters"]["industries"] == ["Food & Beverage", "Pet Industry"]

    def test_pro_users_see_archive(self, client, headers, make_profile, add_idea):
        make_profile(subscription_tier="pro")
        today = utc_today()
        add_idea(today)
        add_idea(today - timedelta(days=30))

        data = client.get("/api/daily-ideas", headers=headers).json()

        assert data["pagination"]["total"] == 2

    def test_filters_and_pagination(self, client, add_idea):
        today = utc_today()
        add_idea(today, name="A", industry="Pet Industry")
        add_idea(today - timedelta(days=1), name="B", industry="Pet Industry")
        add_idea(today - timedelta(days=2), name="C", industry="Home & DIY")

        page = client.get("/api/daily-ideas", params={"industry": "Pet Industry", "limit": 1, "page": 2}).json()
        assert [i["name"] for i in page["ideas"]] == ["B"]
        assert page["pagination"]["totalPages"] == 2

        by_date = client.get("/api/daily-ideas", params={"date": (today - timedelta(days=2)).isoformat()}).json()
        assert [i["name"] for i in by_date["ideas"]] == ["C"]

    def test_unpublished_hidden(self, client, add_idea):
        add_idea(utc_today(), name="Draft", is_published=False)
        data = client.get("/api/daily-ideas").json()
        assert data["ideas"] == []
        assert data["isGenerating"] is True

    def test_missing_today_triggers_background_generation(self, client, llm, db_session):
        llm.text = IDEA_JSON

        data = client.get("/api/daily-ideas").json()

        assert data["isGenerating"] is True
        db_session.expire_all()
        idea = db_session.query(DailyNicheIdea).one()
        assert idea.featured_date == utc_today()
        assert idea.generated_by == GENERATED_BY


class TestIdeaDetail:
    def test_free_view_is_gated(self, client, add_idea):
        idea = add_idea(
            utc_today(),
            pain_points=["one", "two", "three"],
            monetization_ideas=[{"model": "SaaS"}],
            market_size="$2B",
        )

        data = client.get(f"/api/daily-ideas/{idea.id}").json()

        assert data["gated"] is True
        assert data["isPro"] is False
        assert data["gatedSections"] == GATED_SECTIONS
        assert data["idea"]["pain_points"] == ["one", "two"]
        assert data["idea"]["monetization_ideas"] is None
        assert data["idea"]["market_size"] == "$2B"

    def test_pro_view_is_full(self, client, headers, make_profile, add_idea):
        make_profile(subscription_tier="pro")
        idea = add_idea(utc_today(), pain_points=["one", "two", "three"])

        data = client.get(f"/api/daily-ideas/{idea.id}", headers=headers).json()

        assert data["gated"] is False
        assert data["idea"]["pain_points"] == ["one", "two", "three"]

    def test_unknown_idea(self, client):
        assert client.get("/api/daily-ideas/missing").status_code == 404


class TestSavedIdeas:
    def test_save_list_and_remove(self, client, headers, profile, add_idea):
        idea = add_idea(utc_today())

        saved = client.post("/api/daily-ideas/saved", json={"ideaId": idea.id}, headers=headers)
        assert saved.json() == {"success": True, "message": "Idea saved!"}
        assert client.get("/api/daily-ideas/saved", headers=headers).json() == {"savedIdeaIds": [idea.id]}

        removed = client.delete("/api/daily-ideas/saved", params={"ideaId": idea.id}, headers=headers)
        assert removed.json()["success"] is True
        assert client.get("/api/daily-ideas/saved", headers=headers).json() == {"savedIdeaIds": []}

    def test_duplicate_save(self, client, headers, profile, add_idea):
        idea = add_idea(utc_today())
        client.post("/api/daily-ideas/saved", json={"ideaId": idea.id}, headers=headers)

        response = client.post("/api/daily-ideas/saved", json={"ideaId": idea.id}, headers=headers)

        assert response.status_code == 409

    def test_free_limit(self, client, headers, profile, add_idea, db_session):
        today = utc_today()
        ideas = [add_idea(today - timedelta(days=i), name=f"Idea {i}") for i in range(FREE_SAVED_IDEAS_LIMIT + 1)]
        for idea in ideas[:FREE_SAVED_IDEAS_LIMIT]:
            assert client.post("/api/daily-ideas/saved", json={"ideaId": idea.id}, headers=headers).status_code == 200

        response = client.post("/api/daily-ideas/saved", json={"ideaId": ideas[-1].id}, headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"]["limitReached"] is True
        assert "Upgrade to Pro" in response.json()["detail"]["error"]
        assert db_session.query(SavedIdea).count() == FREE_SAVED_IDEAS_LIMIT

    def test_unknown_idea(self, client, headers, profile):
        response = client.post("/api/daily-ideas/saved", json={"ideaId": "missing"}, headers=headers)
        assert response.status_code == 404

    def test_idea_id_required(self, client, headers, profile):
        assert client.post("/api/daily-ideas/saved", json={}, headers=headers).status_code == 400
        assert client.delete("/api/daily-ideas/saved", headers=headers).status_code == 400

    def test_requires_auth(self, client):
        assert client.get("/api/daily-ideas/saved").status_code == 401


class TestGenerateCron:
    def test_generates_once_per_day(self, client, llm, db_session):
        llm.text = IDEA_JSON

        first = client.post("/api/cron/generate-daily-idea")
        second = client.get("/api/cron/generate-daily-idea")

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["name"] == "Sleep coaching for night shift nurses"
        assert body["industry"] == industry_for_day(utc_today())
        assert second.json() == {"message": "Idea already exists for today", "ideaId": body["ideaId"]}
        assert len(llm.calls) == 1

        idea = db_session.query(DailyNicheIdea).one()
        assert idea.opportunity_score == 8.5
        assert idea.demand_level == "high"
        assert idea.competition_level == "medium"
        assert idea.is_featured is True

    def test_unparseable_response(self, client, llm):
        llm.text = "I could not think of anything"

        response = client.post("/api/cron/generate-daily-idea")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to parse AI response"

    def test_cron_secret_enforced(self, client, llm, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        llm.text = IDEA_JSON

        assert client.post("/api/cron/generate-daily-idea").status_code == 401
        assert client.post("/api/cron/generate-daily-idea", headers={"Authorization": "Bearer nope"}).status_code == 401
        ok = client.post("/api/cron/generate-daily-idea", headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200
