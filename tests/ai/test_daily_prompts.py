"""Tests for the daily quick-start prompt rotation."""

from datetime import date, datetime, timezone

import pytest

from manymarkets.ai.daily_prompts import (
    DAILY_PROMPTS,
    DailyPromptCache,
    day_number,
    generate_daily_prompts,
    get_daily_prompts,
    mulberry32,
    parse_generated_prompts,
)
from manymarkets.exceptions import AIProviderError


class TestMulberry32:
    def test_reference_sequence(self):
        rng = mulberry32(0)
        assert rng() == pytest.approx(0.26642920868471265)
        assert rng() == pytest.approx(0.0003297457005828619)
        assert rng() == pytest.approx(0.2232720274478197)

    def test_values_in_unit_interval(self):
        rng = mulberry32(123456)
        assert all(0 <= rng() < 1 for _ in range(200))


class TestDayNumber:
    def test_date(self):
        assert day_number(date(1970, 1, 2)) == 1
        assert day_number(date(2024, 10, 4)) == 20000

    def test_naive_datetime_treated_as_utc(self):
        assert day_number(datetime(2024, 10, 4, 23, 59)) == 20000

    def test_aware_datetime(self):
        assert day_number(datetime(2024, 10, 5, 0, 0, tzinfo=timezone.utc)) == 20001


class TestGetDailyPrompts:
    def test_known_day(self):
        assert get_daily_prompts(3, date(2024, 10, 4)) == [DAILY_PROMPTS[8], DAILY_PROMPTS[7], DAILY_PROMPTS[12]]

    def test_another_known_day(self):
        assert get_daily_prompts(3, date(2026, 10, 19)) == [DAILY_PROMPTS[9], DAILY_PROMPTS[8], DAILY_PROMPTS[19]]

    def test_stable_within_a_day(self):
        morning = get_daily_prompts(5, datetime(2026, 10, 19, 1, 0))
        evening = get_daily_prompts(5, datetime(2026, 10, 19, 22, 0))
        assert morning == evening

    def test_count_is_clamped(self):
        assert get_daily_prompts(0, date(2026, 1, 1)) == []
        everything = get_daily_prompts(100, date(2026, 1, 1))
        assert sorted(everything) == sorted(DAILY_PROMPTS)


class TestParseGeneratedPrompts:
    def test_json_array(self):
        text = '["Find a niche fast", "  Price your beta  ", "", 7]'
        assert parse_generated_prompts(text) == ["Find a niche fast", "Price your beta", "7"]

    def test_line_fallback_strips_list_markers(self):
        text = "1. Find a profitable niche\n- Write a cold email\n* ok\n\n2) Validate demand quickly"
        assert parse_generated_prompts(text) == [
            "Find a profitable niche",
            "Write a cold email",
            "Validate demand quickly",
        ]

    def test_limit(self):
        text = "\n".join(f"Prompt number {i}" for i in range(10))
        assert len(parse_generated_prompts(text)) == 5


class TestDailyPromptCache:
    def test_only_serves_matching_day(self):
        cache = DailyPromptCache()
        cache.set("2026-10-19", ["a", "b"])

        assert cache.get("2026-10-19") == ["a", "b"]
        assert cache.get("2026-10-20") is None

        cache.clear()
        assert cache.get("2026-10-19") is None


class TestGenerateDailyPrompts:
    def test_ai_source(self, llm):
        llm.text = '["Pitch your idea in one line", "List three niches"]'

        prompts, source = generate_daily_prompts(llm, "2026-10-19")

        assert source == "ai"
        assert prompts == ["Pitch your idea in one line", "List three niches"]
        assert "Date: 2026-10-19" in llm.calls[0]["prompt"]

    def test_provider_error_falls_back(self, llm):
        llm.error = AIProviderError("down")

        prompts, source = generate_daily_prompts(llm, "2026-10-19")

        assert source == "fallback"
        assert prompts == get_daily_prompts(5, date(2026, 10, 19))

    def test_empty_output_falls_back(self, llm):
        llm.text = "[]"
        _, source = generate_daily_prompts(llm, "2026-10-19")
        assert source == "fallback"
