"""Tests for session summary extraction and rendering."""

from datetime import datetime, timezone
from types import SimpleNamespace

from manymarkets.research import summary
from manymarkets.research.summary import (
    extract_insights,
    render_html,
    render_markdown,
    summary_filename,
)


def msg(role, content):
    return SimpleNamespace(role=role, content=content)


SESSION = SimpleNamespace(
    title="Dog <Walkers>",
    industry="Pets",
    selected_niche="Urban dog walking",
    selected_uvz="Walks for reactive dogs",
    created_at=datetime(2026, 10, 19, 9, 0),
)

ASSISTANT_REPLY = """The market size is $1.2 billion and shows moderate competition.
- Reactive dog owners struggle to find trained walkers nearby
- Big opportunity for a vetted walker marketplace in dense cities
- We recommend starting with a single neighbourhood pilot
- short one
See https://example.com/pets-report and https://example.com/survey).
"""


class TestExtractInsights:
    def test_classifies_bullets(self):
        insights = extract_insights([msg("assistant", ASSISTANT_REPLY)])

        assert insights.market_size == "market size is $1.2 billion"
        assert insights.competition == "moderate"
        assert insights.key_findings == ["Reactive dog owners struggle to find trained walkers nearby"]
        assert insights.opportunities == ["Big opportunity for a vetted walker marketplace in dense cities"]
        assert insights.recommendations == ["We recommend starting with a single neighbourhood pilot"]
        assert insights.sources == ["https://example.com/pets-report", "https://example.com/survey"]

    def test_ignores_user_messages(self):
        insights = extract_insights([msg("user", ASSISTANT_REPLY)])
        assert insights.market_size is None
        assert insights.key_findings == []

    def test_caps_bullets_per_message(self):
        bullets = "\n".join(f"- Finding number {i} about the market today" for i in range(8))
        insights = extract_insights([msg("assistant", bullets)])
        assert len(insights.key_findings) == 5


class TestRendering:
    def test_markdown_free_has_watermark_and_no_sources(self):
        text = render_markdown(SESSION, [msg("assistant", ASSISTANT_REPLY)], is_pro=False)

        assert text.startswith("> *Made with ManyMarkets.co")
        assert "# 🔬 Research Summary: Dog <Walkers>" in text
        assert "**Date:** October 19, 2026" in text
        assert "## 🎯 Unique Value Zone" in text
        assert "| Research Depth | 1 messages |" in text
        assert "Sources" not in text
        assert "Upgrade to Pro" in text

    def test_markdown_pro_lists_sources(self):
        text = render_markdown(SESSION, [msg("assistant", ASSISTANT_REPLY)], is_pro=True)

        assert "Made with ManyMarkets.co" not in text
        assert "## 🔗 Sources" in text
        assert "- https://example.com/pets-report" in text

    def test_missing_created_at_uses_current_utc_date(self, monkeypatch):
        monkeypatch.setattr(summary, "utcnow", lambda: datetime(2026, 3, 4, 23, 30, tzinfo=timezone.utc))
        session = SimpleNamespace(**{**vars(SESSION), "created_at": None})

        assert "**Date:** March 4, 2026" in render_markdown(session, [], is_pro=True)
        assert "Generated on March 4, 2026" in render_html(session, [], is_pro=True)

    def test_html_escapes_and_gates(self):
        free = render_html(SESSION, [msg("assistant", ASSISTANT_REPLY)], is_pro=False)
        pro = render_html(SESSION, [msg("assistant", ASSISTANT_REPLY)], is_pro=True)

        assert "Dog &lt;Walkers&gt;" in free
        assert "<Walkers>" not in free
        assert "📚 Made with ManyMarkets.co" in free
        assert "example.com/pets-report" not in free
        assert "📚 Made with ManyMarkets.co" not in pro
        assert 'href="https://example.com/pets-report"' in pro


def test_summary_filename():
    assert summary_filename("My Session!", "md") == "my_session__summary.md"
