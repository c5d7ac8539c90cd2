"""Research session summary export (Markdown and printable HTML).

Free users get a condensed report with a watermark and an upgrade notice;
pro users also get the source links found in the conversation.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from typing import Iterable, List, Optional

from manymarkets.models import utcnow

UPGRADE_URL = "https://manymarkets.co/upgrade"

_MARKET_SIZE = re.compile(
    r"market\s*(?:size|worth|valued?)\s*(?:is|at|of)?\s*\$?([\d.]+\s*(?:billion|million|B|M))",
    re.IGNORECASE,
)
_COMPETITION = re.compile(r"(low|medium|moderate|high)\s*competition", re.IGNORECASE)
_BULLET = re.compile(r"^[-•*]\s+(.+)$", re.MULTILINE)
_URL = re.compile(r"https?://[^\s)]+")

BULLETS_PER_MESSAGE = 5


@dataclass
class SessionInsights:
    key_findings: List[str] = field(default_factory=list)
    market_size: Optional[str] = None
    competition: Optional[str] = None
    opportunities: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)


def _classify(point: str) -> str:
    lowered = point.lower()
    if "opportunity" in lowered or "potential" in lowered:
        return "opportunity"
    if "recommend" in lowered or "should" in lowered or "suggest" in lowered:
        return "recommendation"
    return "finding"


def extract_insights(messages: Iterable) -> SessionInsights:
    """Pull headline facts out of the assistant's replies.

    Args:
        messages: Objects with ``role`` and ``content`` attributes, oldest first

    Returns:
        SessionInsights with findings, opportunities and recommendations
        trimmed to 5/3/3 and sources to 10
    """
    insights = SessionInsights()

    for msg in messages:
        if msg.role != "assistant" or not msg.content:
            continue
        content = msg.content

        if insights.market_size is None:
            match = _MARKET_SIZE.search(content)
            if match:
                insights.market_size = match.group(0)

        if insights.competition is None:
            match = _COMPETITION.search(content)
            if match:
                insights.competition = match.group(1)

        for point in _BULLET.findall(content)[:BULLETS_PER_MESSAGE]:
            cleaned = point.strip()
            if not 20 < len(cleaned) < 200:
                continue
            kind = _classify(cleaned)
            if kind == "opportunity":
                insights.opportunities.append(cleaned)
            elif kind == "recommendation":
                insights.recommendations.append(cleaned)
            else:
                insights.key_findings.append(cleaned)

        for url in _URL.findall(content):
            if url not in insights.sources:
                insights.sources.append(url)

    insights.key_findings = insights.key_findings[:5]
    insights.opportunities = insights.opportunities[:3]
    insights.recommendations = insights.recommendations[:3]
    insights.sources = insights.sources[:10]
    return insights


def _format_date(value: Optional[datetime]) -> str:
    value = value or utcnow()
    return f"{value:%B} {value.day}, {value.year}"


def summary_filename(title: str, extension: str) -> str:
    """``My Session!`` -> ``my_session__summary.md``"""
    slug = re.sub(r"[^a-z0-9]", "_", title or "", flags=re.IGNORECASE).lower()
    return f"{slug}_summary.{extension}"


def render_markdown(session, messages: List, is_pro: bool) -> str:
    insights = extract_insights(messages)
    lines: List[str] = []

    if not is_pro:
        lines.append("> *Made with ManyMarkets.co - Get full reports at manymarkets.co/upgrade*\n")

    lines.append(f"# 🔬 Research Summary: {session.title}\n")
    lines.append(f"**Date:** {_format_date(session.created_at)}")
    if session.industry:
        lines.append(f"**Industry:** {session.industry}")
    if session.selected_niche:
        lines.append(f"**Niche:** {session.selected_niche}")
    lines.append("\n---\n")

    if session.selected_uvz:
        lines.append(f"## 🎯 Unique Value Zone\n\n{session.selected_uvz}\n")

    lines.append("## 📈 Quick Stats\n")
    lines.append("| Metric | Value |\n|--------|-------|")
    lines.append(f"| Market Size | {insights.market_size or 'N/A'} |")
    lines.append(f"| Competition | {insights.competition or 'N/A'} |")
    lines.append(f"| Research Depth | {len(messages)} messages |\n")

    sections = [
        ("## 📊 Key Findings", insights.key_findings),
        ("## ✨ Opportunities", insights.opportunities),
        ("## 💡 Recommendations", insights.recommendations),
    ]
    if is_pro:
        sections.append(("## 🔗 Sources", insights.sources))

    for heading, items in sections:
        if items:
            lines.append(f"{heading}\n")
            lines.extend(f"- {item}" for item in items)
            lines.append("")

    lines.append("---\n\n*Research powered by ManyMarkets AI*")
    if not is_pro:
        lines.append(f"\n[Upgrade to Pro for full detailed reports →]({UPGRADE_URL})")

    return "\n".join(lines) + "\n"


def _html_list(title: str, css_class: str, items: List[str]) -> str:
    if not items:
        return ""
    entries = "".join(f"<li>{escape(item)}</li>" for item in items)
    return f"""
  <div class="section {css_class}">
    <div class="section-title">{title}</div>
    <ul>{entries}</ul>
  </div>"""


def render_html(session, messages: List, is_pro: bool) -> str:
    """Standalone printable HTML report."""
    insights = extract_insights(messages)
    title = escape(session.title or "")

    meta_parts = []
    if session.industry:
        meta_parts.append(f"Industry: {escape(session.industry)}")
    if session.selected_niche:
        meta_parts.append(f"Niche: {escape(session.selected_niche)}")
    meta_parts.append(f"Generated on {_format_date(session.created_at)}")
    meta = " • ".join(meta_parts)

    watermark = "" if is_pro else '<div class="watermark">📚 Made with ManyMarkets.co</div>'
    notice = ""
    if not is_pro:
        notice = f"""
  <div class="notice">
    <strong>📋 Summary Report</strong> - This is a condensed version.
    <a href="{UPGRADE_URL}">Upgrade to Pro</a> for the full detailed report with all sources and complete analysis.
  </div>"""

    uvz = ""
    if session.selected_uvz:
        uvz = f"""
  <div class="highlight-box">
    <strong>🎯 Unique Value Zone Identified:</strong><br>
    {escape(session.selected_uvz)}
  </div>"""

    sources = ""
    if is_pro and insights.sources:
        links = "".join(
            f'<li><a href="{escape(s)}" target="_blank">{escape(s)}</a></li>' for s in insights.sources
        )
        sources = f"""
  <div class="section sources">
    <div class="section-title">🔗 Sources &amp; References</div>
    <ul>{links}</ul>
  </div>"""

    cta = "" if is_pro else f'<a href="{UPGRADE_URL}" class="cta">Upgrade for Full Reports →</a>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Research Summary: {title}</title>
  <style>
    body {{ font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 40px 30px; }}
    .header {{ text-align: center; padding-bottom: 24px; border-bottom: 3px solid #ff6b35; margin-bottom: 24px; }}
    .logo {{ font-size: 14px; color: #ff6b35; font-weight: bold; letter-spacing: 1px; }}
    .meta {{ color: #666; font-size: 14px; }}
    .notice {{ background: #fef3c7; border: 2px solid #f59e0b; border-radius: 12px; padding: 16px; margin-bottom: 24px; font-size: 13px; }}
    .highlight-box {{ background: #fff7ed; border-left: 4px solid #ff6b35; padding: 16px; margin-bottom: 16px; }}
    .stat-grid {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 16px; margin-bottom: 20px; }}
    .stat-box {{ background: #f9fafb; border: 2px solid #e5e7eb; border-radius: 8px; padding: 12px; text-align: center; }}
    .stat-value {{ font-size: 18px; font-weight: bold; color: #ff6b35; }}
    .stat-label {{ font-size: 11px; color: #6b7280; text-transform: uppercase; }}
    .section-title {{ font-size: 16px; font-weight: bold; color: #ff6b35; text-transform: uppercase; }}
    .sources {{ font-size: 12px; }}
    .watermark {{ position: fixed; bottom: 20px; right: 20px; background: #ff6b35; color: white; padding: 8px 16px; font-size: 11px; border-radius: 20px; }}
    .footer {{ margin-top: 40px; text-align: center; color: #666; font-size: 12px; }}
    @media print {{ .cta {{ display: none; }} }}
  </style>
</head>
<body>
  {watermark}
  <div class="header">
    <div class="logo">🔬 MANYMARKETS RESEARCH</div>
    <h1>{title}</h1>
    <p class="meta">{meta}</p>
  </div>
  {notice}
  {uvz}
  <div class="stat-grid">
    <div class="stat-box"><div class="stat-value">{escape(insights.market_size or 'N/A')}</div><div class="stat-label">Market Size</div></div>
    <div class="stat-box"><div class="stat-value">{escape(insights.competition or 'N/A')}</div><div class="stat-label">Competition</div></div>
    <div class="stat-box"><div class="stat-value">{len(messages)}</div><div class="stat-label">Messages</div></div>
  </div>
  {_html_list('📊 Key Findings', 'findings', insights.key_findings)}
  {_html_list('✨ Opportunities', 'opportunities', insights.opportunities)}
  {_html_list('💡 Recommendations', 'recommendations', insights.recommendations)}
  {sources}
  <div class="footer">
    <p>Research powered by ManyMarkets AI</p>
    {cta}
  </div>
</body>
</html>
"""
