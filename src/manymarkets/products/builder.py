"""Short AI-written answers for the product builder form.

Form helpers (``targetAudience``, ``problemSolved``) get a first-person
answer of a few sentences. Software products (``saas``, ``software-tool``)
get a planning workflow with one system prompt per task: features, PRD,
architecture, build prompts for coding tools and so on. Anything else
falls back to a generic short answer for the task prompt.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from .schemas import BuilderGenerateRequest

logger = logging.getLogger(__name__)

SOFTWARE_PRODUCT_TYPES = frozenset({"saas", "software-tool"})

FORM_HELPER_SYSTEM = """You are helping a product creator fill out their product form.
Generate a SHORT, first-person response (2-4 sentences max) describing {subject}.
Write as if YOU are the product creator describing {perspective}.
Start directly with the answer - no explanations, no headers, no bullet points.
Example format: "{example}\""""

FORM_HELPERS: Dict[str, Dict[str, str]] = {
    "targetAudience": {
        "subject": "who this product is for",
        "perspective": "YOUR target audience",
        "example": (
            "My target audience is busy professionals aged 25-45 who struggle with productivity "
            "and want simple tools to stay organized."
        ),
        "task": "the target audience",
        "opening": 'Start with "My target audience is..." or similar.',
    },
    "problemSolved": {
        "subject": "what problem this product solves",
        "perspective": "the problem YOUR product solves",
        "example": (
            "This product solves the frustration of managing multiple apps for wellness. It helps "
            "users save time and reduce stress by providing everything in one place."
        ),
        "task": "the problem this product solves",
        "opening": 'Start with "This product solves..." or "My product helps..." or similar.',
    },
}

DEFAULT_SYSTEM = """You are an expert digital product creator.
Provide SHORT, practical, first-person responses (2-4 sentences max).
Write as if you are the product creator filling out their own form.
No explanations, headers, or bullet points - just the direct answer."""

SOFTWARE_BASE_SYSTEM = """You are a senior software architect and product manager with 15+ years of experience building production-grade software products. You help founders and developers create professional, secure, and scalable software.

Your responses should be:
- Professional and actionable
- Focused on building real, production-ready software
- Security-conscious (always consider auth, data protection, input validation)
- Design-conscious (clean, modern, NOT gimmicky)
- MVP-focused (prioritize core features, avoid scope creep)"""

SOFTWARE_TASK_GUIDANCE: Dict[str, str] = {
    "core-features": """When generating MVP features:
- List only 3-5 essential features maximum
- Focus on the core value proposition
- Each feature should be achievable in 1-2 days
- Explicitly exclude "nice to have" features
- Format as a numbered list with brief descriptions""",
    "differentiators": """When identifying differentiators:
- Focus on specific, tangible differences
- Avoid generic claims like "better UX" without specifics
- Connect to the competitor weaknesses mentioned
- Each differentiator should be provable/demonstrable""",
    "prd-full": """When generating a PRD (Product Requirements Document):
- Be comprehensive but practical
- Include: Executive Summary, Problem Statement, Target Users, Functional Requirements, Non-Functional Requirements, Technical Architecture, Security Requirements, UI/UX Guidelines, MVP Scope, Success Metrics
- Use markdown formatting with clear sections
- This document should be usable by developers to build the product""",
    "user-stories": """When generating user stories:
- Use the format: "As a [user type], I want to [action] so that [benefit]"
- Include 2-3 acceptance criteria per story
- Focus on user outcomes, not implementation details
- Prioritize stories (P0 = must have, P1 = should have, P2 = nice to have)""",
    "tech-stack": """When recommending a tech stack:
- Choose modern, well-supported technologies
- Consider developer experience and hiring pool
- Include specific recommendations for auth, hosting, and database
- Explain WHY each choice makes sense for this specific project""",
    "architecture": """When designing architecture:
- Create a clear system diagram (text-based)
- Define data flow between components
- Outline the database schema (main entities and relationships)
- Specify API structure
- Keep it MVP-focused - don't over-engineer""",
    "security": """When creating security requirements:
- Cover: Authentication, Authorization, Data encryption, Input validation, API security
- Be specific about implementation (e.g., "bcrypt with cost factor 12")
- Include a security checklist developers can follow
- Address OWASP Top 10 vulnerabilities""",
    "design-system": """When creating a design system:
- Focus on PROFESSIONAL, CLEAN design - NOT gimmicky or trendy
- Specify: Color palette (with hex codes), Typography scale, Spacing system, Component patterns
- Use a neutral, trustworthy color scheme with one accent color
- Avoid: Excessive gradients, neon colors, playful illustrations, over-animation""",
    "key-screens": """When defining key screens:
- List only essential screens for MVP (usually 5-8)
- For each screen specify: Purpose, Main elements, User actions, States (loading, empty, error)
- Think mobile-first""",
    "master-prompt": """When generating the master build prompt:
- Create a COMPLETE, COPY-PASTE-READY prompt for AI coding tools
- Include ALL specifications: features, tech stack, architecture, design, security
- Be specific about file structure and implementation details
- This prompt should produce production-quality code, not a prototype""",
    "cursor-prompt": """When creating a Cursor-specific prompt:
- Structure for Cursor AI's workflow (@codebase, @docs commands)
- Specify file creation order (configs, database, API, components, pages)
- Format as step-by-step implementation guide""",
    "lovable-prompt": """When creating a Lovable/Bolt prompt:
- Optimize for visual builders that work iteratively
- Start with clear description of the end result
- Break into phases: Phase 1 (core), Phase 2 (polish), Phase 3 (extras)
- Focus on describing WHAT to build, let the tool figure out HOW""",
    "readme": """When writing README and landing copy:
- README: Include product description, features, tech stack, getting started guide
- Landing copy: Headline (benefit-focused), subheadline, 3-4 feature descriptions, CTA
- Be clear and professional, not salesy""",
    "docs": """When creating documentation:
- Write a quick start guide (get running in 5 minutes)
- Document each main feature with examples
- Include an FAQ section and troubleshooting tips
- Keep it scannable with clear headers""",
    "pricing": """When designing pricing:
- Recommend a specific model (freemium, subscription, one-time)
- Provide actual price points with justification
- Define what's in each tier (if multiple tiers)
- Consider the target audience's budget""",
}

SOFTWARE_TASK_REQUESTS: Dict[str, str] = {
    "core-features": (
        "Generate 3-5 focused MVP features that directly solve the stated problem, can each be built "
        "in 1-2 days and together deliver the core value proposition. Format as a numbered list with "
        "brief descriptions (1-2 sentences each)."
    ),
    "differentiators": (
        "List 2-3 specific differentiators that address the competitor gaps mentioned, align with the "
        "UVZ (unique value zone) and are tangible and provable. Format as bullet points."
    ),
    "prd-full": (
        "Generate a comprehensive Product Requirements Document with: Executive Summary, Problem "
        "Statement & Solution Overview, Target Users & Personas, Functional Requirements, "
        "Non-Functional Requirements, Technical Architecture Overview, Security Requirements, UI/UX "
        "Requirements, MVP Scope, Success Metrics, Risks & Mitigations. Use markdown formatting."
    ),
    "user-stories": (
        "Generate 5-8 user stories covering the main functionality. Format each as **US-X: [Title]**, "
        "the story sentence, 2-3 acceptance criteria and a P0/P1/P2 priority."
    ),
    "tech-stack": (
        "Recommend frontend, backend/API, database, authentication, hosting and key libraries. "
        "Explain WHY each choice fits this specific project."
    ),
    "architecture": (
        "Provide a text-based system diagram, component breakdown, data flow description, database "
        "schema outline and API structure. Keep it MVP-focused."
    ),
    "security": (
        "Create a security checklist covering authentication, authorization, data security, input "
        "validation, API security and prevention of XSS, CSRF and SQL injection."
    ),
    "design-system": (
        "Create a PROFESSIONAL design system: color palette with hex codes, typography scale, spacing "
        "system, border radius and shadows, key component patterns and interaction states."
    ),
    "key-screens": (
        "List 5-8 essential screens with purpose, main elements, user actions and loading/empty/error "
        "states for each."
    ),
    "master-prompt": (
        "Generate a COMPLETE, COPY-PASTE-READY build prompt for AI coding tools covering features, "
        "stack, database schema, API endpoints, UI, security, file structure, code quality standards "
        "and scope boundaries. It should build a WORKING MVP."
    ),
    "cursor-prompt": (
        "Adapt the build specifications into a Cursor AI prompt with implementation order, "
        "step-by-step instructions and verification checkpoints."
    ),
    "lovable-prompt": (
        "Adapt the build specifications for Lovable or Bolt.new: describe the end result, break the "
        "build into phases and include iteration guidance."
    ),
    "readme": "Create a README.md and landing page copy (headline, subheadline, feature blocks, CTA).",
    "docs": "Create user documentation: quick start guide, feature documentation, FAQ and troubleshooting.",
    "pricing": (
        "Design a pricing strategy: recommended model, specific price points, tier definitions, "
        "feature comparison and competitive analysis."
    ),
}

# Context keys read for the software product summary, first match wins
_PRODUCT_INFO_FIELDS: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("Product Name", ("name", "productName"), "Unnamed Product"),
    ("Tagline", ("tagline",), "Not specified"),
    ("Type", ("type", "productType"), "Software Tool"),
    ("Problem Being Solved", ("problem", "problemSolved"), "Not specified"),
    ("Target Audience", ("target-audience", "targetAudience"), "Not specified"),
    ("UVZ Research", ("uvz-summary", "uvz"), "Not provided"),
    ("Competitor Gaps", ("competitor-gaps", "competitorWeaknesses"), "Not specified"),
    ("Core Features", ("core-features", "coreFeatures"), "Not defined yet"),
    ("Differentiators", ("differentiators",), "Not defined yet"),
    ("Tech Stack", ("tech-stack", "techStack"), "Not chosen yet"),
    ("Architecture", ("architecture",), "Not designed yet"),
    ("Design System", ("design-system",), "Not defined yet"),
    ("Master Prompt", ("master-prompt",), "Not generated yet"),
)


def _first(context: Dict[str, Any], keys, default: str) -> str:
    for key in keys:
        if context.get(key):
            return str(context[key])
    return default


def software_product_info(context: Dict[str, Any]) -> str:
    return "\n".join(f"{label}: {_first(context, keys, default)}" for label, keys, default in _PRODUCT_INFO_FIELDS)


def _form_helper_prompts(task_id: str, context: Dict[str, Any]) -> Tuple[str, str]:
    helper = FORM_HELPERS[task_id]
    system = FORM_HELPER_SYSTEM.format(
        subject=helper["subject"], perspective=helper["perspective"], example=helper["example"]
    )
    user = f"""Product: {context.get("name") or "Unknown"}
Tagline: {context.get("tagline") or "None"}
Description: {context.get("description") or "None"}

Write a brief, first-person description of {helper["task"]} (2-4 sentences). {helper["opening"]}"""
    return system, user


def _software_prompts(task_id: Optional[str], context: Dict[str, Any], prompt: Optional[str]) -> Tuple[str, str]:
    guidance = SOFTWARE_TASK_GUIDANCE.get(task_id or "")
    system = f"{SOFTWARE_BASE_SYSTEM}\n\n{guidance}" if guidance else SOFTWARE_BASE_SYSTEM

    info = software_product_info(context)
    request = SOFTWARE_TASK_REQUESTS.get(task_id or "")
    if request:
        return system, f"Based on this product information:\n\n{info}\n\n{request}"
    return system, f"{info}\n\nTask: {prompt or ''}"


def _default_prompts(product_type: Optional[str], context: Dict[str, Any], prompt: Optional[str]) -> Tuple[str, str]:
    # Only plain string values are useful context for a short answer
    context_info = "\n".join(f"{key}: {value}" for key, value in context.items() if value and isinstance(value, str))
    user = f"""Product Type: {product_type}

Product Information:
{context_info or "No information provided yet"}

Task: {prompt or ""}

Provide a brief, first-person response (2-4 sentences max)."""
    return DEFAULT_SYSTEM, user


def build_builder_prompts(body: BuilderGenerateRequest) -> Tuple[str, str]:
    """Return ``(system, prompt)`` for a builder generation request."""
    context = body.context or {}
    if body.task_id in FORM_HELPERS:
        return _form_helper_prompts(body.task_id, context)
    if body.product_type in SOFTWARE_PRODUCT_TYPES:
        return _software_prompts(body.task_id, context, body.prompt)
    return _default_prompts(body.product_type, context, body.prompt)


def generate_builder_content(llm, body: BuilderGenerateRequest) -> str:
    """
    Generate the builder answer for ``body``.

    Raises:
        AIProviderError: If the model cannot be reached
    """
    system, prompt = build_builder_prompts(body)
    logger.info("Builder generation for task %s (%s)", body.task_id, body.product_type)
    return llm.generate_text(prompt, system=system)
