"""Tests for builder prompt selection and the generate endpoint."""

from manymarkets.exceptions import AIProviderError
from manymarkets.products.builder import (
    DEFAULT_SYSTEM,
    SOFTWARE_BASE_SYSTEM,
    build_builder_prompts,
    software_product_info,
)
from manymarkets.products.schemas import BuilderGenerateRequest


def request(**fields):
    return BuilderGenerateRequest.model_validate(fields)


class TestBuildPrompts:
    def test_target_audience_helper(self):
        system, prompt = build_builder_prompts(
            request(taskId="targetAudience", productType="ebook", context={"name": "Calm Walks"})
        )

        assert "who this product is for" in system
        assert "Product: Calm Walks" in prompt
        assert "Tagline: None" in prompt
        assert 'Start with "My target audience is..."' in prompt

    def test_problem_helper_wins_over_software_workflow(self):
        system, _ = build_builder_prompts(request(taskId="problemSolved", productType="saas"))
        assert "what problem this product solves" in system
        assert SOFTWARE_BASE_SYSTEM not in system

    def test_software_task_gets_task_guidance(self):
        system, prompt = build_builder_prompts(
            request(
                taskId="core-features",
                productType="software-tool",
                context={"productName": "LeashLog", "target-audience": "Dog walkers"},
            )
        )

        assert system.startswith(SOFTWARE_BASE_SYSTEM)
        assert "When generating MVP features" in system
        assert "Product Name: LeashLog" in prompt
        assert "Target Audience: Dog walkers" in prompt
        assert "Generate 3-5 focused MVP features" in prompt

    def test_unknown_software_task_uses_free_prompt(self):
        system, prompt = build_builder_prompts(
            request(taskId="naming", productType="saas", prompt="Suggest a name", context={})
        )

        assert system == SOFTWARE_BASE_SYSTEM
        assert prompt.endswith("Task: Suggest a name")
        assert "Product Name: Unnamed Product" in prompt

    def test_default_prompt_keeps_only_string_context(self):
        system, prompt = build_builder_prompts(
            request(
                taskId="outline",
                productType="ebook",
                prompt="Outline the book",
                context={"name": "Calm Walks", "chapters": 10, "tagline": ""},
            )
        )

        assert system == DEFAULT_SYSTEM
        assert "Product Type: ebook" in prompt
        assert "name: Calm Walks" in prompt
        assert "chapters" not in prompt
        assert "tagline" not in prompt
        assert "Task: Outline the book" in prompt

    def test_default_prompt_without_context(self):
        _, prompt = build_builder_prompts(request(prompt="Describe it", productType="course"))
        assert "No information provided yet" in prompt


def test_product_info_prefers_first_key():
    info = software_product_info({"name": "A", "productName": "B", "tech-stack": "FastAPI"})
    assert "Product Name: A" in info
    assert "Tech Stack: FastAPI" in info
    assert "Architecture: Not designed yet" in info


class TestGenerateEndpoint:
    def test_returns_model_content(self, client, headers, llm):
        llm.text = "My target audience is dog owners."

        response = client.post(
            "/api/builder/generate",
            json={"taskId": "targetAudience", "productType": "ebook", "context": {"name": "Calm Walks"}},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"content": "My target audience is dog owners."}
        assert "who this product is for" in llm.calls[-1]["system"]

    def test_provider_failure(self, client, headers, llm):
        llm.error = AIProviderError("all providers down")

        response = client.post("/api/builder/generate", json={"taskId": "readme", "productType": "saas"}, headers=headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to generate content"

    def test_task_or_prompt_required(self, client, headers):
        response = client.post("/api/builder/generate", json={"productType": "saas"}, headers=headers)
        assert response.status_code == 400

    def test_requires_auth(self, client):
        assert client.post("/api/builder/generate", json={"taskId": "readme"}).status_code == 401
