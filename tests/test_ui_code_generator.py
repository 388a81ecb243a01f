"""Tests for free-text UI code generation."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from AI_App_Builder.code_customizer import ClaudeCodeCustomizer
from AI_App_Builder.ui_code_generator import (
    UICodeGenerator, extract_component_type, extract_design_system_preference,
    is_code_generation_request, HISTORY_LIMIT
)


def make_generator(*responses):
    customizer = ClaudeCodeCustomizer(client=MagicMock(), api_key="k")
    customizer.call_claude_api = AsyncMock(side_effect=list(responses))
    return UICodeGenerator(scraper=MagicMock(), customizer=customizer), customizer


class TestPromptHelpers:

    def test_design_system_preference(self):
        assert extract_design_system_preference("a Tailwind card") == "tailwind"
        assert extract_design_system_preference("a card") == "shadcn/ui"

    def test_component_type(self):
        assert extract_component_type("a sign up page") == "form"
        assert extract_component_type("a todo list") == "list"
        assert extract_component_type("something") == "component"

    def test_code_generation_request(self):
        assert is_code_generation_request("Create a pricing card")
        assert not is_code_generation_request("what time is it?")


class TestUICodeGenerator:

    @pytest.mark.asyncio
    async def test_generate_code(self):
        generator, customizer = make_generator("```tsx\n<PricingCard />\n```\nA pricing card.")
        result = await generator.generate_code("a material pricing card")
        assert result["success"] is True
        assert result["result"]["code"] == {"frontend": "<PricingCard />", "backend": None}
        assert result["result"]["explanation"] == "A pricing card."
        assert result["metadata"]["component_type"] == "card"
        assert result["metadata"]["design_system"] == "material-ui"
        assert result["metadata"]["used_fallback"] is True
        assert customizer.call_claude_api.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_once(self):
        generator, customizer = make_generator(RuntimeError("overloaded"), "```jsx\n<Nav />\n```")
        result = await generator.generate_code("a navbar")
        assert result["success"] is True
        assert result["result"]["explanation"] == "Generated with Claude"
        assert customizer.call_claude_api.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_after_retry(self):
        generator, _ = make_generator("no code", "still no code")
        result = await generator.generate_code("a modal")
        assert result["success"] is False
        assert result["error"] == "Fallback generation failed: No code blocks found in Claude's response"
        assert generator.get_history()[-1]["success"] is False

    @pytest.mark.asyncio
    async def test_history_is_capped(self):
        generator, _ = make_generator(*["```jsx\n<A />\n```"] * (HISTORY_LIMIT + 2))
        for i in range(HISTORY_LIMIT + 2):
            await generator.generate_code(f"card {i}")
        history = generator.get_history()
        assert len(history) == HISTORY_LIMIT
        assert history[0]["prompt"] == "card 2"
