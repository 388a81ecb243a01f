"""Tests for Claude code customization."""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from AI_App_Builder.code_customizer import ClaudeCodeCustomizer


def claude_response(text):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def make_customizer(text=None, api_key="k"):
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=claude_response(text or ""))
    return ClaudeCodeCustomizer(client=client, api_key=api_key), client


DESIGN = {
    "success": True,
    "code": "<Card />",
    "requirements": {"component_type": "card", "original_prompt": "a dark card", "styles": ["dark"],
                     "design_system": "shadcn/ui", "is_full_stack": False},
}


class TestClaudeCodeCustomizer:

    def test_process_response_splits_frontend_backend(self):
        content = "```tsx\nexport const Card = () => null\n```\n```js\napp.get('/')\n```\nUses Tailwind."
        result = ClaudeCodeCustomizer.process_claude_response(content, DESIGN)
        assert result["success"] is True
        assert result["customized_code"] == {"frontend": "export const Card = () => null",
                                             "backend": "app.get('/')"}
        assert result["explanation"] == "Uses Tailwind."

    def test_process_response_without_code(self):
        result = ClaudeCodeCustomizer.process_claude_response("Sorry, no code.", DESIGN)
        assert result == {"success": False, "error": "No code blocks found in Claude's response"}

    def test_style_instructions_default_to_white_and_beautiful(self):
        from AI_App_Builder.prompts import CUSTOMIZER_STYLES
        options = CUSTOMIZER_STYLES["default"]
        assert ClaudeCodeCustomizer.style_instructions("default", []) == [options["white"], options["beautiful"]]

    def test_prompt_contains_original_code(self):
        customizer, _ = make_customizer()
        prompt = customizer.create_prompt(DESIGN)
        assert "<Card />" in prompt
        assert "a dark card" in prompt

    @pytest.mark.asyncio
    async def test_customize_code(self):
        customizer, client = make_customizer("```jsx\n<DarkCard />\n```\nDone.")
        result = await customizer.customize_code(DESIGN)
        assert result["success"] is True
        assert result["customized_code"]["frontend"] == "<DarkCard />"
        assert result["customized_code"]["backend"] is None
        assert result["original_design"] is DESIGN
        assert client.messages.create.await_args.kwargs["max_tokens"] == 4000

    @pytest.mark.asyncio
    async def test_invalid_design(self):
        customizer, client = make_customizer()
        result = await customizer.customize_code({"success": False})
        assert result == {"success": False, "error": "Invalid scraped design data"}
        client.messages.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        customizer, _ = make_customizer(api_key="")
        with pytest.raises(RuntimeError):
            await customizer.call_claude_api("prompt")

    @pytest.mark.asyncio
    async def test_api_failure_reported(self):
        customizer, client = make_customizer()
        client.messages.create.side_effect = Exception("overloaded")
        result = await customizer.customize_code(DESIGN)
        assert result["success"] is False
        assert "overloaded" in result["error"]
