"""Tests for the shared parsing helpers and agent runners."""

import json
import pytest
from unittest.mock import AsyncMock, patch

from AI_App_Builder import functions
from AI_App_Builder.functions import (
    ResultWrapper, clean_ai_output, ensure_package_json, extract_code_blocks,
    extract_json_from_text, extract_partial_json, extract_text_from_event,
    extract_text_from_result_object, flatten_file_structure, is_temporary_error
)


class TestJsonExtraction:

    def test_plain_object(self):
        assert extract_json_from_text('{"a": 1}') == {"a": 1}

    def test_fenced_object_with_prose(self):
        text = 'Here you go:\n```json\n{"project_name": "x", "files": []}\n```\nEnjoy!'
        assert extract_json_from_text(text) == {"project_name": "x", "files": []}

    def test_truncated_object_is_closed(self):
        parsed = extract_json_from_text('{"pipeline": [{"name": "UI"}')
        assert parsed == {"pipeline": [{"name": "UI"}]}

    def test_unparseable_raises_value_error(self):
        with pytest.raises(ValueError):
            extract_json_from_text("no json here at all")

    def test_partial_json_reports_completeness(self):
        assert extract_partial_json('{"a": 1}') == ({"a": 1}, True)
        assert extract_partial_json('{"a": [1, 2') == ({"a": [1, 2]}, False)

    def test_clean_ai_output_strips_fences(self):
        assert clean_ai_output("```json\n{}\n```") == "{}"
        assert clean_ai_output("json\n{}") == "{}"


class TestTextExtraction:

    def test_result_object_final_output(self):
        assert extract_text_from_result_object(ResultWrapper(None, "hello")) == "hello"
        assert extract_text_from_result_object(None) == ""

    def test_event_shapes(self):
        assert extract_text_from_event({"delta": "abc"}) == "abc"
        assert extract_text_from_event("raw") == "raw"
        assert extract_text_from_event(object()) == ""


class TestCodeBlocks:

    def test_languages_and_offsets(self):
        text = "intro\n```jsx\n<App />\n```\nmiddle\n```\nplain\n```\nafter"
        blocks = extract_code_blocks(text)
        assert [(lang, code) for lang, code, _ in blocks] == [("jsx", "<App />"), ("", "plain")]
        assert text[blocks[-1][2]:] == "\nafter"

    def test_language_filter(self):
        text = "```python\nprint(1)\n```\n```TSX\nconst a = 1\n```"
        blocks = extract_code_blocks(text, {"tsx"})
        assert [code for _, code, _ in blocks] == ["const a = 1"]


class TestFileHelpers:

    def test_flatten_nested_structure(self):
        files = flatten_file_structure({"src": {"App.js": "app", "lib": {"x.js": "x"}}, "README.md": "r"})
        assert {"path": "src/App.js", "content": "app"} in files
        assert {"path": "src/lib/x.js", "content": "x"} in files
        assert {"path": "README.md", "content": "r"} in files

    def test_flatten_ignores_non_dict(self):
        assert flatten_file_structure(None) == []

    def test_package_json_added_once(self):
        files = ensure_package_json([{"path": "src/App.js", "content": ""}], "demo")
        package = json.loads(files[-1]["content"])
        assert files[-1]["path"] == "package.json"
        assert package["name"] == "demo"
        assert ensure_package_json(files, "demo") == files

    def test_temporary_errors(self):
        assert is_temporary_error(Exception("HTTP 429 Too Many Requests"))
        assert is_temporary_error(Exception("Service Unavailable"))
        assert not is_temporary_error(ValueError("bad input"))


class TestAgentRunners:

    @pytest.mark.asyncio
    async def test_fallback_agent_used_when_primary_fails(self):
        primary, fallback = AsyncMock(), AsyncMock()
        primary.name, fallback.name = "primary", "fallback"
        runner = AsyncMock(side_effect=[RuntimeError("quota exceeds"), ResultWrapper(None, "ok")])
        with patch.object(functions, "run_agent_with_token_limit", runner):
            result = await functions.run_agent_with_fallback(primary, "hi", fallback)
        assert result.final_output == "ok"
        assert runner.await_args_list[1].args[0] is fallback

    @pytest.mark.asyncio
    async def test_primary_error_raised_without_fallback(self):
        agent = AsyncMock()
        agent.name = "primary"
        with patch.object(functions, "run_agent_with_token_limit", AsyncMock(side_effect=RuntimeError("down"))):
            with pytest.raises(RuntimeError):
                await functions.run_agent_with_fallback(agent, "hi")

    @pytest.mark.asyncio
    async def test_short_prompt_is_not_summarized(self):
        with patch.object(functions, "run_agent_with_token_limit", AsyncMock()) as runner:
            assert await functions.process_input("build a todo app") == "build a todo app"
        runner.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_prompt_is_summarized(self):
        long_prompt = "feature " * 2000
        runner = AsyncMock(return_value=ResultWrapper(None, "  short summary  "))
        with patch.object(functions, "run_agent_with_token_limit", runner):
            assert await functions.process_input(long_prompt) == "short summary"

    @pytest.mark.asyncio
    async def test_long_prompt_without_openai_key(self):
        with patch.object(functions, "OPENAI_API_KEY", None):
            with pytest.raises(RuntimeError):
                await functions.process_input("feature " * 2000)
