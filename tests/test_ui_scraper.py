"""Tests for the Perplexity-backed design code search."""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from AI_App_Builder.ui_scraper import EnhancedPerplexityUIScraper, find_best_match, COMPONENT_TYPES


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_client(*contents):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(contents))
    return client


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPromptParsing:

    def test_best_match_counts_keywords(self):
        assert find_best_match("an analytics dashboard with a table", COMPONENT_TYPES) == "dashboard"
        assert find_best_match("nothing relevant", COMPONENT_TYPES) is None

    def test_parse_user_prompt(self):
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="k")
        requirements = scraper.parse_user_prompt("A dark shadcn login form in React for a full-stack app")
        assert requirements["component_type"] == "form"
        assert requirements["framework"] == "react"
        assert requirements["design_system"] == "shadcn/ui"
        assert requirements["styles"] == ["dark"]
        assert requirements["is_full_stack"] is True

    def test_queries_are_unique_and_capped(self):
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="k")
        queries = scraper.generate_search_queries({
            "component_type": "card", "framework": "react", "design_system": "shadcn/ui", "styles": []
        })
        assert len(queries) == 3
        assert queries[0] == "https://ui.shadcn.com card component code example"
        assert len(set(queries)) == 3

    def test_queries_without_framework(self):
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="k")
        queries = scraper.generate_search_queries({"component_type": "modal", "styles": ["minimal"]})
        assert queries == [
            "best modal component designs with code minimal",
            "modal component code example minimal",
        ]


class TestSearch:

    @pytest.mark.asyncio
    async def test_find_design_code_picks_longest_block(self):
        client = fake_client(
            completion("Try this:\n```jsx\n<Card />\n```"),
            completion("Better:\n```tsx\nexport function Card() { return <div /> }\n```"),
            completion("No code here"),
        )
        scraper = EnhancedPerplexityUIScraper(client=client, api_key="k", sleep=AsyncMock())
        result = await scraper.find_design_code("a react card")
        assert result["success"] is True
        assert result["code"] == "export function Card() { return <div /> }"
        assert result["requirements"]["component_type"] == "card"
        assert client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_query_is_skipped(self):
        client = fake_client(RuntimeError("boom"), completion("```\nconst x = 1\n```"))
        scraper = EnhancedPerplexityUIScraper(client=client, api_key="k", sleep=AsyncMock())
        results = await scraper.execute_searches(["q1", "q2"])
        assert results == [{"query": "q2", "content": "```\nconst x = 1\n```"}]

    @pytest.mark.asyncio
    async def test_no_code_found(self):
        client = fake_client(*[completion("Just prose.")] * 3)
        scraper = EnhancedPerplexityUIScraper(client=client, api_key="k", sleep=AsyncMock())
        result = await scraper.find_design_code("a react card")
        assert result["success"] is False
        assert result["error"] == "Could not find matching design code"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="")
        result = await scraper.find_design_code("a card")
        assert result == {"success": False, "error": "Perplexity API key not configured"}

    def test_markup_without_fences_is_extracted(self):
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="k")
        extracted = scraper.extract_code_from_results([{"query": "q", "content": "Use <div>hello</div> here"}])
        assert extracted["code"] == "<div>hello</div>"
        assert extracted["metadata"]["query"] == "q"

    @pytest.mark.asyncio
    async def test_rate_limit_waits_for_window(self):
        clock, sleep = FakeClock(), AsyncMock()
        scraper = EnhancedPerplexityUIScraper(client=MagicMock(), api_key="k",
                                              max_requests_per_minute=2, clock=clock, sleep=sleep)
        scraper.request_timestamps = [0.0, 10.0]
        clock.now = 20.0
        await scraper.respect_rate_limits()
        assert sleep.await_args.args[0] == pytest.approx(40.1)

        sleep.reset_mock()
        clock.now = 65.0
        await scraper.respect_rate_limits()
        sleep.assert_not_awaited()
