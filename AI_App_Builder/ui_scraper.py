"""
UI design finder backed by Perplexity search
Parses a design request, searches for matching component code and keeps the
most complete code block found
"""

import asyncio
import re
import time

from .models import perplexity_client, PERPLEXITY_API_KEY, PERPLEXITY_MODEL
from .functions import extract_code_blocks
from .prompts import design_search_system_prompt, build_design_search_input

GENERAL_LIBRARIES = [
    {"name": "shadcn/ui", "url": "https://ui.shadcn.com", "priority": 10},
    {"name": "preline-ui", "url": "https://preline.co", "priority": 9},
    {"name": "magic-ui", "url": "https://magicui.design", "priority": 9},
    {"name": "accenticity-ui", "url": "https://accenticity.com", "priority": 8},
    {"name": "eldora-ui", "url": "https://eldoraui.com", "priority": 8},
    {"name": "uncoverlab", "url": "https://uncoverlab.com", "priority": 7},
    {"name": "21st.dev", "url": "https://21st.dev", "priority": 8},
]

REACT_LIBRARIES = [
    {"name": "material-ui", "url": "https://mui.com", "priority": 9},
    {"name": "chakra-ui", "url": "https://chakra-ui.com", "priority": 9},
    {"name": "ant-design", "url": "https://ant.design", "priority": 8},
    {"name": "react-suite", "url": "https://rsuitejs.com", "priority": 7},
    {"name": "mantine", "url": "https://mantine.dev", "priority": 8},
    {"name": "primereact", "url": "https://primereact.org", "priority": 7},
    {"name": "react-bootstrap", "url": "https://react-bootstrap.github.io", "priority": 8},
]

TAILWIND_LIBRARIES = [
    {"name": "tailwind-ui", "url": "https://tailwindui.com", "priority": 10},
    {"name": "hyperui", "url": "https://hyperui.dev", "priority": 8},
    {"name": "flowbite", "url": "https://flowbite.com", "priority": 8},
    {"name": "daisyui", "url": "https://daisyui.com", "priority": 8},
]

COMPONENT_TYPES = [
    {"name": "dashboard", "keywords": ["dashboard", "admin panel", "analytics dashboard"]},
    {"name": "form", "keywords": ["form", "input form", "contact form", "sign-up form"]},
    {"name": "table", "keywords": ["table", "data table", "data grid", "spreadsheet"]},
    {"name": "card", "keywords": ["card", "product card", "pricing card", "info card"]},
    {"name": "navbar", "keywords": ["navbar", "navigation", "header", "menu", "nav"]},
    {"name": "modal", "keywords": ["modal", "dialog", "popup", "overlay", "modal dialog"]},
]

FRAMEWORKS = [
    {"name": "react", "keywords": ["react", "reactjs", "react.js", "react component"]},
    {"name": "tailwind", "keywords": ["tailwind", "tailwindcss", "tailwind css"]},
]

DESIGN_SYSTEMS = [
    {"name": "shadcn/ui", "keywords": ["shadcn", "shadcn/ui", "shadcn ui"]},
    {"name": "material-ui", "keywords": ["mui", "material ui", "material-ui"]},
    {"name": "tailwind-ui", "keywords": ["tailwind ui", "tailwindui"]},
]

STYLE_PREFERENCES = [
    {"name": "white", "keywords": ["white", "light", "bright", "clean", "clear"]},
    {"name": "dark", "keywords": ["dark", "black", "night mode", "dark mode"]},
    {"name": "beautiful", "keywords": ["beautiful", "pretty", "elegant", "attractive"]},
    {"name": "minimal", "keywords": ["minimal", "minimalist", "simple", "clean"]},
]

CODE_LANGUAGES = {"", "jsx", "tsx", "js", "ts", "html", "css", "javascript", "typescript"}

# markup elements or import statements in prose without fences
ALTERNATIVE_CODE_PATTERN = re.compile(r"<([\w\s]+)>([\s\S]+?)</\1>|import[\s\S]+?from")


def find_best_match(text, categories):
    """Name of the category with the most keyword hits; ties keep the first"""
    best_match = None
    best_score = 0
    for category in categories:
        score = sum(1 for keyword in category["keywords"] if keyword.lower() in text)
        if score > best_score:
            best_score = score
            best_match = category["name"]
    return best_match


class EnhancedPerplexityUIScraper:

    def __init__(self, client=None, api_key=None, model=PERPLEXITY_MODEL,
                 max_requests_per_minute=5, clock=time.monotonic, sleep=asyncio.sleep):
        self.client = client or perplexity_client
        self.api_key = api_key if api_key is not None else PERPLEXITY_API_KEY
        self.model = model
        self.max_requests_per_minute = max_requests_per_minute
        self.request_timestamps = []
        self.clock = clock
        self.sleep = sleep
        self.design_sources = GENERAL_LIBRARIES + REACT_LIBRARIES + TAILWIND_LIBRARIES

    async def find_design_code(self, user_prompt):
        try:
            if not self.api_key:
                raise RuntimeError("Perplexity API key not configured")
            requirements = self.parse_user_prompt(user_prompt)
            queries = self.generate_search_queries(requirements)
            results = await self.execute_searches(queries)
            extracted = self.extract_code_from_results(results)
            return {
                "success": extracted is not None,
                "requirements": requirements,
                "code": extracted["code"] if extracted else None,
                "metadata": extracted["metadata"] if extracted else None,
                "error": None if extracted else "Could not find matching design code"
            }
        except Exception as e:
            print(f"❌ Error finding design code: {e}")
            return {"success": False, "error": str(e) or "Unknown error occurred"}

    def parse_user_prompt(self, prompt):
        lowered = prompt.lower()
        return {
            "original_prompt": prompt,
            "component_type": find_best_match(lowered, COMPONENT_TYPES) or "component",
            "framework": find_best_match(lowered, FRAMEWORKS),
            "design_system": find_best_match(lowered, DESIGN_SYSTEMS),
            "styles": [
                style["name"] for style in STYLE_PREFERENCES
                if any(keyword in lowered for keyword in style["keywords"])
            ],
            "is_full_stack": any(term in lowered for term in ("full stack", "fullstack", "full-stack"))
        }

    def generate_search_queries(self, requirements):
        component = requirements["component_type"]
        framework = requirements.get("framework")
        design_system = requirements.get("design_system")
        style_terms = " ".join(requirements.get("styles") or [])
        styles = f" {style_terms}" if style_terms else ""
        system = f" {design_system}" if design_system else ""
        framework_suffix = f" {framework}" if framework else ""

        queries = []
        if design_system:
            source = next(
                (s for s in self.design_sources if s["name"].lower() == design_system.lower()), None
            )
            if source:
                queries.append(f"{source['url']} {component} component code example{styles}")
                queries.append(f"{design_system} {component} react component code{styles}")

        if framework:
            queries.append(f"{framework} {component} component code example{system}{styles}")
            queries.append(f"{framework} {component} implementation{system}{styles}")

        queries.append(f"best {component} component designs with code{framework_suffix}{styles}")
        queries.append(f"{component} component code example{framework_suffix}{styles}")

        return list(dict.fromkeys(queries))[:3]

    async def execute_searches(self, queries):
        results = []
        for query in queries:
            try:
                await self.respect_rate_limits()
                content = await self.call_perplexity_api(query)
                if content:
                    results.append({"query": query, "content": content})
            except Exception as e:
                print(f"⚠️ Error executing search for query \"{query}\": {e}")
        return results

    async def respect_rate_limits(self):
        now = self.clock()
        self.request_timestamps = [t for t in self.request_timestamps if now - t < 60]
        if len(self.request_timestamps) >= self.max_requests_per_minute:
            wait_time = 60 - (now - self.request_timestamps[0]) + 0.1
            print(f"⏸️  Perplexity rate limit reached, waiting {wait_time:.1f} seconds...")
            await self.sleep(wait_time)

    async def call_perplexity_api(self, query):
        self.request_timestamps.append(self.clock())
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": design_search_system_prompt},
                {"role": "user", "content": build_design_search_input(query)}
            ],
            temperature=0.2,
            top_p=0.9,
            max_tokens=4000
        )
        return response.choices[0].message.content

    def extract_code_from_results(self, results):
        code_blocks = []
        metadata = None
        for result in results:
            content = result["content"]
            found = [code for _, code, _ in extract_code_blocks(content, CODE_LANGUAGES)]
            if not found:
                found = [m.group(0).strip() for m in ALTERNATIVE_CODE_PATTERN.finditer(content)]
            code_blocks.extend(found)
            metadata = {"query": result["query"], "source_content": content[:200] + "..."}

        if not code_blocks:
            return None
        return {"code": max(code_blocks, key=len), "metadata": metadata}
