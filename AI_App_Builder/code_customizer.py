"""
Claude-backed customization of found UI component code
"""

from anthropic import AsyncAnthropic

from .models import CLAUDE_API_KEY, CLAUDE_MODEL
from .functions import extract_code_blocks
from .prompts import CUSTOMIZER_STYLES, build_customization_prompt

CLAUDE_CODE_LANGUAGES = {"jsx", "js", "javascript", "typescript", "tsx", "ts"}


class ClaudeCodeCustomizer:

    def __init__(self, client=None, api_key=None, model=CLAUDE_MODEL):
        self.api_key = api_key if api_key is not None else CLAUDE_API_KEY
        self.client = client or AsyncAnthropic(api_key=self.api_key or "")
        self.model = model

    async def customize_code(self, design):
        """Customize a find_design_code result.

        Returns {success, original_design, customized_code{frontend, backend},
        explanation} or {success: False, error}.
        """
        try:
            if not design or not design.get("success") or not design.get("code"):
                raise ValueError("Invalid scraped design data")
            prompt = self.create_prompt(design)
            content = await self.call_claude_api(prompt)
            return self.process_claude_response(content, design)
        except Exception as e:
            print(f"❌ Error customizing code: {e}")
            return {"success": False, "error": str(e) or "Unknown error occurred"}

    def create_prompt(self, design):
        requirements = design.get("requirements") or {}
        component_type = requirements.get("component_type") or "component"
        template = component_type if component_type in CUSTOMIZER_STYLES else "default"
        return build_customization_prompt(
            template=template,
            component_type=component_type,
            code=design["code"],
            original_prompt=requirements.get("original_prompt", ""),
            style_instructions=self.style_instructions(template, requirements.get("styles") or []),
            design_system=requirements.get("design_system") or "React",
            is_full_stack=bool(requirements.get("is_full_stack"))
        )

    @staticmethod
    def style_instructions(template, styles):
        options = CUSTOMIZER_STYLES[template]
        instructions = [text for name, text in options.items() if name in styles]
        if not instructions:
            instructions = [options["white"], options["beautiful"]]
        return instructions

    async def call_claude_api(self, prompt):
        if not self.api_key:
            raise RuntimeError("Claude API key not configured")
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=4000,
                messages=[{"role": "user", "content": prompt}]
            )
        except Exception as e:
            print(f"❌ Error calling Claude API: {e}")
            raise RuntimeError(f"Failed to customize code with Claude: {e}") from e
        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )

    @staticmethod
    def process_claude_response(content, design):
        blocks = extract_code_blocks(content, CLAUDE_CODE_LANGUAGES)
        if not blocks:
            return {"success": False, "error": "No code blocks found in Claude's response"}

        frontend = blocks[0][1]
        backend = blocks[1][1] if len(blocks) > 1 else None
        explanation = content[blocks[-1][2]:].strip()
        return {
            "success": True,
            "original_design": design,
            "customized_code": {"frontend": frontend, "backend": backend},
            "explanation": explanation
        }
