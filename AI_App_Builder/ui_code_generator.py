"""
UI code generation from a free-text design request
"""

from datetime import datetime

from .code_customizer import ClaudeCodeCustomizer
from .ui_scraper import EnhancedPerplexityUIScraper
from .prompts import build_generation_fallback_prompt

HISTORY_LIMIT = 10

# first hit wins, in this order
DESIGN_SYSTEM_KEYWORDS = [
    (("shadcn",), "shadcn/ui"),
    (("tailwind",), "tailwind"),
    (("chakra",), "chakra-ui"),
    (("material",), "material-ui"),
    (("bootstrap",), "bootstrap"),
]

COMPONENT_TYPE_KEYWORDS = [
    (("dashboard",), "dashboard"),
    (("form", "signup", "sign up"), "form"),
    (("table",), "table"),
    (("card",), "card"),
    (("navbar", "navigation"), "navbar"),
    (("button",), "button"),
    (("modal", "dialog"), "modal"),
    (("list",), "list"),
]

CODE_GENERATION_KEYWORDS = [
    "create", "generate", "build", "implement", "develop",
    "design", "code", "make a", "make me", "write",
    "component", "function", "class", "module", "interface",
    "feature", "ui", "form", "button", "card", "modal"
]

SHADCN_EXAMPLES = [
    '''import { Button } from "@/components/ui/button"

export function ButtonDemo() {
  return (
    <Button variant="outline">Button</Button>
  )
}''',
    '''import {
  Card,
  CardContent,
  CardDescription,
  CardFooter,
  CardHeader,
  CardTitle,
} from "@/components/ui/card"

export function CardDemo() {
  return (
    <Card>
      <CardHeader>
        <CardTitle>Card Title</CardTitle>
        <CardDescription>Card Description</CardDescription>
      </CardHeader>
      <CardContent>
        <p>Card Content</p>
      </CardContent>
      <CardFooter>
        <p>Card Footer</p>
      </CardFooter>
    </Card>
  )
}''',
    '''import { Input } from "@/components/ui/input"
import { Label } from "@/components/ui/label"

export function InputDemo() {
  return (
    <div className="grid w-full max-w-sm items-center gap-1.5">
      <Label htmlFor="email">Email</Label>
      <Input type="email" id="email" placeholder="Email" />
    </div>
  )
}''',
]


def _first_keyword_match(prompt, table, default):
    lowered = prompt.lower()
    for keywords, name in table:
        if any(keyword in lowered for keyword in keywords):
            return name
    return default


def extract_design_system_preference(prompt):
    return _first_keyword_match(prompt, DESIGN_SYSTEM_KEYWORDS, "shadcn/ui")


def extract_component_type(prompt):
    return _first_keyword_match(prompt, COMPONENT_TYPE_KEYWORDS, "component")


def is_code_generation_request(prompt):
    lowered = prompt.lower()
    return any(keyword in lowered for keyword in CODE_GENERATION_KEYWORDS)


class UICodeGenerator:

    def __init__(self, scraper=None, customizer=None, debug=False):
        self.scraper = scraper or EnhancedPerplexityUIScraper()
        self.customizer = customizer or ClaudeCodeCustomizer()
        self.debug = debug
        self.generation_history = []

    async def generate_code(self, user_prompt):
        """Generate a component straight from Claude.

        The Perplexity search step is skipped; a failed generation is retried
        once before the error is returned.
        """
        self.log("Generating code for prompt:", user_prompt)
        result = await self.claude_fallback_generation(user_prompt)
        if not result["success"]:
            self.log("Attempting Claude fallback after error...")
            retry = await self.claude_fallback_generation(user_prompt)
            if retry["success"]:
                result = retry
        self.save_to_history(user_prompt, result)
        return result

    async def claude_fallback_generation(self, user_prompt):
        design_system = extract_design_system_preference(user_prompt)
        component_type = extract_component_type(user_prompt)
        try:
            prompt = build_generation_fallback_prompt(
                user_prompt, design_system, component_type,
                self.fetch_design_system_examples(design_system)
            )
            content = await self.customizer.call_claude_api(prompt)
            processed = self.customizer.process_claude_response(content, None)
            if not processed["success"]:
                raise RuntimeError(processed["error"])
        except Exception as e:
            self.log("Fallback generation failed:", str(e))
            return {
                "success": False,
                "prompt": user_prompt,
                "error": f"Fallback generation failed: {e}"
            }

        return {
            "success": True,
            "prompt": user_prompt,
            "result": {
                "code": {
                    "frontend": processed["customized_code"]["frontend"],
                    "backend": processed["customized_code"]["backend"]
                },
                "explanation": processed["explanation"] or "Generated with Claude"
            },
            "metadata": {
                "component_type": component_type,
                "design_system": design_system,
                "timestamp": datetime.now().isoformat(),
                "used_fallback": True
            }
        }

    @staticmethod
    def fetch_design_system_examples(design_system):
        # only shadcn/ui snippets are bundled
        return list(SHADCN_EXAMPLES)

    def save_to_history(self, prompt, result):
        metadata = result.get("metadata") or {}
        self.generation_history.append({
            "timestamp": datetime.now().isoformat(),
            "prompt": prompt,
            "component_type": metadata.get("component_type"),
            "design_system": metadata.get("design_system"),
            "success": result["success"]
        })
        self.generation_history = self.generation_history[-HISTORY_LIMIT:]

    def get_history(self):
        return list(self.generation_history)

    def log(self, *args):
        if self.debug:
            print("[UICodeGenerator]", *args)
