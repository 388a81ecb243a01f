import json
import asyncio
import tiktoken
import os
from datetime import datetime
from dotenv import load_dotenv, find_dotenv
from agents import Agent, OpenAIChatCompletionsModel, AsyncOpenAI, ModelSettings

# Load environment variables
_ = load_dotenv(find_dotenv())
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
CLAUDE_API_KEY = os.getenv("CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY")
PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-20250514")
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar")

# in-process project state is held for at most this many projects, oldest evicted first
MAX_TRACKED_PROJECTS = int(os.getenv("MAX_TRACKED_PROJECTS", "500"))

# Optional providers get an empty key so the clients can be built at import
# time; callers check the *_API_KEY constants before using them.
gemini_client: AsyncOpenAI = AsyncOpenAI(
    api_key=GEMINI_API_KEY or "",
    base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
)

openai_client: AsyncOpenAI = AsyncOpenAI(
    api_key=OPENAI_API_KEY or "",
)

perplexity_client: AsyncOpenAI = AsyncOpenAI(
    api_key=PERPLEXITY_API_KEY or "",
    base_url="https://api.perplexity.ai",
)

gemini_llm_model: OpenAIChatCompletionsModel = OpenAIChatCompletionsModel(
    model=GEMINI_MODEL,
    openai_client=gemini_client
)

openai_llm_model: OpenAIChatCompletionsModel = OpenAIChatCompletionsModel(
    model=OPENAI_MODEL,
    openai_client=openai_client
)


class TokenManager:
    """Token accounting for provider rate limits"""

    def __init__(self, max_tokens_per_minute=32000, token_limit_threshold=30000):
        self.max_tokens_per_minute = max_tokens_per_minute
        self.token_limit_threshold = token_limit_threshold
        self.tokens_used = 0
        self.start_time = datetime.now()
        try:
            self.tokenizer = tiktoken.get_encoding("cl100k_base")
        except Exception:
            try:
                self.tokenizer = tiktoken.get_encoding("gpt2")
            except Exception:
                self.tokenizer = None

    def count_tokens(self, text):
        """Count tokens in text"""
        if text is None:
            return 0
        if isinstance(text, (dict, list)):
            text = json.dumps(text)
        text = str(text)
        if self.tokenizer is None:
            return max(1, len(text) // 4) if text else 0
        try:
            return len(self.tokenizer.encode(text))
        except Exception:
            return max(1, len(text) // 4)

    async def check_and_wait(self, estimated_response_tokens=500):
        """Wait for the next minute when the estimate would cross the threshold"""
        current_time = datetime.now()
        elapsed_time = (current_time - self.start_time).total_seconds()
        if elapsed_time >= 60:
            self.tokens_used = 0
            self.start_time = current_time
            return
        if self.tokens_used + estimated_response_tokens >= self.token_limit_threshold:
            wait_time = 60 - elapsed_time
            if wait_time > 0:
                print(f"⏰ Token limit approaching ({self.tokens_used}/{self.token_limit_threshold})")
                print(f"⏸️  Waiting {wait_time:.1f} seconds until next minute...")
                await asyncio.sleep(wait_time)
            self.tokens_used = 0
            self.start_time = datetime.now()

    def add_tokens(self, tokens):
        """Add tokens to usage counter"""
        self.tokens_used = min(self.tokens_used + tokens, self.max_tokens_per_minute)
        print(f"📊 Tokens used this minute: {self.tokens_used}/{self.max_tokens_per_minute}")


class ProjectContextManager:
    """In-process store of per-project context records"""

    def __init__(self, max_projects=MAX_TRACKED_PROJECTS):
        self.contexts = {}
        self.max_projects = max_projects

    def save_context(self, project_id, context):
        self.contexts.pop(project_id, None)
        while len(self.contexts) >= self.max_projects:
            self.contexts.pop(next(iter(self.contexts)))
        self.contexts[project_id] = {
            **context,
            "project_id": project_id,
            "last_updated": datetime.now().isoformat(),
        }
        return self.contexts[project_id]

    def get_context(self, project_id):
        return self.contexts.get(project_id)

    def update_context(self, project_id, updates):
        if project_id not in self.contexts:
            return None
        self.contexts[project_id] = {
            **self.contexts[project_id],
            **updates,
            "last_updated": datetime.now().isoformat(),
        }
        return self.contexts[project_id]


# -------------------
# All Agents Defined Here
# -------------------

from .prompts import (
    chat_prompt, planner_prompt, app_generator_prompt, summarizer_prompt,
    change_summary_prompt, code_analysis_prompt, guidance_prompt,
    step_agent_instructions, STEP_AGENT_ROLES
)

planner_model_settings = ModelSettings(
    temperature=0.4,
)

generator_model_settings = ModelSettings(
    temperature=0.7,
    max_tokens=8192,
)

chat_agent = Agent(
    name="ChatAssistant",
    instructions=chat_prompt,
    model=gemini_llm_model,
    model_settings=ModelSettings(temperature=0.7, max_tokens=2048)
)

openai_chat_agent = Agent(
    name="ChatAssistantFallback",
    instructions=chat_prompt,
    model=openai_llm_model,
    model_settings=ModelSettings(temperature=0.7, max_tokens=1500)
)

planner_agent = Agent(
    name="ProjectPlanner",
    instructions=planner_prompt,
    model=gemini_llm_model,
    model_settings=planner_model_settings
)

step_agents = {
    agent_type: Agent(
        name=f"{agent_type.capitalize()}StepAgent",
        instructions=step_agent_instructions(agent_type),
        model=gemini_llm_model
    )
    for agent_type in STEP_AGENT_ROLES
}


app_generator_agent = Agent(
    name="AppGenerator",
    instructions=app_generator_prompt,
    model=gemini_llm_model,
    model_settings=generator_model_settings
)

openai_app_generator_agent = Agent(
    name="AppGeneratorFallback",
    instructions=app_generator_prompt,
    model=openai_llm_model,
    model_settings=generator_model_settings
)

summarizer_agent = Agent(
    name="PromptSummarizer",
    instructions=summarizer_prompt,
    model=openai_llm_model,
    model_settings=ModelSettings(max_tokens=800)
)

change_summary_agent = Agent(
    name="ChangeSummarizer",
    instructions=change_summary_prompt,
    model=openai_llm_model,
    model_settings=ModelSettings(max_tokens=200)
)

code_analysis_agent = Agent(
    name="CodeReviewer",
    instructions=code_analysis_prompt,
    model=gemini_llm_model,
    model_settings=ModelSettings(temperature=0.2, max_tokens=8192)
)

openai_code_analysis_agent = Agent(
    name="CodeReviewerFallback",
    instructions=code_analysis_prompt,
    model=openai_llm_model,
    model_settings=ModelSettings(temperature=0.2, max_tokens=4096)
)

guidance_agent = Agent(
    name="GuidanceMentor",
    instructions=guidance_prompt,
    model=gemini_llm_model,
    model_settings=ModelSettings(temperature=0.7, max_tokens=1000)
)

openai_guidance_agent = Agent(
    name="GuidanceMentorFallback",
    instructions=guidance_prompt,
    model=openai_llm_model,
    model_settings=ModelSettings(temperature=0.7, max_tokens=1000)
)
