"""
AI service facade for project creation, modification and version restore
Orchestration is tried first; plain app generation with retries and a
provider fallback takes over when it fails
"""

import asyncio
import uuid

from anthropic import AsyncAnthropic

from .models import (
    GEMINI_API_KEY, OPENAI_API_KEY, CLAUDE_API_KEY, CLAUDE_MODEL, ProjectContextManager,
    chat_agent, openai_chat_agent,
    app_generator_agent, openai_app_generator_agent, change_summary_agent,
    code_analysis_agent, openai_code_analysis_agent, guidance_agent, openai_guidance_agent
)
from .functions import (
    run_agent_with_token_limit, run_agent_with_fallback,
    extract_text_from_result_object, extract_json_from_text,
    flatten_file_structure, ensure_package_json, is_temporary_error, process_input
)
from .prompts import (
    build_app_generation_input, modifier_system_prompt,
    build_modification_input, build_change_summary_input,
    build_code_analysis_input, build_guidance_input, GUIDANCE_TASKS
)
from .orchestrator import AgentOrchestrationService
from . import simple_database as db

DEFAULT_EXPLANATION = "Learn by fixing the issues in this application"
DEFAULT_CHANGE_SUMMARY = "Your requested changes have been applied to the application."
HIGH_DEMAND_MESSAGE = (
    "AI service is temporarily unavailable due to high demand. Please try again in a few "
    "minutes with a simpler prompt or try breaking your request into smaller parts."
)
ALL_UNAVAILABLE_MESSAGE = (
    "All AI services are currently unavailable. Please try again in a few minutes with a simpler prompt."
)
SEVERITIES = ("info", "warning", "error")


async def chat_reply(message):
    """Answer a chat message with Gemini, falling back to OpenAI"""
    if not message or not message.strip():
        raise ValueError("Message is required")
    try:
        result = await run_agent_with_fallback(chat_agent, message, openai_chat_agent)
    except Exception as e:
        print(f"❌ Chat failed on all providers: {e}")
        raise RuntimeError("Processing service temporarily unavailable. Please try again in a few minutes.") from e
    return extract_text_from_result_object(result).strip()


class GeminiAIService:

    def __init__(self, orchestration_service=None, anthropic_client=None,
                 max_retries=3, base_backoff=2.0, sleep=asyncio.sleep):
        self.orchestration_service = orchestration_service or AgentOrchestrationService()
        self.anthropic_client = anthropic_client
        self.max_retries = max_retries
        self.base_backoff = base_backoff
        self.sleep = sleep
        self.fallback_enabled = True
        self.context_manager = ProjectContextManager()

    # -------------------
    # Project initialization
    # -------------------

    async def initialize_project(self, prompt, project_name, user_id=None):
        if not GEMINI_API_KEY:
            raise RuntimeError("Gemini API key not configured. Please contact support.")

        try:
            result = await self.orchestration_service.initialize_project(prompt, project_name)
        except Exception as e:
            print(f"⚠️ Agent orchestration failed, generating app instead: {e}")
            return self._remember(await self.fallback_to_generate_app(prompt, project_name, user_id))

        plan = result["orchestration_plan"]
        return self._remember({
            "project_id": result["project_id"],
            "project_context": {
                "project_name": plan.get("project_name", project_name),
                "description": plan.get("description", ""),
                "orchestration_plan": plan,
                "current_step": result["current_step"]
            },
            "assistant_message": result["assistant_message"],
            "orchestration_enabled": True,
            "app_data": {
                "project_id": result["project_id"],
                "orchestration_plan": plan,
                "current_step": result["current_step"]
            }
        })

    def _remember(self, initialized):
        self.context_manager.save_context(initialized["project_id"], initialized["project_context"])
        return initialized

    def get_project_context(self, project_id):
        context = self.context_manager.get_context(project_id)
        if context is None:
            raise LookupError(f"No context for project {project_id}")
        return context

    async def execute_next_step(self, project_id, user_code="", user_message=""):
        """Advance an orchestrated project and keep its context record in step"""
        result = await self.orchestration_service.execute_next_step(project_id, user_code, user_message)
        self.context_manager.update_context(project_id, {
            "current_step": result["current_step"],
            "progress": result["progress"],
            "completed": result["completed"],
        })
        return result

    async def fallback_to_generate_app(self, prompt, project_name, user_id=None):
        for attempt in range(self.max_retries):
            try:
                data = await self.generate_app(prompt, project_name=project_name, user_id=user_id)
                return self._format_generated(data, "App generated successfully.")
            except Exception as e:
                print(f"❌ Project initialization attempt {attempt + 1} failed: {e}")
                if is_temporary_error(e) and attempt < self.max_retries - 1:
                    wait_time = self.base_backoff * (2 ** attempt)
                    print(f"⏸️  Retrying in {wait_time:.1f} seconds...")
                    await self.sleep(wait_time)
                    continue
                if not self.fallback_enabled:
                    raise RuntimeError(f"Failed to generate app: {e}") from e
                try:
                    return await self.fallback_to_alternative_ai(prompt, project_name, user_id)
                except Exception as fallback_error:
                    print(f"❌ Fallback also failed: {fallback_error}")
                    raise RuntimeError(HIGH_DEMAND_MESSAGE) from fallback_error
        raise RuntimeError("Failed to initialize project after multiple attempts")

    async def fallback_to_alternative_ai(self, prompt, project_name, user_id=None):
        if not OPENAI_API_KEY:
            raise RuntimeError(ALL_UNAVAILABLE_MESSAGE)
        print("🔁 Switching to OpenAI for app generation")
        data = await self.generate_app(prompt, project_name=project_name, use_openai=True, user_id=user_id)
        return self._format_generated(data, "App generated with OpenAI fallback.")

    @staticmethod
    def _format_generated(data, default_message):
        files = data.get("files") or []
        return {
            "project_id": data["project_id"],
            "project_context": {
                "project_name": data.get("project_name"),
                "description": data.get("description"),
                "files": files,
                "challenges": data.get("challenges") or []
            },
            "assistant_message": data.get("explanation") or default_message,
            "initial_code": files[0]["content"] if files else "",
            "app_data": data,
            "orchestration_enabled": False
        }

    # -------------------
    # App generation
    # -------------------

    async def generate_app(self, prompt, project_name=None, completion_level="intermediate",
                           use_openai=False, user_id=None):
        """Generate an intentionally incomplete app and store it as version 1"""
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required")

        try:
            processed_prompt = await process_input(prompt)
        except Exception as e:
            raise ValueError(f"Error processing prompt: {e}") from e

        agent = openai_app_generator_agent if use_openai else app_generator_agent
        result = await run_agent_with_token_limit(
            agent, build_app_generation_input(processed_prompt, completion_level), 8192
        )

        try:
            app_data = extract_json_from_text(extract_text_from_result_object(result))
        except ValueError as e:
            raise ValueError("Failed to parse application data") from e

        name = app_data.get("project_name") or project_name or "generated-app"
        files = ensure_package_json(flatten_file_structure(app_data.get("file_structure")), name)
        stored = {
            "project_name": name,
            "description": app_data.get("description", ""),
            "files": files,
            "challenges": app_data.get("challenges") or [],
            "explanation": app_data.get("explanation") or DEFAULT_EXPLANATION
        }

        project_id = str(uuid.uuid4())
        if not db.insert_app_project(project_id, user_id, 1, stored, creation_prompt=prompt):
            print(f"⚠️ Generated app {project_id} was not stored")

        return {"project_id": project_id, **stored}

    # -------------------
    # Versions
    # -------------------

    def _claude(self):
        if self.anthropic_client is None:
            if not CLAUDE_API_KEY:
                raise RuntimeError("Anthropic API key not configured")
            self.anthropic_client = AsyncAnthropic(api_key=CLAUDE_API_KEY)
        return self.anthropic_client

    async def modify_app(self, prompt, project_id):
        if not prompt or not project_id:
            raise ValueError("Prompt and project_id are required")

        project = db.get_app_project(project_id)
        if project is None:
            raise LookupError(f"Project with ID {project_id} not found")
        root_id = project["parent_id"] or project["id"]
        latest = db.get_latest_project_version(root_id) or project

        response = await self._claude().messages.create(
            model=CLAUDE_MODEL,
            max_tokens=4000,
            temperature=0.5,
            system=modifier_system_prompt,
            messages=[{"role": "user", "content": build_modification_input(prompt, latest["app_data"])}]
        )
        content = "".join(getattr(block, "text", "") for block in response.content)
        if not content:
            raise RuntimeError("Empty or invalid response from Anthropic API")

        try:
            modified_app = extract_json_from_text(content)
        except ValueError as e:
            raise ValueError("Failed to parse the modified application code") from e

        new_version = latest["version"] + 1
        version_id = str(uuid.uuid4())
        if not db.insert_app_project(version_id, latest["user_id"], new_version, modified_app,
                                     parent_id=root_id, modification_prompt=prompt):
            raise RuntimeError("Failed to save modified application")

        return {
            "project_id": project_id,
            "version_id": version_id,
            "version": new_version,
            "summary": await self.summarize_changes(prompt, modified_app),
            "modified_app": modified_app
        }

    async def summarize_changes(self, prompt, modified_app):
        if not OPENAI_API_KEY:
            return DEFAULT_CHANGE_SUMMARY
        try:
            result = await run_agent_with_token_limit(
                change_summary_agent, build_change_summary_input(prompt, modified_app), 200
            )
            return extract_text_from_result_object(result).strip() or DEFAULT_CHANGE_SUMMARY
        except Exception as e:
            print(f"⚠️ Error generating change summary: {e}")
            return DEFAULT_CHANGE_SUMMARY

    async def restore_version(self, project_id):
        if not project_id:
            raise ValueError("Project ID is required")

        version = db.get_app_project(project_id)
        if version is None:
            raise LookupError(f"Version with ID {project_id} not found")

        root_id = version["parent_id"] or version["id"]
        latest = db.get_latest_project_version(root_id)
        highest = latest["version"] if latest else version["version"]
        new_version = highest + 1

        if not db.insert_app_project(str(uuid.uuid4()), version["user_id"], new_version, version["app_data"],
                                     parent_id=root_id,
                                     modification_prompt=f"Restored to version {version['version']}"):
            raise RuntimeError("Failed to restore version")

        return {
            "success": True,
            "message": f"Successfully restored to version {version['version']}",
            "version": new_version
        }

    def list_versions(self, project_id):
        """Every version in the chain project_id belongs to, oldest first"""
        project = db.get_app_project(project_id)
        if project is None:
            raise LookupError(f"Project with ID {project_id} not found")
        root_id = project["parent_id"] or project["id"]
        return [
            {
                "id": row["id"],
                "version": row["version"],
                "modification_prompt": row["modification_prompt"],
                "created_at": row["created_at"],
            }
            for row in db.list_project_versions(root_id)
        ]

    # -------------------
    # Code review / guidance
    # -------------------

    async def analyze_code(self, project_id, files, challenge_info=None):
        """Review submitted files; returns feedback, suggestions and a 0-100 score"""
        if not project_id or not files:
            raise ValueError("Project ID and files are required")
        if not GEMINI_API_KEY:
            raise RuntimeError("Gemini API key not configured")

        files = [{"path": f.get("path", ""), "content": f.get("content", "")} for f in files]
        print(f"🔍 Analyzing {len(files)} files for project {project_id}")
        try:
            result = await run_agent_with_fallback(
                code_analysis_agent, build_code_analysis_input(project_id, files, challenge_info),
                openai_code_analysis_agent
            )
        except Exception as e:
            print(f"❌ Code analysis failed on all providers: {e}")
            raise RuntimeError("Code analysis service temporarily unavailable") from e

        try:
            analysis = extract_json_from_text(extract_text_from_result_object(result))
        except ValueError as e:
            raise ValueError("Failed to parse analysis data") from e
        if not analysis.get("feedback") or not isinstance(analysis.get("suggestions"), list):
            raise ValueError("Failed to parse analysis data: malformed analysis result")

        analysis["suggestions"] = [
            {**s, "severity": s.get("severity") if s.get("severity") in SEVERITIES else "info"}
            for s in analysis["suggestions"] if isinstance(s, dict)
        ]
        return {"success": True, **analysis}

    async def generate_guidance(self, guidance_type, project_data, code_samples=None):
        if guidance_type not in GUIDANCE_TASKS:
            raise ValueError(f"Invalid guidance type: {guidance_type}")
        if not isinstance(project_data, dict):
            raise ValueError("Project data is required")
        if not GEMINI_API_KEY:
            raise RuntimeError("Gemini API key not configured")

        samples = [
            {"path": s.get("path", ""), "snippet": s.get("snippet", "")}
            for s in code_samples or [] if isinstance(s, dict)
        ]
        try:
            result = await run_agent_with_fallback(
                guidance_agent, build_guidance_input(guidance_type, project_data, samples), openai_guidance_agent
            )
        except Exception as e:
            print(f"❌ Guidance generation failed on all providers: {e}")
            raise RuntimeError("Guidance service temporarily unavailable") from e

        guidance = extract_text_from_result_object(result).strip()
        if not guidance:
            raise RuntimeError("Empty guidance from AI service")
        return {"guidance": guidance}
