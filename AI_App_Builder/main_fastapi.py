"""
FastAPI Main module for the AI App Builder
Exposes chat, app generation, agent orchestration, guide, design code,
GitHub and chat history endpoints
"""

import os
import json
import base64
from contextlib import asynccontextmanager
from typing import Optional, List
from dotenv import load_dotenv, find_dotenv
from fastapi import FastAPI, HTTPException, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .orchestrator import AgentOrchestrator, AgentOrchestrationService
from .guide import StructuredAIGuide
from .step_agents import PlannerAgent
from .ui_code_generator import UICodeGenerator, is_code_generation_request
from .app_service import GeminiAIService, chat_reply
from .chat_history import get_chat_history_store
from .github import (
    GitHubAuthError, GITHUB_CLIENT_ID,
    generate_oauth_state, build_authorize_url, link_github_account,
    list_repositories, is_github_connected, disconnect_github, fetch_repository
)
from .simple_database import init_schema, save_repository_file, get_repository_files

_ = load_dotenv(find_dotenv())
CORS_ORIGINS = [
    origin.strip() for origin in
    os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]
INIT_DB_SCHEMA = os.getenv("INIT_DB_SCHEMA", "false").lower() == "true"

# only non-secret configuration may be read by clients
PUBLIC_ENV_KEYS = ["GITHUB_CLIENT_ID"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if INIT_DB_SCHEMA:
        init_schema()
    yield


app = FastAPI(
    title="AI App Builder",
    description="AI-powered app generation with guided, agent-orchestrated learning",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------
# Global instances
# -------------------
orchestration_service = AgentOrchestrationService()
ai_service = GeminiAIService(orchestration_service=orchestration_service)
ui_code_generator = UICodeGenerator()
learning_planner = PlannerAgent()


# -------------------
# Request models
# -------------------

class ChatRequest(BaseModel):
    message: str
    project_id: Optional[str] = None

class OrchestrationRequest(BaseModel):
    action: str
    specification: Optional[str] = None
    project_name: Optional[str] = None
    state: Optional[dict] = None
    user_code: str = ""
    user_message: str = ""

class InitializeProjectRequest(BaseModel):
    prompt: str
    project_name: str = "My Project"

class NextStepRequest(BaseModel):
    user_code: str = ""
    user_message: str = ""

class GenerateAppRequest(BaseModel):
    prompt: str
    project_name: Optional[str] = None
    completion_level: str = "intermediate"
    use_openai: bool = False

class ModifyAppRequest(BaseModel):
    prompt: str
    project_id: str

class RestoreVersionRequest(BaseModel):
    project_id: str

class DesignCodeRequest(BaseModel):
    action: str
    prompt: Optional[str] = None
    design: Optional[dict] = None

class GuideStartRequest(BaseModel):
    project: dict

class GuideMessageRequest(BaseModel):
    state: dict
    message: str

class GuideCompleteStepRequest(BaseModel):
    state: dict
    step_id: str

class LearningPathRequest(BaseModel):
    specification: str
    project_name: str = "My Project"

class CodeSample(BaseModel):
    path: str
    snippet: str = ""

class GuidanceRequest(BaseModel):
    guidance_type: str
    project_data: dict
    code_samples: List[CodeSample] = []

class GetEnvRequest(BaseModel):
    key: str

class GitHubLinkRequest(BaseModel):
    code: str

class RepositoryFile(BaseModel):
    path: str
    content: str = ""

class RepositoryFilesRequest(BaseModel):
    repository_name: str
    files: List[RepositoryFile]
    session_id: Optional[str] = None

class FetchRepositoryRequest(BaseModel):
    repo_url: str
    session_id: Optional[str] = None

class AnalyzeCodeRequest(BaseModel):
    project_id: str
    files: List[RepositoryFile]
    challenge_info: Optional[dict] = None

class ChatSessionRequest(BaseModel):
    title: str

class ChatMessageRequest(BaseModel):
    role: str
    content: str
    metadata: Optional[dict] = None


# -------------------
# Helpers
# -------------------

def to_http_exception(e: Exception) -> HTTPException:
    """Map service errors onto HTTP status codes"""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, GitHubAuthError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e).strip("'\""))
    if isinstance(e, RuntimeError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def extract_user_id_from_token(token: str) -> Optional[str]:
    """Read the subject of a JWT without verifying it"""
    try:
        if token and '.' in token:
            parts = token.split('.')
            if len(parts) >= 2:
                payload_b64 = parts[1]
                padding = '=' * (-len(payload_b64) % 4)
                payload_json = base64.urlsafe_b64decode(payload_b64 + padding).decode()
                payload = json.loads(payload_json)
                if isinstance(payload, dict):
                    candidate = payload.get('sub') or payload.get('user_id') or payload.get('uid')
                    if candidate is not None:
                        return str(candidate)
    except (ValueError, UnicodeDecodeError):
        print("⚠️ Could not decode Authorization token")
    return None


def resolve_user_id(authorization: Optional[str], header_user_id: Optional[str]) -> Optional[str]:
    if header_user_id:
        return header_user_id
    if authorization:
        token = authorization.split(" ", 1)[1].strip() if authorization.lower().startswith("bearer ") \
            else authorization.strip()
        return extract_user_id_from_token(token)
    return None


def require_user_id(authorization: Optional[str], header_user_id: Optional[str]) -> str:
    user_id = resolve_user_id(authorization, header_user_id)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id


# -------------------
# Endpoints
# -------------------

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "AI App Builder API",
        "version": "1.0.0",
        "endpoints": {
            "chat": "/api/v1/chat - Chat with the assistant",
            "agent_orchestration": "/api/v1/agent-orchestration - Step-by-step guided building",
            "generate_app": "/api/v1/generate-app - Generate an app with coding challenges",
            "modify_app": "/api/v1/modify-app - Modify a generated app",
            "restore_version": "/api/v1/restore-version - Restore an earlier app version",
            "design_code": "/api/v1/design-code - Find, customize or generate UI components",
            "guide": "/api/v1/guide/* - Structured challenge guide",
            "analyze_code": "/api/v1/analyze-code - AI review of submitted code",
            "github": "/api/v1/github/* - GitHub linking and repository import",
            "chat_history": "/api/v1/chat-history - Saved chat sessions",
        }
    }


@app.get("/api/v1/health")
async def health_check():
    return {"status": "healthy"}


@app.post("/api/v1/chat")
async def chat_endpoint(request: ChatRequest):
    try:
        response = await chat_reply(request.message)
        return {
            "response": response,
            "project_id": request.project_id,
            "code_generation_request": is_code_generation_request(request.message),
        }
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/agent-orchestration")
async def agent_orchestration_endpoint(request: OrchestrationRequest):
    """Stateless orchestration: the caller sends back the state it received"""
    try:
        orchestrator = AgentOrchestrator()

        if request.action == "initialize":
            if not request.specification:
                raise HTTPException(status_code=400, detail="specification is required")
            result = await orchestrator.initialize_orchestration(
                request.specification, request.project_name or "My Project"
            )
            return {**result, "state": orchestrator.get_state()}

        if request.action in ("execute-step", "get-state"):
            if request.state is None:
                raise HTTPException(status_code=400, detail="state is required")
            orchestrator.restore_state(request.state)
            if request.action == "get-state":
                return {
                    "state": orchestrator.get_state(),
                    "current_step": orchestrator.get_current_step_info(),
                    "next_step": orchestrator.get_next_step_info(),
                }
            result = await orchestrator.execute_next_step(request.user_code, request.user_message)
            return {**result, "state": orchestrator.get_state()}

        raise HTTPException(status_code=400, detail=f"Invalid action: {request.action}")
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/projects/initialize")
async def initialize_project_endpoint(
    request: InitializeProjectRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        user_id = resolve_user_id(Authorization, x_supabase_auth_user_id)
        return await ai_service.initialize_project(request.prompt, request.project_name, user_id)
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/projects/{project_id}/next-step")
async def next_step_endpoint(project_id: str, request: NextStepRequest):
    try:
        return await ai_service.execute_next_step(
            project_id, request.user_code, request.user_message
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="Project not found")
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/projects/{project_id}/context")
async def project_context_endpoint(project_id: str):
    try:
        return ai_service.get_project_context(project_id)
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/projects/{project_id}/versions")
async def project_versions_endpoint(project_id: str):
    try:
        return {"versions": ai_service.list_versions(project_id)}
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/generate-app")
async def generate_app_endpoint(
    request: GenerateAppRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        user_id = resolve_user_id(Authorization, x_supabase_auth_user_id)
        return await ai_service.generate_app(
            request.prompt,
            project_name=request.project_name,
            completion_level=request.completion_level,
            use_openai=request.use_openai,
            user_id=user_id
        )
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/modify-app")
async def modify_app_endpoint(request: ModifyAppRequest):
    try:
        return await ai_service.modify_app(request.prompt, request.project_id)
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/restore-version")
async def restore_version_endpoint(request: RestoreVersionRequest):
    try:
        return await ai_service.restore_version(request.project_id)
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/design-code")
async def design_code_endpoint(request: DesignCodeRequest):
    try:
        if request.action == "find":
            if not request.prompt:
                raise HTTPException(status_code=400, detail="prompt is required")
            return await ui_code_generator.scraper.find_design_code(request.prompt)
        if request.action == "customize":
            if not request.design:
                raise HTTPException(status_code=400, detail="design is required")
            return await ui_code_generator.customizer.customize_code(request.design)
        if request.action == "generate":
            if not request.prompt:
                raise HTTPException(status_code=400, detail="prompt is required")
            return await ui_code_generator.generate_code(request.prompt)
        raise HTTPException(status_code=400, detail=f"Invalid action: {request.action}")
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/design-code/history")
async def design_code_history_endpoint():
    return {"history": ui_code_generator.get_history()}


@app.post("/api/v1/analyze-code")
async def analyze_code_endpoint(request: AnalyzeCodeRequest):
    try:
        return await ai_service.analyze_code(
            request.project_id,
            [{"path": file.path, "content": file.content} for file in request.files],
            request.challenge_info
        )
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/guide/start")
async def guide_start_endpoint(request: GuideStartRequest):
    try:
        guide = StructuredAIGuide(request.project)
        return {
            "message": guide.generate_first_task_message(),
            "overview": guide.get_project_overview(),
            "steps": guide.get_implementation_steps(),
            "current_step": guide.get_current_step(),
            "state": guide.to_state(),
        }
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/guide/message")
async def guide_message_endpoint(request: GuideMessageRequest):
    try:
        guide = StructuredAIGuide.from_state(request.state)
        reply = guide.process_user_message(request.message)
        return {
            "reply": reply,
            "overview": guide.get_project_overview(),
            "state": guide.to_state(),
        }
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Invalid guide state: missing {e}")
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/guide/complete-step")
async def guide_complete_step_endpoint(request: GuideCompleteStepRequest):
    try:
        guide = StructuredAIGuide.from_state(request.state)
        next_step = guide.complete_step(request.step_id)
        return {"next_step": next_step, "state": guide.to_state()}
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Invalid guide state: missing {e}")
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/guide/learning-path")
async def guide_learning_path_endpoint(request: LearningPathRequest):
    try:
        if not request.specification.strip():
            raise HTTPException(status_code=400, detail="specification is required")
        return await learning_planner.create_learning_path(request.specification, request.project_name)
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/guide/generate-guidance")
async def guide_generate_guidance_endpoint(request: GuidanceRequest):
    try:
        return await ai_service.generate_guidance(
            request.guidance_type,
            request.project_data,
            [{"path": s.path, "snippet": s.snippet} for s in request.code_samples]
        )
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/get-env")
async def get_env_endpoint(request: GetEnvRequest):
    if not request.key:
        raise HTTPException(status_code=400, detail="No key provided")
    if request.key not in PUBLIC_ENV_KEYS:
        raise HTTPException(status_code=403, detail="Access to this environment variable is not allowed")
    return {"value": os.getenv(request.key)}


# -------------------
# GitHub
# -------------------

@app.get("/api/v1/github/authorize-url")
async def github_authorize_url_endpoint(redirect_uri: str = Query(...)):
    if not GITHUB_CLIENT_ID:
        raise HTTPException(status_code=503, detail="GitHub client credentials are not configured")
    state = generate_oauth_state()
    return {"url": build_authorize_url(GITHUB_CLIENT_ID, redirect_uri, state), "state": state}


@app.post("/api/v1/github/link")
async def github_link_endpoint(
    request: GitHubLinkRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = require_user_id(Authorization, x_supabase_auth_user_id)
    try:
        github_user = await link_github_account(user_id, request.code)
        return {"success": True, "github_user": github_user}
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/github/repos")
async def github_repos_endpoint(
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = require_user_id(Authorization, x_supabase_auth_user_id)
    try:
        return {"success": True, "repos": await list_repositories(user_id)}
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/github/status")
async def github_status_endpoint(
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = require_user_id(Authorization, x_supabase_auth_user_id)
    return {"connected": is_github_connected(user_id)}


@app.delete("/api/v1/github/connection")
async def github_disconnect_endpoint(
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = require_user_id(Authorization, x_supabase_auth_user_id)
    return {"success": disconnect_github(user_id)}


@app.post("/api/v1/github/repository-files")
async def save_repository_files_endpoint(
    request: RepositoryFilesRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = resolve_user_id(Authorization, x_supabase_auth_user_id)
    saved = []
    for file in request.files:
        file_id = save_repository_file(
            request.repository_name, file.path, file.content, user_id, request.session_id
        )
        if file_id is None:
            raise HTTPException(status_code=500, detail=f"Failed to save {file.path}")
        saved.append({"id": file_id, "path": file.path})
    return {"success": True, "files": saved}


@app.post("/api/v1/github/fetch-repo")
async def github_fetch_repo_endpoint(
    request: FetchRepositoryRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        user_id = resolve_user_id(Authorization, x_supabase_auth_user_id)
        return await fetch_repository(request.repo_url, user_id, request.session_id)
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/github/repository-files/{repository_name:path}")
async def get_repository_files_endpoint(
    repository_name: str,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    user_id = resolve_user_id(Authorization, x_supabase_auth_user_id)
    return {"files": get_repository_files(repository_name, user_id)}


# -------------------
# Chat history
# -------------------

@app.get("/api/v1/chat-history")
async def list_chat_sessions_endpoint(
    search: str = "",
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        return {"sessions": store.list_sessions(search)}
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/chat-history")
async def create_chat_session_endpoint(
    request: ChatSessionRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        return store.create_session(request.title)
    except Exception as e:
        raise to_http_exception(e)


@app.patch("/api/v1/chat-history/{session_id}")
async def rename_chat_session_endpoint(
    session_id: str,
    request: ChatSessionRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        return store.rename_session(session_id, request.title)
    except Exception as e:
        raise to_http_exception(e)


@app.delete("/api/v1/chat-history/{session_id}")
async def delete_chat_session_endpoint(
    session_id: str,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        store.delete_session(session_id)
        return {"success": True}
    except Exception as e:
        raise to_http_exception(e)


@app.get("/api/v1/chat-history/{session_id}/messages")
async def get_chat_messages_endpoint(
    session_id: str,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        return {"messages": store.get_messages(session_id)}
    except Exception as e:
        raise to_http_exception(e)


@app.post("/api/v1/chat-history/{session_id}/messages")
async def add_chat_message_endpoint(
    session_id: str,
    request: ChatMessageRequest,
    Authorization: Optional[str] = Header(None),
    x_supabase_auth_user_id: Optional[str] = Header(None),
):
    try:
        store = get_chat_history_store(resolve_user_id(Authorization, x_supabase_auth_user_id))
        return store.add_message(session_id, request.role, request.content, request.metadata)
    except Exception as e:
        raise to_http_exception(e)
