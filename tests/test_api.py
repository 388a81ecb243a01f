"""Tests for the HTTP endpoints."""

import base64
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from AI_App_Builder import main_fastapi
from AI_App_Builder.github import GitHubAuthError
from AI_App_Builder.main_fastapi import app, extract_user_id_from_token


@pytest.fixture
def client():
    return TestClient(app)


def bearer(sub):
    payload = base64.urlsafe_b64encode(json.dumps({"sub": sub}).encode()).decode().rstrip("=")
    return {"Authorization": f"Bearer header.{payload}.signature"}


class TestBasics:

    def test_root_and_health(self, client):
        assert client.get("/").json()["message"] == "AI App Builder API"
        assert client.get("/api/v1/health").json() == {"status": "healthy"}

    def test_user_id_from_token(self):
        token = bearer("user-1")["Authorization"].split(" ", 1)[1]
        assert extract_user_id_from_token(token) == "user-1"
        assert extract_user_id_from_token("not-a-jwt") is None

    def test_get_env_allowlist(self, client):
        assert client.post("/api/v1/get-env", json={"key": "GITHUB_CLIENT_ID"}).status_code == 200
        assert client.post("/api/v1/get-env", json={"key": "OPENAI_API_KEY"}).status_code == 403


class TestChat:

    def test_chat(self, client):
        with patch.object(main_fastapi, "chat_reply", AsyncMock(return_value="Hello!")):
            response = client.post("/api/v1/chat", json={"message": "hi", "project_id": "p1"})
        assert response.json() == {"response": "Hello!", "project_id": "p1", "code_generation_request": False}

    def test_chat_flags_code_generation_requests(self, client):
        with patch.object(main_fastapi, "chat_reply", AsyncMock(return_value="Sure")):
            response = client.post("/api/v1/chat", json={"message": "Build me a login form"})
        assert response.json()["code_generation_request"] is True

    def test_chat_errors_map_to_status(self, client):
        with patch.object(main_fastapi, "chat_reply", AsyncMock(side_effect=ValueError("Message is required"))):
            assert client.post("/api/v1/chat", json={"message": ""}).status_code == 400
        with patch.object(main_fastapi, "chat_reply", AsyncMock(side_effect=RuntimeError("down"))):
            assert client.post("/api/v1/chat", json={"message": "hi"}).status_code == 503


class TestOrchestration:

    def test_initialize_then_execute_with_state(self, client, sample_plan):
        orchestrator = main_fastapi.AgentOrchestrator(planner=MagicMock(), step_agents={
            "ui": MagicMock(execute_step=AsyncMock(return_value={"step_completed": True, "context_update": {}})),
            "api": MagicMock(),
        })
        orchestrator.planner.create_execution_plan = AsyncMock(return_value=sample_plan)
        with patch.object(main_fastapi, "AgentOrchestrator", return_value=orchestrator):
            created = client.post("/api/v1/agent-orchestration",
                                  json={"action": "initialize", "specification": "todo app"}).json()
            assert created["total_steps"] == 2
            stepped = client.post("/api/v1/agent-orchestration",
                                  json={"action": "execute-step", "state": created["state"]}).json()
        assert stepped["state"]["current_step"] == 1
        assert stepped["progress"] == {"current": 2, "total": 2, "percentage": 100}

    def test_invalid_action(self, client):
        response = client.post("/api/v1/agent-orchestration", json={"action": "explode"})
        assert response.status_code == 400

    def test_execute_requires_state(self, client):
        response = client.post("/api/v1/agent-orchestration", json={"action": "execute-step"})
        assert response.status_code == 400

    @pytest.mark.parametrize("state", [{"current_step": None}, {"pipeline": None}])
    def test_malformed_state_is_rejected(self, client, state):
        response = client.post("/api/v1/agent-orchestration", json={"action": "get-state", "state": state})
        assert response.status_code == 400
        assert "Invalid orchestration state" in response.json()["detail"]

    def test_unknown_project_next_step(self, client):
        response = client.post("/api/v1/projects/missing/next-step", json={})
        assert response.status_code == 404


class TestApps:

    def test_generate_app_passes_user(self, client):
        generate = AsyncMock(return_value={"project_id": "p1"})
        with patch.object(main_fastapi.ai_service, "generate_app", generate):
            response = client.post("/api/v1/generate-app", json={"prompt": "todo"}, headers=bearer("user-7"))
        assert response.json() == {"project_id": "p1"}
        assert generate.await_args.kwargs["user_id"] == "user-7"

    def test_modify_missing_project(self, client):
        with patch.object(main_fastapi.ai_service, "modify_app", AsyncMock(side_effect=LookupError("Project not found"))):
            response = client.post("/api/v1/modify-app", json={"prompt": "x", "project_id": "p"})
        assert response.status_code == 404

    def test_restore_version(self, client):
        restored = {"success": True, "message": "Successfully restored to version 1", "version": 3}
        with patch.object(main_fastapi.ai_service, "restore_version", AsyncMock(return_value=restored)):
            assert client.post("/api/v1/restore-version", json={"project_id": "v1"}).json() == restored


class TestDesignCode:

    def test_find_requires_prompt(self, client):
        assert client.post("/api/v1/design-code", json={"action": "find"}).status_code == 400

    def test_generate(self, client):
        result = {"success": True, "prompt": "a card"}
        with patch.object(main_fastapi.ui_code_generator, "generate_code", AsyncMock(return_value=result)):
            response = client.post("/api/v1/design-code", json={"action": "generate", "prompt": "a card"})
        assert response.json() == result

    def test_unknown_action(self, client):
        assert client.post("/api/v1/design-code", json={"action": "paint"}).status_code == 400

    def test_history(self, client):
        history = [{"prompt": "a card", "success": True}]
        with patch.object(main_fastapi.ui_code_generator, "get_history", return_value=history):
            assert client.get("/api/v1/design-code/history").json() == {"history": history}


class TestAnalyzeCode:

    def test_analyze(self, client):
        analysis = {"success": True, "feedback": "Good", "suggestions": []}
        analyze = AsyncMock(return_value=analysis)
        with patch.object(main_fastapi.ai_service, "analyze_code", analyze):
            response = client.post("/api/v1/analyze-code", json={
                "project_id": "p1", "files": [{"path": "a.js", "content": "x"}]
            })
        assert response.json() == analysis
        assert analyze.await_args.args == ("p1", [{"path": "a.js", "content": "x"}], None)

    def test_no_files(self, client):
        response = client.post("/api/v1/analyze-code", json={"project_id": "p1", "files": []})
        assert response.status_code == 400


class TestGuide:

    def test_guide_flow(self, client, sample_project):
        started = client.post("/api/v1/guide/start", json={"project": sample_project}).json()
        assert started["current_step"]["id"] == "c1-step-1"

        reply = client.post("/api/v1/guide/message",
                            json={"state": started["state"], "message": "I've completed it"}).json()
        assert "Follow API" in reply["reply"]

        done = client.post("/api/v1/guide/complete-step",
                           json={"state": reply["state"], "step_id": "c1-step-1"}).json()
        assert done["next_step"]["id"] == "c1-step-2"

    def test_guide_bad_state(self, client):
        response = client.post("/api/v1/guide/message", json={"state": {}, "message": "hi"})
        assert response.status_code == 400

    def test_guide_challenge_index_out_of_range(self, client, sample_project):
        state = client.post("/api/v1/guide/start", json={"project": sample_project}).json()["state"]
        state["current_challenge_index"] = 5
        response = client.post("/api/v1/guide/message", json={"state": state, "message": "hi"})
        assert response.status_code == 400
        assert "current_challenge_index" in response.json()["detail"]


class TestGuideGeneration:

    def test_learning_path(self, client):
        path = {"learning_path": [{"name": "Routing", "challenges": []}]}
        create = AsyncMock(return_value=path)
        with patch.object(main_fastapi.learning_planner, "create_learning_path", create):
            response = client.post("/api/v1/guide/learning-path", json={"specification": "a blog"})
        assert response.json() == path
        create.assert_awaited_once_with("a blog", "My Project")

    def test_learning_path_requires_specification(self, client):
        assert client.post("/api/v1/guide/learning-path", json={"specification": " "}).status_code == 400

    def test_generate_guidance(self, client):
        generate = AsyncMock(return_value={"guidance": "Start with App.js"})
        with patch.object(main_fastapi.ai_service, "generate_guidance", generate):
            response = client.post("/api/v1/guide/generate-guidance", json={
                "guidance_type": "first-step",
                "project_data": {"project_name": "Todo"},
                "code_samples": [{"path": "src/App.js", "snippet": "App"}],
            })
        assert response.json() == {"guidance": "Start with App.js"}
        assert generate.await_args.args == ("first-step", {"project_name": "Todo"}, [{"path": "src/App.js", "snippet": "App"}])

    def test_unknown_guidance_type(self, client):
        response = client.post("/api/v1/guide/generate-guidance",
                               json={"guidance_type": "whatever", "project_data": {}})
        assert response.status_code == 400


class TestGitHub:

    def test_authorize_url(self, client):
        body = client.get("/api/v1/github/authorize-url", params={"redirect_uri": "http://x/cb"}).json()
        assert body["state"] in body["url"]

    def test_link_requires_user(self, client):
        assert client.post("/api/v1/github/link", json={"code": "c"}).status_code == 401

    def test_link_auth_error(self, client):
        with patch.object(main_fastapi, "link_github_account", AsyncMock(side_effect=GitHubAuthError("bad code"))):
            response = client.post("/api/v1/github/link", json={"code": "c"}, headers=bearer("u1"))
        assert response.status_code == 502

    def test_repos_not_connected(self, client):
        with patch.object(main_fastapi, "list_repositories", AsyncMock(side_effect=ValueError("GitHub not connected"))):
            response = client.get("/api/v1/github/repos", headers={"x-supabase-auth-user-id": "u1"})
        assert response.status_code == 400

    def test_fetch_repo(self, client):
        imported = {"success": True, "repository": "octocat/hello", "files": ["a.js"]}
        fetch = AsyncMock(return_value=imported)
        with patch.object(main_fastapi, "fetch_repository", fetch):
            response = client.post("/api/v1/github/fetch-repo",
                                   json={"repo_url": "https://github.com/octocat/hello", "session_id": "s1"},
                                   headers=bearer("u1"))
        assert response.json() == imported
        fetch.assert_awaited_once_with("https://github.com/octocat/hello", "u1", "s1")

    def test_fetch_repo_bad_url(self, client):
        response = client.post("/api/v1/github/fetch-repo", json={"repo_url": "https://example.com/x"})
        assert response.status_code == 400

    def test_repository_files(self, client):
        with patch.object(main_fastapi, "save_repository_file", side_effect=[1, 2]) as save:
            response = client.post("/api/v1/github/repository-files", json={
                "repository_name": "octocat/hello",
                "files": [{"path": "a.js", "content": "a"}, {"path": "b.js", "content": "b"}],
            })
        assert response.json()["files"] == [{"id": 1, "path": "a.js"}, {"id": 2, "path": "b.js"}]
        assert save.call_args_list[0].args == ("octocat/hello", "a.js", "a", None, None)

        with patch.object(main_fastapi, "get_repository_files", return_value=[]) as get_files:
            assert client.get("/api/v1/github/repository-files/octocat/hello").json() == {"files": []}
        get_files.assert_called_once_with("octocat/hello", None)


class TestChatHistory:

    def test_session_crud(self, client, monkeypatch, tmp_path):
        monkeypatch.setenv("CHAT_HISTORY_PATH", str(tmp_path / "history.json"))
        created = client.post("/api/v1/chat-history", json={"title": "Blog builder"}).json()
        sessions = client.get("/api/v1/chat-history", params={"search": "blog"}).json()["sessions"]
        assert [s["id"] for s in sessions] == [created["id"]]

        renamed = client.patch(f"/api/v1/chat-history/{created['id']}", json={"title": "Blog v2"}).json()
        assert renamed["title"] == "Blog v2"

        client.post(f"/api/v1/chat-history/{created['id']}/messages", json={"role": "user", "content": "hi"})
        messages = client.get(f"/api/v1/chat-history/{created['id']}/messages").json()["messages"]
        assert [m["content"] for m in messages] == ["hi"]

        assert client.delete(f"/api/v1/chat-history/{created['id']}").json() == {"success": True}
        assert client.get(f"/api/v1/chat-history/{created['id']}/messages").status_code == 404

    def test_blank_title(self, client, monkeypatch, tmp_path):
        monkeypatch.setenv("CHAT_HISTORY_PATH", str(tmp_path / "history.json"))
        assert client.post("/api/v1/chat-history", json={"title": " "}).status_code == 400


class TestProjectRoutes:

    def test_versions(self, client):
        versions = [{"id": "p1", "version": 1, "modification_prompt": None, "created_at": None}]
        with patch.object(main_fastapi.ai_service, "list_versions", return_value=versions):
            assert client.get("/api/v1/projects/p1/versions").json() == {"versions": versions}

    def test_unknown_context(self, client):
        assert client.get("/api/v1/projects/nope/context").status_code == 404
