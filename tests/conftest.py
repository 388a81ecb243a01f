"""Pytest configuration and fixtures."""

import os
import tempfile

# Provider clients are built at import time; give them dummy keys first
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("CLAUDE_API_KEY", "test-claude-key")
os.environ.setdefault("PERPLEXITY_API_KEY", "test-perplexity-key")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-github-client")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-github-secret")
os.environ["CHAT_HISTORY_BACKEND"] = "local"
os.environ["CHAT_HISTORY_PATH"] = os.path.join(tempfile.mkdtemp(), "chat_history.json")

import pytest


@pytest.fixture
def sample_project():
    return {
        "name": "Social Feed",
        "description": "A small social network",
        "stack": "React + Express",
        "challenges": [
            {
                "id": "c1",
                "description": "profile image upload",
                "feature_name": "Profile",
                "difficulty": "intermediate",
                "type": "implementation",
                "files_paths": ["src/components/Profile.tsx", "server/routes/upload.js"],
                "hints": ["Use a FormData object", "Store files with multer"],
            },
            {
                "id": "c2",
                "description": "Follow API",
                "feature_name": "Follow",
                "difficulty": "advanced",
                "type": "bugfix",
                "files_paths": ["server/routes/follow.js"],
                "hints": [],
            },
        ],
    }


@pytest.fixture
def sample_plan():
    return {
        "project_name": "Todo App",
        "description": "Tasks with deadlines",
        "pipeline": [
            {"step_number": 1, "name": "Build the UI", "agent": "ui", "description": "Components",
             "deliverables": ["TodoList component"], "user_guidance": "Start with the list"},
            {"step_number": 2, "name": "Build the API", "agent": "api", "description": "Routes",
             "deliverables": ["CRUD routes"]},
        ],
        "context": {"features": ["todos"], "tech_stack": {"frontend": ["React"]}},
    }
