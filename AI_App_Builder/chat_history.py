"""
Chat session persistence
A JSON file store for single-user setups and a PostgreSQL store over
simple_database, both exposing the same operations
"""

import os
import json
import uuid
from datetime import datetime

from . import simple_database as db

SEED_SESSIONS = [
    {
        "id": "seed-1",
        "title": "Chatbot to Generate Full Stack Apps with Anthropic API",
        "last_message": "Last message 15 hours ago",
        "timestamp": "15 hours ago",
    },
    {
        "id": "seed-2",
        "title": "Enhancing AI Responses with Deep Reasoning",
        "last_message": "Last message 16 hours ago",
        "timestamp": "16 hours ago",
    },
    {
        "id": "seed-3",
        "title": "AI-Powered Full Stack App Builder",
        "last_message": "Last message 1 day ago",
        "timestamp": "1 day ago",
    },
]

VALID_ROLES = ("user", "assistant", "system")


def _clean_title(title):
    title = (title or "").strip()
    if not title:
        raise ValueError("Chat title cannot be empty")
    return title


def _check_role(role):
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid message role: {role}")


class LocalChatHistoryStore:
    """Sessions and messages kept in one JSON file"""

    def __init__(self, path):
        self.path = path

    def _load(self):
        if not os.path.exists(self.path):
            return {"sessions": [dict(s) for s in SEED_SESSIONS], "messages": {}}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
                raise ValueError("unexpected chat history layout")
            data.setdefault("messages", {})
            return data
        except (OSError, ValueError) as e:
            print(f"⚠️ Error reading chat history from {self.path}: {e}")
            return {"sessions": [dict(s) for s in SEED_SESSIONS], "messages": {}}

    def _save(self, data):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _find(data, session_id):
        for session in data["sessions"]:
            if session["id"] == session_id:
                return session
        raise LookupError(f"Chat session {session_id} not found")

    def list_sessions(self, search=""):
        query = (search or "").lower()
        return [s for s in self._load()["sessions"] if query in s["title"].lower()]

    def create_session(self, title):
        data = self._load()
        session = {
            "id": str(uuid.uuid4()),
            "title": _clean_title(title),
            "last_message": "",
            "timestamp": datetime.now().isoformat(),
        }
        data["sessions"].insert(0, session)
        self._save(data)
        return session

    def rename_session(self, session_id, title):
        title = _clean_title(title)
        data = self._load()
        session = self._find(data, session_id)
        session["title"] = title
        self._save(data)
        return session

    def delete_session(self, session_id):
        data = self._load()
        self._find(data, session_id)
        data["sessions"] = [s for s in data["sessions"] if s["id"] != session_id]
        data["messages"].pop(session_id, None)
        self._save(data)

    def add_message(self, session_id, role, content, metadata=None):
        _check_role(role)
        data = self._load()
        session = self._find(data, session_id)
        message = {
            "id": str(uuid.uuid4()),
            "role": role,
            "content": content,
            "timestamp": datetime.now().isoformat(),
            "metadata": metadata or {},
        }
        data["messages"].setdefault(session_id, []).append(message)
        session["last_message"] = content
        session["timestamp"] = message["timestamp"]
        self._save(data)
        return message

    def get_messages(self, session_id):
        data = self._load()
        self._find(data, session_id)
        return list(data["messages"].get(session_id, []))


class DatabaseChatHistoryStore:
    """Same operations over PostgreSQL, scoped to one user"""

    def __init__(self, user_id=db.ANONYMOUS_USER_ID):
        self.user_id = user_id

    def list_sessions(self, search=""):
        return db.list_chat_sessions(self.user_id, search or "")

    def create_session(self, title):
        session = db.create_chat_session(self.user_id, _clean_title(title))
        if session is None:
            raise RuntimeError("Failed to create chat session")
        return session

    def rename_session(self, session_id, title):
        title = _clean_title(title)
        if not db.rename_chat_session(session_id, self.user_id, title):
            raise LookupError(f"Chat session {session_id} not found")
        return next((s for s in self.list_sessions() if s["id"] == session_id),
                    {"id": session_id, "title": title})

    def delete_session(self, session_id):
        if not db.delete_chat_session(session_id, self.user_id):
            raise LookupError(f"Chat session {session_id} not found")

    def add_message(self, session_id, role, content, metadata=None):
        _check_role(role)
        message = db.add_chat_message(session_id, self.user_id, role, content, metadata)
        if message is None:
            raise LookupError(f"Chat session {session_id} not found")
        return message

    def get_messages(self, session_id):
        messages = db.get_chat_messages(session_id, self.user_id)
        if messages is None:
            raise LookupError(f"Chat session {session_id} not found")
        return messages


def get_chat_history_store(user_id=None):
    """Store selected by CHAT_HISTORY_BACKEND (local or database)"""
    backend = os.getenv("CHAT_HISTORY_BACKEND", "local").lower()
    if backend == "database":
        return DatabaseChatHistoryStore(user_id or db.ANONYMOUS_USER_ID)
    return LocalChatHistoryStore(os.getenv("CHAT_HISTORY_PATH", "chat_history.json"))
