"""
Simple database connection using psycopg2 directly
Stores chat sessions, generated app versions and GitHub connections
"""
import os
import json
import uuid
import psycopg2
import psycopg2.extras
from typing import Optional, Dict, Any, List
from dotenv import load_dotenv, find_dotenv

_ = load_dotenv(find_dotenv())

ANONYMOUS_USER_ID = "00000000-0000-0000-0000-000000000000"


def get_db_connection():
    return psycopg2.connect(
        host=os.getenv('POSTGRES_HOST', 'localhost'),
        port=os.getenv('POSTGRES_PORT', '5432'),
        database=os.getenv('POSTGRES_DB', 'ai_app_builder'),
        user=os.getenv('POSTGRES_USER', 'postgres'),
        password=os.getenv('POSTGRES_PASSWORD', 'password')
    )


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS chat_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    last_message TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS chat_messages (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS chat_messages_session_id_idx ON chat_messages(session_id);

CREATE TABLE IF NOT EXISTS app_projects (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    parent_id TEXT,
    version INTEGER NOT NULL DEFAULT 1,
    app_data JSONB NOT NULL,
    creation_prompt TEXT,
    modification_prompt TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS app_projects_parent_id_idx ON app_projects(parent_id);

CREATE TABLE IF NOT EXISTS github_connections (
    user_id TEXT PRIMARY KEY,
    github_id TEXT NOT NULL,
    github_username TEXT NOT NULL,
    github_name TEXT,
    github_avatar TEXT,
    access_token TEXT NOT NULL,
    connected_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS repository_files (
    id TEXT PRIMARY KEY,
    repository_name TEXT NOT NULL,
    file_path TEXT NOT NULL,
    content TEXT,
    user_id TEXT,
    session_id TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS repository_files_repo_path_idx ON repository_files(repository_name, file_path);
CREATE INDEX IF NOT EXISTS repository_files_session_id_idx ON repository_files(session_id);
"""


def init_schema() -> bool:
    """Create all tables if they do not exist"""
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(SCHEMA_SQL)
        conn.commit()
        print("[DB] Schema ready")
        return True
    except Exception as e:
        print(f"Error creating schema: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


def _to_dict(value):
    """Normalize DB JSON field to Python dict."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            return parsed if isinstance(parsed, dict) else {}
        except json.JSONDecodeError:
            return {}
    return {}


def _iso(value):
    return value.isoformat() if hasattr(value, "isoformat") else value


# -------------------
# Chat sessions
# -------------------

def _session_row(r) -> Dict[str, Any]:
    return {
        'id': r[0],
        'title': r[1],
        'last_message': r[2],
        'timestamp': _iso(r[3]),
    }


def list_chat_sessions(user_id: str, search: str = "") -> List[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT id, title, last_message, updated_at
            FROM chat_sessions
            WHERE user_id = %s AND title ILIKE %s
            ORDER BY updated_at DESC
            """,
            (user_id, f"%{search}%")
        )
        return [_session_row(r) for r in cursor.fetchall()]
    except Exception as e:
        print(f"Error listing chat sessions: {e}")
        return []
    finally:
        if 'conn' in locals():
            conn.close()


def create_chat_session(user_id: str, title: str, session_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO chat_sessions (id, user_id, title, last_message, created_at, updated_at)
            VALUES (%s, %s, %s, '', NOW(), NOW())
            RETURNING id, title, last_message, updated_at
            """,
            (session_id or str(uuid.uuid4()), user_id, title)
        )
        row = cursor.fetchone()
        conn.commit()
        print(f"[DB] Created chat session {row[0]}")
        return _session_row(row)
    except Exception as e:
        if 'conn' in locals():
            conn.rollback()
        print(f"Error creating chat session: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def rename_chat_session(session_id: str, user_id: str, title: str) -> bool:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE chat_sessions SET title = %s, updated_at = NOW() WHERE id = %s AND user_id = %s",
            (title, session_id, user_id)
        )
        updated = cursor.rowcount > 0
        conn.commit()
        return updated
    except Exception as e:
        print(f"Error renaming chat session: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


def delete_chat_session(session_id: str, user_id: str) -> bool:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM chat_sessions WHERE id = %s AND user_id = %s", (session_id, user_id))
        deleted = cursor.rowcount > 0
        conn.commit()
        return deleted
    except Exception as e:
        print(f"Error deleting chat session: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


def add_chat_message(session_id: str, user_id: str, role: str, content: str, metadata: Optional[dict] = None) -> Optional[Dict[str, Any]]:
    """Insert a message and bump the session's last_message"""
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT id FROM chat_sessions WHERE id = %s AND user_id = %s", (session_id, user_id))
        if not cursor.fetchone():
            return None

        message_id = str(uuid.uuid4())
        cursor.execute(
            """
            INSERT INTO chat_messages (id, session_id, role, content, metadata, created_at)
            VALUES (%s, %s, %s, %s, %s, NOW())
            RETURNING created_at
            """,
            (message_id, session_id, role, content, psycopg2.extras.Json(metadata or {}))
        )
        created_at = cursor.fetchone()[0]
        cursor.execute(
            "UPDATE chat_sessions SET last_message = %s, updated_at = NOW() WHERE id = %s AND user_id = %s",
            (content, session_id, user_id)
        )
        conn.commit()
        return {
            'id': message_id,
            'role': role,
            'content': content,
            'timestamp': _iso(created_at),
            'metadata': metadata or {},
        }
    except Exception as e:
        if 'conn' in locals():
            conn.rollback()
        print(f"Error adding chat message: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def get_chat_messages(session_id: str, user_id: str) -> Optional[List[Dict[str, Any]]]:
    """Messages oldest first; None when the session does not exist or belongs to another user"""
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT id FROM chat_sessions WHERE id = %s AND user_id = %s", (session_id, user_id))
        if not cursor.fetchone():
            return None
        cursor.execute(
            """
            SELECT id, role, content, created_at, metadata
            FROM chat_messages WHERE session_id = %s
            ORDER BY created_at ASC
            """,
            (session_id,)
        )
        return [
            {
                'id': r[0],
                'role': r[1],
                'content': r[2],
                'timestamp': _iso(r[3]),
                'metadata': _to_dict(r[4]),
            }
            for r in cursor.fetchall()
        ]
    except Exception as e:
        print(f"Error getting chat messages: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


# -------------------
# App projects (versioned)
# -------------------

def _project_row(r) -> Dict[str, Any]:
    return {
        'id': r[0],
        'user_id': r[1],
        'parent_id': r[2],
        'version': r[3],
        'app_data': _to_dict(r[4]),
        'creation_prompt': r[5],
        'modification_prompt': r[6],
        'created_at': _iso(r[7]),
    }


PROJECT_COLUMNS = "id, user_id, parent_id, version, app_data, creation_prompt, modification_prompt, created_at"


def insert_app_project(project_id: str, user_id: str, version: int, app_data: dict,
                       parent_id: Optional[str] = None, creation_prompt: Optional[str] = None,
                       modification_prompt: Optional[str] = None) -> bool:
    print(f"[DB] Storing app project {project_id} v{version}")
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO app_projects
            (id, user_id, parent_id, version, app_data, creation_prompt, modification_prompt, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, NOW())
            """,
            (
                project_id, user_id or ANONYMOUS_USER_ID, parent_id, version,
                psycopg2.extras.Json(app_data), creation_prompt, modification_prompt
            )
        )
        conn.commit()
        return True
    except Exception as e:
        if 'conn' in locals():
            conn.rollback()
        print(f"Error storing app project: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


def get_app_project(project_id: str) -> Optional[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(f"SELECT {PROJECT_COLUMNS} FROM app_projects WHERE id = %s", (project_id,))
        r = cursor.fetchone()
        return _project_row(r) if r else None
    except Exception as e:
        print(f"Error getting app project: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def get_latest_project_version(root_id: str) -> Optional[Dict[str, Any]]:
    """Highest version among the root row and its children"""
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            f"""
            SELECT {PROJECT_COLUMNS} FROM app_projects
            WHERE id = %s OR parent_id = %s
            ORDER BY version DESC
            LIMIT 1
            """,
            (root_id, root_id)
        )
        r = cursor.fetchone()
        return _project_row(r) if r else None
    except Exception as e:
        print(f"Error getting latest project version: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def list_project_versions(root_id: str) -> List[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            f"""
            SELECT {PROJECT_COLUMNS} FROM app_projects
            WHERE id = %s OR parent_id = %s
            ORDER BY version ASC
            """,
            (root_id, root_id)
        )
        return [_project_row(r) for r in cursor.fetchall()]
    except Exception as e:
        print(f"Error listing project versions: {e}")
        return []
    finally:
        if 'conn' in locals():
            conn.close()


# -------------------
# GitHub connections
# -------------------

def upsert_github_connection(user_id: str, github_id: str, username: str, name: Optional[str],
                             avatar_url: Optional[str], access_token: str) -> bool:
    print(f"[DB] Linking GitHub account {username} to user {user_id}")
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO github_connections
            (user_id, github_id, github_username, github_name, github_avatar, access_token, connected_at)
            VALUES (%s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (user_id) DO UPDATE SET
                github_id = EXCLUDED.github_id,
                github_username = EXCLUDED.github_username,
                github_name = EXCLUDED.github_name,
                github_avatar = EXCLUDED.github_avatar,
                access_token = EXCLUDED.access_token,
                connected_at = NOW()
            """,
            (user_id, str(github_id), username, name, avatar_url, access_token)
        )
        conn.commit()
        return True
    except Exception as e:
        if 'conn' in locals():
            conn.rollback()
        print(f"Error storing GitHub connection: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


def get_github_connection(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT user_id, github_id, github_username, github_name, github_avatar, access_token, connected_at
            FROM github_connections WHERE user_id = %s
            """,
            (user_id,)
        )
        r = cursor.fetchone()
        if not r:
            return None
        return {
            'user_id': r[0],
            'github_id': r[1],
            'github_username': r[2],
            'github_name': r[3],
            'github_avatar': r[4],
            'access_token': r[5],
            'connected_at': _iso(r[6]),
        }
    except Exception as e:
        print(f"Error getting GitHub connection: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def delete_github_connection(user_id: str) -> bool:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM github_connections WHERE user_id = %s", (user_id,))
        deleted = cursor.rowcount > 0
        conn.commit()
        return deleted
    except Exception as e:
        print(f"Error deleting GitHub connection: {e}")
        return False
    finally:
        if 'conn' in locals():
            conn.close()


# -------------------
# Repository files
# -------------------

def save_repository_file(repository_name: str, file_path: str, content: str,
                         user_id: Optional[str] = None, session_id: Optional[str] = None) -> Optional[str]:
    """Insert or update one file of a repository snapshot, returning its id"""
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id FROM repository_files WHERE repository_name = %s AND file_path = %s AND user_id IS NOT DISTINCT FROM %s",
            (repository_name, file_path, user_id)
        )
        existing = cursor.fetchone()
        if existing:
            file_id = existing[0]
            cursor.execute(
                "UPDATE repository_files SET content = %s, session_id = %s, updated_at = NOW() WHERE id = %s",
                (content, session_id, file_id)
            )
        else:
            file_id = str(uuid.uuid4())
            cursor.execute(
                """
                INSERT INTO repository_files
                (id, repository_name, file_path, content, user_id, session_id, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
                """,
                (file_id, repository_name, file_path, content, user_id, session_id)
            )
        conn.commit()
        return file_id
    except Exception as e:
        if 'conn' in locals():
            conn.rollback()
        print(f"Error saving repository file: {e}")
        return None
    finally:
        if 'conn' in locals():
            conn.close()


def get_repository_files(repository_name: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT id, file_path, content, session_id, updated_at
            FROM repository_files
            WHERE repository_name = %s AND user_id IS NOT DISTINCT FROM %s
            ORDER BY file_path ASC
            """,
            (repository_name, user_id)
        )
        return [
            {
                'id': r[0],
                'path': r[1],
                'content': r[2],
                'session_id': r[3],
                'updated_at': _iso(r[4]),
            }
            for r in cursor.fetchall()
        ]
    except Exception as e:
        print(f"Error getting repository files: {e}")
        return []
    finally:
        if 'conn' in locals():
            conn.close()
