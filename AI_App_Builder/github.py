"""
GitHub OAuth linking, repository listing and repository import
"""

import os
import json
import base64
import asyncio
import secrets
import urllib.request
import urllib.error
from urllib.parse import urlencode, urlparse, quote
from dotenv import load_dotenv, find_dotenv

from . import simple_database as db

_ = load_dotenv(find_dotenv())
GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET")

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
API_URL = "https://api.github.com"
USER_AGENT = "AI-App-Builder"
MAX_REPOSITORY_FILES = 100
MAX_FILE_SIZE = 1000000
SKIPPED_EXTENSIONS = (".exe", ".bin")


class GitHubAuthError(Exception):
    pass


def generate_oauth_state():
    return secrets.token_urlsafe(16)


def build_authorize_url(client_id, redirect_uri, state, scope="repo user"):
    query = urlencode({
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
    })
    return f"{AUTHORIZE_URL}?{query}"


def _request_json(url, data=None, headers=None, method="GET"):
    body = json.dumps(data).encode("utf-8") if data is not None else None
    request_headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    if body is not None:
        request_headers["Content-Type"] = "application/json"
    request_headers.update(headers or {})
    req = urllib.request.Request(url, data=body, headers=request_headers, method=method)
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        raise GitHubAuthError(f"GitHub API error: {e.code}") from e
    except urllib.error.URLError as e:
        raise GitHubAuthError(f"GitHub request failed: {e.reason}") from e


async def exchange_code_for_token(code):
    if not GITHUB_CLIENT_ID or not GITHUB_CLIENT_SECRET:
        raise GitHubAuthError("GitHub client credentials are not configured")
    token_data = await asyncio.to_thread(
        _request_json, TOKEN_URL,
        {"client_id": GITHUB_CLIENT_ID, "client_secret": GITHUB_CLIENT_SECRET, "code": code},
        None, "POST"
    )
    if token_data.get("error"):
        raise GitHubAuthError(f"Failed to exchange code for token: {token_data['error']}")
    access_token = token_data.get("access_token")
    if not access_token:
        raise GitHubAuthError("Failed to get access token")
    return access_token


async def fetch_github_user(access_token):
    user = await asyncio.to_thread(
        _request_json, f"{API_URL}/user", None, {"Authorization": f"Bearer {access_token}"}
    )
    if not user or not user.get("id"):
        raise GitHubAuthError("Failed to fetch GitHub user data")
    return user


async def link_github_account(user_id, code):
    """Exchange an OAuth code and store the connection for user_id"""
    if not code:
        raise ValueError("GitHub code is required")
    if not user_id:
        raise ValueError("User ID is required")

    access_token = await exchange_code_for_token(code)
    user = await fetch_github_user(access_token)
    stored = db.upsert_github_connection(
        user_id, str(user["id"]), user.get("login"), user.get("name"), user.get("avatar_url"), access_token
    )
    if not stored:
        raise GitHubAuthError("Failed to store GitHub connection")

    print(f"🔗 Linked GitHub user {user.get('login')} to {user_id}")
    return {
        "id": user["id"],
        "username": user.get("login"),
        "name": user.get("name"),
        "avatar_url": user.get("avatar_url"),
    }


async def list_repositories(user_id):
    connection = db.get_github_connection(user_id)
    if not connection:
        raise ValueError("GitHub not connected")

    repos = await asyncio.to_thread(
        _request_json, f"{API_URL}/user/repos?sort=updated&per_page=100", None,
        {"Authorization": f"Bearer {connection['access_token']}", "Accept": "application/vnd.github+json"}
    )
    return [
        {
            "id": repo.get("id"),
            "name": repo.get("full_name"),
            "description": repo.get("description"),
            "url": repo.get("html_url"),
            "private": repo.get("private", False),
            "updated_at": repo.get("updated_at"),
        }
        for repo in repos or []
    ]


def is_github_connected(user_id):
    return db.get_github_connection(user_id) is not None


def disconnect_github(user_id):
    return db.delete_github_connection(user_id)


# -------------------
# Repository import
# -------------------

def parse_repository_url(repo_url):
    """owner, repo from https://github.com/owner/repo[.git]"""
    parsed = urlparse((repo_url or "").strip())
    parts = [part for part in parsed.path.split("/") if part]
    if "github.com" not in parsed.netloc or len(parts) < 2:
        raise ValueError("Invalid GitHub repository URL format")
    repo = parts[1][:-4] if parts[1].endswith(".git") else parts[1]
    return parts[0], repo


def _decode_content(file_data):
    content = file_data.get("content")
    if content is None:
        return None
    if file_data.get("encoding") == "base64":
        return base64.b64decode(content).decode("utf-8", errors="replace")
    return content


def _contents_url(owner, repo, path=""):
    url = f"{API_URL}/repos/{owner}/{repo}/contents"
    return f"{url}/{quote(path)}" if path else url


def _collect_repository_files(owner, repo, headers, path="", files=None):
    """Depth-first walk of the contents API, stopping at MAX_REPOSITORY_FILES"""
    if files is None:
        files = []
    items = _request_json(_contents_url(owner, repo, path), None, headers)
    if isinstance(items, dict):
        items = [items]

    for item in items:
        if len(files) >= MAX_REPOSITORY_FILES:
            break
        item_path = item.get("path") or item.get("name", "")
        if item.get("type") == "dir":
            try:
                _collect_repository_files(owner, repo, headers, item_path, files)
            except GitHubAuthError as e:
                print(f"⚠️ Failed to fetch content at path {item_path}: {e}")
        elif item.get("type") == "file":
            if item.get("size", 0) >= MAX_FILE_SIZE or item_path.endswith(SKIPPED_EXTENSIONS):
                print(f"⏭️ Skipping large or binary file: {item_path}")
                files.append({"path": item_path, "content": None, "skipped": True})
                continue
            try:
                file_data = _request_json(_contents_url(owner, repo, item_path), None, headers)
            except GitHubAuthError as e:
                print(f"⚠️ Failed to fetch file content at path {item_path}: {e}")
                continue
            files.append({"path": file_data.get("path", item_path), "content": _decode_content(file_data)})
    return files


async def fetch_repository(repo_url, user_id=None, session_id=None):
    """Import up to MAX_REPOSITORY_FILES files of a repository into repository_files.

    A linked GitHub account's token is used when user_id has one, so private
    repositories of that account can be read.
    """
    if not repo_url:
        raise ValueError("No repository URL provided")
    owner, repo = parse_repository_url(repo_url)
    repository_name = f"{owner}/{repo}"

    headers = {"Accept": "application/vnd.github.v3+json"}
    connection = db.get_github_connection(user_id) if user_id else None
    if connection:
        headers["Authorization"] = f"Bearer {connection['access_token']}"

    print(f"📦 Fetching repository: {repository_name}")
    files = await asyncio.to_thread(_collect_repository_files, owner, repo, headers)

    stored, failed = [], []
    for file in files:
        if file.get("skipped"):
            continue
        if db.save_repository_file(repository_name, file["path"], file["content"], user_id, session_id):
            stored.append(file["path"])
        else:
            failed.append({"path": file["path"], "error": "Failed to store file"})

    return {
        "success": True,
        "repository": repository_name,
        "files": stored,
        "failed_files": failed,
        "total_files": len(files),
        "stored_files": len(stored),
        "session_id": session_id,
    }
