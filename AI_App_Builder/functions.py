"""
Functions module for the AI App Builder
Contains the LLM plumbing and response parsing helpers shared by the services
"""

import json
import re
from agents import Runner
from .models import (
    TokenManager, OPENAI_API_KEY,
    summarizer_agent
)
from .prompts import build_summary_input

# Global instances
token_manager = TokenManager()

TEMPORARY_ERROR_MARKERS = ("429", "timeout", "non-2xx", "quota exceeds", "unavailable")

# -------------------
# Utility Functions
# -------------------

def extract_text_from_event(event):
    """Extract clean text content from streaming events"""
    try:
        if hasattr(event, "data") and hasattr(event.data, "delta"):
            delta = event.data.delta
            if isinstance(delta, str):
                return delta
    except Exception:
        pass

    if isinstance(event, dict):
        if "delta" in event and isinstance(event["delta"], str):
            return event["delta"]
        if "text" in event and isinstance(event["text"], str):
            return event["text"]

    if isinstance(event, str):
        return event

    for attr in ("delta", "text", "content"):
        if hasattr(event, attr):
            val = getattr(event, attr)
            if isinstance(val, str):
                return val

    return ""


def extract_text_from_result_object(result_obj):
    """Extract text from result objects"""
    if result_obj is None:
        return ""
    if hasattr(result_obj, "final_output"):
        return result_obj.final_output
    if hasattr(result_obj, "output"):
        return result_obj.output
    return str(result_obj)


def extract_partial_json(text):
    """Close unbalanced braces/brackets and try again"""
    try:
        return json.loads(text), True
    except json.JSONDecodeError:
        text = text.strip()
        if text.endswith(','):
            text = text[:-1]

        open_braces = text.count('{') - text.count('}')
        open_brackets = text.count('[') - text.count(']')

        text += ']' * max(open_brackets, 0)
        text += '}' * max(open_braces, 0)

        try:
            return json.loads(text), False
        except json.JSONDecodeError:
            return None, False


def clean_ai_output(output):
    """Clean AI output by removing markdown formatting"""
    cleaned = output.strip()
    if cleaned.startswith("json\n"):
        cleaned = cleaned.replace("json\n", "", 1).strip()
    elif cleaned.startswith("```json"):
        cleaned = cleaned.replace("```json", "").replace("```", "").strip()
    elif cleaned.startswith("```"):
        cleaned = cleaned.replace("```", "").strip()
    return cleaned


def extract_json_from_text(text):
    """Best-effort extraction of a JSON object from noisy LLM output.
    Returns: Parsed JSON dict
    Raises: ValueError if JSON cannot be parsed after all attempts
    """
    if not isinstance(text, str):
        text = str(text) if text is not None else ""

    stripped = text.strip()
    if stripped.startswith("```json"):
        stripped = stripped[len("```json"):]
    elif stripped.startswith("json"):
        stripped = stripped[len("json"):]
    if stripped.startswith("```"):
        stripped = stripped[len("```"):]
    if stripped.endswith("```"):
        stripped = stripped[:-3]

    start = stripped.find('{')
    end = stripped.rfind('}')

    if start != -1 and end != -1 and end > start:
        candidate = stripped[start:end + 1]
    elif start != -1:
        # truncated object, no closing brace at all
        candidate = stripped[start:]
    else:
        candidate = stripped

    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError as e:
        print(f"❌ Failed to parse JSON (first attempt): {e}")

    try:
        parsed = json.loads(clean_ai_output(stripped))
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError as e:
        print(f"❌ Failed to parse JSON (cleaned attempt): {e}")

    if start != -1:
        partial, _ = extract_partial_json(stripped[start:])
        if isinstance(partial, dict):
            return partial

    error_msg = f"All JSON parsing attempts failed. Original text preview: {text[:200]}..."
    print(f"❌ {error_msg}")
    raise ValueError(error_msg)


CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+-]*)[ \t]*\n?([\s\S]*?)```")


def extract_code_blocks(text, languages=None):
    """Return [(language, code, end_offset)] for fenced blocks in text.

    When languages is given, only blocks tagged with one of them are kept.
    """
    blocks = []
    for match in CODE_BLOCK_PATTERN.finditer(text or ""):
        language = match.group(1).lower()
        if languages is not None and language not in languages:
            continue
        code = match.group(2).strip()
        if code:
            blocks.append((language, code, match.end()))
    return blocks


def is_temporary_error(error):
    message = str(error).lower()
    return any(marker in message for marker in TEMPORARY_ERROR_MARKERS)


def flatten_file_structure(structure, base_path=""):
    """Turn {"src": {"App.js": "..."}} into [{"path": "src/App.js", "content": "..."}]"""
    files = []
    if not isinstance(structure, dict):
        return files
    for key, value in structure.items():
        current_path = f"{base_path}/{key}" if base_path else key
        if isinstance(value, dict):
            files.extend(flatten_file_structure(value, current_path))
        elif isinstance(value, str):
            files.append({"path": current_path, "content": value})
    return files


def ensure_package_json(files, project_name):
    """Append a default React package.json unless one was generated"""
    if any(f.get("path") == "package.json" for f in files):
        return files
    print("📦 Generating package.json")
    package = {
        "name": project_name or "generated-app",
        "version": "0.1.0",
        "private": True,
        "dependencies": {
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "react-scripts": "5.0.1"
        },
        "scripts": {
            "start": "react-scripts start",
            "build": "react-scripts build",
            "test": "react-scripts test",
            "eject": "react-scripts eject"
        },
        "eslintConfig": {"extends": ["react-app"]},
        "browserslist": {
            "production": [">0.2%", "not dead", "not op_mini all"],
            "development": [
                "last 1 chrome version",
                "last 1 firefox version",
                "last 1 safari version"
            ]
        }
    }
    return files + [{"path": "package.json", "content": json.dumps(package, indent=2)}]


# -------------------
# Agent runners
# -------------------

class ResultWrapper:
    def __init__(self, raw, text):
        self.raw = raw
        self.final_output = text


async def run_agent_with_token_limit(agent, input_data, estimated_response_tokens=1000):
    """Stream an agent run, returning the assembled text as final_output"""
    print(f"🚀 Running {agent.name} agent...")
    await token_manager.check_and_wait(token_manager.count_tokens(input_data) + estimated_response_tokens)
    try:
        stream_result = Runner.run_streamed(agent, input=input_data)
        full_output = ""
        if hasattr(stream_result, "stream_events"):
            async for event in stream_result.stream_events():
                if getattr(event, "type", None) != "raw_response_event":
                    continue
                text_piece = extract_text_from_event(event)
                if text_piece:
                    full_output += text_piece

        if not full_output and getattr(stream_result, "final_output", None):
            full_output = str(stream_result.final_output)

        token_manager.add_tokens(token_manager.count_tokens(input_data) + token_manager.count_tokens(full_output))
        print(f"✅ {agent.name} finished ({len(full_output)} chars)")
        return ResultWrapper(stream_result, full_output)
    except Exception as e:
        print(f"\n❌ {agent.name} streaming error: {type(e).__name__}: {str(e)}")
        raise


async def run_agent_with_fallback(agent, input_data, fallback_agent=None):
    """Run agent, retrying once on fallback_agent when the primary provider fails"""
    try:
        return await run_agent_with_token_limit(agent, input_data)
    except Exception as e:
        if fallback_agent is None or not OPENAI_API_KEY:
            raise
        print(f"⚠️ {agent.name} failed ({e}), using {fallback_agent.name}")
        return await run_agent_with_token_limit(fallback_agent, input_data)


async def process_input(prompt, max_tokens=800):
    """Return prompt as-is when within max_tokens, else a model summary of it"""
    current_tokens = token_manager.count_tokens(prompt)
    if current_tokens <= max_tokens:
        return prompt

    if not OPENAI_API_KEY:
        raise RuntimeError("OpenAI API key not configured")

    print(f"✂️ Input exceeds {max_tokens} tokens ({current_tokens}), summarizing...")
    result = await run_agent_with_token_limit(summarizer_agent, build_summary_input(prompt, max_tokens))
    return extract_text_from_result_object(result).strip()
