"""
AI App Builder Package
Guided, agent-orchestrated app generation with coding challenges
"""

__version__ = "1.0.0"
__author__ = "AI Builder Team"

# Import main components for easy access
from .models import (
    TokenManager, ProjectContextManager,
    chat_agent, planner_agent, app_generator_agent, summarizer_agent
)
from .functions import (
    clean_ai_output, extract_text_from_result_object, extract_json_from_text,
    run_agent_with_token_limit, run_agent_with_fallback
)
from .orchestrator import AgentOrchestrator, AgentOrchestrationService, calculate_progress
from .guide import StructuredAIGuide
from .ui_code_generator import UICodeGenerator
from .app_service import GeminiAIService

__all__ = [
    'TokenManager', 'ProjectContextManager',
    'chat_agent', 'planner_agent', 'app_generator_agent', 'summarizer_agent',
    'clean_ai_output', 'extract_text_from_result_object', 'extract_json_from_text',
    'run_agent_with_token_limit', 'run_agent_with_fallback',
    'AgentOrchestrator', 'AgentOrchestrationService', 'calculate_progress',
    'StructuredAIGuide', 'UICodeGenerator', 'GeminiAIService'
]
