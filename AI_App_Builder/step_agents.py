"""
Step agents for guided project building
A planner breaks a specification into a pipeline, and one agent per
pipeline step type reviews the user's code for that step
"""

from .models import planner_agent, step_agents as step_agent_definitions
from .functions import (
    run_agent_with_token_limit, extract_text_from_result_object,
    extract_json_from_text
)
from .prompts import build_execution_plan_input, build_learning_path_input, build_step_input


class BaseStepAgent:
    """Wraps an agents.Agent with a mock mode for offline use and tests"""

    def __init__(self, agent):
        self.agent = agent
        self.mock_enabled = False
        self.mock_responses = {
            "default": "This is a mock response from the AI model."
        }

    def enable_mock_mode(self, enabled=True):
        self.mock_enabled = enabled

    def set_mock_responses(self, responses):
        self.mock_responses = {**self.mock_responses, **responses}

    def get_mock_response(self, prompt):
        lowered = prompt.lower()
        for key, value in self.mock_responses.items():
            if key.lower() in lowered:
                return value
        return self.mock_responses["default"]

    async def generate_response(self, prompt):
        if self.mock_enabled:
            print(f"🧪 Using mock response for prompt: {prompt[:50]}...")
            return self.get_mock_response(prompt)

        try:
            result = await run_agent_with_token_limit(self.agent, prompt)
            return extract_text_from_result_object(result)
        except Exception as e:
            print(f"❌ Error generating response: {e}")
            print("⚠️ Falling back to mock response")
            return self.get_mock_response(prompt)


def _fallback_execution_plan(project_name):
    return {
        "project_name": project_name,
        "description": "Software project",
        "pipeline": [
            {
                "step_number": 1,
                "name": "UI Planning",
                "agent": "ui",
                "description": "Create user interface components",
                "deliverables": ["Component structure", "Basic styling"],
                "dependencies": [],
                "estimated_time": "30-45 minutes",
                "user_guidance": "Start by creating the main layout and navigation"
            }
        ],
        "context": {
            "project_type": "web_app",
            "tech_stack": {"frontend": ["React"], "backend": ["Node.js"], "database": ["MongoDB"]},
            "features": ["Basic functionality"],
            "complexity": "medium"
        }
    }


def _fallback_learning_path(project_name):
    return {
        "project_name": project_name,
        "description": "A step-by-step learning project",
        "learning_path": [
            {
                "module_number": 1,
                "name": "Understanding the Core Concepts",
                "type": "fundamentals",
                "description": "Learn the foundational concepts needed for this project",
                "learning_objectives": [
                    "Understand the project architecture",
                    "Learn about key technologies",
                    "Setup the development environment"
                ],
                "prerequisites": [],
                "estimated_time": "30-45 minutes",
                "challenges": [
                    {
                        "title": "Setup Your Project Structure",
                        "description": "Create the initial project structure with the necessary files and folders",
                        "partial_code": "// Here's the start of your project structure\n// TODO: Complete the folder structure based on the requirements",
                        "hints": [
                            "Consider what components you'll need",
                            "Think about how to organize related files together"
                        ],
                        "self_check": [
                            "Can you explain why this structure makes sense for the project?",
                            "Did you include all necessary config files?"
                        ]
                    }
                ]
            },
            {
                "module_number": 2,
                "name": "Building the User Interface",
                "type": "ui",
                "description": "Create the UI components for the project",
                "learning_objectives": [
                    "Design responsive layouts",
                    "Implement component structure",
                    "Apply appropriate styling"
                ],
                "prerequisites": ["Understanding the Core Concepts"],
                "estimated_time": "60 minutes",
                "challenges": [
                    {
                        "title": "Create the Main Layout Component",
                        "description": "Implement the main layout structure that will contain all other components",
                        "partial_code": (
                            "import React from 'react';\n\n"
                            "function MainLayout({ children }) {\n"
                            "  // TODO: Implement the layout structure\n"
                            "  // Include header, main content area, and footer\n"
                            "  return (\n    <div>\n      {/* Your implementation here */}\n    </div>\n  );\n}\n\n"
                            "export default MainLayout;"
                        ),
                        "hints": [
                            "Use semantic HTML elements for better accessibility",
                            "Consider how the layout should adapt to different screen sizes"
                        ],
                        "self_check": [
                            "Is your layout responsive?",
                            "Did you use appropriate semantic elements?"
                        ]
                    }
                ]
            }
        ],
        "context": {
            "project_type": "web_app",
            "tech_stack": {
                "frontend": ["React", "TypeScript", "TailwindCSS"],
                "backend": ["Node.js", "Express"],
                "database": ["MongoDB"],
                "auth": ["JWT"]
            },
            "concepts": ["Component architecture", "State management", "API integration", "Responsive design"],
            "difficulty": "intermediate"
        }
    }


class PlannerAgent(BaseStepAgent):

    def __init__(self, agent=planner_agent):
        super().__init__(agent)

    async def create_execution_plan(self, specification, project_name):
        """Ask the planner for a step pipeline.

        Returns {project_name, description, pipeline, context}. Falls back to a
        single UI step when the model output has no usable pipeline.
        """
        response = await self.generate_response(build_execution_plan_input(specification, project_name))
        try:
            plan = extract_json_from_text(response)
        except ValueError:
            print("⚠️ Planner response was not JSON, using fallback plan")
            return _fallback_execution_plan(project_name)

        pipeline = plan.get("pipeline")
        if not isinstance(pipeline, list) or not pipeline:
            print("⚠️ Planner returned an empty pipeline, using fallback plan")
            return _fallback_execution_plan(project_name)

        steps = []
        for index, step in enumerate(pipeline, 1):
            if not isinstance(step, dict):
                continue
            step = dict(step)
            step["agent"] = str(step.get("agent", "ui")).strip().lower()
            step.setdefault("step_number", index)
            steps.append(step)
        if not steps:
            return _fallback_execution_plan(project_name)

        plan["pipeline"] = steps
        plan.setdefault("project_name", project_name)
        if not isinstance(plan.get("context"), dict):
            plan["context"] = {}
        return plan

    async def create_learning_path(self, specification, project_name):
        response = await self.generate_response(build_learning_path_input(specification, project_name))
        try:
            path = extract_json_from_text(response)
        except ValueError:
            print("⚠️ Planner response was not JSON, using fallback learning path")
            return _fallback_learning_path(project_name)

        modules = path.get("learning_path")
        if isinstance(modules, list):
            for module in modules:
                if not isinstance(module, dict):
                    continue
                name = str(module.get("name") or "Module")
                if not module.get("challenges"):
                    module["challenges"] = [{
                        "title": f"Implement {name}",
                        "description": f"Create the core functionality for the {name.lower()} module",
                        "partial_code": "// TODO: Implement the core functionality",
                        "hints": [
                            "Break down the problem into smaller steps",
                            "Start with the UI layout before adding functionality"
                        ],
                        "self_check": [
                            "Does your implementation handle edge cases?",
                            "Can you explain how each part works?"
                        ]
                    }]
                for challenge in module["challenges"]:
                    if isinstance(challenge, dict) and not challenge.get("partial_code"):
                        challenge["partial_code"] = (
                            f"// This is a partial implementation for: {challenge.get('title', name)}\n"
                            "// TODO: Complete this implementation"
                        )
        return path


class StepAgent(BaseStepAgent):
    """Shared execute_step for the pipeline step agents"""

    agent_type = None
    fallback = {}

    def __init__(self, agent=None):
        super().__init__(agent or step_agent_definitions[self.agent_type])

    def extra_context(self, context):
        return {}

    async def execute_step(self, step_info, context, memory, user_code="", user_message=""):
        recent_activity = [entry.get("type", "") for entry in (memory or [])[-3:]]
        prompt = build_step_input(
            step_info, context, user_code, user_message,
            extra_context=self.extra_context(context),
            recent_activity=recent_activity
        )
        response = await self.generate_response(prompt)
        try:
            result = extract_json_from_text(response)
        except ValueError:
            print(f"⚠️ Could not parse {self.agent_type} agent response")
            return self.fallback_result()

        if not isinstance(result.get("context_update"), dict):
            result["context_update"] = {}
        result["step_completed"] = bool(result.get("step_completed", False))
        return result

    def fallback_result(self):
        return {
            "analysis": self.fallback["analysis"],
            "guidance": self.fallback["guidance"],
            "next_steps": list(self.fallback["next_steps"]),
            "step_completed": False,
            "context_update": {}
        }


class UIAgent(StepAgent):
    agent_type = "ui"
    fallback = {
        "analysis": "Analyzing your UI implementation...",
        "guidance": "Continue building your user interface components.",
        "next_steps": ["Add more components", "Improve styling"],
    }


class APIAgent(StepAgent):
    agent_type = "api"
    fallback = {
        "analysis": "Analyzing your API implementation...",
        "guidance": "Continue building your backend routes and endpoints.",
        "next_steps": ["Add more endpoints", "Implement error handling"],
    }

    def extra_context(self, context):
        return {"Previous UI Implementation": context.get("ui_components", [])}


class DatabaseAgent(StepAgent):
    agent_type = "database"
    fallback = {
        "analysis": "Analyzing your database implementation...",
        "guidance": "Continue building your database schema and connections.",
        "next_steps": ["Add more tables", "Set up relationships"],
    }

    def extra_context(self, context):
        return {"API Endpoints": context.get("api_endpoints", [])}


class AuthAgent(StepAgent):
    agent_type = "auth"
    fallback = {
        "analysis": "Analyzing your authentication implementation...",
        "guidance": "Continue building your authentication system.",
        "next_steps": ["Add login functionality", "Implement protection"],
    }


class IntegrationAgent(StepAgent):
    agent_type = "integration"
    fallback = {
        "analysis": "Analyzing your frontend-backend integration...",
        "guidance": "Continue connecting your frontend to your API.",
        "next_steps": ["Wire up API calls", "Handle loading and error states"],
    }


class DeploymentAgent(StepAgent):
    agent_type = "deployment"
    fallback = {
        "analysis": "Analyzing your deployment setup...",
        "guidance": "Continue preparing your project for production.",
        "next_steps": ["Configure environment variables", "Set up the build process"],
    }


STEP_AGENT_CLASSES = {
    "ui": UIAgent,
    "api": APIAgent,
    "database": DatabaseAgent,
    "auth": AuthAgent,
    "integration": IntegrationAgent,
    "deployment": DeploymentAgent,
}
