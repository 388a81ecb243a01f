"""
Agent orchestration
Walks a planner-generated pipeline one step at a time, handing each step to
the matching step agent and carrying context and memory between steps
"""

import copy
import math
import uuid
from datetime import datetime

from .models import MAX_TRACKED_PROJECTS
from .step_agents import PlannerAgent, STEP_AGENT_CLASSES


def calculate_progress(current_step, total_steps):
    """1-based progress, clamped so the last step never reports past 100%"""
    if total_steps <= 0:
        return {"current": 0, "total": 0, "percentage": 0}
    current = min(current_step + 1, total_steps)
    percentage = min(100, math.floor(current * 100 / total_steps + 0.5))
    return {"current": current, "total": total_steps, "percentage": percentage}


class AgentOrchestrator:

    def __init__(self, planner=None, step_agents=None):
        self.planner = planner or PlannerAgent()
        if step_agents is None:
            step_agents = {name: cls() for name, cls in STEP_AGENT_CLASSES.items()}
        self.agents = step_agents
        self.current_step = 0
        self.pipeline = []
        self.context = {}
        self.memory = []

    async def initialize_orchestration(self, specification, project_name):
        print("🎯 Initializing Agent Orchestration...")
        plan = await self.planner.create_execution_plan(specification, project_name)

        self.pipeline = plan.get("pipeline", [])
        self.context = dict(plan.get("context") or {})
        self.context["project_name"] = project_name
        self.current_step = 0
        self.memory = []

        self.add_to_memory("orchestration_initialized", {
            "specification": specification,
            "project_name": project_name,
            "pipeline": self.pipeline,
            "context": self.context
        })

        return {
            "orchestration_plan": plan,
            "current_step": self.get_current_step_info(),
            "total_steps": len(self.pipeline)
        }

    async def execute_next_step(self, user_code="", user_message=""):
        if self.current_step >= len(self.pipeline):
            return {
                "completed": True,
                "message": "🎉 Congratulations! You have completed all steps of your project!",
                "summary": self.generate_project_summary()
            }

        step_info = self.pipeline[self.current_step]
        agent_type = str(step_info.get("agent", "")).lower()
        agent = self.agents.get(agent_type)
        if agent is None:
            raise ValueError(f"Agent type {agent_type} not found")

        print(f"🤖 Executing Step {self.current_step + 1}/{len(self.pipeline)}: {step_info.get('name', '')}")

        step_result = await agent.execute_step(
            step_info, self.context, self.memory, user_code, user_message
        )

        self.context = {**self.context, **(step_result.get("context_update") or {})}
        self.add_to_memory(f"step_{self.current_step}_completed", step_result)

        if step_result.get("step_completed"):
            self.current_step += 1

        return {
            "completed": self.current_step >= len(self.pipeline),
            "step_result": step_result,
            "current_step": self.get_current_step_info(),
            "next_step": self.get_next_step_info(),
            "progress": calculate_progress(self.current_step, len(self.pipeline))
        }

    def get_current_step_info(self):
        return self._step_info(self.current_step)

    def get_next_step_info(self):
        return self._step_info(self.current_step + 1)

    def _step_info(self, index):
        if index >= len(self.pipeline):
            return None
        return {
            **self.pipeline[index],
            "step_number": index + 1,
            "total_steps": len(self.pipeline)
        }

    def add_to_memory(self, entry_type, data):
        self.memory.append({
            "type": entry_type,
            "data": data,
            "timestamp": datetime.now().isoformat(),
            "step": self.current_step
        })

    def generate_project_summary(self):
        return {
            "project_name": self.context.get("project_name"),
            "completed_steps": self.current_step,
            "total_steps": len(self.pipeline),
            "features": self.context.get("features", []),
            "tech_stack": self.context.get("tech_stack", {}),
            "next_recommendations": self.context.get("next_recommendations", [])
        }

    def reset(self):
        self.current_step = 0
        self.pipeline = []
        self.context = {}
        self.memory = []

    def get_state(self):
        return copy.deepcopy({
            "current_step": self.current_step,
            "pipeline": self.pipeline,
            "context": self.context,
            "memory": self.memory
        })

    def restore_state(self, state):
        """Load a snapshot sent back by a client; malformed snapshots raise ValueError"""
        state = copy.deepcopy(state or {})
        if not isinstance(state, dict):
            raise ValueError("Invalid orchestration state")

        pipeline = state.get("pipeline", [])
        if not isinstance(pipeline, list) or not all(isinstance(step, dict) for step in pipeline):
            raise ValueError("Invalid orchestration state: pipeline must be a list of steps")

        current_step = state.get("current_step", 0)
        if isinstance(current_step, bool) or not isinstance(current_step, int):
            raise ValueError("Invalid orchestration state: current_step must be an integer")
        if not 0 <= current_step <= len(pipeline):
            raise ValueError("Invalid orchestration state: current_step out of range")

        context = state.get("context", {})
        memory = state.get("memory", [])
        if not isinstance(context, dict) or not isinstance(memory, list):
            raise ValueError("Invalid orchestration state: bad context or memory")

        self.current_step = current_step
        self.pipeline = pipeline
        self.context = context
        self.memory = memory


class AgentOrchestrationService:
    """Keeps one orchestration state per generated project id"""

    def __init__(self, orchestrator_factory=AgentOrchestrator, max_projects=MAX_TRACKED_PROJECTS):
        self.orchestrator_factory = orchestrator_factory
        self.max_projects = max_projects
        self.project_states = {}

    def _store_state(self, project_id, state):
        self.project_states.pop(project_id, None)
        while len(self.project_states) >= self.max_projects:
            evicted = next(iter(self.project_states))
            del self.project_states[evicted]
            print(f"🧹 Dropped orchestration state for project {evicted}")
        self.project_states[project_id] = state

    async def initialize_project(self, prompt, project_name):
        print(f"🚀 Initializing project with orchestration: {prompt[:50]}...")
        orchestrator = self.orchestrator_factory()
        result = await orchestrator.initialize_orchestration(prompt, project_name)

        project_id = str(uuid.uuid4())
        self._store_state(project_id, orchestrator.get_state())

        return {
            "project_id": project_id,
            "orchestration_plan": result["orchestration_plan"],
            "current_step": result["current_step"],
            "assistant_message": self.create_initial_assistant_message(
                result["orchestration_plan"], result["current_step"]
            )
        }

    async def execute_next_step(self, project_id, user_code="", user_message=""):
        if project_id not in self.project_states:
            raise KeyError(project_id)

        orchestrator = self.orchestrator_factory()
        orchestrator.restore_state(self.project_states[project_id])
        result = await orchestrator.execute_next_step(user_code, user_message)
        self._store_state(project_id, orchestrator.get_state())

        if "step_result" not in result:
            return {
                "assistant_message": result["message"],
                "current_step": None,
                "progress": calculate_progress(orchestrator.current_step, len(orchestrator.pipeline)),
                "completed": True
            }

        return {
            "assistant_message": self.create_step_message(result),
            "current_step": result["current_step"],
            "progress": result["progress"],
            "completed": result["completed"]
        }

    @staticmethod
    def create_initial_assistant_message(plan, current_step):
        pipeline = plan.get("pipeline", [])
        project_name = plan.get("project_name", "Your project")
        if not current_step:
            return f"🎯 **{project_name}** has no steps to work through."

        deliverables = current_step.get("deliverables") or []
        deliverable_lines = "\n".join(f"{i}. {item}" for i, item in enumerate(deliverables, 1)) \
            or "Implementation of the current step's requirements."
        guidance = current_step.get("user_guidance") or \
            "Follow the step-by-step guidance from the specialized AI agents."

        return (
            f"🎯 **{project_name} - Agent Orchestration Initialized**\n\n"
            f"I've broken down your project into {len(pipeline)} manageable steps using specialized AI agents:\n\n"
            f"**Current Step ({current_step['step_number']}/{current_step['total_steps']}):** {current_step.get('name', '')}\n"
            f"**Agent:** {str(current_step.get('agent', '')).upper()} Agent\n"
            f"**Goal:** {current_step.get('description', '')}\n\n"
            f"**What you need to do:**\n{guidance}\n\n"
            f"**Deliverables for this step:**\n{deliverable_lines}\n\n"
            "Let me know when you're ready to proceed with the first step!"
        )

    @staticmethod
    def create_step_message(result):
        step_result = result["step_result"]
        parts = []
        if step_result.get("analysis"):
            parts.append(f"**Analysis:** {step_result['analysis']}")
        if step_result.get("guidance"):
            parts.append(f"**Guidance:** {step_result['guidance']}")
        if step_result.get("code_example"):
            parts.append(f"```\n{step_result['code_example']}\n```")
        next_steps = step_result.get("next_steps") or []
        if next_steps:
            parts.append("**Next steps:**\n" + "\n".join(f"- {item}" for item in next_steps))
        if result["completed"]:
            parts.append("🎉 All steps are complete!")
        elif step_result.get("step_completed") and result["current_step"]:
            parts.append(f"✅ Step complete. Moving on to: **{result['current_step'].get('name', '')}**")
        return "\n\n".join(parts)
