"""Tests for step-by-step agent orchestration."""

import pytest
from unittest.mock import AsyncMock, Mock

from AI_App_Builder.orchestrator import (
    AgentOrchestrator, AgentOrchestrationService, calculate_progress
)


def step_result(completed=True, **extra):
    return {"analysis": "Looks good", "guidance": "Keep going", "next_steps": ["Add tests"],
            "step_completed": completed, "context_update": extra}


def make_orchestrator(plan, results=None):
    planner = Mock()
    planner.create_execution_plan = AsyncMock(return_value=plan)
    agents = {}
    for name in ("ui", "api"):
        agent = Mock()
        agent.execute_step = AsyncMock(return_value=results or step_result())
        agents[name] = agent
    return AgentOrchestrator(planner=planner, step_agents=agents)


class TestProgress:

    def test_progress_values(self):
        assert calculate_progress(0, 3) == {"current": 1, "total": 3, "percentage": 33}
        assert calculate_progress(1, 3) == {"current": 2, "total": 3, "percentage": 67}
        assert calculate_progress(1, 2) == {"current": 2, "total": 2, "percentage": 100}

    def test_progress_is_clamped(self):
        assert calculate_progress(5, 2) == {"current": 2, "total": 2, "percentage": 100}
        assert calculate_progress(0, 0) == {"current": 0, "total": 0, "percentage": 0}


class TestAgentOrchestrator:

    @pytest.mark.asyncio
    async def test_initialize(self, sample_plan):
        orchestrator = make_orchestrator(sample_plan)
        result = await orchestrator.initialize_orchestration("todo app", "My Todos")
        assert result["total_steps"] == 2
        assert result["current_step"]["name"] == "Build the UI"
        assert result["current_step"]["step_number"] == 1
        assert orchestrator.context["project_name"] == "My Todos"
        assert orchestrator.memory[0]["type"] == "orchestration_initialized"

    @pytest.mark.asyncio
    async def test_completed_step_advances(self, sample_plan):
        orchestrator = make_orchestrator(sample_plan, step_result(True, ui_components=["TodoList"]))
        await orchestrator.initialize_orchestration("todo app", "My Todos")
        result = await orchestrator.execute_next_step("code", "done")
        assert orchestrator.current_step == 1
        assert result["current_step"]["name"] == "Build the API"
        assert result["next_step"] is None
        assert result["progress"]["percentage"] == 100
        assert orchestrator.context["ui_components"] == ["TodoList"]
        assert orchestrator.memory[-1]["type"] == "step_0_completed"

    @pytest.mark.asyncio
    async def test_incomplete_step_stays(self, sample_plan):
        orchestrator = make_orchestrator(sample_plan, step_result(False))
        await orchestrator.initialize_orchestration("todo app", "My Todos")
        result = await orchestrator.execute_next_step()
        assert orchestrator.current_step == 0
        assert result["completed"] is False

    @pytest.mark.asyncio
    async def test_finished_pipeline_returns_summary(self, sample_plan):
        orchestrator = make_orchestrator(sample_plan)
        await orchestrator.initialize_orchestration("todo app", "My Todos")
        await orchestrator.execute_next_step()
        await orchestrator.execute_next_step()
        result = await orchestrator.execute_next_step()
        assert result["completed"] is True
        assert result["message"].startswith("🎉 Congratulations!")
        assert result["summary"]["completed_steps"] == 2
        assert result["summary"]["features"] == ["todos"]

    @pytest.mark.asyncio
    async def test_unknown_agent_raises(self, sample_plan):
        sample_plan["pipeline"][0]["agent"] = "blockchain"
        orchestrator = make_orchestrator(sample_plan)
        await orchestrator.initialize_orchestration("todo app", "My Todos")
        with pytest.raises(ValueError):
            await orchestrator.execute_next_step()

    @pytest.mark.asyncio
    async def test_state_round_trip_is_a_copy(self, sample_plan):
        orchestrator = make_orchestrator(sample_plan)
        await orchestrator.initialize_orchestration("todo app", "My Todos")
        state = orchestrator.get_state()
        state["context"]["project_name"] = "changed"
        assert orchestrator.context["project_name"] == "My Todos"

        restored = make_orchestrator(sample_plan)
        restored.restore_state(orchestrator.get_state())
        assert restored.get_current_step_info() == orchestrator.get_current_step_info()

    @pytest.mark.parametrize("state", [
        {"current_step": None},
        {"pipeline": None},
        {"current_step": 3, "pipeline": [{"agent": "ui"}]},
        {"current_step": -1},
        {"pipeline": ["ui"]},
        {"context": []},
    ])
    def test_restore_rejects_malformed_state(self, state):
        orchestrator = make_orchestrator({})
        with pytest.raises(ValueError):
            orchestrator.restore_state(state)
        assert orchestrator.get_state() == {"current_step": 0, "pipeline": [], "context": {}, "memory": []}

    def test_reset(self):
        orchestrator = make_orchestrator({})
        orchestrator.pipeline = [{"agent": "ui"}]
        orchestrator.current_step = 1
        orchestrator.reset()
        assert orchestrator.get_state() == {"current_step": 0, "pipeline": [], "context": {}, "memory": []}


class TestAgentOrchestrationService:

    @pytest.mark.asyncio
    async def test_initialize_and_step(self, sample_plan):
        service = AgentOrchestrationService(lambda: make_orchestrator(sample_plan))
        created = await service.initialize_project("todo app", "My Todos")
        assert created["project_id"] in service.project_states
        assert "Build the UI" in created["assistant_message"]
        assert "1. TodoList component" in created["assistant_message"]

        step = await service.execute_next_step(created["project_id"], "code", "done")
        assert step["completed"] is False
        assert step["current_step"]["name"] == "Build the API"
        assert "**Analysis:** Looks good" in step["assistant_message"]
        assert "Moving on to: **Build the API**" in step["assistant_message"]

    @pytest.mark.asyncio
    async def test_unknown_project(self):
        service = AgentOrchestrationService()
        with pytest.raises(KeyError):
            await service.execute_next_step("missing")

    @pytest.mark.asyncio
    async def test_completion_message(self, sample_plan):
        service = AgentOrchestrationService(lambda: make_orchestrator(sample_plan))
        created = await service.initialize_project("todo app", "My Todos")
        for _ in range(2):
            await service.execute_next_step(created["project_id"])
        done = await service.execute_next_step(created["project_id"])
        assert done["completed"] is True
        assert done["current_step"] is None
        assert done["progress"]["percentage"] == 100

    @pytest.mark.asyncio
    async def test_project_states_are_capped(self, sample_plan):
        service = AgentOrchestrationService(lambda: make_orchestrator(sample_plan), max_projects=2)
        first = await service.initialize_project("a", "A")
        second = await service.initialize_project("b", "B")
        await service.execute_next_step(first["project_id"])
        third = await service.initialize_project("c", "C")
        assert set(service.project_states) == {first["project_id"], third["project_id"]}
        with pytest.raises(KeyError):
            await service.execute_next_step(second["project_id"])
