"""Tests for the structured challenge guide."""

import random

import pytest

from AI_App_Builder.guide import StructuredAIGuide, normalize_challenge


def make_guide(project):
    return StructuredAIGuide(project, rng=random.Random(7))


class TestImplementationSteps:

    def test_steps_per_challenge_type(self, sample_project):
        guide = make_guide(sample_project)
        assert len(guide.get_steps_for_challenge("c1")) == 4
        assert len(guide.get_steps_for_challenge("c2")) == 3
        assert len(guide.get_implementation_steps()) == 7

    def test_ui_step_only_lists_component_files(self, sample_project):
        ui_step = make_guide(sample_project).get_steps_for_challenge("c1")[1]
        assert ui_step["title"] == "Build the Profile UI Components"
        assert ui_step["files_paths"] == ["src/components/Profile.tsx"]

    def test_unknown_type_uses_default_template(self):
        guide = make_guide({"challenges": [{"id": "x", "type": "refactor", "feature_name": "Cart"}]})
        titles = [step["title"] for step in guide.get_implementation_steps()]
        assert titles == ["Understand the Cart Challenge", "Implement Cart Solution", "Review and Refine Cart"]

    def test_complete_step_moves_to_next_incomplete(self, sample_project):
        guide = make_guide(sample_project)
        next_step = guide.complete_step("c1-step-1")
        assert next_step["id"] == "c1-step-2"
        assert guide.get_current_step()["id"] == "c1-step-2"
        assert guide.complete_step("missing") is None

    def test_first_task_message(self, sample_project):
        message = make_guide(sample_project).generate_first_task_message()
        assert message.startswith("## Let's start with your first task: Understand the Profile Requirements")
        assert "**Estimated time:** 10-15 minutes" in message

    def test_first_task_message_without_challenges(self):
        assert make_guide({}).generate_first_task_message().startswith("Let's get started")

    def test_normalize_fills_defaults(self):
        challenge = normalize_challenge({"title": "Search"}, 2)
        assert challenge["id"] == "challenge-3"
        assert challenge["feature_name"] == "Search"
        assert challenge["type"] == "implementation"
        assert challenge["completed"] is False


class TestConversation:

    def test_help_gives_intro_then_hints_then_encouragement(self, sample_project):
        guide = make_guide(sample_project)
        intro = guide.process_user_message("I need help")
        assert "I've created a button in the Profile component" in intro
        assert guide.process_user_message("another hint please") == "Here's a hint: Use a FormData object"
        assert guide.process_user_message("still stuck") == "Here's a hint: Store files with multer"
        assert guide.process_user_message("help").startswith("You're on the right track!")

    def test_completion_moves_to_next_challenge(self, sample_project):
        guide = make_guide(sample_project)
        reply = guide.process_user_message("I've completed the upload")
        assert "Now, let's move on to the next challenge: Follow API" in reply
        assert guide.get_current_challenge()["id"] == "c2"
        assert "Progress: 1/2 challenges completed" in guide.get_project_overview()

    def test_last_completion_congratulates(self, sample_project):
        guide = make_guide(sample_project)
        guide.process_user_message("I've completed it")
        reply = guide.process_user_message("it works now")
        assert reply.startswith("Congratulations! You've completed all the challenges")
        assert "including profile image upload and Follow API" in reply

    def test_code_request_returns_snippet(self, sample_project):
        reply = make_guide(sample_project).process_user_message("show me the code")
        assert reply == "Here's a code snippet for implementing profile image upload..."

    def test_no_challenges(self):
        reply = make_guide({"challenges": []}).process_user_message("help")
        assert reply == "This project has no challenges yet. Generate an app to get started!"

    def test_state_round_trip(self, sample_project):
        guide = make_guide(sample_project)
        guide.process_user_message("help")
        guide.complete_step("c1-step-1")
        restored = StructuredAIGuide.from_state(guide.to_state(), rng=random.Random(7))
        assert restored.get_current_step()["id"] == "c1-step-2"
        assert restored.process_user_message("hint") == "Here's a hint: Use a FormData object"

    def test_state_with_out_of_range_challenge(self, sample_project):
        state = make_guide(sample_project).to_state()
        state["current_challenge_index"] = 5
        with pytest.raises(ValueError):
            StructuredAIGuide.from_state(state)

    def test_state_with_bad_fields(self, sample_project):
        state = make_guide(sample_project).to_state()
        for field, value in (("current_step_index", 99), ("conversation_history", None), ("current_challenge_index", "1")):
            broken = {**state, field: value}
            with pytest.raises(ValueError):
                StructuredAIGuide.from_state(broken)
        with pytest.raises(ValueError):
            StructuredAIGuide.from_state({"project": None})

    def test_overview(self, sample_project):
        overview = make_guide(sample_project).get_project_overview()
        assert overview.startswith("Project: Social Feed")
        assert "Stack: React + Express" in overview
        assert "1. profile image upload (Profile) - ⏳ In Progress" in overview
