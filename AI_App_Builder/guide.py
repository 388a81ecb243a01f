"""
Structured guide for generated coding challenges
Splits each challenge into implementation steps and answers the learner's
chat messages with intros, hints, code pointers or encouragement
"""

import copy
import random


# challenge type -> (title, description, concepts, duration, instructions, ui_only)
STEP_TEMPLATES = {
    "implementation": [
        ("Understand the {feature} Requirements",
         "Analyze what functionality the {feature} feature needs to provide and its user interactions.",
         ["Requirements Analysis", "Feature Planning"], "10-15 minutes",
         "Review the code and documentation for the {feature} feature. Identify what functionality is missing and what user interactions need to be implemented.",
         False),
        ("Build the {feature} UI Components",
         "Create the necessary React components for the {feature} feature.",
         ["React Components", "JSX", "Tailwind CSS Styling"], "20-30 minutes",
         "Implement the UI components needed for the {feature} feature. Make sure to create any necessary inputs, buttons, and layout elements.",
         True),
        ("Implement {feature} Logic",
         "Add the necessary state management and business logic for the {feature} feature.",
         ["React Hooks", "State Management", "Event Handling"], "25-35 minutes",
         "Implement the business logic for the {feature} feature. This includes state management, event handlers, and any necessary data processing.",
         False),
        ("Test and Refine {feature}",
         "Test the {feature} feature, fix any bugs, and refine the implementation.",
         ["Debugging", "Testing", "Code Refinement"], "15-20 minutes",
         "Test the {feature} feature thoroughly. Identify and fix any bugs or issues. Refine the implementation to improve performance, user experience, and code quality.",
         False),
    ],
    "bugfix": [
        ("Identify the Bug in {feature}",
         "Locate and understand the bug in the {feature} feature.",
         ["Debugging", "Error Identification"], "10-15 minutes",
         "Review the code for the {feature} feature. Look for any error messages, unexpected behavior, or logical issues. Use console.log statements or the browser developer tools to help identify the problem.",
         False),
        ("Fix the Bug in {feature}",
         "Implement a solution to fix the bug in the {feature} feature.",
         ["Debugging", "Error Resolution", "Code Correction"], "15-25 minutes",
         "Implement a solution to fix the identified bug. Make sure to test your solution thoroughly to ensure it resolves the issue without creating new problems.",
         False),
        ("Test and Verify {feature} Fix",
         "Test the {feature} feature to ensure the bug is fixed.",
         ["Testing", "Verification", "Quality Assurance"], "10-15 minutes",
         "Test the {feature} feature thoroughly to verify that the bug is fixed. Check for any regressions or new issues that may have been introduced by your fix.",
         False),
    ],
    "feature": [
        ("Plan {feature} Feature",
         "Plan the implementation of the {feature} feature.",
         ["Feature Planning", "Design", "Architecture"], "15-20 minutes",
         "Plan how you will implement the {feature} feature. Consider what components you'll need, what state management will be required, and how the feature will integrate with the rest of the application.",
         False),
        ("Implement {feature} UI",
         "Create the user interface for the {feature} feature.",
         ["React Components", "JSX", "Tailwind CSS Styling"], "20-30 minutes",
         "Implement the UI components for the {feature} feature. Focus on creating a clean, intuitive interface that aligns with the rest of the application's design.",
         True),
        ("Add {feature} Functionality",
         "Implement the core functionality for the {feature} feature.",
         ["React Hooks", "State Management", "API Integration"], "25-35 minutes",
         "Implement the core functionality for the {feature} feature. This includes state management, event handlers, API calls, and any necessary data processing.",
         False),
        ("Test and Optimize {feature}",
         "Test the {feature} feature and optimize its performance.",
         ["Testing", "Performance Optimization", "Refinement"], "15-25 minutes",
         "Test the {feature} feature thoroughly. Optimize its performance and make any necessary refinements to improve the user experience.",
         False),
        ("Document {feature} Feature",
         "Document how the {feature} feature works.",
         ["Documentation", "Code Comments"], "10-15 minutes",
         "Add comments to your code explaining how the {feature} feature works. Consider adding a brief documentation section in the README or a separate documentation file.",
         False),
    ],
    "default": [
        ("Understand the {feature} Challenge",
         "Analyze what needs to be done for the {feature} challenge.",
         ["Analysis", "Planning"], "10-15 minutes",
         "Review the code and understand what needs to be done for the {feature} challenge.",
         False),
        ("Implement {feature} Solution",
         "Implement a solution for the {feature} challenge.",
         ["Implementation", "Coding", "Problem Solving"], "20-30 minutes",
         "Implement your solution for the {feature} challenge. Be sure to test it thoroughly.",
         False),
        ("Review and Refine {feature}",
         "Review your solution for the {feature} challenge and refine it.",
         ["Code Review", "Refinement"], "15-20 minutes",
         "Review your solution for the {feature} challenge. Look for ways to improve it, such as optimizing performance, enhancing readability, or adding additional features.",
         False),
    ],
}

COMPLETION_PHRASES = [
    "i've completed", "i have completed", "finished implementing",
    "done implementing", "implemented the feature", "feature is working",
    "it's working now", "it works now", "completed the challenge"
]

HELP_PHRASES = [
    "help", "hint", "stuck", "don't understand", "don't know how",
    "not sure", "guidance", "assist", "confused", "struggling"
]

CODE_PHRASES = [
    "code example", "sample code", "example code", "how do i code",
    "show me the code", "code snippet", "implementation example"
]

INTRO_MESSAGES = [
    "Now let's work on implementing the {description} feature for {feature}. This is an important part of the application that needs to be completed.",
    "I've noticed that the {description} functionality is missing from the {feature} feature. Let's implement this together.",
    "Your next challenge is to add {description} to the {feature} part of the application. This is a {difficulty} level task.",
    "Let's make our application better by implementing {description} for the {feature} feature. I'll guide you through this process.",
]

COMPLETION_MESSAGES = [
    "Great job implementing the {description} feature! You've successfully completed this challenge.",
    "Excellent work on the {description} functionality! That's one challenge down.",
    "You've successfully implemented {description}! The application is getting better with each feature you add.",
]

ENCOURAGEMENT_MESSAGES = [
    "How's your implementation coming along? Remember to break down the problem into smaller steps.",
    "That's a good approach! Keep going, and let me know if you run into any specific issues.",
    "You're on the right track. Don't hesitate to ask if you need any hints or guidance.",
    "Take your time with this challenge. It's important to understand each part of the implementation.",
    "Looking forward to seeing your solution! Remember that there are often multiple valid ways to implement a feature.",
]

# description keyword -> extra intro context
INTRO_CONTEXT = [
    ("profile image upload",
     "I've created a button in the Profile component, but it currently just shows an alert when clicked. "
     "You'll need to implement both the frontend and backend components of this feature. The frontend should "
     "allow users to select an image file, while the backend needs to handle file uploads, storage, and "
     "updating the user's profile."),
    ("Follow API",
     "The Follow button in the user profile currently doesn't do anything. You'll need to implement the API "
     "endpoints for following/unfollowing users and update the UI accordingly. This involves creating a "
     "Follow model to track relationships between users."),
    ("password reset",
     "The authentication system is working for login and registration, but there's no way for users to reset "
     "their password if they forget it. You'll need to implement this functionality, including sending a "
     "reset token via email and creating a form for entering a new password."),
    ("search",
     "The application needs a search feature to find content. You'll need to implement both the frontend UI "
     "for entering search queries and the backend API for processing those queries and returning relevant "
     "results."),
]

DEFAULT_INTRO_CONTEXT = (
    "Take a look at the existing code to understand how this feature should fit into the application. "
    "I've provided some structure, but you'll need to fill in the missing functionality."
)

CODE_SNIPPETS = [
    ("profile image upload", "Here's a code snippet for implementing profile image upload..."),
    ("Follow API", "Here's a code snippet to help you implement the Follow API..."),
]


def normalize_challenge(challenge, index=0):
    return {
        "id": str(challenge.get("id") or f"challenge-{index + 1}"),
        "title": challenge.get("title", ""),
        "description": challenge.get("description", ""),
        "feature_name": challenge.get("feature_name") or challenge.get("title") or "Feature",
        "difficulty": challenge.get("difficulty", "intermediate"),
        "type": challenge.get("type", "implementation"),
        "files_paths": list(challenge.get("files_paths") or []),
        "completed": bool(challenge.get("completed", False)),
        "hints": list(challenge.get("hints") or []),
    }


class StructuredAIGuide:

    def __init__(self, project, rng=None):
        self.project = dict(project)
        self.project["challenges"] = [
            normalize_challenge(c, i) for i, c in enumerate(project.get("challenges") or [])
        ]
        self.rng = rng or random.Random()
        self.current_challenge_index = 0
        self.conversation_history = []
        self.implementation_steps = self._generate_implementation_steps()
        self.current_step_index = 0

    # -------------------
    # Steps
    # -------------------

    def _generate_implementation_steps(self):
        steps = []
        for challenge in self.project["challenges"]:
            steps.extend(self._generate_steps_for_challenge(challenge))
        return steps

    def _generate_steps_for_challenge(self, challenge):
        templates = STEP_TEMPLATES.get(challenge["type"], STEP_TEMPLATES["default"])
        feature = challenge["feature_name"]
        steps = []
        for number, (title, description, concepts, duration, instructions, ui_only) in enumerate(templates, 1):
            files_paths = challenge["files_paths"]
            if ui_only:
                files_paths = [p for p in files_paths if "components" in p or ".tsx" in p]
            steps.append({
                "id": f"{challenge['id']}-step-{number}",
                "title": title.format(feature=feature),
                "description": description.format(feature=feature),
                "completed": False,
                "challenge_id": challenge["id"],
                "files_paths": list(files_paths),
                "concepts": list(concepts),
                "expected_duration": duration,
                "task_instructions": instructions.format(feature=feature),
            })
        return steps

    def get_implementation_steps(self):
        return self.implementation_steps

    def get_steps_for_challenge(self, challenge_id):
        return [step for step in self.implementation_steps if step["challenge_id"] == challenge_id]

    def get_current_step(self):
        if self.current_step_index >= len(self.implementation_steps):
            return None
        return self.implementation_steps[self.current_step_index]

    def complete_step(self, step_id):
        """Mark step_id done and return the first step still open, or None"""
        step = next((s for s in self.implementation_steps if s["id"] == step_id), None)
        if step is None:
            return None
        step["completed"] = True
        for index, candidate in enumerate(self.implementation_steps):
            if not candidate["completed"]:
                self.current_step_index = index
                return candidate
        return None

    def generate_first_task_message(self):
        if not self.implementation_steps:
            return ("Let's get started with implementing this project! "
                    "Please review the code and let me know if you have any questions.")
        first = self.implementation_steps[0]
        return (
            f"## Let's start with your first task: {first['title']}\n\n"
            f"{first['description']}\n\n"
            f"**What you need to do:**\n{first['task_instructions']}\n\n"
            f"**Key concepts to understand:**\n{', '.join(first['concepts']) or 'N/A'}\n\n"
            f"**Relevant files:**\n{chr(10).join(first['files_paths'])}\n\n"
            f"**Estimated time:** {first['expected_duration']}\n\n"
            "When you've completed this task, let me know and we'll move on to the next step."
        )

    # -------------------
    # Conversation
    # -------------------

    def get_current_challenge(self):
        challenges = self.project["challenges"]
        if not challenges:
            return None
        return challenges[self.current_challenge_index]

    def process_user_message(self, message):
        challenge = self.get_current_challenge()
        if challenge is None:
            return "This project has no challenges yet. Generate an app to get started!"

        self.conversation_history.append({
            "type": "user",
            "content": message,
            "challenge_id": challenge["id"]
        })

        if self._matches(message, COMPLETION_PHRASES):
            challenge["completed"] = True
            if self.current_challenge_index < len(self.project["challenges"]) - 1:
                self.current_challenge_index += 1
                return self._generate_completion_message(challenge)
            return self._generate_all_challenges_completed_message()

        if self._matches(message, HELP_PHRASES):
            return self.get_next_guidance_message()
        if self._matches(message, CODE_PHRASES):
            return self._provide_code_snippet()
        return self.rng.choice(ENCOURAGEMENT_MESSAGES)

    @staticmethod
    def _matches(message, phrases):
        lowered = message.lower()
        return any(phrase in lowered for phrase in phrases)

    def _history_for(self, challenge_id, entry_type):
        return [
            entry for entry in self.conversation_history
            if entry["challenge_id"] == challenge_id and entry["type"] == entry_type
        ]

    def get_next_guidance_message(self):
        challenge = self.get_current_challenge()
        if challenge is None:
            return "This project has no challenges yet. Generate an app to get started!"

        if not self._history_for(challenge["id"], "guide"):
            message = self._generate_intro_message(challenge)
            self.conversation_history.append({
                "type": "guide", "content": message, "challenge_id": challenge["id"]
            })
            return message

        hints_given = len(self._history_for(challenge["id"], "hint"))
        if hints_given < len(challenge["hints"]):
            message = f"Here's a hint: {challenge['hints'][hints_given]}"
            self.conversation_history.append({
                "type": "hint", "content": message, "challenge_id": challenge["id"]
            })
            return message

        return ("You're on the right track! Try implementing this solution and let me know "
                "if you encounter any specific issues.")

    def _generate_intro_message(self, challenge):
        intro = self.rng.choice(INTRO_MESSAGES).format(
            description=challenge["description"],
            feature=challenge["feature_name"],
            difficulty=challenge["difficulty"]
        )
        context = next(
            (text for keyword, text in INTRO_CONTEXT if keyword in challenge["description"]),
            DEFAULT_INTRO_CONTEXT
        )
        return (f"{intro}\n\n{context}\n\nWould you like to start with the frontend or backend "
                "implementation? Or do you need more information about this challenge?")

    def _generate_completion_message(self, completed):
        upcoming = self.get_current_challenge()
        praise = self.rng.choice(COMPLETION_MESSAGES).format(description=completed["description"])
        return (
            f"{praise}\n\nNow, let's move on to the next challenge: {upcoming['description']} "
            f"for the {upcoming['feature_name']} feature. This is a {upcoming['difficulty']} level task.\n\n"
            "Would you like to get started with this new challenge?"
        )

    def _generate_all_challenges_completed_message(self):
        challenges = self.project["challenges"]
        return (
            "Congratulations! You've completed all the challenges for this project. You've successfully "
            "built a functioning application with all the required features.\n\n"
            "You've demonstrated your skills in implementing various aspects of a full-stack application, "
            f"including {challenges[0]['description']} and {challenges[-1]['description']}.\n\n"
            "What would you like to do next? You could:\n\n"
            "1. Add additional features to this project\n"
            "2. Optimize the existing code\n"
            "3. Start a new project with different challenges\n\n"
            "Let me know how you'd like to proceed!"
        )

    def _provide_code_snippet(self):
        challenge = self.get_current_challenge()
        self.conversation_history.append({
            "type": "code_snippet",
            "content": "Code snippet provided",
            "challenge_id": challenge["id"]
        })
        for keyword, snippet in CODE_SNIPPETS:
            if keyword in challenge["description"]:
                return snippet
        return "Here's some sample code to help you with this challenge..."

    def get_project_overview(self):
        challenges = self.project["challenges"]
        completed = sum(1 for c in challenges if c["completed"])
        name = self.project.get("name") or self.project.get("project_name") or "Code Challenge"
        description = self.project.get("description") or "A coding challenge project"
        stack = self.project.get("stack") or "Full Stack"
        lines = [
            f"Project: {name}",
            f"Description: {description}",
            f"Stack: {stack}",
            f"Progress: {completed}/{len(challenges)} challenges completed",
            "",
            "Current Challenges:",
        ]
        for index, challenge in enumerate(challenges, 1):
            status = "✅ Completed" if challenge["completed"] else "⏳ In Progress"
            lines.append(f"{index}. {challenge['description']} ({challenge['feature_name']}) - {status}")
        return "\n".join(lines)

    # -------------------
    # State
    # -------------------

    def to_state(self):
        return copy.deepcopy({
            "project": self.project,
            "current_challenge_index": self.current_challenge_index,
            "conversation_history": self.conversation_history,
            "implementation_steps": self.implementation_steps,
            "current_step_index": self.current_step_index,
        })

    @classmethod
    def from_state(cls, state, rng=None):
        """Rebuild a guide from to_state() output; malformed state raises ValueError"""
        state = copy.deepcopy(state)
        if not isinstance(state, dict) or not isinstance(state.get("project"), dict):
            raise ValueError("Invalid guide state: project must be an object")
        guide = cls(state["project"], rng=rng)

        steps = state.get("implementation_steps")
        if steps is not None:
            if not isinstance(steps, list) or not all(isinstance(s, dict) for s in steps):
                raise ValueError("Invalid guide state: implementation_steps must be a list")
            guide.implementation_steps = steps

        history = state.get("conversation_history", [])
        if not isinstance(history, list):
            raise ValueError("Invalid guide state: conversation_history must be a list")
        guide.conversation_history = history

        challenge_index = state.get("current_challenge_index", 0)
        last_challenge = max(len(guide.project["challenges"]) - 1, 0)
        if not _is_index(challenge_index, last_challenge):
            raise ValueError("Invalid guide state: current_challenge_index out of range")
        guide.current_challenge_index = challenge_index

        step_index = state.get("current_step_index", 0)
        if not _is_index(step_index, len(guide.implementation_steps)):
            raise ValueError("Invalid guide state: current_step_index out of range")
        guide.current_step_index = step_index
        return guide


def _is_index(value, upper):
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= upper
