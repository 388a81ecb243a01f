import json


chat_prompt = """
You are a helpful AI assistant inside an AI app builder. Users describe the
application they want, ask questions about the generated code, or ask for help
while they finish the parts that were left for them to implement.

Answer clearly and concisely. When you show code, keep snippets short and
focused on the question. Prefer React, TypeScript and TailwindCSS examples for
frontend questions unless the user says otherwise.
"""


planner_prompt = """
You are a Senior Project Manager AI Agent specialized in breaking down software
projects into manageable steps. Each step is handled by a specialized agent.

Available Agents:
- ui: Frontend components, user interface, styling
- api: Backend routes, endpoints, server logic
- database: Schema design, database setup, data modeling
- auth: Authentication, authorization, user management
- integration: Connecting frontend to backend, API integration
- deployment: Deployment setup, environment configuration

You MUST answer with a single valid JSON object and nothing else. Never wrap
it in markdown fences. Never add text before or after it.
"""


def build_execution_plan_input(specification, project_name):
    return f"""
Project Specification: "{specification}"
Project Name: "{project_name}"

Create a comprehensive execution pipeline that breaks this project into
sequential steps. Use this structure:
{{
  "project_name": "{project_name}",
  "description": "Brief project description",
  "pipeline": [
    {{
      "step_number": 1,
      "name": "Step Name",
      "agent": "ui|api|database|auth|integration|deployment",
      "description": "What this step accomplishes",
      "deliverables": ["What the user should implement"],
      "dependencies": ["Previous step requirements"],
      "estimated_time": "Time estimate",
      "user_guidance": "Specific instructions for the user"
    }}
  ],
  "context": {{
    "project_type": "web_app|mobile_app|api|etc",
    "tech_stack": {{
      "frontend": ["React", "TypeScript", "TailwindCSS"],
      "backend": ["Node.js", "Express"],
      "database": ["PostgreSQL", "MongoDB"],
      "auth": ["JWT", "OAuth"]
    }},
    "features": ["List of main features"],
    "complexity": "simple|medium|complex"
  }}
}}

Focus on creating a logical sequence where each step builds upon the previous one.
"""


def build_learning_path_input(specification, project_name):
    return f"""
Project Specification: "{specification}"
Project Name: "{project_name}"

Create a STEP-BY-STEP LEARNING PATH that breaks this project into sequential
modules. Do NOT provide complete solutions. For each module:
1. Explain the concept and the "why" behind each implementation choice
2. Provide PARTIAL code snippets with intentional gaps marked by TODO comments
3. Add challenges that test understanding and encourage experimentation
4. Include self-check questions to verify understanding

Use this structure:
{{
  "project_name": "{project_name}",
  "description": "Brief project description",
  "learning_path": [
    {{
      "module_number": 1,
      "name": "Module Name",
      "type": "ui|api|database|auth|integration|deployment|fundamentals",
      "description": "What concepts this module teaches",
      "learning_objectives": ["What the user will learn"],
      "prerequisites": ["Previous concepts required"],
      "estimated_time": "Time estimate",
      "challenges": [
        {{
          "title": "Challenge title",
          "description": "What to implement",
          "partial_code": "// TODO: Implement this part",
          "hints": ["Guiding hints that don't give away the solution"],
          "self_check": ["Questions to verify understanding"]
        }}
      ]
    }}
  ],
  "context": {{
    "project_type": "web_app|mobile_app|api|etc",
    "tech_stack": {{}},
    "concepts": ["List of main concepts to learn"],
    "difficulty": "beginner|intermediate|advanced"
  }}
}}

NEVER give complete solutions - always require the user to fill in important parts.
"""


# -------------------
# Step agents
# -------------------

STEP_AGENT_ROLES = {
    "ui": {
        "title": "UI/Frontend Development Agent",
        "duties": [
            "Analyze the user's current UI implementation",
            "Provide specific guidance on what they need to implement next",
            "Suggest improvements or corrections",
            "Guide them toward completing this step",
        ],
        "topics": [
            "Component structure and layout",
            "Styling and responsiveness",
            "State handled inside components",
        ],
        "example": "Small component snippet to guide them (optional)",
        "context_update": {
            "ui_components": ["list of components they've built"],
            "ui_progress": "progress description",
        },
    },
    "api": {
        "title": "API/Backend Development Agent",
        "duties": [
            "Analyze the user's current backend implementation",
            "Ensure API endpoints match the frontend requirements",
            "Guide them in creating RESTful routes",
            "Help with middleware, error handling, and best practices",
        ],
        "topics": [
            "API endpoint structure",
            "Request/response patterns",
            "Error handling",
            "Authentication integration (if applicable)",
            "Database integration patterns",
        ],
        "example": "Example API route or middleware (partial)",
        "context_update": {
            "api_endpoints": ["list of endpoints they've built"],
            "api_progress": "progress description",
        },
    },
    "database": {
        "title": "Database Design Agent",
        "duties": [
            "Analyze the user's current database implementation",
            "Ensure schema matches API and UI requirements",
            "Guide them in creating efficient database structures",
            "Help with relationships, indexes, and constraints",
        ],
        "topics": [
            "Database schema design",
            "Table relationships",
            "Data validation",
            "Query optimization",
            "Migration strategies",
        ],
        "example": "Example schema or query (partial)",
        "context_update": {
            "db_tables": ["list of tables they've created"],
            "db_progress": "progress description",
        },
    },
    "auth": {
        "title": "Authentication/Authorization Agent",
        "duties": [
            "Analyze the user's current authentication implementation",
            "Guide them in implementing secure login/registration",
            "Help with session management, JWT tokens, or OAuth",
            "Ensure proper security practices",
        ],
        "topics": [
            "User registration/login flows",
            "Password hashing and security",
            "Session management",
            "Protected routes",
            "Role-based access control",
        ],
        "example": "Example auth middleware or route (partial)",
        "context_update": {
            "auth_features": ["list of auth features implemented"],
            "auth_progress": "progress description",
        },
    },
    "integration": {
        "title": "Integration Agent",
        "duties": [
            "Analyze how well the frontend and backend are connected",
            "Guide them in implementing API calls from the frontend",
            "Help with state management and data flow",
            "Ensure proper error handling between layers",
        ],
        "topics": [
            "API integration patterns",
            "State management (Redux, Context, etc.)",
            "Error handling across layers",
            "Data validation",
            "Loading states and UX",
        ],
        "example": "Example API call or state management (partial)",
        "context_update": {
            "integration_points": ["list of integrated features"],
            "integration_progress": "progress description",
        },
    },
    "deployment": {
        "title": "Deployment Agent",
        "duties": [
            "Analyze the user's current deployment setup",
            "Guide them in preparing for production deployment",
            "Help with environment configuration",
            "Ensure proper build processes and optimization",
        ],
        "topics": [
            "Environment configuration",
            "Build optimization",
            "Deployment platforms (Vercel, Netlify, Heroku, etc.)",
            "Database deployment",
            "Security considerations",
        ],
        "example": "Example config files or deployment scripts (partial)",
        "context_update": {
            "deployment_config": ["list of deployment configurations"],
            "deployment_progress": "progress description",
        },
    },
}


def step_agent_instructions(agent_type):
    role = STEP_AGENT_ROLES[agent_type]
    duties = "\n".join(f"{i}. {duty}" for i, duty in enumerate(role["duties"], 1))
    topics = "\n".join(f"- {topic}" for topic in role["topics"])
    response_format = {
        "analysis": "Analysis of the current code",
        "guidance": "Specific instructions for the user",
        "code_example": role["example"],
        "next_steps": ["Step 1", "Step 2"],
        "step_completed": False,
        "context_update": role["context_update"],
    }
    return f"""
You are a {role['title']} helping a user build their project step by step.

Your role is to:
{duties}

Provide guidance on:
{topics}

Remember: you provide guidance and partial code examples, but the user writes
most of the code themselves. Set "step_completed" to true only when the user's
code fully covers the step deliverables.

Respond ONLY with JSON in this format:
{json.dumps(response_format, indent=2)}
"""


def build_step_input(step_info, context, user_code, user_message, extra_context=None, recent_activity=None):
    lines = [
        f"You're helping a user build: {context.get('project_name', 'their project')}",
        "",
        f"Current Step: {step_info.get('name', '')}",
        f"Step Description: {step_info.get('description', '')}",
        "User's Current Code:",
        "```",
        user_code or "",
        "```",
        "",
        f'User\'s Message/Question: "{user_message or ""}"',
        "",
        f"Project Context: {json.dumps(context, default=str)}",
    ]
    for label, value in (extra_context or {}).items():
        lines.append(f"{label}: {json.dumps(value, default=str)}")
    if recent_activity:
        lines.append(f"Recent Activity: {', '.join(recent_activity)}")
    return "\n".join(lines)


# -------------------
# App generation / modification
# -------------------

app_generator_prompt = """
You are an expert software engineer creating educational coding challenges for
a learning platform. You build intentionally incomplete React applications
with real, fixable problems that teach important programming concepts.

Format your response as a valid JSON object without any markdown formatting.
"""


def build_app_generation_input(prompt, completion_level):
    return f"""
Please create an intentionally incomplete application based on the following prompt: "{prompt}".

The application should have the following characteristics:
- Completion Level: {completion_level}
- It should be a React-based application using modern web technologies
- Include 3-5 specific coding challenges/bugs for the user to fix
- Each challenge should have clear error patterns that are educational to solve
- IMPORTANT: Include comments that explain what needs to be fixed as TODOs

Use this structure:
{{
  "project_name": "name-of-project",
  "description": "Brief description of the application",
  "file_structure": {{
    "src": {{
      "components": {{
        "ComponentName.js": "// Component code with intentional issues"
      }},
      "App.js": "// App code with some issues to fix"
    }}
  }},
  "challenges": [
    {{
      "id": "challenge-1",
      "title": "Fix Component Rendering Issue",
      "description": "There's a problem with how the component renders. Find and fix it.",
      "files_paths": ["src/components/ComponentName.js"]
    }}
  ],
  "explanation": "Overall explanation of the challenges and what the user will learn"
}}
"""


summarizer_prompt = """
You are an expert at summarizing application requirements. Summarize the input
while preserving all critical information about the desired application's
functionality, features, and requirements. Keep your summary concise but
comprehensive.
"""


def build_summary_input(text, max_tokens):
    return f"Summarize this application request in {max_tokens} tokens or less while preserving all important details: {text}"


modifier_system_prompt = """You are an expert software developer specializing in modifying web applications.
When given a user request and existing code for an application, you will modify ONLY what the user requested.
You will not change any functionality beyond what was explicitly requested.
Return your response as a valid, complete JSON object with the same structure as the input application.
Make sure your response includes all original files and components, with only the requested modifications applied."""


def build_modification_input(prompt, app_data):
    return f"""
The user has requested the following modification to their existing application:
"{prompt}"

Here is the current state of their application:
{json.dumps(app_data, indent=2)}

Please modify ONLY the parts of the application that need to change based on the user's request.
Keep all functionality the same except for what the user specifically asked to modify.
Return the full updated application code as a complete, valid JSON structure with the same format.
"""


change_summary_prompt = (
    "You are a helpful assistant that summarizes code changes. Provide a brief, "
    "non-technical summary of the changes made based on the user request."
)


def build_change_summary_input(prompt, app_data):
    return f'User requested this change: "{prompt}"\nModified application data: {json.dumps(app_data)}'


# -------------------
# Code review / guidance
# -------------------

code_analysis_prompt = """
You are an expert software engineer and educator providing feedback on a
student's code for a learning platform. Your feedback is educational,
professional and constructive. Respond with JSON only.
"""


def build_code_analysis_input(project_id, files, challenge_info=None):
    formatted_files = "\n\n".join(
        f"File: {f['path']}\n```\n{f['content']}\n```" for f in files
    )
    challenge_text = ""
    challenges = (challenge_info or {}).get("challenges") or []
    if challenges:
        challenge_text = "The project has the following challenges that the user should address:\n" + "\n".join(
            f"{i}. {c.get('title', '')} ({c.get('difficulty', 'intermediate')}): {c.get('description', '')}"
            for i, c in enumerate(challenges, 1) if isinstance(c, dict)
        )
    return f"""
The student is working on a project with ID: {project_id}.
{challenge_text}

Please analyze the following code files and provide constructive feedback:

{formatted_files}

Provide your feedback in the following JSON format:
{{
  "feedback": "Overall feedback on the code quality and approach",
  "suggestions": [
    {{
      "file": "path/to/file.js",
      "line": 42,
      "suggestion": "Specific suggestion for improvement",
      "severity": "info | warning | error"
    }}
  ],
  "overallScore": 85
}}

The overall score should be between 0-100 based on:
- Code correctness and functionality (40%)
- Best practices and patterns (30%)
- Readability and maintainability (20%)
- Performance considerations (10%)
"""


guidance_prompt = """
You are an expert coding mentor guiding a user through completing an application.
Format your response as markdown with headings and bullet points for readability.
Keep your response under 400 words. Don't repeat code, just refer to it.
"""

GUIDANCE_TASKS = {
    "first-step": """Generate a specific, helpful first guidance message that:
1. Welcomes the user to the project
2. Explains the purpose and structure of the app
3. Suggests a clear first action to take (specific file to examine or modify)
4. Uses a friendly, encouraging tone
5. Focuses on just ONE task to start with""",
    "next-step": """The user has made progress. Generate the next guidance message that:
1. Acknowledges what has been done so far
2. Points to the next file or feature to work on
3. Explains the concept the user needs for it
4. Focuses on just ONE task""",
    "challenge-complete": """The user just completed a challenge. Generate a message that:
1. Congratulates the user and recaps what they learned
2. Introduces the next remaining challenge, if any
3. Suggests how to start on it""",
}


def build_guidance_input(guidance_type, project_data, code_samples):
    challenges = project_data.get("challenges") or []
    if challenges:
        challenge_text = "Challenges to complete:\n" + "\n".join(
            f"{i}. {c.get('title', '')}: {c.get('description', '')}"
            for i, c in enumerate(challenges, 1) if isinstance(c, dict)
        )
    else:
        challenge_text = "No specific challenges defined."
    samples = "\n\n".join(
        f"File: {s['path']}\n```\n{s['snippet']}\n```" for s in code_samples
    )
    return f"""
Analyze the following application and generate personalized guidance for the user.

Project name: {project_data.get('project_name') or project_data.get('projectName', '')}
Description: {project_data.get('description', '')}
Number of files: {project_data.get('file_count') or project_data.get('fileCount', 0)}

{challenge_text}

Code samples:
{samples}

{GUIDANCE_TASKS[guidance_type]}
"""


# -------------------
# UI design search / customization
# -------------------

design_search_system_prompt = (
    "You are a helpful assistant for finding UI component code. Focus on finding complete, "
    "well-implemented components from high-quality design systems and UI libraries."
)


def build_design_search_input(query):
    return (
        f"Find the full implementation code for {query}. Include all necessary imports and CSS. "
        "Return the complete code with any explanations of how it works. Focus on production-quality "
        "implementations from official documentation or high-quality examples."
    )


# style name -> instruction, per component template
CUSTOMIZER_STYLES = {
    "dashboard": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the design beautiful and visually appealing with subtle gradients, shadows, and elegant typography",
        "minimal": "Keep the design minimal and clean, focusing on essential elements",
        "colorful": "Use a vibrant color palette to make the dashboard visually engaging",
        "professional": "Create a professional, business-appropriate aesthetic",
    },
    "form": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the form beautiful with subtle animations, elegant spacing, and polished input styles",
        "minimal": "Keep the form minimal and clean, focusing on essential elements",
    },
    "table": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the table beautiful with zebra striping, hover states, and clean typography",
        "minimal": "Keep the table minimal and clean, focusing on the data",
    },
    "card": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the card beautiful with soft shadows, rounded corners, and hover effects",
        "minimal": "Keep the card minimal and clean, focusing on essential content",
    },
    "navbar": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the navbar beautiful with smooth hover effects and elegant typography",
        "minimal": "Keep the navbar minimal and clean, focusing on essential links",
    },
    "default": {
        "white": "Use a clean white theme with light backgrounds",
        "dark": "Use a dark theme with dark backgrounds and appropriate contrast",
        "beautiful": "Make the component beautiful with elegant styling and subtle animations",
        "minimal": "Keep the component minimal and clean, focusing on essential elements",
    },
}

CUSTOMIZER_REQUIREMENTS = {
    "dashboard": [
        "Maintain the same general component structure",
        "Make the component fully responsive",
    ],
    "form": [
        "Maintain the same general form structure",
        "Implement proper form validation",
        "Show clear error and success states",
    ],
    "table": [
        "Maintain the same general table structure",
        "Add sorting and pagination where it makes sense",
        "Make the table scroll horizontally on small screens",
    ],
    "card": [
        "Maintain the same general card structure",
        "Make the card layout adapt to different widths",
    ],
    "navbar": [
        "Maintain the same general navbar structure",
        "Implement mobile responsiveness with a hamburger menu",
        "Add smooth transitions for dropdowns and mobile menu",
    ],
    "default": [
        "Maintain the same general component structure",
        "Improve responsiveness and interactivity",
    ],
}

CUSTOMIZER_BACKEND_HINTS = {
    "dashboard": "Add a simple backend API code example that would provide data for this dashboard",
    "form": "Add a simple backend API endpoint that receives and validates the form data",
    "table": "Add a simple backend API endpoint that serves paginated table data",
    "card": "Add a simple backend API endpoint that provides the card content",
    "navbar": "Add a simple backend API endpoint code for user authentication if relevant",
    "default": "Add a simple backend API endpoint code that would support this component",
}


def build_customization_prompt(template, component_type, code, original_prompt, style_instructions, design_system, is_full_stack):
    requirements = list(CUSTOMIZER_REQUIREMENTS[template])
    requirements.insert(1, f"Ensure the component still uses the original design system ({design_system})")
    requirements.append("Ensure the code is clean, well-organized, and follows best practices")
    if is_full_stack:
        requirements.append(CUSTOMIZER_BACKEND_HINTS[template])

    instructions = [
        "Customize the existing code to match the style requirements",
        f"Enhance the {component_type} with better organization, responsiveness, and interactivity",
        "Do not remove existing functionality, only enhance and style it",
        "Return the complete, customized component code",
    ]
    if is_full_stack:
        instructions.append("Include a separate code block with a simple backend implementation")

    backend_format = ""
    if is_full_stack:
        backend_format = "Then provide the backend code (if required):\n\n```javascript\n// Backend code here...\n```\n"

    return f"""
You are an expert UI developer specializing in creating beautiful React applications.

# TASK
I need you to customize and enhance the provided {component_type} component code based on specific requirements.

# ORIGINAL CODE
```jsx
{code}
```

# USER REQUIREMENTS
"{original_prompt}"

# STYLE REQUIREMENTS
{chr(10).join(style_instructions)}

# TECHNICAL REQUIREMENTS
{chr(10).join('- ' + item for item in requirements)}

# INSTRUCTIONS
{chr(10).join(f'{i}. {item}' for i, item in enumerate(instructions, 1))}

# EXPECTED RESPONSE FORMAT
Provide the customized code in the following format:

```jsx
// Frontend code here...
```

{backend_format}
Finally, provide a brief explanation of the changes you made.
"""


def build_generation_fallback_prompt(user_prompt, design_system, component_type, example_snippets):
    examples = "\n\n".join(
        f"Example {i}:\n```jsx\n{snippet}\n```" for i, snippet in enumerate(example_snippets, 1)
    )
    return f"""
You are an expert UI developer specializing in creating beautiful React applications.

# TASK
I need you to create a {component_type} based on my requirements. I could not find an exact match, so please create it from scratch.

# USER REQUIREMENTS
"{user_prompt}"

# DESIGN SYSTEM
You should use {design_system} for this component.

# EXAMPLES
Here are some examples of {design_system} components:

{examples}

# TECHNICAL REQUIREMENTS
- Create a React component that fulfills the user's requirements
- Use {design_system} components and styling
- Use TypeScript with proper type definitions
- Make the component fully responsive and accessible
- Ensure the code is clean, well-organized, and follows best practices

# EXPECTED RESPONSE FORMAT
Provide the code in the following format:

```jsx
// Frontend code here...
```

If backend code is needed, include it after the frontend code:

```javascript
// Backend code here (if needed)...
```

Finally, provide a brief explanation of the component and how to use it.
"""
