"""
Prompt templates for the Jira issue enhancer.

A template is data: instruction text with a single {description} slot, plus an
optional response schema and temperature passed to Gemini as generationConfig.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


REPORT_INSTRUCTION = """You are a professional Jira issue enhancer. Transform this vague description into a comprehensive bug report.

Original: "{description}"

Return ONLY this exact JSON structure with detailed, professional content:

{{
  "Executive Summary": {{
    "Overview": "[Write 3-5 sentences explaining how you transformed the vague description into a comprehensive report, what was unclear, and how you clarified it. Start with 'The original issue description...' and explain the transformation.]",
    "Key Outcomes": [
      "Transformed a vague report into a detailed, actionable bug ticket.",
      "Established clear, testable Acceptance Criteria for QA validation.",
      "Assigned an appropriate Issue Type (Bug) and Priority (Critical) to reflect business impact.",
      "Provided a full-fledged report including validation, troubleshooting, and recommendations for future improvements."
    ]
  }},
  "Enhanced Jira Description": {{
    "Title": "Bug: [Specific technical title]",
    "Background": "[3-5 sentences: What is this feature? What is its purpose? What is the current state? Be detailed and narrative.]",
    "Impact Analysis": "[3-5 sentences: Explain this is a critical-level incident, complete service outage, mentions SLAs, user trust, productivity impact. Use business language.]",
    "Additional Notes": [
      "Initial investigation should focus on [specific component/area].",
      "It is recommended to check [specific log/tool] for [specific errors].",
      "The report is missing [specific details]. The development team should [action]."
    ]
  }},
  "Steps to Reproduce": [
    "1. Navigate to [specific page/URL].",
    "2. Enter [specific input] into [specific field].",
    "3. Enter [specific input] into [specific field].",
    "4. Click the '[button name]' button."
  ],
  "Actual Result": "[2-3 sentences: What happens currently when performing the steps? Be specific about lack of response, no errors shown, user remains on page, etc.]",
  "Expected Result": "[2-3 sentences: What should happen? Include specifics like 'within 3-5 seconds', specific redirects, etc.]",
  "Acceptance Criteria": [
    "GIVEN a user is on [page] with [condition], WHEN they [action], THEN they [expected outcome].",
    "GIVEN [condition], THEN [expected outcome].",
    "GIVEN a user [action with invalid data], WHEN they [action], THEN [error message should display].",
    "GIVEN a user [action], THEN the [UI element] provides [specific feedback]."
  ],
  "Issue Type": "Bug",
  "Priority": "Critical",
  "Validation Report": {{
    "QA Results": "[2-3 sentences: Assessment of description completeness, whether it passes 'Ready for Development', what components it contains.]",
    "Improvement Suggestions": "[2-3 sentences: Recommendations for reporters - include environment details, console logs, screen recordings, bug-reporting tools, Jira templates.]",
    "Compliance Checks": "[1-2 sentences: Whether ticket structure complies with organizational standards, mentions specific components like title, background, steps, acceptance criteria.]"
  }},
  "Troubleshooting Guide": {{
    "Common Issues": [
      "Ambiguous Titles: Titles like 'It's broken' lack context.",
      "Missing Steps to Reproduce: Without clear steps, developers and QA cannot verify the issue.",
      "Unclear Outcomes: Vague descriptions of 'not working' prevent effective debugging and testing.",
      "Lack of Impact Analysis: Issues without a clear business impact are often deprioritized incorrectly."
    ],
    "Solutions": [
      "Standardize Titles: Use a 'Type: Feature/Component - Brief Description' format (e.g., 'Bug: Login Page - Button Unresponsive').",
      "Enforce Required Fields: Make 'Steps to Reproduce', 'Actual Result', and 'Expected Result' mandatory fields in Jira.",
      "Define Acceptance Criteria: Use the Gherkin (Given/When/Then) syntax to define specific, testable outcomes.",
      "Quantify Impact: Explain the effect on users, business operations, or revenue to ensure proper prioritization."
    ]
  }},
  "Recommendations": [
    "Implement standardized Jira issue templates for common issue types like Bugs and Stories to guide reporters in providing complete information.",
    "Conduct brief, periodic training sessions for teams on what constitutes a high-quality Jira description.",
    "Establish a 'Definition of Ready' for development teams, which requires tickets to meet specific quality criteria before being accepted into a sprint.",
    "Promote a culture of clear communication where developers and QA are empowered to ask for clarification and push back on incomplete tickets."
  ]
}}

Follow this EXACT structure and field order. Make content specific to the original description."""


def _string() -> Dict[str, Any]:
    return {"type": "string"}


def _string_list() -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}}


REPORT_REQUIRED_FIELDS = [
    "Executive Summary",
    "Enhanced Jira Description",
    "Steps to Reproduce",
    "Actual Result",
    "Expected Result",
    "Acceptance Criteria",
    "Issue Type",
    "Priority",
]

REPORT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "Executive Summary": {
            "type": "object",
            "properties": {
                "Overview": _string(),
                "Key Outcomes": _string_list(),
            },
        },
        "Enhanced Jira Description": {
            "type": "object",
            "properties": {
                "Title": _string(),
                "Background": _string(),
                "Impact Analysis": _string(),
                "Additional Notes": _string_list(),
            },
        },
        "Steps to Reproduce": _string_list(),
        "Actual Result": _string(),
        "Expected Result": _string(),
        "Acceptance Criteria": _string_list(),
        "Issue Type": _string(),
        "Priority": _string(),
        "Validation Report": {
            "type": "object",
            "properties": {
                "QA Results": _string(),
                "Improvement Suggestions": _string(),
                "Compliance Checks": _string(),
            },
        },
        "Troubleshooting Guide": {
            "type": "object",
            "properties": {
                "Common Issues": _string_list(),
                "Solutions": _string_list(),
            },
        },
        "Recommendations": _string_list(),
    },
    "required": REPORT_REQUIRED_FIELDS,
}


@dataclass(frozen=True)
class PromptTemplate:
    """Instruction text plus the generation settings sent alongside it."""

    name: str
    instruction: str
    response_schema: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None


STRUCTURED_TEMPLATE = PromptTemplate(
    name="structured",
    instruction=REPORT_INSTRUCTION,
    response_schema=REPORT_RESPONSE_SCHEMA,
    temperature=0.7,
)

# No generationConfig at all; the model may wrap its answer in a code fence
FREEFORM_TEMPLATE = PromptTemplate(
    name="freeform",
    instruction=REPORT_INSTRUCTION,
)

TEMPLATES = {
    STRUCTURED_TEMPLATE.name: STRUCTURED_TEMPLATE,
    FREEFORM_TEMPLATE.name: FREEFORM_TEMPLATE,
}


def get_template(name: str) -> PromptTemplate:
    """
    Look up a built-in prompt template by name.

    Raises:
        ValueError: If no template has that name
    """
    try:
        return TEMPLATES[name]
    except KeyError:
        raise ValueError(
            f"Unknown prompt template: {name!r} (expected one of {', '.join(sorted(TEMPLATES))})"
        )


def build_prompt(description: Optional[str], template: PromptTemplate = STRUCTURED_TEMPLATE) -> str:
    """
    Render the instruction for one description.

    The description is inserted verbatim: no escaping and no length cap.
    """
    return template.instruction.format(description=description if description is not None else "")


def build_generation_config(template: PromptTemplate) -> Optional[Dict[str, Any]]:
    """
    Build the Gemini generationConfig for a template.

    Returns:
        The config dict, or None when the template sets neither a temperature
        nor a response schema
    """
    config: Dict[str, Any] = {}
    if template.temperature is not None:
        config["temperature"] = template.temperature
    if template.response_schema is not None:
        config["response_mime_type"] = "application/json"
        config["response_schema"] = template.response_schema
    return config or None
