"""
Normalization of the enhancer's raw text into formatted report JSON.
"""
from typing import Any
import json

from pydantic import ValidationError

from models.report import EnhancedIssueReport


class ResponseFormatError(Exception):
    """Raised when the model text is not valid report JSON."""
    pass


def strip_code_fence(text: str) -> str:
    """
    Remove a Markdown code fence around the text, if any.

    Handles a leading ```json or ``` and a trailing ```. Text without a fence
    comes back trimmed and otherwise unchanged.
    """
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    else:
        return cleaned

    cleaned = cleaned.strip()
    if cleaned.endswith("```"):
        cleaned = cleaned[:-len("```")]
    return cleaned.strip()


def parse_report(text: str) -> Any:
    """
    Strip any code fence and parse the remainder as JSON.

    Raises:
        ResponseFormatError: With the JSON decoder's own message
    """
    try:
        return json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ResponseFormatError(str(e))


def validate_report(report: Any) -> EnhancedIssueReport:
    """
    Check a parsed report against the report model, enums included.

    Raises:
        ResponseFormatError: Listing each violation as "<field path>: <reason>"
    """
    if not isinstance(report, dict):
        raise ResponseFormatError(f"Expected a JSON object, got {type(report).__name__}")
    try:
        return EnhancedIssueReport.model_validate(report)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ResponseFormatError(f"Report does not match the expected structure: {problems}")


def format_report(report: Any) -> str:
    """Serialize with two-space indentation, keeping the model's key order."""
    return json.dumps(report, indent=2, ensure_ascii=False)


def normalize(text: str, validate: bool = False) -> str:
    """
    Turn raw model text into formatted report JSON.

    Args:
        text: Raw candidate text, possibly fenced
        validate: Also check the report against EnhancedIssueReport

    Returns:
        Report re-serialized with two-space indentation

    Raises:
        ResponseFormatError: If parsing (or validation, when enabled) fails
    """
    report = parse_report(text)
    if validate:
        validate_report(report)
    return format_report(report)
