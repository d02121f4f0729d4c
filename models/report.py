"""
Enhanced issue report contract.

Field names are the JSON keys the model is asked to produce, spaces included,
so every field is declared through an alias.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssueType(str, Enum):
    """Issue types the enhancer may assign."""

    BUG = "Bug"
    STORY = "Story"
    TASK = "Task"


class Priority(str, Enum):
    """Priority levels the enhancer may assign."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class _ReportSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ExecutiveSummary(_ReportSection):
    overview: str = Field(..., alias="Overview")
    key_outcomes: List[str] = Field(default_factory=list, alias="Key Outcomes")


class EnhancedJiraDescription(_ReportSection):
    title: str = Field(..., alias="Title")
    background: str = Field(..., alias="Background")
    impact_analysis: str = Field(..., alias="Impact Analysis")
    additional_notes: List[str] = Field(default_factory=list, alias="Additional Notes")


class ValidationReport(_ReportSection):
    qa_results: str = Field(..., alias="QA Results")
    improvement_suggestions: str = Field(..., alias="Improvement Suggestions")
    compliance_checks: str = Field(..., alias="Compliance Checks")


class TroubleshootingGuide(_ReportSection):
    common_issues: List[str] = Field(default_factory=list, alias="Common Issues")
    solutions: List[str] = Field(default_factory=list, alias="Solutions")


class EnhancedIssueReport(_ReportSection):
    """The full report. Only the first eight fields are required."""

    executive_summary: ExecutiveSummary = Field(..., alias="Executive Summary")
    enhanced_jira_description: EnhancedJiraDescription = Field(..., alias="Enhanced Jira Description")
    steps_to_reproduce: List[str] = Field(..., alias="Steps to Reproduce")
    actual_result: str = Field(..., alias="Actual Result")
    expected_result: str = Field(..., alias="Expected Result")
    acceptance_criteria: List[str] = Field(..., alias="Acceptance Criteria")
    issue_type: IssueType = Field(..., alias="Issue Type")
    priority: Priority = Field(..., alias="Priority")
    validation_report: Optional[ValidationReport] = Field(default=None, alias="Validation Report")
    troubleshooting_guide: Optional[TroubleshootingGuide] = Field(default=None, alias="Troubleshooting Guide")
    recommendations: List[str] = Field(default_factory=list, alias="Recommendations")
