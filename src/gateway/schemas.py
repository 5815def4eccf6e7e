# Structured output shapes the models are asked to produce, and the tool
# schemas derived from them.

from __future__ import annotations
from typing import List, Literal, Optional, Type

from pydantic import BaseModel, Field

from .types import ToolSchema

Rating = Literal["Excellent", "Good", "Needs Work", "Poor"]


class ResumeSection(BaseModel):
    section_name: str = Field(description="The name of the resume section (e.g., 'Professional Summary', 'Experience').")
    found: bool = Field(description="Whether the section was found in the resume.")
    score: int = Field(description="The score for this section, from 0 to 100.")
    rating: Rating = Field(description="The qualitative rating for this section.")
    roast: str = Field(description="A short, witty, and constructive roast of this section.")
    good_things: List[str] = Field(description="Specific strengths of this section.")
    issues_found: List[str] = Field(description="Specific weaknesses or issues in this section.")
    quick_fixes: List[str] = Field(description="Actionable quick fixes for the issues found.")


class ResumeAnalysis(BaseModel):
    overall_score: int = Field(description="The overall score for the entire resume, from 0 to 100.")
    ats_score: int = Field(description="Estimated Applicant Tracking System compatibility score, from 0 to 100.")
    main_roast: str = Field(description="A summary-level, witty, and constructive roast of the entire resume.")
    score_category: Rating = Field(description="The overall category based on the score.")
    resume_sections: List[ResumeSection] = Field(description="A detailed analysis of each section of the resume.")
    missing_sections: List[str] = Field(description="Important sections that are missing from the resume.")


class ImprovedResumeSection(BaseModel):
    section_name: str
    original_content: str = Field(description="The original content of the section for comparison.")
    improved_content: str = Field(description="The rewritten content for this section.")
    changes_made: List[str] = Field(description="The key changes made in this section.")


class ImprovedResume(BaseModel):
    analysis_headline: str = Field(description="A one-sentence headline summarizing the improvement strategy.")
    original_resume_score: int = Field(description="Estimated score (0-100) of the original resume for the target role.")
    improved_resume_score: int = Field(description="Estimated score (0-100) of the improved resume.")
    overall_feedback: str = Field(description="General feedback on the overall improvements made.")
    improved_sections: List[ImprovedResumeSection] = Field(description="Each rewritten section of the resume.")


class JobInfo(BaseModel):
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    location: Optional[str] = None
    job_description: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)


def function_tool(name: str, description: str, model: Type[BaseModel]) -> ToolSchema:
    return ToolSchema(name=name, description=description, parameters=model.model_json_schema())


WEB_SEARCH_TOOL = ToolSchema(name="web_search", description="Search the web", builtin=True)

DISPLAY_IMPROVED_RESUME_TOOL = function_tool(
    "displayImprovedResume",
    "Displays the improved resume to the user.",
    ImprovedResume,
)
