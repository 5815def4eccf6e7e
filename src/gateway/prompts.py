# Prompt collaborator.
# The gateway treats prompts as opaque strings; DefaultPrompts is the
# built-in set, replaceable by anything matching PromptSource.

from __future__ import annotations
import json
from typing import Any, Optional, Protocol, Type

from pydantic import BaseModel

from .schemas import JobInfo, ResumeAnalysis

BASE_JSON_RULES = """\
Respond with a single JSON object and nothing else.
Do not wrap the JSON in markdown code fences.
"""


def schema_hint(model: Type[BaseModel]) -> str:
    """JSON schema of the expected output, for inclusion in a system prompt."""
    return "The JSON object must match this JSON schema:\n" + json.dumps(model.model_json_schema(), ensure_ascii=False)


class PromptSource(Protocol):
    def analysis_system(self) -> str: ...

    def analysis_user(self) -> str: ...

    def improvement_system(self) -> str: ...

    def improvement_user(self, target_role: str, target_industry: str, custom_prompt: Optional[str]) -> str: ...

    def tailoring_system(self) -> str: ...

    def tailoring_user(
        self,
        current_resume: Any,
        job_description: str,
        include_cover_letter: bool,
        company_name: Optional[str],
        job_title: Optional[str],
    ) -> str: ...

    def job_extraction_system(self) -> str: ...

    def job_extraction_user(self, job_url: str) -> str: ...


class DefaultPrompts:
    def analysis_system(self) -> str:
        return f"""You are a brutally honest, experienced recruiter reviewing a resume.
Score the resume overall and per section (0-100), give a witty but constructive roast,
list strengths, issues and quick fixes per section, and list missing sections.
Use the keys: overall_score, ats_score, main_roast, score_category,
resume_sections, missing_sections.

{schema_hint(ResumeAnalysis)}

{BASE_JSON_RULES}"""

    def analysis_user(self) -> str:
        return "Analyze the attached resume and return the JSON analysis."

    def improvement_system(self) -> str:
        return f"""You are a professional resume writer.
Rewrite each section of the resume for impact without inventing facts.
Use the keys: analysis_headline, original_resume_score, improved_resume_score,
overall_feedback, improved_sections.

{BASE_JSON_RULES}"""

    def improvement_user(self, target_role: str, target_industry: str, custom_prompt: Optional[str]) -> str:
        out = f"Target role: {target_role}\nTarget industry: {target_industry}\n"
        if custom_prompt:
            out += f"Additional instructions: {custom_prompt}\n"
        return out + "Improve the attached resume for this target."

    def tailoring_system(self) -> str:
        return f"""You are a resume tailoring specialist.
Customize the resume to match the job description while never fabricating experience.

{BASE_JSON_RULES}"""

    def tailoring_user(
        self,
        current_resume: Any,
        job_description: str,
        include_cover_letter: bool,
        company_name: Optional[str],
        job_title: Optional[str],
    ) -> str:
        resume = current_resume if isinstance(current_resume, str) else json.dumps(current_resume, ensure_ascii=False)
        lines = [
            f"Current resume:\n{resume}",
            f"Job description:\n{job_description}",
        ]
        if company_name:
            lines.append(f"Company: {company_name}")
        if job_title:
            lines.append(f"Job title: {job_title}")
        lines.append("Include a cover letter." if include_cover_letter else "Do not include a cover letter.")
        return "\n\n".join(lines)

    def job_extraction_system(self) -> str:
        return f"""You extract job posting information from a URL.
Use the keys: job_title, company_name, location, job_description, requirements.

{schema_hint(JobInfo)}

{BASE_JSON_RULES}"""

    def job_extraction_user(self, job_url: str) -> str:
        return f"This is the job posting url: {job_url}"
