"""
Prompt construction for resume generation.

The rendered prompt is the contract with the backend model. Every name, date
and description in it comes verbatim from the ProfileSnapshot, the job posting
or the extracted terms; the template text adds instructions only.

Date ranges render as "Jan 2020 - Present". An entry flagged as current, or
with no end date, always ends in "Present".
"""

from datetime import date
from typing import Optional

from resumeforge.contexts.profiles.profile_data_structure import (
    EducationEntry,
    ProfileSnapshot,
    WorkHistoryEntry,
)

# Fixed English abbreviations so output does not depend on the process locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

PRESENT = "Present"

# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

_PROFILE_PROMPT_TEMPLATE = """\
You are a professional resume writer. Your task is to create an ATS-optimized resume in markdown format using ONLY the information provided below. Do not make up or add any information that is not explicitly provided.

IMPORTANT: Use the exact name, contact details, and information provided in the Personal Information section. Do not modify or change any of these details.

Use markdown syntax for formatting. Start each section with a markdown heading, in this order:
# Summary
# Skills
# Experience
# Education

Personal Information:
{personal_info}
Experience:
{experience}
Education:
{education}
Job Description:
{job_text}

Skills:
{skills}
Generate a professional resume that highlights the candidate's experience and skills in relation to the job description. Use only the information provided above."""

_GENERIC_PROMPT_TEMPLATE = """\
Generate an ATS-optimized resume tailored to the following job description.
Ensure the resume includes relevant keywords, a professional format, and highlights key skills, experience, and achievements.

Job Description:
{job_text}

Keywords:
{skills}
The resume should include, each starting with a markdown heading:
# Summary - a professional summary highlighting expertise in the keywords above
# Skills - a skills section that emphasizes the keywords
# Experience - an experience section with relevant bullet points
# Education - an education section

Use placeholders such as [Company] or [Degree] for any personal detail that is not provided above. Format the resume in Markdown."""


# =============================================================================
# FIELD FORMATTING
# =============================================================================


def format_month_year(value: date) -> str:
    """Format a date as abbreviated month name and 4-digit year (e.g., "Mar 2021")."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.year:04d}"


def format_end_date(end_date: Optional[date], is_current: bool) -> str:
    """
    Format the end of a date range.

    The current flag wins over any stored end date; a missing end date also
    renders as "Present".
    """
    if is_current or end_date is None:
        return PRESENT
    return format_month_year(end_date)


def format_date_range(start_date: date, end_date: Optional[date], is_current: bool) -> str:
    return f"{format_month_year(start_date)} - {format_end_date(end_date, is_current)}"


def format_personal_info(profile: ProfileSnapshot) -> str:
    return (
        f"Name: {profile.full_name}\n"
        f"Email: {profile.email}\n"
        f"Phone: {profile.phone}\n"
        f"Location: {profile.location}\n"
        f"Title: {profile.title}\n"
        f"Summary: {profile.summary}\n"
    )


def format_work_entry(entry: WorkHistoryEntry) -> str:
    dates = format_date_range(entry.start_date, entry.end_date, entry.is_current)
    return (
        f"- {entry.title} at {entry.company} ({dates})\n"
        f"  Location: {entry.location}\n"
        f"  Description: {entry.description}\n"
    )


def format_education_entry(entry: EducationEntry) -> str:
    dates = format_date_range(entry.start_date, entry.end_date, entry.is_current)
    return (
        f"- {entry.degree} in {entry.field} from {entry.school} ({dates})\n"
        f"  Location: {entry.location}\n"
        f"  Description: {entry.description}\n"
    )


def format_skills(terms: list[str]) -> str:
    return "".join(f"- {term}\n" for term in terms)


# =============================================================================
# PROMPT BUILDING
# =============================================================================


def build_prompt(terms: list[str], job_text: str, profile: Optional[ProfileSnapshot] = None) -> str:
    """
    Build the generation prompt.

    Args:
        terms: Ranked term texts, most important first
        job_text: Job posting text (inserted verbatim)
        profile: Candidate profile; None selects the reduced generic template

    Returns:
        Prompt string
    """
    skills = format_skills(terms)

    if profile is None:
        return _GENERIC_PROMPT_TEMPLATE.format(job_text=job_text, skills=skills)

    return _PROFILE_PROMPT_TEMPLATE.format(
        personal_info=format_personal_info(profile),
        experience="\n".join(format_work_entry(entry) for entry in profile.work_history),
        education="\n".join(format_education_entry(entry) for entry in profile.education),
        job_text=job_text,
        skills=skills,
    )
