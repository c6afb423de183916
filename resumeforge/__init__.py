"""
RESUMEFORGE - keyword-targeted resume generation from job postings

Extracts salient terms from a job posting and uses them, together with a
candidate's stored profile, to drive a generative model that writes the resume.

Architecture:
- Intake Context: Job posting term extraction and ranking
- Profiles Context: Read-only candidate profile snapshots
- Generation Context: Prompt assembly and streaming relay of model output
"""

__version__ = "0.1.0"
