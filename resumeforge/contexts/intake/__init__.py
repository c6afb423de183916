"""
Intake Context

Responsibilities:
- Normalizes raw job posting text
- Detects known multi-word phrases and recurring bigrams
- Ranks terms by weighted frequency

Owns: Term extraction and ranking logic
Never: Performs I/O or talks to the generation backend
"""
