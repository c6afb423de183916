"""
Profiles Context

Responsibilities:
- Defines the read-only profile snapshot handed to the generation pipeline
- Looks up a profile with its work history and education from SQLite

Owns: Profile snapshot data structures and the lookup boundary
Never: Mutates a snapshot after it has been handed out
"""
