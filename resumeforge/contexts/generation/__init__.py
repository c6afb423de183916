"""
Generation Context

Responsibilities:
- Builds the resume prompt from ranked terms, the job posting and a profile
- Talks to the generation backend over its newline-delimited JSON protocol
- Relays backend events to the caller in order, one at a time

Owns: Prompt contract, backend protocol, relay semantics
Never: Persists profiles or retries failed requests
"""
