"""Unit tests for individual components in isolation.

Coverage:
    - streaming/: Line assembly and NDJSON-to-SSE reframing
    - inference/: Prompt building, config validation, backend client
    - parsing/: PDF validation and text extraction
    - ui/: Stream consumer state machine, session state, formatting
"""
