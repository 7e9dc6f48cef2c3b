"""Rebuild workflow: a pydantic-graph state machine over State."""
