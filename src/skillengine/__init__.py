"""Skill orchestration engine for a conversational sales agent."""

__version__ = "0.1.0"
