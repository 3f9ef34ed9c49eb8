"""Gemini relay: prompt in, Gemini reply out, history persisted per user."""

__version__ = "0.1.0"
