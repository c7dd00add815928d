"""Gemini client, prompt templates and response parsing."""
