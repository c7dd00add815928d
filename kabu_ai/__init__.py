"""kabu-ai: Gemini-backed stop-high scanner and stock analysis reports."""

__version__ = "0.1.0"
