"""Local web dashboard for kabu-ai."""
