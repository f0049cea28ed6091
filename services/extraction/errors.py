class AIExtractionError(Exception):
    """Raised when the AI-assisted extraction path cannot produce items."""
