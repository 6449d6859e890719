"""FacetStudio: AI makeup coaching on Gemini + PocketBase."""

__version__ = "1.2.0"
