"""
External integrations for the progression engine.

Modules:
- content_client: HTTP client for the lesson content generation API
"""
from .content_client import HttpContentGenerator

__all__ = ["HttpContentGenerator"]
