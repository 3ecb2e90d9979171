"""
Adapters package for the content gateway.

Contains the HTTP client for the Directus item API and the fetcher that
applies per-entity defaults on top of it. These adapters encapsulate:

- Base URL, token and request encoding
- A single retry on transport failures
- Error handling that maps to shared errors
"""

from .content_fetcher import ContentFetcher
from .directus_client import DirectusClient

__all__ = [
    "ContentFetcher",
    "DirectusClient",
]
