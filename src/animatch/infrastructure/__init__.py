"""
Infrastructure Layer - Catalog adapters and caching.

Contains:
- sources: AniList, Jikan and Kitsu adapters with their rate limits
- cache: In-memory TTL stores for search, details and recommendations
"""
