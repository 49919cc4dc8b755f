"""CreatorIQ AI services: channel analysis orchestration and rate limiting."""

__version__ = "1.0.0"
