"""repokeeper — keep a GitHub repository fleet protected and licensed."""

__version__ = "0.3.0"
