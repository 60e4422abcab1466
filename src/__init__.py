"""semantic_pager — two-stage pagination cache for similarity-search results."""

__version__ = "0.1.0"
