"""Advisory sources, the in-memory index, and archive syncing."""

from .index import AdvisoryIndex, AdvisorySource, StaticAdvisorySource, IndexHolder
from .database import AdvisoryDatabase, advisory_from_record
from .fetcher import AdvisoryFetcher

__all__ = [
    "AdvisoryIndex",
    "AdvisorySource",
    "StaticAdvisorySource",
    "IndexHolder",
    "AdvisoryDatabase",
    "advisory_from_record",
    "AdvisoryFetcher",
]
