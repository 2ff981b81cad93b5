"""Application use cases wiring the retrieval pipeline together."""

from .ingest_text import IngestText
from .search import Search
from .chat import Chat
from .route import RouteInput
from .list_notes import ListNotes

__all__ = ["IngestText", "Search", "Chat", "RouteInput", "ListNotes"]
