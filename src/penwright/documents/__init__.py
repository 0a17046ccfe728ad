"""Document state, its data model, and on-disk persistence."""

from .models import (
    ConceptSnapshot,
    Document,
    DocumentStage,
    EditSuggestion,
    OutlineSection,
    OutlineVersion,
    new_section_id,
)
from .persistence import DebouncedDocumentSaver, DocumentLoadError, DocumentRepository, StoredDocument
from .store import DocumentStore, NoDocumentLoaded

__all__ = [
    "ConceptSnapshot",
    "DebouncedDocumentSaver",
    "Document",
    "DocumentLoadError",
    "DocumentRepository",
    "DocumentStage",
    "DocumentStore",
    "EditSuggestion",
    "NoDocumentLoaded",
    "OutlineSection",
    "OutlineVersion",
    "StoredDocument",
    "new_section_id",
]
