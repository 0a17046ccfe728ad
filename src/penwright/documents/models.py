"""Document, outline, concept, and edit-history data models."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence

LOGGER = logging.getLogger(__name__)

__all__ = [
    "ConceptSnapshot",
    "Document",
    "DocumentStage",
    "EditSuggestion",
    "OutlineSection",
    "OutlineVersion",
    "new_section_id",
    "outline_from_payload",
    "outline_to_payload",
    "utcnow_iso",
]


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def new_section_id() -> str:
    """Mint a fresh outline section id; ids are never reused."""

    return uuid.uuid4().hex


class DocumentStage(str, Enum):
    """Ordered writing-process phases."""

    CONCEPT = "concept"
    OUTLINE = "outline"
    DRAFT = "draft"
    EDITS = "edits"
    POLISH = "polish"

    def next(self) -> "DocumentStage":
        stages = list(DocumentStage)
        index = stages.index(self)
        return stages[min(index + 1, len(stages) - 1)]

    @classmethod
    def parse(cls, value: Any, default: "DocumentStage | None" = None) -> "DocumentStage | None":
        """Coerce *value* into a stage, returning *default* when it is unknown."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


@dataclass(slots=True, frozen=True)
class OutlineSection:
    """Single entry in an ordered outline. ``id`` is stable across renames."""

    id: str
    title: str
    description: str = ""
    estimated_words: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "estimatedWords": self.estimated_words,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "OutlineSection":
        """Parse a persisted section, raising ``ValueError`` on unexpected shapes."""

        if not isinstance(payload, Mapping):
            raise ValueError("outline section must be an object")
        section_id = payload.get("id")
        title = payload.get("title")
        description = payload.get("description", "")
        estimate = payload.get("estimatedWords", payload.get("estimated_words"))
        if not isinstance(section_id, str) or not section_id:
            raise ValueError("outline section id must be a non-empty string")
        if not isinstance(title, str):
            raise ValueError("outline section title must be a string")
        if description is None:
            description = ""
        if not isinstance(description, str):
            raise ValueError("outline section description must be a string")
        if estimate is not None and (isinstance(estimate, bool) or not isinstance(estimate, int)):
            raise ValueError("outline section estimatedWords must be an integer")
        return cls(id=section_id, title=title, description=description, estimated_words=estimate)


def outline_from_payload(payload: Any) -> tuple[OutlineSection, ...] | None:
    """Parse a persisted outline; malformed payloads fail closed to ``None``."""

    if payload is None:
        return None
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        LOGGER.warning("Ignoring outline payload of unexpected type %s", type(payload).__name__)
        return None
    try:
        sections = tuple(OutlineSection.from_payload(entry) for entry in payload)
    except ValueError as exc:
        LOGGER.warning("Ignoring malformed outline payload: %s", exc)
        return None
    ids = [section.id for section in sections]
    if len(ids) != len(set(ids)):
        LOGGER.warning("Ignoring outline payload with duplicate section ids")
        return None
    return sections


def outline_to_payload(outline: Sequence[OutlineSection] | None) -> list[dict[str, Any]] | None:
    if outline is None:
        return None
    return [section.to_dict() for section in outline]


@dataclass(slots=True, frozen=True)
class ConceptSnapshot:
    """The creative direction of the piece at a point in time."""

    title: str
    core_argument: str
    audience: str
    tone: str
    updated_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "coreArgument": self.core_argument,
            "audience": self.audience,
            "tone": self.tone,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "ConceptSnapshot | None":
        if not isinstance(payload, Mapping):
            return None
        values = (
            payload.get("title"),
            payload.get("coreArgument", payload.get("core_argument")),
            payload.get("audience"),
            payload.get("tone"),
        )
        if not all(isinstance(value, str) for value in values):
            return None
        updated_at = payload.get("updatedAt", payload.get("updated_at"))
        return cls(
            title=values[0],
            core_argument=values[1],
            audience=values[2],
            tone=values[3],
            updated_at=updated_at if isinstance(updated_at, str) else utcnow_iso(),
        )


@dataclass(slots=True, frozen=True)
class OutlineVersion:
    """An outline as it was saved, kept in an append-only log."""

    sections: tuple[OutlineSection, ...]
    created_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        return {"sections": outline_to_payload(self.sections), "createdAt": self.created_at}

    @classmethod
    def from_payload(cls, payload: Any) -> "OutlineVersion | None":
        if not isinstance(payload, Mapping):
            return None
        sections = outline_from_payload(payload.get("sections", payload.get("prompts")))
        if sections is None:
            return None
        created_at = payload.get("createdAt")
        return cls(sections=sections, created_at=created_at if isinstance(created_at, str) else utcnow_iso())


@dataclass(slots=True, frozen=True)
class EditSuggestion:
    """A proposed before/after edit recorded by the agent."""

    scope: str
    before: str
    after: str
    rationale: str | None = None
    accepted: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "scope": self.scope,
            "before": self.before,
            "after": self.after,
            "rationale": self.rationale,
            "accepted": self.accepted,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "EditSuggestion | None":
        if not isinstance(payload, Mapping):
            return None
        scope, before, after = payload.get("scope"), payload.get("before"), payload.get("after")
        if not all(isinstance(value, str) for value in (scope, before, after)):
            return None
        rationale = payload.get("rationale")
        kwargs: dict[str, Any] = {
            "scope": scope,
            "before": before,
            "after": after,
            "rationale": rationale if isinstance(rationale, str) else None,
            "accepted": bool(payload.get("accepted", False)),
        }
        if isinstance(payload.get("id"), str):
            kwargs["id"] = payload["id"]
        if isinstance(payload.get("createdAt"), str):
            kwargs["created_at"] = payload["createdAt"]
        return cls(**kwargs)


@dataclass(slots=True)
class Document:
    """Full state of the open document: prose plus its writing-process metadata."""

    content: str = ""
    stage: DocumentStage = DocumentStage.CONCEPT
    concept: ConceptSnapshot | None = None
    concept_versions: list[ConceptSnapshot] = field(default_factory=list)
    outline: tuple[OutlineSection, ...] | None = None
    outline_versions: list[OutlineVersion] = field(default_factory=list)
    edit_history: list[EditSuggestion] = field(default_factory=list)
    document_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=utcnow_iso)
    path: str | None = None

    @property
    def filename(self) -> str | None:
        if not self.path:
            return None
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]

    def sidecar_payload(self) -> dict[str, Any]:
        """Serialize everything except the prose for the JSON sidecar."""

        return {
            "version": "1.0",
            "documentId": self.document_id,
            "createdAt": self.created_at,
            "stage": self.stage.value,
            "concept": {
                "current": self.concept.to_dict() if self.concept else None,
                "versions": [entry.to_dict() for entry in self.concept_versions],
            },
            "outline": {
                "current": outline_to_payload(self.outline),
                "versions": [entry.to_dict() for entry in self.outline_versions],
            },
            "editingHistory": [entry.to_dict() for entry in self.edit_history],
        }

    @classmethod
    def from_sidecar(cls, content: str, payload: Any, *, path: str | None = None) -> "Document":
        """Build a document from prose and a sidecar payload; bad fields fall back to defaults."""

        document = cls(content=content, path=path)
        if not isinstance(payload, Mapping):
            if payload is not None:
                LOGGER.warning("Sidecar payload is not an object; using defaults")
            return document

        stage = DocumentStage.parse(payload.get("stage"))
        if stage is None:
            LOGGER.warning("Unknown stage %r in sidecar; defaulting to concept", payload.get("stage"))
            stage = DocumentStage.CONCEPT
        document.stage = stage
        if isinstance(payload.get("documentId"), str):
            document.document_id = payload["documentId"]
        if isinstance(payload.get("createdAt"), str):
            document.created_at = payload["createdAt"]

        concept_payload = payload.get("concept")
        if isinstance(concept_payload, Mapping):
            document.concept = ConceptSnapshot.from_payload(concept_payload.get("current"))
            document.concept_versions = _parse_entries(concept_payload.get("versions"), ConceptSnapshot.from_payload)

        outline_payload = payload.get("outline")
        if isinstance(outline_payload, Mapping):
            document.outline = outline_from_payload(outline_payload.get("current"))
            document.outline_versions = _parse_entries(outline_payload.get("versions"), OutlineVersion.from_payload)

        document.edit_history = _parse_entries(payload.get("editingHistory"), EditSuggestion.from_payload)
        return document


def _parse_entries(payload: Any, parser) -> list:
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        return []
    entries = []
    for raw in payload:
        entry = parser(raw)
        if entry is None:
            LOGGER.debug("Skipping malformed sidecar entry: %r", raw)
            continue
        entries.append(entry)
    return entries
