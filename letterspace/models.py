"""
Core data models for Letterspace.

A Document is an ordered list of elements (headers, text blocks, images,
scripture, tables, ...) plus organisational metadata: tags, series,
markers (in-document bookmarks) and variations (alternate versions such
as translations, linked to a parent document).

Design Philosophy:
- Plain dataclasses with explicit to_dict/from_dict
- Wire-compatible with the ``.canvas`` files written by the desktop app:
  camelCase keys, uppercase UUID strings, and dates as seconds since the
  Apple reference date (2001-01-01 UTC)
- Decoding is tolerant of optional keys and strict about required ones
"""

from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from letterspace.translate.formatting import StyledText


# Foundation's JSONEncoder encodes Date as a Double relative to this instant
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


class DocumentDecodeError(ValueError):
    """Raised when a document payload is missing required fields or is malformed."""


def new_uuid() -> str:
    return str(uuid.uuid4()).upper()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_date(value: Optional[datetime]) -> Optional[float]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - REFERENCE_DATE).total_seconds()


def decode_date(value: Any) -> Optional[datetime]:
    """Decode a reference-date offset or an ISO-8601 string."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return REFERENCE_DATE + timedelta(seconds=value)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise DocumentDecodeError(f"Unsupported date value: {value!r}")


def _require(d: dict, key: str, kind: str) -> Any:
    if key not in d:
        raise DocumentDecodeError(f"{kind} is missing required key '{key}'")
    return d[key]


class ElementType(str, Enum):
    """Kinds of document elements.

    Values are the exact strings stored in ``.canvas`` files.
    """
    HEADER = "header"
    TITLE = "title"
    SUBHEADER = "subheader"
    HEADER_IMAGE = "headerImage"
    IMAGE = "image"
    TEXT_BLOCK = "textBlock"
    DROPDOWN = "dropdown"
    DATE = "date"
    MULTI_SELECT = "multiSelect"
    CHART = "chart"
    SIGNATURE = "signature"
    TABLE = "table"
    SCRIPTURE = "scripture"

    @property
    def description(self) -> str:
        return _ELEMENT_DESCRIPTIONS[self]


_ELEMENT_DESCRIPTIONS = {
    ElementType.IMAGE: "Logo or graphic",
    ElementType.TEXT_BLOCK: "Multiple line text",
    ElementType.TABLE: "Columns & rows",
    ElementType.DROPDOWN: "Select from list",
    ElementType.DATE: "Select date & time",
    ElementType.MULTI_SELECT: "Select multiple items",
    ElementType.CHART: "Graph line elements",
    ElementType.SIGNATURE: "Collect signatures",
    ElementType.HEADER: "Static titles & text",
    ElementType.TITLE: "Title",
    ElementType.SUBHEADER: "Subtitle",
    ElementType.HEADER_IMAGE: "Header Image",
    ElementType.SCRIPTURE: "Bible verse",
}


@dataclass(eq=False)
class DocumentElement:
    """A single element of a document.

    Attributes:
        type: Element kind
        content: Plain text content (image elements store the file name)
        placeholder: Hint shown while the element is empty
        options: Choices for dropdown / multi-select elements
        date: Value of date elements
        rtf_data: Opaque rich-text payload as stored by the app
        styled: Rich text; its runs are stored under "styledRuns"
    """
    type: ElementType
    content: str = ""
    placeholder: str = ""
    options: list[str] = field(default_factory=list)
    date: Optional[datetime] = None
    id: str = field(default_factory=new_uuid)
    rtf_data: Optional[bytes] = None
    styled: Optional[StyledText] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentElement):
            return NotImplemented
        return (self.id, self.type, self.content) == (other.id, other.type, other.content)

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "placeholder": self.placeholder,
            "options": list(self.options),
            "date": encode_date(self.date),
        }
        if self.rtf_data is not None:
            d["rtfData"] = base64.b64encode(self.rtf_data).decode("ascii")
        if self.styled is not None and self.styled.text == self.content:
            d["styledRuns"] = self.styled.to_runs()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DocumentElement:
        raw_type = _require(d, "type", "Element")
        try:
            element_type = ElementType(raw_type)
        except ValueError:
            raise DocumentDecodeError(f"Unknown element type: {raw_type!r}")
        rtf = d.get("rtfData")
        runs = d.get("styledRuns")
        content = _require(d, "content", "Element")
        return cls(
            id=_require(d, "id", "Element"),
            type=element_type,
            content=content,
            placeholder=d.get("placeholder", ""),
            options=list(d.get("options", [])),
            date=decode_date(d.get("date")),
            rtf_data=base64.b64decode(rtf) if rtf else None,
            styled=StyledText.from_runs(content, runs) if runs is not None else None,
        )


@dataclass
class DocumentMarker:
    """An in-document bookmark at a character position."""
    title: str
    type: str
    position: int
    id: str = field(default_factory=new_uuid)
    metadata: Optional[dict[str, str]] = None

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> dict:
        d = {"id": self.id, "title": self.title, "type": self.type, "position": self.position}
        if self.metadata is not None:
            d["metadata"] = dict(self.metadata)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DocumentMarker:
        return cls(
            id=_require(d, "id", "Marker"),
            title=_require(d, "title", "Marker"),
            type=_require(d, "type", "Marker"),
            position=int(_require(d, "position", "Marker")),
            metadata=d.get("metadata"),
        )


@dataclass
class DocumentSeries:
    """A named, ordered series of documents (e.g. a sermon series)."""
    name: str
    documents: list[str] = field(default_factory=list)
    order: int = 0
    id: str = field(default_factory=new_uuid)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "documents": list(self.documents), "order": self.order}

    @classmethod
    def from_dict(cls, d: dict) -> DocumentSeries:
        return cls(
            id=_require(d, "id", "Series"),
            name=_require(d, "name", "Series"),
            documents=list(d.get("documents", [])),
            order=int(d.get("order", 0)),
        )


@dataclass
class DocumentVariation:
    """Link between a document and one of its variations."""
    name: str
    document_id: str
    parent_document_id: str
    created_at: datetime = field(default_factory=utcnow)
    date_presented: Optional[datetime] = None
    location: Optional[str] = None
    service_time: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_uuid)

    def update_metadata(
        self,
        date_presented: Optional[datetime],
        location: Optional[str],
        service_time: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        self.date_presented = date_presented
        self.location = location
        self.service_time = service_time
        self.notes = notes

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "documentId": self.document_id,
            "parentDocumentId": self.parent_document_id,
            "createdAt": encode_date(self.created_at),
        }
        optional = {
            "datePresented": encode_date(self.date_presented),
            "location": self.location,
            "serviceTime": self.service_time,
            "notes": self.notes,
        }
        d.update({k: v for k, v in optional.items() if v is not None})
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DocumentVariation:
        return cls(
            id=_require(d, "id", "Variation"),
            name=_require(d, "name", "Variation"),
            document_id=_require(d, "documentId", "Variation"),
            parent_document_id=_require(d, "parentDocumentId", "Variation"),
            created_at=decode_date(_require(d, "createdAt", "Variation")),
            date_presented=decode_date(d.get("datePresented")),
            location=d.get("location"),
            service_time=d.get("serviceTime"),
            notes=d.get("notes"),
        )


@dataclass
class DocumentLink:
    """An external link attached to a document."""
    title: str
    url: str
    created_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_uuid)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "url": self.url, "createdAt": encode_date(self.created_at)}

    @classmethod
    def from_dict(cls, d: dict) -> DocumentLink:
        return cls(
            id=_require(d, "id", "Link"),
            title=_require(d, "title", "Link"),
            url=_require(d, "url", "Link"),
            created_at=decode_date(_require(d, "createdAt", "Link")),
        )


@dataclass
class Document:
    """A complete Letterspace document.

    Documents can be created:
    - Directly, for new documents
    - From JSON, when loaded from a ``.canvas`` file: Document.from_json()
    - As a variation of another document: Document.create_variation()
    """
    title: str = ""
    subtitle: str = ""
    elements: list[DocumentElement] = field(default_factory=list)
    id: str = field(default_factory=new_uuid)
    markers: list[DocumentMarker] = field(default_factory=list)
    series: Optional[DocumentSeries] = None
    variations: list[DocumentVariation] = field(default_factory=list)
    is_variation: bool = False
    parent_variation_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)
    tags: Optional[list[str]] = None
    is_header_expanded: bool = False
    is_subtitle_visible: bool = True
    links: list[DocumentLink] = field(default_factory=list)
    summary: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def content(self) -> str:
        """Plain text of all elements, paragraph separated."""
        return "\n\n".join(e.content for e in self.elements)

    @property
    def display_title(self) -> str:
        return self.title or "Untitled"

    # ------------------------------------------------------------------
    # Variations
    # ------------------------------------------------------------------

    def create_variation(
        self,
        name: str,
        location: Optional[str] = None,
        service_time: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Document:
        """Copy this document into a new, linked variation.

        The parent gets a variation record pointing at the copy, and the
        copy gets a single back-link named after the parent.
        """
        now = utcnow()
        variation_doc = Document(
            title=name,
            subtitle=self.subtitle,
            elements=[_copy_element(e) for e in self.elements],
            markers=[DocumentMarker.from_dict(m.to_dict()) for m in self.markers],
            is_variation=True,
            parent_variation_id=self.id,
            created_at=now,
            modified_at=now,
            tags=list(self.tags) if self.tags is not None else None,
            is_header_expanded=self.is_header_expanded,
            is_subtitle_visible=self.is_subtitle_visible,
            links=list(self.links),
            summary=self.summary,
        )
        self.variations.append(DocumentVariation(
            name=name,
            document_id=variation_doc.id,
            parent_document_id=self.id,
            created_at=now,
            location=location,
            service_time=service_time,
            notes=notes,
        ))
        variation_doc.variations = [DocumentVariation(
            name=self.title,
            document_id=self.id,
            parent_document_id=variation_doc.id,
            created_at=now,
        )]
        return variation_doc

    def add_variation(self, variation_doc: Document, name: str) -> DocumentVariation:
        """Record ``variation_doc`` as a variation of this document."""
        variation = DocumentVariation(
            name=name,
            document_id=variation_doc.id,
            parent_document_id=self.id,
        )
        self.variations.append(variation)
        return variation

    def update_variation_metadata(
        self,
        variation_id: str,
        date_presented: Optional[datetime],
        location: Optional[str],
    ) -> bool:
        for variation in self.variations:
            if variation.id == variation_id:
                variation.update_metadata(date_presented=date_presented, location=location)
                return True
        return False

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def add_marker(
        self,
        id: str,
        title: str,
        type: str,
        position: int,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Add a marker, keeping markers ordered by position.

        Returns False when a marker with the same id already exists.
        """
        if any(m.id == id for m in self.markers):
            return False
        string_metadata = None
        if metadata is not None:
            string_metadata = {key: str(value) for key, value in metadata.items()}
        self.markers.append(DocumentMarker(
            id=id, title=title, type=type, position=position, metadata=string_metadata,
        ))
        self.markers.sort(key=lambda m: m.position)
        return True

    def remove_marker(self, id: str) -> bool:
        before = len(self.markers)
        self.markers = [m for m in self.markers if m.id != id]
        return len(self.markers) != before

    @property
    def bookmarks(self) -> list[DocumentMarker]:
        return [m for m in self.markers if m.type == "bookmark"]

    # ------------------------------------------------------------------
    # Misc helpers
    # ------------------------------------------------------------------

    def update_title_from_header(self) -> bool:
        for element in self.elements:
            if element.type == ElementType.HEADER:
                if element.content:
                    self.title = element.content
                    return True
                return False
        return False

    def get_metadata_string(self, key: str) -> Optional[str]:
        value = (self.metadata or {}).get(key)
        return value if isinstance(value, str) else None

    def set_metadata(self, key: str, value: Any) -> None:
        updated = dict(self.metadata or {})
        updated[key] = value
        self.metadata = updated

    def touch(self) -> None:
        self.modified_at = utcnow()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        d = {
            "elements": [e.to_dict() for e in self.elements],
            "title": self.title,
            "subtitle": self.subtitle,
            "id": self.id,
            "markers": [m.to_dict() for m in self.markers],
            "variations": [v.to_dict() for v in self.variations],
            "isVariation": self.is_variation,
            "createdAt": encode_date(self.created_at),
            "modifiedAt": encode_date(self.modified_at),
            "isHeaderExpanded": self.is_header_expanded,
            "isSubtitleVisible": self.is_subtitle_visible,
            "links": [link.to_dict() for link in self.links],
        }
        if self.series is not None:
            d["series"] = self.series.to_dict()
        if self.parent_variation_id is not None:
            d["parentVariationId"] = self.parent_variation_id
        if self.tags is not None:
            d["tags"] = list(self.tags)
        if self.summary is not None:
            d["summary"] = self.summary
        if self.metadata is not None:
            d["metadata"] = self.metadata
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Document:
        if not isinstance(d, dict):
            raise DocumentDecodeError("Document payload must be a JSON object")
        series = d.get("series")
        return cls(
            elements=[DocumentElement.from_dict(e) for e in _require(d, "elements", "Document")],
            title=_require(d, "title", "Document"),
            subtitle=_require(d, "subtitle", "Document"),
            id=_require(d, "id", "Document"),
            markers=[DocumentMarker.from_dict(m) for m in _require(d, "markers", "Document")],
            series=DocumentSeries.from_dict(series) if series else None,
            variations=[DocumentVariation.from_dict(v) for v in _require(d, "variations", "Document")],
            is_variation=bool(_require(d, "isVariation", "Document")),
            parent_variation_id=d.get("parentVariationId"),
            created_at=decode_date(_require(d, "createdAt", "Document")),
            modified_at=decode_date(_require(d, "modifiedAt", "Document")),
            tags=d.get("tags"),
            is_header_expanded=bool(_require(d, "isHeaderExpanded", "Document")),
            is_subtitle_visible=d.get("isSubtitleVisible", True),
            links=[DocumentLink.from_dict(link) for link in d.get("links") or []],
            summary=d.get("summary"),
            metadata=d.get("metadata"),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize document to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str | bytes) -> Document:
        """Deserialize document from JSON string."""
        try:
            payload = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise DocumentDecodeError(f"Invalid JSON: {e}") from e
        return cls.from_dict(payload)

    def describe(self) -> str:
        """Return a human-readable summary of the document."""
        return (
            f"Document '{self.display_title}' ({self.id})\n"
            f"  Elements: {len(self.elements)}\n"
            f"  Markers: {len(self.markers)}\n"
            f"  Variations: {len(self.variations)}\n"
            f"  Tags: {', '.join(self.tags or []) or '-'}\n"
            f"  Modified: {self.modified_at.isoformat()}"
        )


def _copy_element(element: DocumentElement) -> DocumentElement:
    return DocumentElement(
        id=element.id,
        type=element.type,
        content=element.content,
        placeholder=element.placeholder,
        options=list(element.options),
        date=element.date,
        rtf_data=element.rtf_data,
        styled=element.styled,
    )
