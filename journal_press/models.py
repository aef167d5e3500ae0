"""Data models for the journal press."""
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class SubmissionStatus(str, Enum):
    """Editorial status of a submission."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    REVISION_REQUIRED = "revision_required"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PUBLISHED = "published"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass
class Author:
    """An author as entered on a submission."""
    name: str
    email: str = ""
    affiliation: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Author":
        return cls(
            name=(data.get("name") or "").strip(),
            email=(data.get("email") or "").strip(),
            affiliation=(data.get("affiliation") or "").strip(),
        )


@dataclass
class SupplementaryFile:
    """An extra file attached to a submission."""
    name: str
    ref: str


@dataclass
class CurrentUser:
    """The authenticated caller, as far as the core cares."""
    id: str
    is_admin: bool = False


class _Record:
    """Serialization shared by the stored record types."""

    DATETIME_FIELDS: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for name in self.DATETIME_FIELDS:
            value = data.get(name)
            data[name] = value.isoformat() if value else None
        return data

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


@dataclass
class Journal(_Record):
    """A journal in the catalog."""
    title: str
    slug: str
    issn: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    impact_factor: Optional[str] = None
    frequency: Optional[str] = None
    editor_in_chief: Optional[str] = None
    scope: Optional[str] = None
    image_ref: Optional[str] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    DATETIME_FIELDS = ("created_at", "updated_at")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Journal":
        values = {k: data[k] for k in cls.field_names() if k in data}
        for name in cls.DATETIME_FIELDS:
            if name in values:
                values[name] = _parse_datetime(values[name])
        return cls(**values)


@dataclass
class Issue(_Record):
    """A dated grouping of articles under a journal."""
    journal_id: str
    volume: int
    issue_number: int
    year: int
    month: Optional[str] = None
    is_current: bool = False
    published_at: Optional[datetime] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    DATETIME_FIELDS = ("published_at", "created_at")

    @property
    def label(self) -> str:
        return f"Vol. {self.volume}, Issue {self.issue_number} ({self.year})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        values = {k: data[k] for k in cls.field_names() if k in data}
        for name in cls.DATETIME_FIELDS:
            if name in values:
                values[name] = _parse_datetime(values[name])
        return cls(**values)


@dataclass
class Article(_Record):
    """A published article, visible in the catalog."""
    issue_id: str
    title: str
    abstract: str = ""
    keywords: List[str] = field(default_factory=list)
    authors: List[Author] = field(default_factory=list)
    pdf_ref: Optional[str] = None
    doi: Optional[str] = None
    pages: Optional[str] = None
    published_at: Optional[datetime] = None
    views: int = 0
    downloads: int = 0
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    DATETIME_FIELDS = ("published_at", "created_at")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        values = {k: data[k] for k in cls.field_names() if k in data}
        values["authors"] = [
            a if isinstance(a, Author) else Author.from_dict(a)
            for a in values.get("authors") or []
        ]
        values["keywords"] = list(values.get("keywords") or [])
        for name in cls.DATETIME_FIELDS:
            if name in values:
                values[name] = _parse_datetime(values[name])
        return cls(**values)


@dataclass
class Submission(_Record):
    """An author-supplied manuscript awaiting an editorial decision."""
    user_id: str
    journal_id: str
    title: str
    abstract: str
    keywords: List[str] = field(default_factory=list)
    authors: List[Author] = field(default_factory=list)
    manuscript_ref: Optional[str] = None
    supplementary_files: List[SupplementaryFile] = field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.PENDING
    editor_notes: Optional[str] = None
    id: Optional[str] = None
    submitted_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    DATETIME_FIELDS = ("submitted_at", "updated_at")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        values = {k: data[k] for k in cls.field_names() if k in data}
        values["authors"] = [
            a if isinstance(a, Author) else Author.from_dict(a)
            for a in values.get("authors") or []
        ]
        values["supplementary_files"] = [
            s if isinstance(s, SupplementaryFile) else SupplementaryFile(**s)
            for s in values.get("supplementary_files") or []
        ]
        values["keywords"] = list(values.get("keywords") or [])
        if "status" in values:
            values["status"] = SubmissionStatus(values["status"])
        for name in cls.DATETIME_FIELDS:
            if name in values:
                values[name] = _parse_datetime(values[name])
        return cls(**values)


@dataclass
class ArticleView:
    """Read-only projection of an article with its issue and journal."""
    article: Article
    issue: Optional[Issue] = None
    journal: Optional[Journal] = None

    @property
    def year(self) -> Optional[int]:
        if self.article.published_at:
            return self.article.published_at.year
        if self.issue:
            return self.issue.year
        return None

    @property
    def journal_title(self) -> str:
        return self.journal.title if self.journal else ""

    @property
    def volume(self) -> Optional[int]:
        return self.issue.volume if self.issue else None

    @property
    def issue_number(self) -> Optional[int]:
        return self.issue.issue_number if self.issue else None

    def to_dict(self) -> Dict[str, Any]:
        data = self.article.to_dict()
        data["issue"] = self.issue.to_dict() if self.issue else None
        data["journal"] = (
            {"id": self.journal.id, "title": self.journal.title,
             "slug": self.journal.slug, "issn": self.journal.issn}
            if self.journal else None
        )
        return data
