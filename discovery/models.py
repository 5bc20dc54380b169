"""Project and session data models — pure stdlib, no external dependencies."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

EPOCH = datetime.fromtimestamp(0, UTC)

DEFAULT_SUMMARY = "New Session"
UNTITLED_CURSOR_SESSION = "Untitled Session"


@dataclass
class ProjectConfigEntry:
    """Entry in project-config.json — overrides for one project identifier."""

    display_name: str | None = None
    manually_added: bool = False
    original_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # unknown keys, kept on save

    @classmethod
    def from_dict(cls, data: dict) -> ProjectConfigEntry:
        known = {"displayName", "manuallyAdded", "originalPath"}
        return cls(
            display_name=data.get("displayName"),
            manually_added=bool(data.get("manuallyAdded", False)),
            original_path=data.get("originalPath"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        if self.manually_added:
            data["manuallyAdded"] = True
        if self.original_path:
            data["originalPath"] = self.original_path
        if self.display_name:
            data["displayName"] = self.display_name
        return data

    def is_empty(self) -> bool:
        return not self.to_dict()


ProjectConfig = dict[str, ProjectConfigEntry]


@dataclass
class SessionRecord:
    """One primary-store session, merged from every log line carrying its id."""

    id: str
    summary: str = DEFAULT_SUMMARY
    message_count: int = 0
    last_activity: datetime = EPOCH
    cwd: str = ""

    def merge(self, other: SessionRecord) -> None:
        """Fold another partial record for the same session into this one."""
        if self.summary == DEFAULT_SUMMARY and other.summary != DEFAULT_SUMMARY:
            self.summary = other.summary
        self.message_count += other.message_count
        if other.last_activity > self.last_activity:
            self.last_activity = other.last_activity
        if not self.cwd:
            self.cwd = other.cwd


@dataclass
class CursorSession:
    """One secondary-store session (a store.db under a content-addressed dir)."""

    id: str
    name: str
    created_at: datetime
    last_activity: datetime
    message_count: int
    project_path: str


@dataclass
class SessionPage:
    sessions: list[SessionRecord] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    offset: int = 0
    limit: int = 0


@dataclass
class MessagePage:
    messages: list[dict] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    offset: int = 0
    limit: int | None = None


@dataclass
class SessionMeta:
    total: int = 0
    has_more: bool = False


@dataclass
class Project:
    """A tracked working directory — derived on every listing, never persisted."""

    identifier: str
    canonical_path: str
    display_name: str
    sessions: list[SessionRecord] = field(default_factory=list)
    cursor_sessions: list[CursorSession] = field(default_factory=list)
    is_manually_added: bool = False
    is_custom_name: bool = False
    session_meta: SessionMeta = field(default_factory=SessionMeta)


@dataclass
class ProvisionResult:
    identifier: str
    absolute_path: str
    created: bool
    display_name: str = ""


def to_json(obj: Any) -> Any:
    """Convert dataclasses (recursively) into JSON-ready dicts, datetimes as ISO 8601."""
    if hasattr(obj, "__dataclass_fields__"):
        obj = asdict(obj)
    if isinstance(obj, dict):
        return {k: to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json(v) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj
