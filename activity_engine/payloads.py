"""Typed views over the per-bucket event ``data`` payload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union
from urllib.parse import urlparse

from activity_engine.schema import BucketType

ACTIVE_LABEL = "Active"
AWAY_LABEL = "Away"

AFK_STATUS = "afk"
NOT_AFK_STATUS = "not-afk"


def _text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class WindowData:
    app: str | None = None
    title: str | None = None

    def display_name(self, type_name: str) -> str:
        return self.app or self.title or "Unknown Window"


@dataclass(frozen=True)
class EditorData:
    editor: str | None = None
    file: str | None = None
    project: str | None = None
    language: str | None = None

    def display_name(self, type_name: str) -> str:
        editor = self.editor or "Editor"
        if self.file:
            file_name = self.file.replace("\\", "/").rstrip("/").split("/")[-1] or self.file
            return f"{editor}: {file_name}"
        if self.project:
            return f"{editor}: {self.project}"
        if self.language:
            return f"{editor} ({self.language})"
        return editor


@dataclass(frozen=True)
class BrowserData:
    title: str | None = None
    url: str | None = None

    def display_name(self, type_name: str) -> str:
        if self.title:
            return self.title
        if self.url:
            try:
                return urlparse(self.url).hostname or self.url
            except ValueError:
                return self.url
        return "Browser"


@dataclass(frozen=True)
class AfkData:
    status: str | None = None

    @property
    def is_away(self) -> bool:
        return self.status == AFK_STATUS

    def display_name(self, type_name: str) -> str:
        return AWAY_LABEL if self.is_away else ACTIVE_LABEL


@dataclass(frozen=True)
class UnknownData:
    raw: dict = field(default_factory=dict)

    def display_name(self, type_name: str) -> str:
        name = _text(self.raw, "app") or _text(self.raw, "title")
        if name:
            return name
        type_name = type_name or "other"
        return type_name[:1].upper() + type_name[1:]


EventPayload = Union[WindowData, EditorData, BrowserData, AfkData, UnknownData]


def parse_payload(bucket_type: BucketType, data: dict) -> EventPayload:
    """Build the payload variant for a bucket type."""

    if bucket_type is BucketType.WINDOW:
        return WindowData(app=_text(data, "app"), title=_text(data, "title"))
    if bucket_type is BucketType.EDITOR:
        return EditorData(
            editor=_text(data, "editor") or _text(data, "editorVersion"),
            file=_text(data, "file"),
            project=_text(data, "project"),
            language=_text(data, "language"),
        )
    if bucket_type is BucketType.BROWSER:
        return BrowserData(title=_text(data, "title"), url=_text(data, "url"))
    if bucket_type is BucketType.AFK_STATUS:
        return AfkData(status=_text(data, "status"))
    return UnknownData(raw=dict(data))
