"""Data models for issue drafts.

Drafts are immutable snapshots: every edit produces a new ``Draft`` and the
owning component commits it in a single assignment.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Literal
from uuid import uuid4


PROJECT_ID_STORAGE_KEY = "YT_DEFAULT_CREATE_PROJECT_ID_STORAGE"
DRAFT_ID_STORAGE_KEY = "DRAFT_ID_STORAGE_KEY"

NOT_SELECTED_LABEL = "Not selected"

PickerMode = Literal["library", "camera"]


def _new_key() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class Project:
    """Destination project of an issue."""

    id: str | None
    short_name: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"id": self.id}
        if self.short_name is not None:
            data["shortName"] = self.short_name
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> "Project | None":
        if not data:
            return None
        return cls(id=data.get("id"), short_name=data.get("shortName"))


@dataclass(frozen=True)
class CustomFieldValue:
    """A custom field of the draft and its current value.

    ``raw`` is the server descriptor kept verbatim so it can be echoed back.
    ``key`` identifies this entry within the draft's field list.
    """

    id: str | None
    name: str
    value: Any = None
    raw: dict = field(default_factory=dict, compare=False)
    key: str = field(default_factory=_new_key, compare=False)

    def with_value(self, value: Any) -> "CustomFieldValue":
        return replace(self, value=value)

    def to_dict(self) -> dict:
        return {**self.raw, "id": self.id, "name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "CustomFieldValue":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            value=data.get("value"),
            raw=dict(data),
        )


@dataclass(frozen=True)
class Attachment:
    """An uploaded or uploading file."""

    url: str
    name: str
    key: str = field(default_factory=_new_key, compare=False)

    def to_dict(self) -> dict:
        return {"url": self.url, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Attachment":
        return cls(url=data.get("url", ""), name=data.get("name", ""))


@dataclass(frozen=True)
class CreatedIssue:
    """Issue returned by the tracker after creation from a draft."""

    id: str
    id_readable: str | None = None
    summary: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "CreatedIssue":
        return cls(
            id=data["id"],
            id_readable=data.get("idReadable"),
            summary=data.get("summary"),
        )


@dataclass(frozen=True)
class Draft:
    """Working copy of the issue being composed.

    ``project`` is ``None`` while no project is selected. Attachments are
    ordered most recent first; field order follows the server.
    """

    id: str | None = None
    summary: str | None = None
    description: str | None = None
    project: Project | None = None
    fields: tuple[CustomFieldValue, ...] = ()
    attachments: tuple[Attachment, ...] = ()

    @property
    def project_selected(self) -> bool:
        return self.project is not None

    @property
    def project_id(self) -> str | None:
        return self.project.id if self.project else None

    @property
    def project_label(self) -> str:
        if self.project is None:
            return "Select project"
        return self.project.short_name or self.project.id or NOT_SELECTED_LABEL

    def with_field_value(self, key: str, value: Any) -> "Draft":
        """Replace the value of the field with ``key``, leaving the rest untouched."""
        fields = tuple(
            f.with_value(value) if f.key == key else f
            for f in self.fields
        )
        return replace(self, fields=fields)

    def with_attachment_prepended(self, attachment: Attachment) -> "Draft":
        return replace(self, attachments=(attachment,) + self.attachments)

    def without_attachment(self, key: str) -> "Draft":
        return replace(
            self,
            attachments=tuple(a for a in self.attachments if a.key != key),
        )

    def to_payload(self, omit_fields: bool = False) -> dict:
        """Build the request body sent to the tracker."""
        payload: dict[str, Any] = {
            "summary": self.summary,
            "description": self.description,
            "project": self.project.to_dict() if self.project else None,
        }
        if self.id:
            payload["id"] = self.id
        if not omit_fields:
            payload["fields"] = [f.to_dict() for f in self.fields]
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> "Draft":
        return cls(
            id=data.get("id"),
            summary=data.get("summary"),
            description=data.get("description"),
            project=Project.from_dict(data.get("project")),
            fields=tuple(CustomFieldValue.from_dict(f) for f in data.get("fields") or []),
            attachments=tuple(Attachment.from_dict(a) for a in data.get("attachments") or []),
        )
