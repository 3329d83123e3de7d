from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        # Accept the trailing "Z" that other encoders emit
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _string_tuple(value: Any, field_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ValueError(f"'{field_name}' must be a list")
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class Snippet:
    """A named, categorized, ordered group of shell commands.

    Instances are never edited in place; `commands` and `tags` are kept as
    tuples and `with_changes` builds the replacement used by the store's update
    operation.
    """

    name: str
    description: str = ""
    category: str = ""
    commands: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    id: str = field(default_factory=_new_id)
    date_created: datetime = field(default_factory=_now)
    last_modified: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "commands", _string_tuple(self.commands, "commands"))
        object.__setattr__(self, "tags", _string_tuple(self.tags, "tags"))
        if self.last_modified is None:
            object.__setattr__(self, "last_modified", self.date_created)

    def with_changes(self, changes: Dict[str, Any]) -> "Snippet":
        allowed = {"name", "description", "category", "commands", "tags"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot change fields: {', '.join(sorted(unknown))}")
        updates: Dict[str, Any] = {}
        for key, value in changes.items():
            if key in ("commands", "tags"):
                updates[key] = _string_tuple(value, key)
            else:
                updates[key] = "" if value is None else str(value)
        return replace(self, last_modified=_now(), **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "commands": list(self.commands),
            "tags": list(self.tags),
            "dateCreated": self.date_created.isoformat(),
            "lastModified": (self.last_modified or self.date_created).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snippet":
        """Build a snippet from its persisted record.

        Raises ValueError/KeyError/TypeError on malformed records so callers can
        decide whether to drop the whole blob or a single entry.
        """
        if not isinstance(data, dict):
            raise ValueError("Snippet record must be a mapping")
        snippet_id = data["id"]
        if not snippet_id:
            raise ValueError("Snippet record has an empty id")
        created = _parse_timestamp(data["dateCreated"])
        modified_raw = data.get("lastModified")
        return cls(
            id=str(snippet_id),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            commands=_string_tuple(data.get("commands"), "commands"),
            tags=_string_tuple(data.get("tags"), "tags"),
            date_created=created,
            last_modified=_parse_timestamp(modified_raw) if modified_raw else created,
        )
