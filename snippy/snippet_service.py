from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from snippy import template_catalog
from snippy.snippet_model import Snippet
from snippy.snippet_store import SnippetStore


def parse_commands(value: Any) -> List[str]:
    """Split a commands block into one command per non-empty line."""
    if value is None:
        return []
    lines = value.splitlines() if isinstance(value, str) else [str(v) for v in value]
    return [line for line in lines if line.strip()]


def parse_tags(value: Any) -> List[str]:
    """Comma-separated tags, trimmed, empties dropped."""
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else [str(v) for v in value]
    return [part.strip() for part in parts if part.strip()]


class SnippetService:
    """Add-flow on top of the store: form data in, validated `Snippet` out."""

    def __init__(self, snippet_store: SnippetStore) -> None:
        self._store = snippet_store

    def build_snippet(self, snippet_data: Dict[str, Any]) -> Snippet:
        commands = parse_commands(snippet_data.get("commands"))
        if not commands:
            raise ValueError("At least one command is required")
        return Snippet(
            name=str(snippet_data.get("name") or "").strip(),
            description=str(snippet_data.get("description") or ""),
            category=str(snippet_data.get("category") or "").strip(),
            commands=commands,
            tags=parse_tags(snippet_data.get("tags")),
        )

    def create_snippet(self, snippet_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            snippet = self.build_snippet(snippet_data)
        except ValueError as exc:
            return {"status": "error", "detail": str(exc)}
        return self._store.add(snippet)

    def create_from_template(
        self,
        template_id: str,
        values: Mapping[str, str],
        snippet_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            commands = template_catalog.expand(template_id, values)
        except KeyError as exc:
            return {"status": "error", "detail": str(exc.args[0])}
        data = dict(snippet_data or {})
        data["commands"] = commands
        return self.create_snippet(data)

    def update_snippet(self, snippet_id: str, snippet_data: Dict[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for key in ("name", "category"):
            if key in snippet_data:
                changes[key] = str(snippet_data[key] or "").strip()
        if "description" in snippet_data:
            changes["description"] = str(snippet_data["description"] or "")
        if "commands" in snippet_data:
            commands = parse_commands(snippet_data["commands"])
            if not commands:
                return {"status": "error", "detail": "At least one command is required"}
            changes["commands"] = commands
        if "tags" in snippet_data:
            changes["tags"] = parse_tags(snippet_data["tags"])
        return self._store.update(snippet_id, changes)

    def delete_snippet(self, snippet_id: str) -> Dict[str, Any]:
        return self._store.delete(snippet_id)

    def list_snippets(self) -> List[Snippet]:
        return self._store.list_snippets()

    def search_snippets(self, query: str = "", category: Optional[str] = None) -> Dict[str, Any]:
        return self._store.search_snippets(query, category)
