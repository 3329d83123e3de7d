from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml

from snippy.snippet_model import Snippet


SAVE_KEY = "savedSnippets"

StoreListener = Callable[[str, "SnippetStore"], None]


class SnippetStore:
    """Ordered snippet collection persisted as one blob in key-value storage.

    `backend` needs `get_preference(key)` and `set_preference(key, value) -> bool`;
    the app passes its `ConfigManager`. The category set is derived from the
    snippets and never stored on its own.

    The webview calls the API from worker threads, so every mutate-and-persist
    step runs under one lock. Listeners are called after the lock is released.
    """

    def __init__(self, backend: Any, save_key: str = SAVE_KEY) -> None:
        self._backend = backend
        self._save_key = save_key
        self._lock = threading.RLock()
        self._snippets: List[Snippet] = []
        self._categories: set = set()
        self._listeners: List[StoreListener] = []
        self.load()

    # -------------------------
    # Listeners
    # -------------------------
    def register_callback(self, callback: StoreListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_callback(self, callback: StoreListener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def _notify(self, event: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, self)
            except Exception as exc:
                print(f"[WARN] Snippet listener failed on '{event}': {exc}", flush=True)

    # -------------------------
    # Persistence
    # -------------------------
    def load(self) -> Dict[str, Any]:
        """Replace the collection with the persisted blob.

        A missing entry is an empty collection; an unreadable one is logged and
        also leaves the collection empty.
        """
        with self._lock:
            self._snippets = []
            self._categories = set()
            blob = self._backend.get_preference(self._save_key)
            if blob in (None, ""):
                return {"status": "success", "detail": "No saved snippets", "count": 0}
            try:
                records = json.loads(blob) if isinstance(blob, (str, bytes)) else blob
                if not isinstance(records, list):
                    raise ValueError("Saved snippets must be a list")
                snippets = [Snippet.from_dict(record) for record in records]
            except (ValueError, KeyError, TypeError) as exc:
                print(f"[ERROR] Failed to decode saved snippets, starting empty: {exc}", flush=True)
                return {"status": "error", "detail": f"Failed to decode saved snippets: {exc}", "count": 0}

            self._snippets = snippets
            self._update_categories()
        print(f"[INFO] Loaded {len(snippets)} snippets", flush=True)
        return {"status": "success", "detail": f"Loaded {len(snippets)} snippets", "count": len(snippets)}

    def reload(self) -> Dict[str, Any]:
        """Re-read the blob and notify listeners.

        A failed decode still empties the collection, so listeners are told
        about it as well unless nothing was loaded before either.
        """
        with self._lock:
            before = list(self._snippets)
            result = self.load()
            changed = self._snippets != before
        if result["status"] == "success" or changed:
            self._notify("reload")
        return result

    def persist(self) -> Dict[str, Any]:
        """Write the whole collection; a failed write keeps the previous blob."""
        with self._lock:
            try:
                blob = json.dumps([snippet.to_dict() for snippet in self._snippets], ensure_ascii=False)
            except (TypeError, ValueError) as exc:
                print(f"[ERROR] Failed to encode snippets, write skipped: {exc}", flush=True)
                return {"status": "error", "detail": f"Failed to encode snippets: {exc}"}
            if not self._backend.set_preference(self._save_key, blob):
                print("[ERROR] Failed to save snippets, write skipped", flush=True)
                return {"status": "error", "detail": "Failed to save snippets"}
            return {"status": "success", "detail": f"Saved {len(self._snippets)} snippets"}

    # -------------------------
    # Reads
    # -------------------------
    def list_snippets(self) -> List[Snippet]:
        with self._lock:
            return list(self._snippets)

    def get_snippet(self, snippet_id: str) -> Optional[Snippet]:
        for snippet in self.list_snippets():
            if snippet.id == snippet_id:
                return snippet
        return None

    def categories(self) -> List[str]:
        with self._lock:
            return sorted(self._categories)

    def category_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for snippet in self.list_snippets():
            counts[snippet.category] = counts.get(snippet.category, 0) + 1
        return counts

    def search_snippets(self, query: str = "", category: Optional[str] = None) -> Dict[str, Any]:
        q = (query or "").strip().lower()
        snippets = self.list_snippets()
        results: List[Snippet] = []
        for snippet in snippets:
            if category is not None and snippet.category != category:
                continue
            if q and not (
                q in snippet.name.lower()
                or q in snippet.description.lower()
                or q in snippet.category.lower()
            ):
                continue
            results.append(snippet)
        return {"status": "success", "count": len(results), "total": len(snippets), "results": results}

    def _update_categories(self) -> None:
        self._categories = {snippet.category for snippet in self._snippets}

    # -------------------------
    # Write operations
    # -------------------------
    def add(self, snippet: Snippet) -> Dict[str, Any]:
        with self._lock:
            self._snippets.append(snippet)
            self._categories.add(snippet.category)
            saved = self.persist()
        self._notify("add")
        return {
            "status": "success",
            "detail": f"Added {snippet.name}",
            "id": snippet.id,
            "persisted": saved["status"] == "success",
        }

    def delete(self, snippet_id: str) -> Dict[str, Any]:
        with self._lock:
            for index, snippet in enumerate(self._snippets):
                if snippet.id == snippet_id:
                    del self._snippets[index]
                    break
            else:
                return {"status": "noop", "detail": "Snippet not found"}
            self._update_categories()
            saved = self.persist()
        self._notify("delete")
        return {"status": "success", "detail": f"Deleted {snippet.name}", "persisted": saved["status"] == "success"}

    def update(self, snippet_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            for index, snippet in enumerate(self._snippets):
                if snippet.id == snippet_id:
                    break
            else:
                return {"status": "error", "detail": "Snippet not found"}
            try:
                replacement = snippet.with_changes(changes)
            except ValueError as exc:
                return {"status": "error", "detail": str(exc)}
            self._snippets[index] = replacement
            self._update_categories()
            saved = self.persist()
        self._notify("update")
        return {
            "status": "success",
            "detail": f"Updated {replacement.name}",
            "id": replacement.id,
            "persisted": saved["status"] == "success",
        }

    # -------------------------
    # Snippet packs
    # -------------------------
    def import_snippet_pack(self, file_path: str) -> Dict[str, Any]:
        """Import snippets from a JSON or YAML pack; imported entries get new ids."""
        path = Path(file_path)
        if not path.exists():
            return {"status": "error", "detail": "File not found"}
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                pack = json.loads(text)
            else:
                pack = yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            return {"status": "error", "detail": str(exc)}

        if isinstance(pack, dict):
            pack = pack.get("snippets", [])
        if not isinstance(pack, list):
            return {"status": "error", "detail": "Invalid pack format"}

        imported: List[Snippet] = []
        for entry in pack:
            if not isinstance(entry, dict):
                continue
            commands = [str(c) for c in entry.get("commands") or [] if str(c).strip()]
            if not commands:
                continue
            imported.append(
                Snippet(
                    name=str(entry.get("name") or ""),
                    description=str(entry.get("description") or ""),
                    category=str(entry.get("category") or ""),
                    commands=commands,
                    tags=[str(t) for t in entry.get("tags") or []],
                )
            )
        if not imported:
            return {"status": "success", "detail": "Imported 0 snippets", "count": 0}

        with self._lock:
            self._snippets.extend(imported)
            self._categories.update(s.category for s in imported)
            saved = self.persist()
        self._notify("import")
        return {
            "status": "success",
            "detail": f"Imported {len(imported)} snippets",
            "count": len(imported),
            "persisted": saved["status"] == "success",
        }

    def export_snippet_pack(self, snippet_ids: Iterable[str], file_path: str) -> Dict[str, Any]:
        """Export the selected snippets; `.json` targets get JSON, anything else YAML."""
        records: List[Dict[str, Any]] = []
        for snippet_id in snippet_ids:
            snippet = self.get_snippet(snippet_id)
            if snippet:
                records.append(snippet.to_dict())
        path = Path(file_path)
        try:
            if path.suffix.lower() == ".json":
                path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
            else:
                path.write_text(
                    yaml.safe_dump({"snippets": records}, sort_keys=False, allow_unicode=True),
                    encoding="utf-8",
                )
        except (OSError, yaml.YAMLError) as exc:
            return {"status": "error", "detail": str(exc)}
        return {"status": "success", "detail": f"Exported {len(records)} snippets", "path": str(path)}
