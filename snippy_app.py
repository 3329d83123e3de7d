"""PyWebView-based Snippy application with a menu-bar icon."""

from __future__ import annotations

import atexit
import threading
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional

import webview

from snippy import clipboard, template_catalog
from snippy.command_runner import CommandRunner
from snippy.config_manager import DEFAULT_PREFERENCES, ConfigManager
from snippy.snippet_service import SnippetService
from snippy.snippet_store import SnippetStore
from snippy.terminal_launcher import TerminalLauncher


SETTINGS_KEYS = tuple(DEFAULT_PREFERENCES)


def _setting_type_error(key: str, value: Any) -> Optional[str]:
    default = DEFAULT_PREFERENCES[key]
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if ok:
        return None
    return f"Setting '{key}' must be {type(default).__name__}, got {type(value).__name__}"


class SnippyAPI:
    """Exposes the backend surface to the JavaScript front end.

    One instance is built at startup and owns every service; the tray and the
    webview both talk to it.
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        launcher: Optional[TerminalLauncher] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.config_manager = config_manager or ConfigManager()
        self.snippet_store = SnippetStore(self.config_manager)
        self.snippet_service = SnippetService(self.snippet_store)
        self.launcher = launcher or TerminalLauncher(app_name=self.config_manager.get_preference("terminal_app"))
        self.runner = runner or CommandRunner()
        shell = self.config_manager.get_preference("shell")
        if shell and isinstance(shell, str):
            self.runner.set_shell(shell)
        self._output: deque[Dict[str, Any]] = deque(maxlen=2000)
        self._output_lock = threading.Lock()
        print(f"[INFO] Snippy ready with {len(self.snippet_store.list_snippets())} snippets", flush=True)

    def shutdown(self) -> None:
        print("[INFO] Shutting down Snippy", flush=True)
        if self.runner.is_running():
            self.runner.cancel()
            self.runner.wait(2.0)

    # -------------------------
    # Run output queue
    # -------------------------
    def _on_output(self, chunk: str) -> None:
        with self._output_lock:
            self._output.append({"type": "output", "text": chunk})

    def _on_complete(self, success: bool, returncode: Optional[int]) -> None:
        with self._output_lock:
            self._output.append({"type": "complete", "success": success, "returncode": returncode})

    def poll_run_output(self) -> Dict[str, Any]:
        with self._output_lock:
            events = list(self._output)
            self._output.clear()
        return {"status": "success", "events": events, "running": self.runner.is_running()}

    # -------------------------
    # Snippets
    # -------------------------
    def ping(self) -> Dict[str, Any]:
        """Lightweight readiness probe for the frontend bootstrap loop."""
        return {
            "status": "ok",
            "snippetCount": len(self.snippet_store.list_snippets()),
            "dataPath": str(self.config_manager.preferences_path),
        }

    def list_snippets(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.snippet_store.list_snippets()]

    def search_snippets(self, query: str = "", category: Optional[str] = None) -> Dict[str, Any]:
        result = self.snippet_service.search_snippets(query, category or None)
        result["results"] = [s.to_dict() for s in result["results"]]
        return result

    def get_categories(self) -> Dict[str, Any]:
        counts = self.snippet_store.category_counts()
        return {
            "status": "success",
            "total": len(self.snippet_store.list_snippets()),
            "categories": [{"name": name, "count": counts.get(name, 0)} for name in self.snippet_store.categories()],
        }

    def add_snippet(self, snippet_data: Dict[str, Any]) -> Dict[str, Any]:
        template_id = snippet_data.get("template")
        if template_id:
            return self.snippet_service.create_from_template(
                template_id, snippet_data.get("variables") or {}, snippet_data
            )
        return self.snippet_service.create_snippet(snippet_data)

    def update_snippet(self, snippet_id: str, snippet_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.snippet_service.update_snippet(snippet_id, snippet_data)

    def delete_snippet(self, snippet_id: str) -> Dict[str, Any]:
        return self.snippet_service.delete_snippet(snippet_id)

    def import_snippet_pack(self, file_path: str) -> Dict[str, Any]:
        return self.snippet_store.import_snippet_pack(file_path)

    def export_snippet_pack(self, snippet_ids: list, file_path: str) -> Dict[str, Any]:
        return self.snippet_store.export_snippet_pack(snippet_ids, file_path)

    # -------------------------
    # Templates
    # -------------------------
    def list_templates(self) -> Dict[str, Any]:
        return {"status": "success", "templates": template_catalog.describe_templates()}

    def get_template(self, template_id: str) -> Dict[str, Any]:
        try:
            return {"status": "success", "template": template_catalog.get_template(template_id)}
        except KeyError as exc:
            return {"status": "error", "detail": str(exc.args[0])}

    def expand_template(self, template_id: str, values: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            text = template_catalog.expand(template_id, values or {})
        except KeyError as exc:
            return {"status": "error", "detail": str(exc.args[0])}
        return {"status": "success", "text": text}

    # -------------------------
    # Commands
    # -------------------------
    def run_in_terminal(self, command: str) -> Dict[str, Any]:
        return self.launcher.run_in_terminal(command)

    def run_command(self, command: str) -> Dict[str, Any]:
        if not self.runner.is_running():
            with self._output_lock:
                self._output.clear()
        return self.runner.run(command, self._on_output, self._on_complete)

    def stop_command(self) -> Dict[str, Any]:
        return self.runner.cancel()

    def copy_command(self, command: str) -> Dict[str, Any]:
        return clipboard.copy_text(command)

    def copy_all_commands(self, snippet_id: str) -> Dict[str, Any]:
        snippet = self.snippet_store.get_snippet(snippet_id)
        if snippet is None:
            return {"status": "error", "detail": "Snippet not found"}
        return clipboard.copy_commands(snippet)

    # -------------------------
    # Settings
    # -------------------------
    def get_settings(self) -> Dict[str, Any]:
        prefs = self.config_manager.get_preferences()
        return {
            "status": "success",
            "settings": {key: prefs.get(key) for key in SETTINGS_KEYS},
            "effectiveShell": self.runner.resolve_shell(),
        }

    def save_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        settings = settings or {}
        unknown = sorted(set(settings) - set(SETTINGS_KEYS))
        if unknown:
            return {"status": "error", "detail": f"Unknown settings: {', '.join(unknown)}"}
        for key, value in settings.items():
            problem = _setting_type_error(key, value)
            if problem:
                return {"status": "error", "detail": problem}
        if not self.config_manager.update_preferences(dict(settings)):
            return {"status": "error", "detail": "Failed to save settings"}
        if "shell" in settings:
            self.runner.set_shell(settings["shell"])
        if "terminal_app" in settings:
            self.launcher.app_name = settings["terminal_app"] or "Terminal"
        return {"status": "success", "detail": "Settings saved"}


def main() -> None:
    """Main entry point: webview window plus a menu-bar icon listing the snippets."""
    print("[DEBUG] SnippyAPI init starting", flush=True)
    api = SnippyAPI()
    print("[DEBUG] SnippyAPI init complete", flush=True)
    atexit.register(api.shutdown)
    html_path = Path(__file__).with_name("webview_ui") / "snippy.html"

    window = webview.create_window(
        "Snippet Manager",
        html=html_path.read_text(encoding="utf-8"),
        js_api=api,
        width=800,
        height=600,
        min_size=(600, 400),
    )

    tray = None
    try:
        from snippy.tray_manager import TrayManager

        def show_window():
            try:
                window.show()
                window.restore()
            except Exception as e:
                print(f"[WARN] Could not restore window: {e}", flush=True)

        def exit_app():
            try:
                window.destroy()
            except Exception as e:
                print(f"[WARN] Could not close window: {e}", flush=True)

        tray = TrayManager(
            api.snippet_store,
            on_copy=api.copy_command,
            on_run=api.run_in_terminal,
            on_show=show_window,
            on_exit=exit_app,
        )
        if tray.start():
            print("[INFO] Menu bar icon enabled", flush=True)
        else:
            print("[INFO] Menu bar icon not available - running window only", flush=True)
            tray = None
    except Exception as e:
        print(f"[WARN] Menu bar initialization failed: {e}", flush=True)
        tray = None

    print("[DEBUG] Starting PyWebView", flush=True)
    try:
        webview.start()
    finally:
        if tray:
            tray.stop()


if __name__ == "__main__":
    main()
