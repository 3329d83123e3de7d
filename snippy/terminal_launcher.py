"""Hand commands to an external terminal application through AppleScript."""

from __future__ import annotations

import shutil
import subprocess
import threading
from typing import Any, Callable, Dict, Optional


def escape_applescript(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def build_script(command: str, app_name: str = "Terminal") -> str:
    """AppleScript that runs `command` in the front window, opening one if needed."""
    return (
        f'tell application "{escape_applescript(app_name)}"\n'
        "    activate\n"
        "    if (count of windows) is 0 then\n"
        '        do script ""\n'
        "    end if\n"
        f'    do script "{escape_applescript(command)}" in front window\n'
        "end tell"
    )


class TerminalLauncher:
    """Fire-and-forget execution in Terminal.app (or a Terminal-compatible app).

    Nothing is captured and no completion is reported; scripting failures are
    only logged. The returned status says whether the request was dispatched.
    """

    def __init__(
        self,
        app_name: str = "Terminal",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        background: bool = True,
        osascript: Optional[str] = None,
    ) -> None:
        self.app_name = app_name or "Terminal"
        self._runner = runner
        self._background = background
        self._osascript = osascript

    def _resolve_osascript(self) -> Optional[str]:
        return self._osascript or shutil.which("osascript")

    def run_in_terminal(self, command: str) -> Dict[str, Any]:
        if not command or not command.strip():
            return {"status": "error", "detail": "Command is required"}
        osascript = self._resolve_osascript()
        if not osascript:
            print("[ERROR] osascript not found; cannot open a terminal on this platform", flush=True)
            return {"status": "error", "detail": "Terminal scripting is only available on macOS"}

        script = build_script(command, self.app_name)
        if self._background:
            threading.Thread(target=self._execute, args=(osascript, script), daemon=True).start()
        else:
            self._execute(osascript, script)
        return {"status": "success", "detail": f"Sent to {self.app_name}"}

    def _execute(self, osascript: str, script: str) -> None:
        try:
            result = self._runner(
                [osascript, "-e", script],
                capture_output=True,
                text=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            print(f"[ERROR] Error executing AppleScript: {exc}", flush=True)
            return
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip() or f"Exit code {result.returncode}"
            print(f"[ERROR] Error executing AppleScript: {detail}", flush=True)
