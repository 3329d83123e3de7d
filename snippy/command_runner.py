"""Run a command in a child shell and stream its combined output back."""

from __future__ import annotations

import codecs
import os
import platform
import signal
import subprocess
import threading
from typing import Any, Callable, Dict, Optional


OutputCallback = Callable[[str], None]
CompleteCallback = Callable[[bool, Optional[int]], None]
Dispatcher = Callable[..., None]

READ_CHUNK = 4096


def _call_inline(fn: Callable[..., None], *args: Any) -> None:
    fn(*args)


def default_shell() -> str:
    env_shell = os.environ.get("SHELL")
    if env_shell:
        return env_shell
    return "/bin/zsh" if platform.system() == "Darwin" else "/bin/sh"


class CommandRunner:
    """Captured command execution with at most one active run.

    Output chunks and the completion signal go through `dispatch`, which the app
    points at whatever hands work to its UI thread. A second `run` while one is
    active is rejected. `cancel` terminates the process group; chunks read after
    cancellation are dropped and the run completes as unsuccessful.
    """

    def __init__(
        self,
        shell: Optional[str] = None,
        dispatch: Optional[Dispatcher] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self._shell = shell
        self._dispatch = dispatch or _call_inline
        self._popen = popen
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._thread: Optional[threading.Thread] = None
        self._run_id = 0
        self._cancelled = False
        self._cancel_requests = 0

    def set_shell(self, shell: Optional[str]) -> None:
        self._shell = shell or None

    def resolve_shell(self) -> str:
        return self._shell or default_shell()

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def run(self, command: str, on_output: OutputCallback, on_complete: CompleteCallback) -> Dict[str, Any]:
        if not command or not command.strip():
            return {"status": "error", "detail": "Command is required"}

        with self._lock:
            if self._thread is not None:
                return {"status": "error", "detail": "A command is already running"}
            self._run_id += 1
            run_id = self._run_id
            self._cancelled = False
            self._cancel_requests = 0
            shell = self.resolve_shell()
            try:
                process = self._popen(
                    [shell, "-c", command],
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    start_new_session=hasattr(os, "killpg"),
                )
            except (OSError, ValueError, TypeError) as exc:
                print(f"[ERROR] Failed to launch '{shell}': {exc}", flush=True)
                launch_error = exc
            else:
                launch_error = None
                self._process = process
                self._thread = threading.Thread(
                    target=self._pump, args=(run_id, process, on_output, on_complete), daemon=True
                )
                self._thread.start()

        if launch_error is not None:
            self._dispatch(on_output, f"Error: {launch_error}")
            self._dispatch(on_complete, False, None)
            return {"status": "error", "detail": str(launch_error)}

        print(f"[INFO] Running command with {shell}: {command}", flush=True)
        return {"status": "success", "detail": "Command started", "runId": run_id}

    def cancel(self) -> Dict[str, Any]:
        with self._lock:
            process = self._process
            if process is None or self._thread is None:
                return {"status": "noop", "detail": "No command is running"}
            self._cancelled = True
            self._cancel_requests += 1
            escalate = self._cancel_requests > 1
        self._signal(process, kill=escalate)
        print("[INFO] Cancellation requested for running command", flush=True)
        return {"status": "success", "detail": "Cancellation requested"}

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the active run finishes; True when nothing is left running."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _signal(self, process: subprocess.Popen, kill: bool) -> None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL if kill else signal.SIGTERM)
            elif kill:
                process.kill()
            else:
                process.terminate()
        except (ProcessLookupError, PermissionError, OSError) as exc:
            print(f"[WARN] Could not signal process {process.pid}: {exc}", flush=True)

    def _is_cancelled(self, run_id: int) -> bool:
        with self._lock:
            return self._cancelled and self._run_id == run_id

    def _pump(
        self,
        run_id: int,
        process: subprocess.Popen,
        on_output: OutputCallback,
        on_complete: CompleteCallback,
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        returncode: Optional[int] = None
        try:
            stream = process.stdout
            while stream is not None:
                data = stream.read1(READ_CHUNK) if hasattr(stream, "read1") else stream.read(READ_CHUNK)
                if not data:
                    break
                text = decoder.decode(data)
                if text and not self._is_cancelled(run_id):
                    self._dispatch(on_output, text)
            tail = decoder.decode(b"", final=True)
            if tail and not self._is_cancelled(run_id):
                self._dispatch(on_output, tail)
            returncode = process.wait()
        except (OSError, ValueError) as exc:
            print(f"[ERROR] Lost output stream of running command: {exc}", flush=True)
        finally:
            if process.stdout is not None:
                try:
                    process.stdout.close()
                except OSError:
                    pass
            cancelled = self._is_cancelled(run_id)
            with self._lock:
                if self._run_id == run_id:
                    self._process = None
                    self._thread = None
            success = returncode == 0 and not cancelled
            print(f"[INFO] Command finished (exit {returncode}, cancelled={cancelled})", flush=True)
            self._dispatch(on_complete, success, returncode)
