from __future__ import annotations

from typing import Any, Dict

import pyperclip

from snippy.snippet_model import Snippet


def copy_text(text: str) -> Dict[str, Any]:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        print(f"[WARN] Clipboard unavailable: {exc}", flush=True)
        return {"status": "error", "detail": str(exc)}
    return {"status": "success", "detail": "Copied to clipboard"}


def copy_commands(snippet: Snippet) -> Dict[str, Any]:
    """Copy every command of the snippet, one per line."""
    return copy_text("\n".join(snippet.commands))
