"""
Menu-bar / system tray front end for Snippy.

Lists every snippet with per-command "Copy" and "Run in Terminal" actions.
Uses pystray with a Pillow-drawn icon; the menu is rebuilt whenever the
snippet store reports a change.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, TYPE_CHECKING

from snippy.snippet_model import Snippet

if TYPE_CHECKING:
    import pystray
    from snippy.snippet_store import SnippetStore


MENU_LABEL_LIMIT = 48


@dataclass
class MenuEntry:
    """Toolkit-independent description of one tray menu row."""

    label: str = ""
    action: Optional[Callable[[], Any]] = None
    children: List["MenuEntry"] = field(default_factory=list)
    enabled: bool = True
    default: bool = False
    separator: bool = False


SEPARATOR = MenuEntry(separator=True)


def truncate_middle(text: str, limit: int = MENU_LABEL_LIMIT) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    keep = limit - 3
    head = keep - keep // 2
    return f"{text[:head]}...{text[len(text) - keep // 2:]}"


def build_menu_model(
    snippets: Sequence[Snippet],
    on_copy: Callable[[str], Any],
    on_run: Callable[[str], Any],
    on_show: Optional[Callable[[], Any]] = None,
    on_exit: Optional[Callable[[], Any]] = None,
) -> List[MenuEntry]:
    entries: List[MenuEntry] = [
        MenuEntry("Open Snippy", action=on_show, default=True),
        SEPARATOR,
    ]
    if not snippets:
        entries.append(MenuEntry("No snippets added yet", enabled=False))
    for snippet in snippets:
        children: List[MenuEntry] = [
            MenuEntry("Copy all commands", action=_bind(on_copy, "\n".join(snippet.commands))),
            SEPARATOR,
        ]
        for command in snippet.commands:
            children.append(
                MenuEntry(
                    truncate_middle(command),
                    children=[
                        MenuEntry("Copy", action=_bind(on_copy, command)),
                        MenuEntry("Run in Terminal", action=_bind(on_run, command)),
                    ],
                )
            )
        label = snippet.name or "(untitled)"
        if snippet.category:
            label = f"{label} ({snippet.category})"
        entries.append(MenuEntry(truncate_middle(label), children=children))
    entries.extend([SEPARATOR, MenuEntry("Quit", action=on_exit)])
    return entries


def _bind(fn: Callable[[str], Any], value: str) -> Callable[[], Any]:
    return lambda: fn(value)


class TrayManager:
    """Manages the tray icon and its snippet menu.

    Platform Notes:
    - macOS: NSStatusBar item (menu bar)
    - Windows: notification area
    - Linux: requires AppIndicator or StatusNotifier support
    """

    def __init__(
        self,
        store: "SnippetStore",
        on_copy: Callable[[str], Any],
        on_run: Callable[[str], Any],
        on_show: Optional[Callable[[], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._store = store
        self._on_copy = on_copy
        self._on_run = on_run
        self._on_show = on_show
        self._on_exit = on_exit
        self._icon: Optional[pystray.Icon] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def _create_icon_image(self):
        """Draw a small terminal glyph: a rounded dark tile with a ">_" prompt."""
        from PIL import Image, ImageDraw

        size = 64
        img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        draw.rounded_rectangle([4, 8, size - 4, size - 8], radius=8, fill=(40, 44, 52, 255))
        white = (255, 255, 255, 255)
        draw.line([(16, 22), (28, 32), (16, 42)], fill=white, width=5)
        draw.line([(32, 44), (48, 44)], fill=white, width=5)
        return img

    def menu_model(self) -> List[MenuEntry]:
        return build_menu_model(
            self._store.list_snippets(),
            on_copy=self._on_copy,
            on_run=self._on_run,
            on_show=self._on_show,
            on_exit=self._exit,
        )

    def _create_menu(self):
        import pystray

        return pystray.Menu(*[self._to_pystray(entry) for entry in self.menu_model()])

    def _to_pystray(self, entry: MenuEntry):
        import pystray

        if entry.separator:
            return pystray.Menu.SEPARATOR
        if entry.children:
            submenu = pystray.Menu(*[self._to_pystray(child) for child in entry.children])
            return pystray.MenuItem(entry.label, submenu, enabled=entry.enabled)
        action = entry.action

        def _clicked(icon, item):
            if action is None:
                return
            try:
                action()
            except Exception as exc:
                print(f"[WARN] Tray action '{entry.label}' failed: {exc}", flush=True)

        return pystray.MenuItem(entry.label, _clicked, enabled=entry.enabled, default=entry.default)

    def _exit(self) -> None:
        self.stop()
        if self._on_exit:
            self._on_exit()

    def refresh(self, event: str = "", store: Any = None) -> None:
        """Store listener: rebuild the menu so it mirrors the snippet list."""
        if not self._icon:
            return
        try:
            self._icon.menu = self._create_menu()
            self._icon.update_menu()
        except Exception as exc:
            print(f"[WARN] Could not refresh tray menu after '{event}': {exc}", flush=True)

    def _run_tray(self):
        """Run the tray icon loop (called in background thread)."""
        try:
            import pystray
        except ImportError:
            print("[WARN] pystray not installed. Menu bar icon disabled.", flush=True)
            return

        try:
            self._icon = pystray.Icon(
                name="Snippy",
                icon=self._create_icon_image(),
                title="Snippy",
                menu=self._create_menu(),
            )
            print("[INFO] Menu bar icon started", flush=True)
            self._running = True
            self._icon.run()
        except Exception as e:
            print(f"[WARN] Menu bar icon failed to start: {e}", flush=True)
            self._running = False

    def start(self) -> bool:
        """Start the tray icon in a background thread and follow store changes.

        Returns:
            True if the icon came up, False otherwise.
        """
        if self._running:
            return True

        try:
            import pystray  # noqa: F401
        except ImportError:
            print("[WARN] pystray not available. Install with: pip install pystray pillow", flush=True)
            return False

        self._store.register_callback(self.refresh)
        self._thread = threading.Thread(target=self._run_tray, daemon=True)
        self._thread.start()

        # Give it a moment to start
        time.sleep(0.5)

        return self._running

    def stop(self):
        self._store.unregister_callback(self.refresh)
        if self._icon:
            try:
                self._icon.stop()
            except Exception as exc:
                print(f"[WARN] Error stopping menu bar icon: {exc}", flush=True)
            self._icon = None
        self._running = False
        print("[INFO] Menu bar icon stopped", flush=True)

    def is_running(self) -> bool:
        return self._running

