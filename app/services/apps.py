import configparser
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from phone_data_core.ports import AppPair

log = logging.getLogger(__name__)


def default_search_paths() -> List[Path]:
    """XDG application directories, most specific first."""
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    roots = [data_home] + [d for d in data_dirs.split(":") if d]
    return [Path(r) / "applications" for r in roots]


def _iter_desktop_files(root: Path) -> Iterable[Tuple[str, Path]]:
    """Yield (desktop file id, path); the id uses '-' for subdirectories."""
    for p in sorted(root.rglob("*.desktop")):
        if p.is_file():
            rel = p.relative_to(root).as_posix()
            yield rel.replace("/", "-"), p


def read_desktop_entry(path: Path) -> Optional[str]:
    """
    Return the Name of a launchable desktop entry, or None when the entry
    is not an application, is hidden, or cannot be parsed.
    """
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str
    try:
        parser.read_string(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, configparser.Error) as e:
        log.debug("Skipping %s: %s", path, e)
        return None
    if not parser.has_section("Desktop Entry"):
        return None
    entry = parser["Desktop Entry"]
    if entry.get("Type", "") != "Application":
        return None
    if entry.get("NoDisplay", "false").lower() == "true" or entry.get("Hidden", "false").lower() == "true":
        return None
    name = entry.get("Name", "").strip()
    return name or None


class DesktopEntryAppsProvider:
    """Launchable applications from XDG .desktop entries."""

    def __init__(self, search_paths: Optional[Sequence[str | Path]] = None):
        self.search_paths = [Path(p) for p in search_paths] if search_paths else default_search_paths()

    def list_launchable_apps(self) -> List[AppPair]:
        seen = set()
        apps: List[AppPair] = []
        for root in self.search_paths:
            if not root.is_dir():
                continue
            for desktop_id, path in _iter_desktop_files(root):
                # earlier roots shadow later ones
                if desktop_id in seen:
                    continue
                seen.add(desktop_id)
                name = read_desktop_entry(path)
                if name is None:
                    continue
                identifier = desktop_id[: -len(".desktop")]
                log.debug("App: %s (%s)", name, identifier)
                apps.append((name, identifier))
        return apps


class StaticAppsProvider:
    """Serves a configured list of [name, identifier] pairs."""

    def __init__(self, entries: Iterable[Sequence[str]]):
        self._entries = [(str(e[0]), str(e[1])) for e in entries or [] if len(e) >= 2]

    def list_launchable_apps(self) -> List[AppPair]:
        return list(self._entries)


def build_apps_provider(settings: dict):
    cfg = settings.get("apps", {}) or {}
    source = cfg.get("source", "desktop")
    if source == "static":
        return StaticAppsProvider(cfg.get("static") or [])
    if source == "desktop":
        return DesktopEntryAppsProvider(cfg.get("search_paths") or None)
    raise ValueError(f"Unsupported apps source: {source}")
