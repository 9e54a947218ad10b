"""Per-project settings stored in ``.whobreaks/config.toml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .config import (
    BATCH_SIZE,
    DEBOUNCE_SECONDS,
    MAX_WORKERS,
    config_file,
    ensure_snapshot_dir,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanSettings:
    batch_size: int = BATCH_SIZE
    max_workers: int = MAX_WORKERS
    max_files: Optional[int] = None
    exclude: List[str] = field(default_factory=list)
    debounce_seconds: float = DEBOUNCE_SECONDS
    base_url: Optional[str] = None
    paths: Dict[str, List[str]] = field(default_factory=dict)

    def to_toml_dict(self) -> Dict[str, Any]:
        scan: Dict[str, Any] = {
            "batch_size": self.batch_size,
            "max_workers": self.max_workers,
            "exclude": list(self.exclude),
        }
        if self.max_files is not None:
            scan["max_files"] = self.max_files
        aliases: Dict[str, Any] = {"paths": {k: list(v) for k, v in self.paths.items()}}
        if self.base_url:
            aliases["base_url"] = self.base_url
        return {
            "scan": scan,
            "watch": {"debounce_ms": int(round(self.debounce_seconds * 1000))},
            "aliases": aliases,
        }


def _positive_int(value: Any, default: int, key: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    logger.warning("Ignoring invalid value for %s: %r", key, value)
    return default


def _parse_settings(payload: Dict[str, Any]) -> ScanSettings:
    settings = ScanSettings()

    scan = payload.get("scan", {})
    if isinstance(scan, dict):
        if "batch_size" in scan:
            settings.batch_size = _positive_int(scan["batch_size"], BATCH_SIZE, "scan.batch_size")
        if "max_workers" in scan:
            settings.max_workers = _positive_int(scan["max_workers"], MAX_WORKERS, "scan.max_workers")
        if "max_files" in scan:
            settings.max_files = _positive_int(scan["max_files"], 0, "scan.max_files") or None
        exclude = scan.get("exclude", [])
        if isinstance(exclude, list):
            settings.exclude = [str(item) for item in exclude]

    watch = payload.get("watch", {})
    if isinstance(watch, dict) and "debounce_ms" in watch:
        debounce = watch["debounce_ms"]
        if isinstance(debounce, (int, float)) and not isinstance(debounce, bool) and debounce >= 0:
            settings.debounce_seconds = debounce / 1000.0
        else:
            logger.warning("Ignoring invalid value for watch.debounce_ms: %r", debounce)

    aliases = payload.get("aliases", {})
    if isinstance(aliases, dict):
        base_url = aliases.get("base_url")
        if isinstance(base_url, str) and base_url:
            settings.base_url = base_url
        paths = aliases.get("paths", {})
        if isinstance(paths, dict):
            for pattern, targets in paths.items():
                if isinstance(targets, str):
                    targets = [targets]
                if isinstance(targets, list):
                    settings.paths[str(pattern)] = [str(t) for t in targets]

    return settings


def load_settings(project_root: Path) -> ScanSettings:
    """Load settings for *project_root*.

    Falls back to defaults when the file is missing or unreadable.
    """
    path = config_file(project_root)
    if not path.exists():
        return ScanSettings()
    try:
        payload = toml.loads(path.read_text(encoding="utf-8"))
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s, using defaults: %s", path, exc)
        return ScanSettings()
    return _parse_settings(payload)


def save_settings(project_root: Path, settings: ScanSettings) -> Path:
    ensure_snapshot_dir(project_root)
    path = config_file(project_root)
    path.write_text(toml.dumps(settings.to_toml_dict()), encoding="utf-8")
    return path
