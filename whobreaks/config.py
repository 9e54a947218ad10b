"""Constants and paths for whobreaks project analysis."""

from __future__ import annotations

import os
from pathlib import Path

SNAPSHOT_DIRNAME = ".whobreaks"
GRAPH_FILENAME = "graph.json"
CONFIG_FILENAME = "config.toml"
SNAPSHOT_VERSION = "0.1.0"

# Script extensions in resolution priority order
SUPPORTED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mts", ".cts", ".mjs", ".cjs")

SKIP_DIRS = {
    "node_modules", ".git", "dist", "build", "out", "coverage",
    ".next", ".turbo", ".cache", SNAPSHOT_DIRNAME,
}

# Bulk analysis pool
BATCH_SIZE = 200
MAX_WORKERS = 4

# Watch mode
DEBOUNCE_SECONDS = 0.2

# Fixed heuristics, not user-configurable
CRITICAL_EXPORT_MIN_USERS = 3
GOD_MODULE_THRESHOLD = 20
HIGH_IMPACT_THRESHOLD = 10

LOG_LEVEL = os.environ.get("WHOBREAKS_LOG_LEVEL", "WARNING").upper()


def snapshot_dir(project_root: Path) -> Path:
    return Path(project_root) / SNAPSHOT_DIRNAME


def graph_file(project_root: Path) -> Path:
    return snapshot_dir(project_root) / GRAPH_FILENAME


def config_file(project_root: Path) -> Path:
    return snapshot_dir(project_root) / CONFIG_FILENAME


def ensure_snapshot_dir(project_root: Path) -> Path:
    """Create the per-project ``.whobreaks`` directory if needed."""
    path = snapshot_dir(project_root)
    path.mkdir(parents=True, exist_ok=True)
    return path
