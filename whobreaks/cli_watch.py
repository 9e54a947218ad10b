"""Watch mode: keep the graph current as files change."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import SKIP_DIRS
from .orchestrator import CREATED, DELETED, MODIFIED, Orchestrator
from .project import is_skipped_path, is_supported_file
from .reporter import print_scan_result, print_watch_event

logger = logging.getLogger(__name__)

console = Console()

FlushCallback = Callable[[Dict[str, str]], None]


class ChangeDebouncer:
    """Coalesce file events per path until a quiet period has passed.

    Each new event re-arms the timer.  When it fires, the pending batch
    (path -> latest kind) is handed to *on_flush*.
    """

    def __init__(self, on_flush: FlushCallback, debounce_seconds: float = 0.2) -> None:
        self.on_flush = on_flush
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[str, str] = {}
        self._lock = threading.Lock()
        # Serialises batches so the store only ever has one writer
        self._flush_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    @property
    def pending(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._pending)

    def queue(self, path: str, kind: str) -> None:
        with self._lock:
            previous = self._pending.get(path)
            # A file created inside the window is still new to the graph
            if previous == CREATED and kind == MODIFIED:
                kind = CREATED
            self._pending[path] = kind
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> Dict[str, str]:
        with self._flush_lock:
            with self._lock:
                batch = self._pending
                self._pending = {}
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
            if batch:
                self.on_flush(batch)
        return batch

    def cancel(self) -> None:
        """Stop the timer and drop whatever is pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()


class CodeChangeHandler(FileSystemEventHandler):
    """Forward relevant watchdog events to a :class:`ChangeDebouncer`."""

    def __init__(
        self,
        project_root: Path,
        debouncer: ChangeDebouncer,
        skip_dirs=SKIP_DIRS,
        on_event: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        super().__init__()
        self.project_root = Path(project_root)
        self.debouncer = debouncer
        self.skip_dirs = set(skip_dirs)
        self.on_event = on_event

    def _queue(self, src_path, kind: str) -> None:
        path = src_path.decode() if isinstance(src_path, bytes) else str(src_path)
        if not is_supported_file(path):
            return
        if is_skipped_path(Path(path), self.project_root, self.skip_dirs):
            return
        self.debouncer.queue(path, kind)
        if self.on_event is not None:
            self.on_event(kind, path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path, DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._queue(event.src_path, DELETED)
        self._queue(event.dest_path, CREATED)


def watch(
    path: str = typer.Argument(".", help="Project root to watch."),
    debounce_ms: Optional[int] = typer.Option(
        None, "--debounce-ms", "-d", help="Quiet period before re-analysis (default from config, 200)."
    ),
    max_files: Optional[int] = typer.Option(None, "--max-files", help="Limit files in the initial scan."),
):
    """Watch a project and keep its dependency graph up to date.

    Example:
      whobreaks watch
      whobreaks watch ./app --debounce-ms 500
    """
    root = Path(path).resolve()
    if not root.is_dir():
        console.print(f"[red]✗[/red] Path not found: {escape(path)}")
        raise typer.Exit(1)

    orchestrator = Orchestrator(root)
    if max_files is not None:
        orchestrator.settings.max_files = max_files
    if debounce_ms is not None:
        orchestrator.settings.debounce_seconds = debounce_ms / 1000.0

    console.print("[dim]Running initial scan...[/dim]")
    result = orchestrator.scan()
    snapshot = orchestrator.persist()
    print_scan_result(console, result, str(root), str(snapshot))

    def apply_batch(batch: Dict[str, str]) -> None:
        orchestrator.apply_changes(batch)
        orchestrator.persist()
        store = orchestrator.store
        logger.info("Applied %d change(s)", len(batch))
        console.print(f"  [dim]Graph updated: {len(store)} files, {store.edge_count()} edges[/dim]")

    debouncer = ChangeDebouncer(apply_batch, debounce_seconds=orchestrator.settings.debounce_seconds)
    handler = CodeChangeHandler(
        root,
        debouncer,
        skip_dirs=SKIP_DIRS | set(orchestrator.settings.exclude),
        on_event=lambda kind, p: print_watch_event(console, kind, p, str(root)),
    )

    observer = Observer()
    observer.schedule(handler, str(root), recursive=True)
    observer.start()

    console.print(f"\n[bold green]Watching[/bold green] [cyan]{escape(str(root))}[/cyan] for changes...")
    console.print("[dim]  Press Ctrl+C to stop[/dim]\n")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        observer.stop()
        debouncer.cancel()
        console.print("\n[yellow]Stopped watching.[/yellow]")

    observer.join()
