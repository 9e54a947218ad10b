"""Lexical import/export extraction for JS/TS files.

Extraction never parses the language: each pattern runs over the stripped
text produced by :mod:`whobreaks.scanner`, so it cannot fire inside a comment
or a string.  String literal bodies are blank in the stripped text; the
specifier itself is read from the original source at the matched offsets.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import AbstractSet, Callable, List, Optional, Sequence, Set, Union

from .config import BATCH_SIZE, MAX_WORKERS
from .models import ExportInfo, FileNode, ImportEdge
from .resolver import AliasTable, resolve_specifier
from .scanner import line_at, strip_source

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

# ---------------------------------------------------------------------------
# Patterns (run against stripped text)
# ---------------------------------------------------------------------------

# import [type] [default][, * as ns][{ a, b as c }] from "x"
_STATIC_IMPORT_RE = re.compile(
    r"(?:^|;|\})\s*(?P<kw>import)(?:\s+|(?=[{*]))"
    r"(?P<type>type(?:\s+|(?=\{))(?!from\b))?"
    r"(?:(?P<default>[\w$]+)\s*,?\s*)?"
    r"(?:\*\s*as\s+(?P<namespace>[\w$]+)\s*)?"
    r"(?:\{(?P<named>[^}]*)\}\s*)?"
    r"from\s*['\"](?P<spec>[^'\"\n]+)['\"]",
    re.MULTILINE,
)

# import "x"
_SIDE_EFFECT_IMPORT_RE = re.compile(
    r"(?:^|;|\})\s*(?P<kw>import)\s*['\"](?P<spec>[^'\"\n]+)['\"]",
    re.MULTILINE,
)

# import("x")
_DYNAMIC_IMPORT_RE = re.compile(
    r"\b(?P<kw>import)\s*\(\s*['\"](?P<spec>[^'\"\n]+)['\"]\s*\)",
)

# export [type] { a, b as c } from "x"
_EXPORT_FROM_RE = re.compile(
    r"^[ \t]*(?P<kw>export)\s+(?:type\s+)?\{(?P<names>[^}]*)\}\s*from\s*['\"](?P<spec>[^'\"\n]+)['\"]",
    re.MULTILINE,
)

# export * [as ns] from "x"
_EXPORT_STAR_RE = re.compile(
    r"^[ \t]*(?P<kw>export)\s+(?:type\s+)?\*\s*(?:as\s+[\w$]+\s+)?from\s*['\"](?P<spec>[^'\"\n]+)['\"]",
    re.MULTILINE,
)

# export { a, b as c };   (no "from")
_EXPORT_LIST_RE = re.compile(
    r"^[ \t]*(?P<kw>export)\s+(?:type\s+)?\{(?P<names>[^}]*)\}(?!\s*from\b)",
    re.MULTILINE,
)

# export [default] [declare] <keyword> <name>
_EXPORT_DECL_RE = re.compile(
    r"^[ \t]*(?P<kw>export)\s+"
    r"(?P<default>default\b\s*)?"
    r"(?P<declare>declare\s+)?"
    r"(?:(?P<keyword>async\s+function|function|abstract\s+class|class|interface|type"
    r"|const\s+enum|enum|const|let|var|namespace|module)\b\s*\*?\s*)?"
    r"(?P<name>(?!(?:as|import)\b)[\w$]+)?",
    re.MULTILINE,
)

_AS_RE = re.compile(r"\s+as\s+")


def export_kind(keyword: Optional[str], declared: bool = False) -> str:
    """Map a declaration keyword to an export kind."""
    if not keyword or declared:
        return "unknown"
    kw = " ".join(keyword.split())
    if kw.endswith("function"):
        return "function"
    if kw.endswith("class"):
        return "class"
    if kw.endswith("enum"):
        return "enum"
    if kw in ("interface", "type"):
        return kw
    if kw in ("const", "let", "var"):
        return "variable"
    if kw in ("namespace", "module"):
        return "namespace"
    return "unknown"


def _split_names(raw: str, keep_alias: bool) -> List[str]:
    """Split a ``{ a, b as c }`` body.

    With *keep_alias* the renamed form (``c``) is returned, otherwise the
    source name (``b``).  Inline ``type`` modifiers are dropped.
    """
    names: List[str] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("type ") and not part.startswith("type as "):
            part = part[5:].strip()
        pieces = _AS_RE.split(part, maxsplit=1)
        name = pieces[-1] if keep_alias else pieces[0]
        name = name.strip()
        if name:
            names.append(name)
    return names


def _specifier(content: str, match: "re.Match[str]") -> str:
    return content[match.start("spec"):match.end("spec")].strip()


def hash_content(content: Union[str, bytes]) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8", errors="surrogatepass")
    return hashlib.sha256(content).hexdigest()[:16]


def count_lines(content: str) -> int:
    return content.count("\n") + 1


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_imports(
    content: str,
    stripped: str,
    file_path: str,
    aliases: AliasTable,
    known_files: AbstractSet[str],
) -> List[ImportEdge]:
    source_dir = os.path.dirname(file_path)
    edges: List[ImportEdge] = []

    def _edge(match: "re.Match[str]", symbols: List[str], type_only: bool, dynamic: bool) -> None:
        specifier = _specifier(content, match)
        if not specifier:
            return
        edges.append(ImportEdge(
            source=file_path,
            target=resolve_specifier(specifier, source_dir, aliases, known_files),
            raw_specifier=specifier,
            symbols=symbols,
            is_type_only=type_only,
            is_dynamic=dynamic,
            line=line_at(content, match.start("kw")),
        ))

    for m in _STATIC_IMPORT_RE.finditer(stripped):
        symbols: List[str] = []
        if m.group("default"):
            symbols.append(m.group("default"))
        if m.group("namespace"):
            symbols.append(m.group("namespace"))
        if m.group("named") is not None:
            symbols.extend(_split_names(m.group("named"), keep_alias=False))
        _edge(m, symbols, type_only=bool(m.group("type")), dynamic=False)

    for m in _SIDE_EFFECT_IMPORT_RE.finditer(stripped):
        _edge(m, [], type_only=False, dynamic=False)

    for m in _DYNAMIC_IMPORT_RE.finditer(stripped):
        _edge(m, [], type_only=False, dynamic=True)

    return edges


def extract_exports(content: str, stripped: str) -> List[ExportInfo]:
    exports: List[ExportInfo] = []
    seen: Set[str] = set()

    def _add(name: str, kind: str, line: int, source: Optional[str] = None) -> None:
        if name in seen:
            return
        seen.add(name)
        exports.append(ExportInfo(
            name=name,
            kind=kind,
            line=line,
            is_re_export=source is not None,
            re_export_source=source,
        ))

    for m in _EXPORT_FROM_RE.finditer(stripped):
        line = line_at(content, m.start("kw"))
        source = _specifier(content, m)
        for name in _split_names(m.group("names"), keep_alias=True):
            _add(name, "unknown", line, source)

    for m in _EXPORT_STAR_RE.finditer(stripped):
        _add("*", "unknown", line_at(content, m.start("kw")), _specifier(content, m))

    for m in _EXPORT_LIST_RE.finditer(stripped):
        line = line_at(content, m.start("kw"))
        for name in _split_names(m.group("names"), keep_alias=True):
            _add(name, "unknown", line)

    for m in _EXPORT_DECL_RE.finditer(stripped):
        is_default = bool(m.group("default"))
        name = m.group("name")
        if not is_default and not name:
            continue
        if is_default:
            _add("default", "unknown", line_at(content, m.start("kw")))
            continue
        kind = export_kind(m.group("keyword"), declared=bool(m.group("declare")))
        _add(name, kind, line_at(content, m.start("kw")))

    return exports


# ---------------------------------------------------------------------------
# File-level analysis
# ---------------------------------------------------------------------------

def analyze_content(
    file_path: str,
    content: str,
    project_root: str,
    aliases: AliasTable,
    known_files: AbstractSet[str],
    raw: Optional[bytes] = None,
) -> FileNode:
    """Build a :class:`FileNode` for *file_path* from already-read *content*.

    When the undecoded *raw* bytes are given, the hash is taken over them.
    """
    stripped = strip_source(content)
    imports = extract_imports(content, stripped, file_path, aliases, known_files)
    exports = extract_exports(content, stripped)

    try:
        stat = os.stat(file_path)
        size_bytes = stat.st_size
        last_modified = stat.st_mtime
    except OSError:
        size_bytes = len(content.encode("utf-8", errors="surrogatepass"))
        last_modified = time.time()

    return FileNode(
        path=file_path,
        relative_path=os.path.relpath(file_path, project_root),
        imports=imports,
        exports=exports,
        last_modified=last_modified,
        hash=hash_content(raw if raw is not None else content),
        size_bytes=size_bytes,
        lines_of_code=count_lines(content),
    )


def analyze_path(
    file_path: str,
    project_root: str,
    aliases: AliasTable,
    known_files: AbstractSet[str],
) -> Optional[FileNode]:
    """Read and analyze one file. Returns ``None`` when it cannot be read."""
    try:
        with open(file_path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        logger.debug("Skipping unreadable file %s: %s", file_path, exc)
        return None
    content = raw.decode("utf-8", errors="replace")
    return analyze_content(file_path, content, project_root, aliases, known_files, raw=raw)


def analyze_files(
    file_paths: Sequence[str],
    project_root: str,
    aliases: AliasTable,
    batch_size: int = BATCH_SIZE,
    max_workers: int = MAX_WORKERS,
    on_progress: Optional[ProgressCallback] = None,
) -> List[FileNode]:
    """Analyze many files with a bounded pool of batch workers.

    Every path in *file_paths* counts as a known file for resolution.  Each
    worker takes the next batch, analyzes it sequentially and writes into
    the slot reserved for each file index.  Unreadable files are dropped
    from the result; the order of the rest follows *file_paths*.
    """
    paths = list(file_paths)
    total = len(paths)
    if total == 0:
        return []

    known_files = frozenset(paths)
    results: List[Optional[FileNode]] = [None] * total
    batches = [(start, min(start + batch_size, total)) for start in range(0, total, batch_size)]

    lock = threading.Lock()
    cursor = 0
    done = 0

    def _next_batch() -> Optional[tuple]:
        nonlocal cursor
        with lock:
            if cursor >= len(batches):
                return None
            batch = batches[cursor]
            cursor += 1
            return batch

    def _worker() -> None:
        nonlocal done
        while True:
            batch = _next_batch()
            if batch is None:
                return
            start, end = batch
            for index in range(start, end):
                results[index] = analyze_path(paths[index], project_root, aliases, known_files)
            with lock:
                done += end - start
                finished = min(done, total)
            if on_progress is not None:
                on_progress(finished, total)
            time.sleep(0)

    workers = min(max_workers, len(batches))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_worker) for _ in range(workers)]
        for future in futures:
            future.result()

    nodes = [node for node in results if node is not None]
    logger.debug("Analyzed %d/%d files", len(nodes), total)
    return nodes
