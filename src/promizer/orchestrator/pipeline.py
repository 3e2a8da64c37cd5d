from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from promizer.config import PromizerConfig
from promizer.domain.models import Issue, RouteDescriptor
from promizer.extractors.promizer.builder import build_descriptors
from promizer.repo.scanner import scan_source_files
from promizer.utils.logging import get_logger
from promizer.validate.validator import validate

logger = get_logger(__name__)

UNBOUND_KEY = "<unbound>"


@dataclass(frozen=True)
class FileResult:
    file_path: str  # relative to the extract root
    descriptors: tuple[RouteDescriptor, ...] = ()
    issues: tuple[Issue, ...] = ()
    annotated: bool = False  # the marker appears in the file


@dataclass(frozen=True)
class ExtractResult:
    root: str
    files_scanned: int
    annotated_files: tuple[str, ...]
    files: tuple[FileResult, ...]

    @property
    def descriptors(self) -> list[RouteDescriptor]:
        return [d for f in self.files for d in f.descriptors]

    @property
    def issues(self) -> list[Issue]:
        return [i for f in self.files for i in f.issues]

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.is_error)

    def by_handler(self) -> dict[str, list[RouteDescriptor]]:
        out: dict[str, list[RouteDescriptor]] = {}
        for d in self.descriptors:
            out.setdefault(d.handler or UNBOUND_KEY, []).append(d)
        return out

    def to_mapping(self) -> dict[str, list[dict[str, Any]]]:
        """handler -> annotations in output shape; stacked tags stay separate."""
        return {
            handler: [d.annotation.to_output() for d in descs]
            for handler, descs in self.by_handler().items()
        }


def _rel(path: Path, root: Path) -> str:
    try:
        return os.path.relpath(str(path), str(root))
    except ValueError:
        return str(path)


def extract_source(source: str, file_path: str = "", config: Optional[PromizerConfig] = None) -> FileResult:
    """Scan, parse, build and validate one file's text."""
    config = config or PromizerConfig()
    if config.marker not in source:
        return FileResult(file_path=file_path)
    built = build_descriptors(source, file_path=file_path, marker=config.marker)
    issues = list(built.issues) + validate(built.descriptors)
    issues.sort(key=lambda i: (i.line or 0, i.kind))
    return FileResult(file_path=file_path, descriptors=built.descriptors, issues=tuple(issues), annotated=True)


def extract_file(path: Path, rel_path: str, config: PromizerConfig) -> FileResult:
    """
    Like `extract_source` for a file on disk. A read failure, or content cut
    off at `config.max_bytes`, is reported as a scan issue for the file.
    """
    try:
        with open(path, "rb") as f:
            data = f.read(config.max_bytes + 1)
    except OSError as e:
        logger.error("could not read %s: %s", path, e)
        return FileResult(
            file_path=rel_path,
            issues=(Issue(kind="scan", message=f"could not read file: {e}", file_path=rel_path),),
        )

    if len(data) <= config.max_bytes:
        return extract_source(data.decode("utf-8", errors="replace"), file_path=rel_path, config=config)

    logger.warning("%s is larger than %d bytes; the rest is not scanned", rel_path, config.max_bytes)
    result = extract_source(
        data[: config.max_bytes].decode("utf-8", errors="replace"), file_path=rel_path, config=config
    )
    cut = Issue(
        kind="scan",
        severity="warning",
        message=f"file is larger than {config.max_bytes} bytes; tags past that point were not scanned",
        file_path=rel_path,
    )
    return replace(result, issues=(cut,) + result.issues)


def run_extract(
    path: Path,
    config: Optional[PromizerConfig] = None,
    max_files: int | None = None,
) -> ExtractResult:
    """
    Extract descriptors from a file or from every source file under a
    directory. Files are processed concurrently; results keep file order.
    """
    config = config or PromizerConfig()
    path = Path(path).resolve()
    root = path.parent if path.is_file() else path

    files = scan_source_files(path, extensions=config.extensions, max_files=max_files)

    def _one(p: str) -> FileResult:
        fpath = Path(p)
        return extract_file(fpath, _rel(fpath, root), config)

    if len(files) <= 1 or config.workers == 1:
        results = [_one(p) for p in files]
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            results = list(pool.map(_one, files))

    annotated = tuple(r.file_path for r in results if r.annotated)
    logger.info("scanned %d file(s), %d carry '%s' tags", len(files), len(annotated), config.marker)

    return ExtractResult(
        root=str(root),
        files_scanned=len(files),
        annotated_files=annotated,
        files=tuple(r for r in results if r.annotated or r.issues),
    )
