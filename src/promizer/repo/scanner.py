from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from promizer.config import DEFAULT_EXTENSIONS
from promizer.repo.ignore import should_ignore_dir


def scan_source_files(
    root: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    max_files: int | None = None,
) -> list[str]:
    """
    Return absolute paths (as strings) of source files under `root`, sorted.

    A file path is returned as-is when it has one of the extensions. Files are
    not opened here; read failures surface later as scan issues.
    """
    exts = tuple(e.lower() for e in extensions)
    root = Path(root)

    if root.is_file():
        return [str(root.resolve())] if root.suffix.lower() in exts else []

    out: list[str] = []
    for dirpath, dirs, files in os.walk(root):
        root_p = Path(dirpath)

        # prune ignored dirs; sorted for a stable walk order
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(root_p / d))

        for f in sorted(files):
            if f.lower().endswith(exts):
                out.append(str(root_p / f))
                if max_files is not None and len(out) >= max_files:
                    return out
    return out
