"""Resolve source files to lint and labeled eval fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import pathspec

from gptlint.constants import BINARY_DETECTION_BUFFER, EvalLabel
from gptlint.linting.schemas import SourceFile

logger = logging.getLogger(__name__)


def resolve_files(
    cwd: Path,
    *,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    skip_dirs: Iterable[str] = (),
) -> list[SourceFile]:
    """Walk ``cwd`` and read every matching text file.

    ``include``/``exclude`` are gitignore-style globs relative to
    ``cwd``; an empty ``include`` means every file. ``.gitignore``
    patterns at the root are always honoured.
    """
    root = cwd.resolve()
    gitignore = _load_gitignore(root)
    paths = _walk_source_files(root, set(skip_dirs), gitignore)

    include_spec = _spec(include) if include else None
    exclude_spec = _spec(exclude) if exclude else None
    selected: list[str] = []
    for path in paths:
        rel = path.relative_to(root).as_posix()
        if include_spec and not include_spec.match_file(rel):
            continue
        if exclude_spec and exclude_spec.match_file(rel):
            continue
        selected.append(rel)

    files = read_source_files(selected, cwd=root)
    logger.info(
        "event=files_resolved root=%s files=%d", root, len(files)
    )
    return files


def read_source_files(
    paths: Iterable[str | Path], *, cwd: Path
) -> list[SourceFile]:
    """Read files (relative to ``cwd``) into SourceFiles.

    Paths are de-duplicated and sorted; binary or unreadable files are
    skipped with a warning.
    """
    unique = sorted({Path(p).as_posix() for p in paths})
    files: list[SourceFile] = []
    for rel in unique:
        content = _read_text_file(cwd / rel)
        if content is None:
            logger.warning("event=file_skipped path=%s", rel)
            continue
        files.append(SourceFile(file_path=rel, content=content))
    return files


def resolve_eval_files(
    evals_dir: Path,
    rule_name: str,
    label: EvalLabel,
    *,
    cwd: Path,
) -> list[SourceFile]:
    """Read ``<evals_dir>/<rule_name>/<label>/*`` as SourceFiles."""
    directory = evals_dir / rule_name / label.value
    if not (cwd / directory).is_dir():
        return []
    paths = [
        p.relative_to(cwd) if p.is_relative_to(cwd) else p
        for p in sorted((cwd / directory).iterdir())
        if p.is_file() and not p.name.startswith(".")
    ]
    return read_source_files(paths, cwd=cwd)


def _spec(patterns: Iterable[str]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def _read_text_file(path: Path) -> str | None:
    """Read a file as UTF-8 text, returning None for binary or errors."""
    try:
        with open(path, "rb") as f:
            head = f.read(BINARY_DETECTION_BUFFER)
            if b"\x00" in head:
                return None
            data = head + f.read()
    except OSError:
        return None
    return data.decode("utf-8", errors="replace")


def _walk_source_files(
    root: Path,
    skip_dirs: set[str],
    gitignore_patterns: pathspec.PathSpec,
) -> list[Path]:
    """Walk the file tree, respecting skip dirs and gitignore patterns.

    Dotfiles, dot-directories and symlinks that resolve outside the
    root are skipped.
    """
    files: list[Path] = []
    pending = [root]
    while pending:
        current = pending.pop()
        for item in sorted(current.iterdir()):
            if item.name.startswith("."):
                continue
            if item.is_symlink() and not item.resolve().is_relative_to(root):
                continue
            rel = item.relative_to(root).as_posix()
            if item.is_dir():
                if item.name in skip_dirs:
                    continue
                if gitignore_patterns.match_file(rel + "/"):
                    continue
                pending.append(item)
            elif item.is_file() and not gitignore_patterns.match_file(rel):
                files.append(item)
    return sorted(files)


def _load_gitignore(root: Path) -> pathspec.PathSpec:
    """Load .gitignore patterns using pathspec."""
    gitignore = root / ".gitignore"
    try:
        with open(gitignore, encoding="utf-8") as f:
            return _spec(f)
    except OSError:
        return _spec([])
