"""Masterfiles for brainstorming, and their decomposition into changes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from cxkit.change import atomic_write
from cxkit.templates import (
    TemplateStore,
    design_template,
    masterfile_template,
    proposal_template,
    tasks_template,
)

__all__ = [
    "BrainstormError",
    "MasterfileInfo",
    "DecomposeResult",
    "create",
    "list_masterfiles",
    "decompose",
]

_NAME_PATTERN = re.compile(r"[a-z0-9]+(-[a-z0-9]+)*")
_MAX_NAME_LENGTH = 40


class BrainstormError(Exception):
    """Raised when a masterfile operation cannot be carried out."""


@dataclass
class MasterfileInfo:
    name: str
    path: Path
    modified: bool  # True if the content differs from the template


@dataclass
class DecomposeResult:
    change_path: Path
    archive_path: Path


def _masterfiles_dir(root_dir: str | Path) -> Path:
    return Path(root_dir) / "docs" / "masterfiles"


def create(root_dir: str | Path, name: str, templates: TemplateStore) -> Path:
    """Create ``docs/masterfiles/<name>.md`` from the template and return its path."""
    if len(name) > _MAX_NAME_LENGTH:
        raise BrainstormError(f"masterfile name must be at most {_MAX_NAME_LENGTH} characters")
    if not _NAME_PATTERN.fullmatch(name):
        raise BrainstormError(
            "masterfile name must be kebab-case (lowercase letters, numbers, hyphens)"
        )

    directory = _masterfiles_dir(root_dir)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BrainstormError(f"creating masterfiles directory: {exc}") from exc

    path = directory / f"{name}.md"
    if path.exists():
        raise BrainstormError(f'masterfile "{name}" already exists')

    try:
        atomic_write(path, masterfile_template(templates, name))
    except OSError as exc:
        raise BrainstormError(f"writing masterfile: {exc}") from exc
    return path


def _differs_from_template(path: Path, template: str) -> bool:
    try:
        data = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return data.strip() != template.strip()


def list_masterfiles(root_dir: str | Path, templates: TemplateStore) -> list[MasterfileInfo]:
    """Describe every masterfile under ``docs/masterfiles``, sorted by name."""
    directory = _masterfiles_dir(root_dir)
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise BrainstormError(f"reading masterfiles directory: {exc}") from exc

    masterfiles = [
        MasterfileInfo(
            name=entry.name.removesuffix(".md"),
            path=entry,
            modified=_differs_from_template(
                entry, masterfile_template(templates, entry.name.removesuffix(".md"))
            ),
        )
        for entry in entries
        if not entry.is_dir() and entry.name.endswith(".md")
    ]
    return sorted(masterfiles, key=lambda m: m.name)


def decompose(root_dir: str | Path, name: str, templates: TemplateStore) -> DecomposeResult:
    """Scaffold ``docs/changes/<name>/`` from a masterfile and archive the masterfile.

    The change documents are left as templates for an agent to fill in.
    """
    root = Path(root_dir)
    masterfile = _masterfiles_dir(root) / f"{name}.md"
    if not masterfile.exists():
        raise BrainstormError(f'masterfile "{name}" not found')

    change_dir = root / "docs" / "changes" / name
    if change_dir.exists():
        raise BrainstormError(f'change "{name}" already exists — cannot decompose')
    try:
        change_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BrainstormError(f"creating change directory: {exc}") from exc

    files = {
        "proposal.md": proposal_template(templates, name),
        "design.md": design_template(templates, name),
        "tasks.md": tasks_template(templates, name),
    }
    for filename, content in files.items():
        try:
            atomic_write(change_dir / filename, content)
        except OSError as exc:
            raise BrainstormError(f"writing {filename}: {exc}") from exc

    try:
        (change_dir / "specs").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BrainstormError(f"creating specs directory: {exc}") from exc

    archive_dir = root / "docs" / "archive"
    try:
        archive_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BrainstormError(f"creating archive directory: {exc}") from exc

    archive_path = archive_dir / f"{date.today().isoformat()}-masterfile-{name}.md"
    try:
        masterfile.rename(archive_path)
    except OSError as exc:
        raise BrainstormError(f"archiving masterfile: {exc}") from exc

    return DecomposeResult(change_path=change_dir, archive_path=archive_path)