"""Structured changes: creation, status, spec sync and archiving."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from cxkit.templates import (
    TemplateStore,
    design_template,
    proposal_template,
    spec_template,
    tasks_template,
)

__all__ = [
    "ChangeError",
    "ChangeInfo",
    "ArchiveResult",
    "SpecSyncResult",
    "VERIFY_OK",
    "VERIFY_FAIL",
    "VERIFY_PENDING",
    "atomic_write",
    "strip_frontmatter",
    "file_modified",
    "delta_to_canonical",
    "create",
    "list_changes",
    "archive",
    "spec_sync",
    "mark_delta_synced",
]

_VERIFY_OK_MARKER = "PASS"
VERIFY_OK = _VERIFY_OK_MARKER
VERIFY_FAIL = "FAIL"
VERIFY_PENDING = "PENDING"

_NAME_PATTERN = re.compile(r"[a-z0-9]+(-[a-z0-9]+)*")
_MAX_NAME_LENGTH = 40
_SYNCED_MARKER = "synced: true"
_SECTION_ENDS_ADDED = frozenset(
    {
        "## MODIFIED Requirements",
        "## REMOVED Requirements",
        "## ADDED Scenarios",
        "## MODIFIED Scenarios",
        "## REMOVED Scenarios",
    }
)


class ChangeError(Exception):
    """Raised when a change operation cannot be carried out."""


@dataclass
class ChangeInfo:
    name: str
    path: Path
    has_proposal: bool = False
    has_design: bool = False
    has_tasks: bool = False
    has_verify: bool = False
    verify_status: str = VERIFY_PENDING
    delta_specs: list[str] = field(default_factory=list)
    synced_deltas: list[str] = field(default_factory=list)


@dataclass
class ArchiveResult:
    archive_path: Path
    bootstrapped_specs: list[str] = field(default_factory=list)
    delta_specs: list[str] = field(default_factory=list)


@dataclass
class SpecSyncResult:
    areas: list[str]
    prompt: str


def atomic_write(path: str | Path, data: str | bytes) -> None:
    """Write *data* to a temporary sibling file, then move it over *path*."""
    target = Path(path)
    tmp = target.with_name(target.name + ".tmp")
    if isinstance(data, str):
        data = data.encode("utf-8")
    tmp.write_bytes(data)
    os.replace(tmp, target)


def strip_frontmatter(content: str) -> str:
    """Return *content* without a leading ``---`` frontmatter block."""
    if not content.startswith("---\n"):
        return content
    rest = content[4:]
    idx = rest.find("\n---")
    if idx >= 0:
        return rest[idx + 4 :]
    return ""


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _subdirs(directory: Path) -> list[str]:
    return sorted(entry.name for entry in directory.iterdir() if entry.is_dir())


def file_modified(directory: str | Path, filename: str, template: str) -> bool:
    """True if the file exists and its body differs from the template's body."""
    data = _read_text(Path(directory) / filename)
    if data is None:
        return False
    return strip_frontmatter(data).strip() != strip_frontmatter(template).strip()


def _verify_passed(content: str) -> bool:
    if _VERIFY_OK_MARKER not in content:
        return False
    return not any(line.strip().startswith("CRITICAL") for line in content.split("\n"))


def _is_synced(text: str | None) -> bool:
    return text is not None and _SYNCED_MARKER in text


def delta_to_canonical(area: str, delta: str) -> str:
    """Build a canonical spec for *area* from a delta spec's ADDED requirements."""
    body = strip_frontmatter(delta)
    header = f"---\nname: {area}\ntype: spec\n---\n"
    parts = [header]
    in_added = False
    has_content = False
    for line in body.split("\n"):
        trimmed = line.strip()
        if trimmed == "## ADDED Requirements":
            in_added = True
            parts.append("\n## Requirements\n")
            continue
        if trimmed in _SECTION_ENDS_ADDED:
            in_added = False
            continue
        if in_added:
            parts.append(line + "\n")
            if trimmed:
                has_content = True

    if not has_content:
        return header + body.strip() + "\n"
    return "".join(parts)


def _validate_name(name: str) -> None:
    if len(name) > _MAX_NAME_LENGTH:
        raise ChangeError(f"change name must be at most {_MAX_NAME_LENGTH} characters")
    if not _NAME_PATTERN.fullmatch(name):
        raise ChangeError(
            "change name must be kebab-case (lowercase letters, numbers, hyphens)"
        )


def _doc_templates(templates: TemplateStore, name: str) -> dict[str, str]:
    return {
        "proposal.md": proposal_template(templates, name),
        "design.md": design_template(templates, name),
        "tasks.md": tasks_template(templates, name),
    }


def create(root_dir: str | Path, name: str, templates: TemplateStore) -> None:
    """Create ``docs/changes/<name>/`` with template documents and a specs folder."""
    _validate_name(name)
    directory = Path(root_dir) / "docs" / "changes" / name
    if directory.exists():
        raise ChangeError(f'change "{name}" already exists')
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ChangeError(f"creating change directory: {exc}") from exc

    for filename, content in _doc_templates(templates, name).items():
        try:
            atomic_write(directory / filename, content)
        except OSError as exc:
            raise ChangeError(f"writing {filename}: {exc}") from exc

    try:
        (directory / "specs").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ChangeError(f"creating specs directory: {exc}") from exc


def _filled_state(directory: Path, name: str, templates: TemplateStore) -> dict[str, bool]:
    docs = _doc_templates(templates, name)
    return {
        "has_proposal": file_modified(directory, "proposal.md", docs["proposal.md"]),
        "has_design": file_modified(directory, "design.md", docs["design.md"]),
        "has_tasks": file_modified(directory, "tasks.md", docs["tasks.md"]),
    }


def list_changes(root_dir: str | Path, templates: TemplateStore) -> list[ChangeInfo]:
    """Describe every active change under ``docs/changes``, sorted by name."""
    changes_dir = Path(root_dir) / "docs" / "changes"
    try:
        names = _subdirs(changes_dir)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise ChangeError(f"reading changes directory: {exc}") from exc

    changes = []
    for name in names:
        directory = changes_dir / name
        info = ChangeInfo(name=name, path=directory, **_filled_state(directory, name, templates))

        specs_dir = directory / "specs"
        try:
            areas = _subdirs(specs_dir)
        except OSError:
            areas = []
        for area in areas:
            info.delta_specs.append(area)
            if _is_synced(_read_text(specs_dir / area / "spec.md")):
                info.synced_deltas.append(area)

        verify = _read_text(directory / "verify.md")
        if verify is None:
            info.verify_status = VERIFY_PENDING
        else:
            info.has_verify = True
            info.verify_status = VERIFY_OK if _verify_passed(verify) else VERIFY_FAIL

        changes.append(info)

    return sorted(changes, key=lambda c: c.name)


def archive(
    root_dir: str | Path,
    name: str,
    templates: TemplateStore,
    skip_specs: bool = False,
) -> ArchiveResult:
    """Move a complete, verified change into ``docs/archive/<date>-<name>``.

    Canonical specs missing for unsynced delta areas are bootstrapped first.
    """
    root = Path(root_dir)
    changes_dir = root / "docs" / "changes" / name
    if not changes_dir.exists():
        raise ChangeError(f'change "{name}" does not exist')

    state = _filled_state(changes_dir, name, templates)
    missing = [
        filename
        for filename, key in (
            ("proposal.md", "has_proposal"),
            ("design.md", "has_design"),
            ("tasks.md", "has_tasks"),
        )
        if not state[key]
    ]
    if missing:
        raise ChangeError(f'change "{name}" is incomplete — missing: {", ".join(missing)}')

    if not skip_specs:
        verify = _read_text(changes_dir / "verify.md")
        if verify is None:
            raise ChangeError(f'change "{name}" has no verify.md — run cx change verify first')
        if not _verify_passed(verify):
            raise ChangeError(
                f'change "{name}" verify.md does not have PASS status — '
                "review must pass before archiving"
            )

    delta_specs_dir = changes_dir / "specs"
    try:
        delta_areas = _subdirs(delta_specs_dir)
    except OSError:
        delta_areas = []

    bootstrapped = []
    for area in delta_areas:
        delta = _read_text(delta_specs_dir / area / "spec.md")
        if _is_synced(delta):
            continue
        canonical = root / "docs" / "specs" / area / "spec.md"
        if canonical.exists():
            continue
        try:
            canonical.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ChangeError(f"creating spec directory for {area}: {exc}") from exc
        content = delta_to_canonical(area, delta) if delta is not None else spec_template(templates, area)
        try:
            atomic_write(canonical, content)
        except OSError as exc:
            raise ChangeError(f"writing spec for {area}: {exc}") from exc
        bootstrapped.append(area)
    bootstrapped.sort()

    archive_path = Path("docs") / "archive" / f"{date.today().isoformat()}-{name}"
    archive_dir = root / archive_path
    try:
        archive_dir.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ChangeError(f"creating archive directory: {exc}") from exc
    try:
        changes_dir.rename(archive_dir)
    except OSError as exc:
        raise ChangeError(f"archiving change: {exc}") from exc

    return ArchiveResult(
        archive_path=archive_path,
        bootstrapped_specs=bootstrapped,
        delta_specs=delta_areas,
    )


def spec_sync(root_dir: str | Path, name: str, templates: TemplateStore) -> SpecSyncResult:
    """Build a merge prompt for every unsynced delta spec of change *name*."""
    root = Path(root_dir)
    changes_dir = root / "docs" / "changes" / name
    if not changes_dir.exists():
        raise ChangeError(f'change "{name}" does not exist')

    if not file_modified(changes_dir, "proposal.md", proposal_template(templates, name)):
        raise ChangeError(f'change "{name}" proposal.md is not filled — required before spec sync')

    delta_specs_dir = changes_dir / "specs"
    try:
        entries = _subdirs(delta_specs_dir)
    except FileNotFoundError:
        raise ChangeError(f'change "{name}" has no specs/ directory') from None
    except OSError as exc:
        raise ChangeError(f"reading specs directory: {exc}") from exc

    areas: list[str] = []
    sections: list[str] = []
    for area in entries:
        delta = _read_text(delta_specs_dir / area / "spec.md")
        if delta is None or _is_synced(delta):
            continue
        areas.append(area)

        canonical = _read_text(root / "docs" / "specs" / area / "spec.md") or ""
        section = f"### Spec Area: {area}\n\n"
        if canonical:
            section += (
                f"#### Canonical Spec (docs/specs/{area}/spec.md)\n\n{canonical.strip()}\n\n"
            )
        else:
            section += (
                f"#### Canonical Spec (docs/specs/{area}/spec.md)\n\n(empty — new spec area)\n\n"
            )
        section += f"#### Delta Spec (changes/{name}/specs/{area}/spec.md)\n\n{delta.strip()}\n"
        sections.append(section)

    if not areas:
        raise ChangeError(f'change "{name}" has no unsynced delta specs')

    prompt = (
        f"# Spec Sync: {name}\n\n"
        "Merge each delta spec into the corresponding canonical spec.\n"
        "ADDED requirements should be appended. MODIFIED requirements should replace "
        "the original. REMOVED requirements should be deleted.\n\n"
        + "\n---\n\n".join(sections)
    )
    return SpecSyncResult(areas=areas, prompt=prompt)


def mark_delta_synced(root_dir: str | Path, name: str, area: str) -> None:
    """Flag the delta spec of *area* in change *name* as synced in its frontmatter."""
    delta_path = Path(root_dir) / "docs" / "changes" / name / "specs" / area / "spec.md"
    try:
        content = delta_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ChangeError(f"reading delta spec: {exc}") from exc

    if _SYNCED_MARKER in content:
        return

    if content.startswith("---\n"):
        rest = content[4:]
        idx = rest.find("\n---")
        if idx >= 0:
            atomic_write(delta_path, "---\n" + rest[:idx] + "\n" + _SYNCED_MARKER + rest[idx:])
            return

    atomic_write(delta_path, f"---\n{_SYNCED_MARKER}\n---\n" + content)