"""Project health checks, their fixes and their textual reports."""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from cxkit import config
from cxkit.agents import (
    detect_installed,
    skill_matches_embedded,
    subagent_slugs,
    validate_skill_sections,
    write_skills,
)
from cxkit.templates import SkillLibrary

__all__ = [
    "Severity",
    "CheckResult",
    "CheckGroup",
    "FixableItem",
    "REQUIRED_DOC_DIRS",
    "extract_body",
    "check_docs_structure",
    "check_memory_health",
    "check_index_health",
    "check_skill_files",
    "check_subagent_files",
    "collect_fixable",
    "apply_fixes",
    "format_group_report",
    "format_report",
    "format_fixable_list",
]

REQUIRED_DOC_DIRS = (
    "docs",
    "docs/specs",
    "docs/memory",
    "docs/memory/observations",
    "docs/memory/decisions",
    "docs/memory/sessions",
    "docs/changes",
)

_MEMORY_DIRS = (
    ("observations", "docs/memory/observations"),
    ("decisions", "docs/memory/decisions"),
    ("sessions", "docs/memory/sessions"),
)


class Severity(IntEnum):
    PASS = 0
    WARNING = 1
    ERROR = 2


@dataclass
class CheckResult:
    name: str
    severity: Severity
    message: str
    fixable: bool = False
    fix_label: str = ""
    fix: Callable[[], object] | None = None


@dataclass
class CheckGroup:
    name: str
    results: list[CheckResult] = field(default_factory=list)


@dataclass
class FixableItem:
    index: int
    label: str
    fix: Callable[[], object]


def extract_body(content: str) -> str:
    """The stripped body after a frontmatter block; *content* unchanged otherwise."""
    if not content.startswith("---\n"):
        return content
    rest = content[4:]
    idx = rest.find("\n---")
    if idx >= 0:
        return rest[idx + 4 :].strip()
    return content


def _make_dirs(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def check_docs_structure(root_dir: str | Path, overview_template: str) -> CheckGroup:
    """Required docs directories, docs/overview.md and an optional cx.yaml."""
    root = Path(root_dir)
    group = CheckGroup("docs/ structure")

    for rel in REQUIRED_DOC_DIRS:
        if not (root / rel).exists():
            group.results.append(
                CheckResult(
                    name=rel,
                    severity=Severity.ERROR,
                    message=f"missing directory: {rel}",
                    fixable=True,
                    fix_label=f"create {rel}/",
                    fix=functools.partial(_make_dirs, root / rel),
                )
            )
        else:
            group.results.append(CheckResult(rel, Severity.PASS, f"{rel} exists"))

    overview_path = root / "docs" / "overview.md"
    try:
        overview = overview_path.read_bytes().decode("utf-8", errors="replace")
    except OSError:
        group.results.append(
            CheckResult(
                name="docs/overview.md",
                severity=Severity.WARNING,
                message="docs/overview.md not found",
                fixable=True,
                fix_label="create docs/overview.md from template",
                fix=functools.partial(_write_text, overview_path, overview_template),
            )
        )
    else:
        if overview.startswith("# "):
            group.results.append(
                CheckResult("docs/overview.md", Severity.PASS, "docs/overview.md valid")
            )
        else:
            group.results.append(
                CheckResult(
                    "docs/overview.md", Severity.WARNING, "docs/overview.md missing H1 heading"
                )
            )

    if (root / ".cx" / "cx.yaml").exists():
        try:
            config.load(root)
        except config.ConfigError as exc:
            group.results.append(CheckResult("cx.yaml", Severity.WARNING, f"cx.yaml: {exc}"))
        else:
            group.results.append(CheckResult("cx.yaml", Severity.PASS, "cx.yaml valid structure"))

    return group


def check_memory_health(root_dir: str | Path) -> CheckGroup:
    """Count the markdown files in each shared memory directory."""
    root = Path(root_dir)
    group = CheckGroup("memory health")
    for label, rel in _MEMORY_DIRS:
        try:
            entries = list((root / rel).iterdir())
        except OSError:
            group.results.append(
                CheckResult(label, Severity.WARNING, f"{rel} directory not readable")
            )
            continue
        count = sum(1 for e in entries if e.name.endswith(".md"))
        group.results.append(CheckResult(label, Severity.PASS, f"{count} {label} files"))
    return group


def check_index_health(root_dir: str | Path) -> CheckGroup:
    """Whether the search index file exists."""
    group = CheckGroup("index health")
    if not (Path(root_dir) / ".cx" / ".index.db").exists():
        group.results.append(
            CheckResult(
                "FTS5 index",
                Severity.WARNING,
                "search index not found (.cx/.index.db) — will be created on first search",
            )
        )
    else:
        group.results.append(CheckResult("FTS5 index", Severity.PASS, "search index exists"))
    return group


def check_skill_files(root_dir: str | Path, skills: SkillLibrary) -> CheckGroup:
    """Skill files of each installed agent: required sections and drift from the library."""
    root = Path(root_dir)
    group = CheckGroup("skill files")

    installed = detect_installed(root)
    if not installed:
        group.results.append(
            CheckResult("agents", Severity.WARNING, "no agent directories found — run cx init")
        )
        return group

    for agent in installed:
        skills_dir = root / agent.skills_dir
        try:
            entries = sorted(skills_dir.iterdir())
        except OSError:
            group.results.append(
                CheckResult(
                    f"{agent.name} skills",
                    Severity.WARNING,
                    f"{agent.name} skills directory not readable",
                )
            )
            continue

        skill_count = drift_count = section_issues = 0
        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                data = (entry / "SKILL.md").read_bytes()
            except OSError:
                continue
            skill_count += 1
            if validate_skill_sections(data):
                section_issues += 1
            if not skill_matches_embedded(data, entry.name, skills):
                drift_count += 1

        if section_issues:
            group.results.append(
                CheckResult(
                    f"{agent.name} skill sections",
                    Severity.WARNING,
                    f"{agent.name}: {section_issues} skill(s) missing required sections",
                )
            )

        if drift_count:
            group.results.append(
                CheckResult(
                    name=f"{agent.name} skill sync",
                    severity=Severity.WARNING,
                    message=f"{agent.name}: {drift_count} skill(s) differ from embedded defaults",
                    fixable=True,
                    fix_label=f"sync {agent.name} skills to embedded defaults",
                    fix=functools.partial(write_skills, root, agent, skills),
                )
            )
        elif skill_count:
            group.results.append(
                CheckResult(
                    f"{agent.name} skills",
                    Severity.PASS,
                    f"{agent.name}: {skill_count} skills, all in sync",
                )
            )

    return group


def check_subagent_files(root_dir: str | Path) -> CheckGroup:
    """Whether every subagent definition file exists for each installed agent.

    Missing files are reported as warnings; rendering them again needs the
    template store, so no fix is attached here.
    """
    root = Path(root_dir)
    group = CheckGroup("subagent files")
    expected = subagent_slugs()

    for agent in detect_installed(root):
        if not agent.agents_dir:
            continue
        ext = ".toml" if agent.slug == "codex" else ".md"
        agents_dir = root / agent.agents_dir
        present = sum(1 for slug in expected if (agents_dir / (slug + ext)).exists())
        missing = len(expected) - present

        if missing:
            group.results.append(
                CheckResult(
                    name=f"{agent.name} subagents",
                    severity=Severity.WARNING,
                    message=f"{agent.name}: {missing}/{len(expected)} subagent(s) missing",
                    fixable=False,
                    fix_label=f"sync {agent.name} subagents",
                    fix=None,
                )
            )
        elif present:
            group.results.append(
                CheckResult(
                    f"{agent.name} subagents",
                    Severity.PASS,
                    f"{agent.name}: {present} subagents present",
                )
            )

    return group


def collect_fixable(groups: Iterable[CheckGroup]) -> list[FixableItem]:
    """Every fixable result with a fix, numbered from 1."""
    fixable = [
        r for g in groups for r in g.results if r.fixable and r.fix is not None
    ]
    return [
        FixableItem(index=i, label=r.fix_label, fix=r.fix)  # type: ignore[arg-type]
        for i, r in enumerate(fixable, start=1)
    ]


def apply_fixes(items: Iterable[FixableItem]) -> list[Exception]:
    """Run every fix in order and return the exceptions of those that failed."""
    errors: list[Exception] = []
    for item in items:
        try:
            item.fix()
        except Exception as exc:  # a failed fix must not stop the others
            errors.append(exc)
    return errors


_SYMBOLS = {Severity.PASS: "✓", Severity.WARNING: "!", Severity.ERROR: "✗"}


def format_group_report(group: CheckGroup) -> tuple[str, int, int]:
    """Render one group; returns the text and its error and warning counts."""
    lines = [f"  {group.name}"]
    errors = warnings = 0
    for r in group.results:
        lines.append(f"    {_SYMBOLS[r.severity]} {r.message}")
        if r.severity is Severity.WARNING:
            warnings += 1
        elif r.severity is Severity.ERROR:
            errors += 1
    return "\n".join(lines) + "\n", errors, warnings


def format_report(groups: Iterable[CheckGroup]) -> tuple[str, int, int]:
    """Render every group; returns the text and the total error and warning counts."""
    texts = []
    errors = warnings = 0
    for g in groups:
        text, e, w = format_group_report(g)
        texts.append(text)
        errors += e
        warnings += w
    return "".join(texts), errors, warnings


def format_fixable_list(items: Iterable[FixableItem]) -> str:
    """A numbered list of fixable issues."""
    lines = ["  fixable issues"]
    lines.extend(f"    {item.index}. {item.label}" for item in items)
    return "\n".join(lines) + "\n"