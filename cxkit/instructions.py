"""Assembly of the instruction text for writing one change artifact."""

from __future__ import annotations

from pathlib import Path

from cxkit import config
from cxkit.graph import ARTIFACT_GRAPH, dependencies_of, find_artifact, unlocks_of
from cxkit.templates import TemplateNotFoundError, TemplateStore

__all__ = ["InstructionsError", "build"]

_SEPARATOR = "\n\n---\n\n"


class InstructionsError(ValueError):
    """Raised when instructions for an artifact cannot be built."""


def build(root_dir: str | Path, artifact: str, templates: TemplateStore) -> str:
    """Return template, project context, rules, dependencies and spec index for *artifact*."""
    if find_artifact(artifact) is None:
        valid = ", ".join(a.id for a in ARTIFACT_GRAPH)
        raise InstructionsError(f'unknown artifact "{artifact}" — valid artifacts: {valid}')

    template_path = "docs/delta-spec.md" if artifact == "specs" else f"docs/{artifact}.md"
    try:
        template = templates.content(template_path)
    except TemplateNotFoundError as exc:
        raise InstructionsError(f"loading template for {artifact}: {exc}") from exc

    sections = [f"## Template\n\n{template}"]

    try:
        cfg = config.load(root_dir)
    except config.ConfigError as exc:
        raise InstructionsError(f"loading config: {exc}") from exc

    if cfg.context:
        sections.append(f"## Project Context\n\n{cfg.context.strip()}")

    rules = cfg.rules.get(artifact)
    if rules:
        lines = "\n".join(f"- {rule}" for rule in rules)
        sections.append(f"## Rules for {artifact}\n\n{lines}")

    deps = dependencies_of(artifact)
    if deps:
        sections.append(f"## Dependencies\n\nThis artifact requires: {', '.join(deps)}")
    else:
        sections.append(
            "## Dependencies\n\nThis artifact has no dependencies — it can be created first."
        )

    unlocks = unlocks_of(artifact)
    if unlocks:
        sections.append(f"## Unlocks\n\nCompleting this artifact enables: {', '.join(unlocks)}")

    index_path = Path(root_dir) / "docs" / "specs" / "index.md"
    try:
        index = index_path.read_text(encoding="utf-8")
    except OSError:
        sections.append("## Spec Index\n\n(no specs found — run cx init)")
    else:
        sections.append(f"## Spec Index\n\n{index.strip()}")

    return _SEPARATOR.join(sections)