"""The dependency graph between the artifacts of a change."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Artifact", "ARTIFACT_GRAPH", "find_artifact", "dependencies_of", "unlocks_of"]


@dataclass(frozen=True)
class Artifact:
    id: str
    file: str
    requires: tuple[str, ...] = ()
    unlocks: tuple[str, ...] = ()


ARTIFACT_GRAPH: tuple[Artifact, ...] = (
    Artifact("proposal", "proposal.md", (), ("specs", "design")),
    Artifact("specs", "specs/", ("proposal",), ("tasks",)),
    Artifact("design", "design.md", ("proposal",), ("tasks",)),
    Artifact("tasks", "tasks.md", ("specs", "design"), ("verify",)),
    Artifact("verify", "verify.md", ("tasks",), ()),
)


def find_artifact(artifact: str) -> Artifact | None:
    """Return the artifact with id *artifact*, or None if there is none."""
    return next((a for a in ARTIFACT_GRAPH if a.id == artifact), None)


def dependencies_of(artifact: str) -> list[str]:
    """Artifacts that must exist before *artifact*; empty if unknown."""
    found = find_artifact(artifact)
    return list(found.requires) if found else []


def unlocks_of(artifact: str) -> list[str]:
    """Artifacts that *artifact* enables; empty if unknown."""
    found = find_artifact(artifact)
    return list(found.unlocks) if found else []