"""Template and skill storage plus the document templates built from them."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

__all__ = [
    "TemplateNotFoundError",
    "TemplateStore",
    "SkillLibrary",
    "proposal_template",
    "design_template",
    "tasks_template",
    "spec_template",
    "delta_spec_template",
    "verify_template",
    "config_template",
    "masterfile_template",
]


class TemplateNotFoundError(LookupError):
    """Raised when a template or skill is not present in its store."""


def _read_tree(directory: str | Path, *, binary: bool) -> dict[str, str | bytes]:
    root = Path(directory)
    files: dict[str, str | bytes] = {}
    for path in sorted(root.rglob("*")):
        if path.is_file():
            key = path.relative_to(root).as_posix()
            files[key] = path.read_bytes() if binary else path.read_text(encoding="utf-8")
    return files


class TemplateStore:
    """A read-only collection of text templates addressed by slash-separated paths."""

    def __init__(self, files: Mapping[str, str]):
        self._files = dict(files)

    @classmethod
    def from_directory(cls, directory: str | Path) -> TemplateStore:
        """Load every file below *directory*, keyed by its relative POSIX path."""
        return cls(_read_tree(directory, binary=False))  # type: ignore[arg-type]

    def content(self, path: str) -> str:
        """Return the template at *path*, or raise TemplateNotFoundError."""
        try:
            return self._files[path]
        except KeyError:
            raise TemplateNotFoundError(f"template {path!r} not found") from None

    def must_content(self, path: str) -> str:
        """Return a template the program cannot work without.

        A missing template here is a packaging fault, so it raises RuntimeError.
        """
        try:
            return self.content(path)
        except TemplateNotFoundError as exc:
            raise RuntimeError(f"required template missing: {path}") from exc


class SkillLibrary:
    """A collection of skill documents, each named ``<slug>.md``."""

    def __init__(self, files: Mapping[str, bytes | str]):
        self._files = {
            name: data.encode("utf-8") if isinstance(data, str) else bytes(data)
            for name, data in files.items()
        }

    @classmethod
    def from_directory(cls, directory: str | Path) -> SkillLibrary:
        """Load the ``*.md`` files directly inside *directory*."""
        root = Path(directory)
        return cls({p.name: p.read_bytes() for p in sorted(root.glob("*.md")) if p.is_file()})

    def names(self) -> list[str]:
        """Skill file names in sorted order."""
        return sorted(self._files)

    def slugs(self) -> list[str]:
        """Skill names without the ``.md`` suffix, in sorted order."""
        return [name.removesuffix(".md") for name in self.names()]

    def content(self, name: str) -> bytes:
        """Return the raw bytes of skill *name*, or raise TemplateNotFoundError."""
        try:
            return self._files[name]
        except KeyError:
            raise TemplateNotFoundError(f"skill {name!r} not found") from None


def _named(store: TemplateStore, path: str, name: str) -> str:
    return store.must_content(path).replace("{{name}}", name)


def proposal_template(store: TemplateStore, name: str) -> str:
    return _named(store, "docs/proposal.md", name)


def design_template(store: TemplateStore, name: str) -> str:
    return _named(store, "docs/design.md", name)


def tasks_template(store: TemplateStore, name: str) -> str:
    return _named(store, "docs/tasks.md", name)


def spec_template(store: TemplateStore, area: str) -> str:
    return _named(store, "docs/spec.md", area)


def delta_spec_template(store: TemplateStore, name: str, area: str) -> str:
    return _named(store, "docs/delta-spec.md", name).replace("{{area}}", area)


def verify_template(store: TemplateStore, name: str) -> str:
    return _named(store, "docs/verify.md", name)


def config_template(store: TemplateStore) -> str:
    return store.must_content("docs/cx.yaml")


def masterfile_template(store: TemplateStore, name: str) -> str:
    return _named(store, "docs/masterfile.md", name)