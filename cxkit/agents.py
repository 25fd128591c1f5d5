"""AI tool agents: their directories, config files, skills and subagent definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cxkit.change import atomic_write
from cxkit.templates import SkillLibrary, TemplateNotFoundError, TemplateStore

__all__ = [
    "Agent",
    "Subagent",
    "SyncStatus",
    "REQUIRED_SKILL_SECTIONS",
    "all_agents",
    "by_slug",
    "detect_installed",
    "ensure_agent_dir",
    "build_skill_table",
    "generate_config_content",
    "write_config_file",
    "write_skills",
    "skill_matches_embedded",
    "validate_skill_sections",
    "cx_subagents",
    "subagent_slugs",
    "render_claude_agent",
    "render_gemini_agent",
    "render_codex_agent_toml",
    "render_codex_config_toml",
    "write_subagents",
    "check_sync_status",
]

REQUIRED_SKILL_SECTIONS = ("## Description", "## Triggers", "## Steps", "## Rules")


@dataclass(frozen=True)
class Agent:
    slug: str
    name: str
    dir: str
    config_file: str
    skills_dir: str
    agents_dir: str = ""  # empty if the tool has no subagent definitions


@dataclass(frozen=True)
class Subagent:
    slug: str
    description: str
    prompt: str
    skills: tuple[str, ...] = ()
    read_only: bool = False


@dataclass
class SyncStatus:
    """What would change for a single agent during sync."""

    agent: Agent
    config_changed: bool = False
    skills_changed: list[str] = field(default_factory=list)
    skills_missing: list[str] = field(default_factory=list)
    subagents_changed: list[str] = field(default_factory=list)
    subagents_missing: list[str] = field(default_factory=list)

    def up_to_date(self) -> bool:
        """True if nothing needs syncing for this agent."""
        return not (
            self.config_changed
            or self.skills_changed
            or self.skills_missing
            or self.subagents_changed
            or self.subagents_missing
        )

    def summary(self) -> str:
        """A short human-readable summary of pending changes."""
        parts = []
        if self.config_changed:
            parts.append("config")
        skills = len(self.skills_changed) + len(self.skills_missing)
        if skills:
            parts.append(f"{skills} skills")
        subagents = len(self.subagents_changed) + len(self.subagents_missing)
        if subagents:
            parts.append(f"{subagents} subagents")
        if not parts:
            return "up to date"
        return " + ".join(parts) + " updated"


_AGENTS = (
    Agent("claude", "Claude Code", ".claude", "CLAUDE.md", ".claude/skills", ".claude/agents"),
    Agent("gemini", "Gemini CLI", ".gemini", "GEMINI.md", ".gemini/skills", ".gemini/agents"),
    Agent("codex", "Codex CLI", ".codex", "AGENTS.md", ".codex/skills", ".codex/agents"),
)


def all_agents() -> list[Agent]:
    """Every supported agent tool."""
    return list(_AGENTS)


def by_slug(slug: str) -> Agent | None:
    """The agent with *slug*, or None."""
    return next((a for a in _AGENTS if a.slug == slug), None)


def detect_installed(root_dir: str | Path) -> list[Agent]:
    """Agents whose directory exists under *root_dir*."""
    root = Path(root_dir)
    return [a for a in _AGENTS if (root / a.dir).exists()]


def ensure_agent_dir(root_dir: str | Path, agent: Agent) -> None:
    """Create the agent's directory, skills directory and agents directory."""
    root = Path(root_dir)
    dirs = [agent.dir, agent.skills_dir]
    if agent.agents_dir:
        dirs.append(agent.agents_dir)
    for rel in dirs:
        try:
            (root / rel).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OSError(f"creating {rel}: {exc}") from exc


def build_skill_table(slugs: list[str]) -> str:
    """A markdown table linking each skill slug to its SKILL.md."""
    rows = ["| Skill | Path |\n", "|-------|------|\n"]
    rows.extend(f"| {slug} | [SKILL.md](skills/{slug}/SKILL.md) |\n" for slug in slugs)
    return "".join(rows)


def generate_config_content(agent: Agent, skill_table: str, templates: TemplateStore) -> str:
    """Render the agent's top-level config file from its template."""
    return (
        templates.must_content("agents/config.md")
        .replace("{{agent_name}}", agent.name)
        .replace("{{skill_table}}", skill_table)
        .replace("{{skills_dir}}", agent.skills_dir)
    )


def _expected_config(agent: Agent, templates: TemplateStore, skills: SkillLibrary) -> str:
    return generate_config_content(agent, build_skill_table(skills.slugs()), templates)


def write_config_file(
    root_dir: str | Path, agent: Agent, templates: TemplateStore, skills: SkillLibrary
) -> None:
    """Write the agent's config file at the project root."""
    atomic_write(Path(root_dir) / agent.config_file, _expected_config(agent, templates, skills))


def write_skills(root_dir: str | Path, agent: Agent, skills: SkillLibrary) -> int:
    """Write every skill as ``<slug>/SKILL.md`` in the agent's skills directory."""
    written = 0
    for name in skills.names():
        content = skills.content(name)
        skill_dir = Path(root_dir) / agent.skills_dir / name.removesuffix(".md")
        skill_dir.mkdir(parents=True, exist_ok=True)
        atomic_write(skill_dir / "SKILL.md", content)
        written += 1
    return written


def skill_matches_embedded(on_disk: bytes, slug: str, skills: SkillLibrary) -> bool:
    """True if *on_disk* equals the library's version of skill *slug*."""
    try:
        return bytes(on_disk) == skills.content(slug + ".md")
    except TemplateNotFoundError:
        return False


def validate_skill_sections(content: bytes | str) -> list[str]:
    """Required section headings absent from a SKILL.md."""
    text = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content
    return [section for section in REQUIRED_SKILL_SECTIONS if section not in text]


_SUBAGENT_SPECS = (
    (
        "cx-primer",
        "Prime session context. Spawned at session start to load and distill relevant "
        "project context. Disposable — its context window is discarded after use.",
        ("cx-prime", "cx-conflict-resolve"),
        True,
    ),
    (
        "cx-scout",
        "Explore and map codebases. Delegate when you need to understand project "
        "structure, trace code paths, or onboard to an unfamiliar area.",
        ("cx-scout", "cx-prime"),
        True,
    ),
    (
        "cx-reviewer",
        "Review code changes, pull requests, and documents for quality, correctness, "
        "security, and adherence to project conventions.",
        ("cx-review", "cx-refine"),
        True,
    ),
    (
        "cx-planner",
        "Plan implementation approaches and design solutions. Delegate when you need to "
        "design a feature, architect a change, or create a technical proposal.",
        ("cx-brainstorm", "cx-change"),
        False,
    ),
    (
        "cx-executor",
        "Implement tasks from change docs. Delegate when you need to write code, run "
        "tests, or apply a specific task from tasks.md.",
        (),
        False,
    ),
    (
        "cx-merger",
        "Integrate multiple task branches into a single change branch after parallel "
        "executor work. Delegate after parallel executors complete to merge their "
        "worktrees and resolve conflicts.",
        (),
        False,
    ),
)


def cx_subagents(templates: TemplateStore) -> list[Subagent]:
    """The framework's subagent definitions with prompts loaded from *templates*."""
    return [
        Subagent(
            slug=slug,
            description=description,
            prompt=templates.must_content(f"subagents/{slug}.md"),
            skills=skills,
            read_only=read_only,
        )
        for slug, description, skills, read_only in _SUBAGENT_SPECS
    ]


def subagent_slugs() -> list[str]:
    """Slugs of all framework subagents."""
    return [spec[0] for spec in _SUBAGENT_SPECS]


def render_claude_agent(subagent: Subagent) -> str:
    lines = ["---", f"name: {subagent.slug}", f"description: {subagent.description}"]
    if subagent.read_only:
        lines.append("tools: Read, Glob, Grep, Bash")
        lines.append("disallowedTools: Write, Edit, MultiEdit, NotebookEdit")
    lines.append("model: sonnet")
    if subagent.skills:
        lines.append("skills:")
        lines.extend(f"  - {skill}" for skill in subagent.skills)
    lines.append("---")
    return "\n".join(lines) + "\n\n" + subagent.prompt + "\n"


_GEMINI_READ_ONLY_TOOLS = (
    "read_file",
    "read_many_files",
    "glob",
    "grep_search",
    "list_directory",
    "run_shell_command",
)


def render_gemini_agent(subagent: Subagent) -> str:
    lines = ["---", f"name: {subagent.slug}", f"description: {subagent.description}"]
    if subagent.read_only:
        lines.append("tools:")
        lines.extend(f"  - {tool}" for tool in _GEMINI_READ_ONLY_TOOLS)
    # Full-access agents omit the tools field to inherit all defaults.
    lines.extend(["model: inherit", "max_turns: 25", "timeout_mins: 10", "---"])
    return "\n".join(lines) + "\n\n" + subagent.prompt + "\n"


def render_codex_agent_toml(subagent: Subagent) -> str:
    """A per-agent TOML file for the Codex tool."""
    sandbox = "read-only" if subagent.read_only else "workspace-write"
    effort = "medium" if subagent.read_only else "high"
    return (
        f'sandbox_mode = "{sandbox}"\n'
        f'model_reasoning_effort = "{effort}"\n'
        f'developer_instructions = """\n{subagent.prompt}\n"""\n'
    )


_NAMED_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _quote(text: str) -> str:
    out = []
    for ch in text:
        if ch in _NAMED_ESCAPES:
            out.append(_NAMED_ESCAPES[ch])
        elif not ch.isprintable():
            code = ord(ch)
            if code < 0x80:
                out.append(f"\\x{code:02x}")
            elif code <= 0xFFFF:
                out.append(f"\\u{code:04x}")
            else:
                out.append(f"\\U{code:08x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def render_codex_config_toml(subagents: list[Subagent]) -> str:
    """The main Codex config declaring features and every subagent."""
    parts = [
        "# CX Framework — Codex CLI configuration\n",
        "# Generated by cx init\n\n",
        "[features]\n",
        "multi_agent = true\n\n",
        "[agents]\n",
        f"max_threads = {len(subagents)}\n",
        "max_depth = 1\n\n",
    ]
    for sa in subagents:
        parts.append(f'[agents."{sa.slug}"]\n')
        parts.append(f"description = {_quote(sa.description)}\n")
        parts.append(f'config_file = "agents/{sa.slug}.toml"\n\n')
    return "".join(parts)


_RENDERERS = {
    "claude": (render_claude_agent, ".md"),
    "gemini": (render_gemini_agent, ".md"),
    "codex": (render_codex_agent_toml, ".toml"),
}


def write_subagents(root_dir: str | Path, agent: Agent, templates: TemplateStore) -> int:
    """Write subagent definitions for *agent*; returns how many were written."""
    if not agent.agents_dir:
        return 0
    agents_dir = Path(root_dir) / agent.agents_dir
    agents_dir.mkdir(parents=True, exist_ok=True)

    subagents = cx_subagents(templates)
    renderer = _RENDERERS.get(agent.slug)
    written = 0
    if renderer is not None:
        render, ext = renderer
        for sa in subagents:
            atomic_write(agents_dir / (sa.slug + ext), render(sa))
            written += 1

    if agent.slug == "codex":
        atomic_write(
            Path(root_dir) / agent.dir / "config.toml", render_codex_config_toml(subagents)
        )
    return written


def _read_bytes(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError:
        return None


def _check_agent(
    root: Path, agent: Agent, templates: TemplateStore, skills: SkillLibrary
) -> SyncStatus:
    status = SyncStatus(agent=agent)

    on_disk = _read_bytes(root / agent.config_file)
    expected = _expected_config(agent, templates, skills).encode("utf-8")
    status.config_changed = on_disk is None or on_disk != expected

    for slug in skills.slugs():
        data = _read_bytes(root / agent.skills_dir / slug / "SKILL.md")
        if data is None:
            status.skills_missing.append(slug)
        elif not skill_matches_embedded(data, slug, skills):
            status.skills_changed.append(slug)

    renderer = _RENDERERS.get(agent.slug)
    if agent.agents_dir and renderer is not None:
        render, ext = renderer
        for sa in cx_subagents(templates):
            data = _read_bytes(root / agent.agents_dir / (sa.slug + ext))
            if data is None:
                status.subagents_missing.append(sa.slug)
            elif data != render(sa).encode("utf-8"):
                status.subagents_changed.append(sa.slug)

    return status


def check_sync_status(
    root_dir: str | Path,
    installed: list[Agent],
    templates: TemplateStore,
    skills: SkillLibrary,
) -> list[SyncStatus]:
    """Compare on-disk files with what would be generated for each installed agent."""
    root = Path(root_dir)
    return [_check_agent(root, agent, templates, skills) for agent in installed]