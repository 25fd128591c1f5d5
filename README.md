# cxkit

A library for keeping a project's knowledge in plain files next to its code.
It scaffolds structured changes, brainstorming masterfiles and AI-agent
configuration files, and it checks that they are in good shape.

## Installation

```
pip install cxkit
```

To run the test suite:

```
pip install "cxkit[test]"
pytest
```

## Modules

- **`cxkit.templates`**: `TemplateStore` holds text templates keyed by
  slash-separated paths (`content`, `must_content`, `from_directory`).
  `SkillLibrary` holds skill documents named `<slug>.md` (`names`, `slugs`,
  `content`, `from_directory`). Helpers such as `proposal_template(store, name)`,
  `design_template`, `tasks_template`, `spec_template`, `delta_spec_template`,
  `verify_template`, `masterfile_template` and `config_template` fill in the
  `{{name}}` and `{{area}}` placeholders. Templates are looked up under paths
  such as `docs/proposal.md`, `docs/masterfile.md`, `agents/config.md` and
  `subagents/<slug>.md`.
- **`cxkit.config`**: `load(root_dir)` reads `.cx/cx.yaml` and returns a
  `Config` with `schema`, `context` and `rules`. A missing file gives an empty
  `Config`. An unknown key or a malformed value raises `ConfigError`.
- **`cxkit.graph`**: the artifacts of a change and how they depend on each
  other (proposal → specs and design → tasks → verify). It provides
  `find_artifact`, `dependencies_of` and `unlocks_of`.
- **`cxkit.instructions`**: `build(root_dir, artifact, templates)` returns one
  text for an artifact. The text holds the artifact's template, the project
  context and rules from `cx.yaml`, its dependencies and what it unlocks, and
  `docs/specs/index.md`. An unknown artifact raises `InstructionsError`.
- **`cxkit.change`**: `create`, `list_changes`, `archive`, `spec_sync` and
  `mark_delta_synced` work on changes under `docs/changes/<name>/`. A change is
  archived only when its proposal, design and tasks differ from the templates
  and its `verify.md` holds `PASS` with no line starting with `CRITICAL`. You can
  skip the verify check with `skip_specs=True`. Archiving creates canonical
  specs for new delta areas that are not yet synced, then moves the change to
  `docs/archive/<date>-<name>`. Failures raise `ChangeError`.
- **`cxkit.brainstorm`**: `create` writes a masterfile to
  `docs/masterfiles/<name>.md`, and `list_masterfiles` reports whether each one
  was edited. `decompose` scaffolds a change from a masterfile and moves the
  masterfile to `docs/archive/<date>-masterfile-<name>.md`. Failures raise
  `BrainstormError`.
- **`cxkit.agents`**: this module covers Claude Code, Gemini CLI and Codex CLI
  (`all_agents`, `by_slug`, `detect_installed`). It writes each tool's config
  file, its skills (`<slug>/SKILL.md`) and its subagent definitions. The Codex
  tool gets `.toml` files plus a `config.toml`. `check_sync_status` returns a
  `SyncStatus` for each agent, showing what differs from the generated content.
- **`cxkit.doctor`**: `check_docs_structure`, `check_memory_health`,
  `check_index_health`, `check_skill_files` and `check_subagent_files` return
  `CheckGroup`s of `CheckResult`s. `collect_fixable` and `apply_fixes` run the
  available fixes. `format_group_report`, `format_report` and
  `format_fixable_list` render plain text and return the error and warning
  counts where relevant.

Change and masterfile names must be kebab-case and may be at most 40
characters long.

## Example

```python
from cxkit import change, instructions
from cxkit.templates import TemplateStore

store = TemplateStore.from_directory("templates")
change.create("/path/to/repo", "add-login", store)

for info in change.list_changes("/path/to/repo", store):
    print(info.name, info.verify_status)

print(instructions.build("/path/to/repo", "design", store))
```

## What it does not do

- It is a library only and installs no command-line program.
- It ships no templates or skills. You supply them through `TemplateStore` and
  `SkillLibrary`.
- It keeps no memory database: no saving, searching or syncing of memories,
  sessions or agent runs. The doctor only counts the files in the memory
  directories.
- It does not install git hooks, write MCP server settings, manage git
  worktrees or keep a registry of projects.
- `check_subagent_files` reports missing subagent files but attaches no fix.
  Call `write_subagents` to restore them.