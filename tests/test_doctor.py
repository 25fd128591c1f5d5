import pytest

from cxkit import doctor
from cxkit.agents import by_slug, ensure_agent_dir, subagent_slugs, write_skills, write_subagents
from cxkit.doctor import CheckGroup, CheckResult, FixableItem, Severity
from cxkit.templates import SkillLibrary, TemplateStore

OVERVIEW = "# Project Overview\n"
FULL_SKILL = b"## Description\nx\n## Triggers\nx\n## Steps\nx\n## Rules\nx\n"


@pytest.fixture
def skills():
    return SkillLibrary({"cx-prime.md": FULL_SKILL, "cx-scout.md": FULL_SKILL})


@pytest.fixture
def templates():
    return TemplateStore({f"subagents/{slug}.md": f"prompt {slug}" for slug in subagent_slugs()})


def _by_name(group, name):
    return next(r for r in group.results if r.name == name)


def test_docs_structure_empty_project(tmp_path):
    group = doctor.check_docs_structure(tmp_path, OVERVIEW)
    errors = [r for r in group.results if r.severity is Severity.ERROR]
    assert [r.name for r in errors] == list(doctor.REQUIRED_DOC_DIRS)
    assert all(r.fixable for r in errors)
    overview = _by_name(group, "docs/overview.md")
    assert overview.severity is Severity.WARNING
    assert overview.message == "docs/overview.md not found"


def test_docs_structure_fixes_repair_everything(tmp_path):
    group = doctor.check_docs_structure(tmp_path, OVERVIEW)
    items = doctor.collect_fixable([group])
    assert [i.index for i in items] == list(range(1, len(items) + 1))
    assert doctor.apply_fixes(items) == []
    assert (tmp_path / "docs" / "overview.md").read_text() == OVERVIEW
    again = doctor.check_docs_structure(tmp_path, OVERVIEW)
    assert all(r.severity is Severity.PASS for r in again.results)
    assert _by_name(again, "docs/overview.md").message == "docs/overview.md valid"


def test_overview_without_heading(tmp_path):
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "overview.md").write_text("plain text\n")
    result = _by_name(doctor.check_docs_structure(tmp_path, OVERVIEW), "docs/overview.md")
    assert result.severity is Severity.WARNING
    assert result.message == "docs/overview.md missing H1 heading"
    assert result.fixable is False


def test_cx_yaml_checked_when_present(tmp_path):
    (tmp_path / ".cx").mkdir()
    (tmp_path / ".cx" / "cx.yaml").write_text("bogus: 1\n")
    bad = _by_name(doctor.check_docs_structure(tmp_path, OVERVIEW), "cx.yaml")
    assert bad.severity is Severity.WARNING
    assert 'unrecognized key "bogus"' in bad.message

    (tmp_path / ".cx" / "cx.yaml").write_text("context: hello\n")
    good = _by_name(doctor.check_docs_structure(tmp_path, OVERVIEW), "cx.yaml")
    assert good.severity is Severity.PASS
    assert good.message == "cx.yaml valid structure"


def test_cx_yaml_absent_adds_no_result(tmp_path):
    group = doctor.check_docs_structure(tmp_path, OVERVIEW)
    assert "cx.yaml" not in [r.name for r in group.results]


def test_memory_health_counts_markdown(tmp_path):
    obs = tmp_path / "docs" / "memory" / "observations"
    obs.mkdir(parents=True)
    (obs / "a.md").write_text("x")
    (obs / "b.md").write_text("x")
    (obs / "c.txt").write_text("x")
    (tmp_path / "docs" / "memory" / "decisions").mkdir()

    group = doctor.check_memory_health(tmp_path)
    assert [r.name for r in group.results] == ["observations", "decisions", "sessions"]
    assert group.results[0].message == "2 observations files"
    assert group.results[1].message == "0 decisions files"
    assert group.results[2].severity is Severity.WARNING
    assert group.results[2].message == "docs/memory/sessions directory not readable"


def test_index_health(tmp_path):
    missing = doctor.check_index_health(tmp_path).results[0]
    assert missing.severity is Severity.WARNING
    (tmp_path / ".cx").mkdir()
    (tmp_path / ".cx" / ".index.db").write_bytes(b"")
    present = doctor.check_index_health(tmp_path).results[0]
    assert present.severity is Severity.PASS
    assert present.message == "search index exists"


def test_skill_files_without_agents(tmp_path, skills):
    [result] = doctor.check_skill_files(tmp_path, skills).results
    assert result.name == "agents"
    assert result.message == "no agent directories found — run cx init"


def test_skill_files_in_sync(tmp_path, skills):
    claude = by_slug("claude")
    ensure_agent_dir(tmp_path, claude)
    write_skills(tmp_path, claude, skills)
    [result] = doctor.check_skill_files(tmp_path, skills).results
    assert result.severity is Severity.PASS
    assert result.message == "Claude Code: 2 skills, all in sync"


def test_skill_drift_and_sections_are_reported_and_fixed(tmp_path, skills):
    claude = by_slug("claude")
    ensure_agent_dir(tmp_path, claude)
    write_skills(tmp_path, claude, skills)
    (tmp_path / ".claude" / "skills" / "cx-prime" / "SKILL.md").write_bytes(b"edited")

    group = doctor.check_skill_files(tmp_path, skills)
    sections = _by_name(group, "Claude Code skill sections")
    drift = _by_name(group, "Claude Code skill sync")
    assert sections.severity is Severity.WARNING
    assert drift.fixable

    assert doctor.apply_fixes(doctor.collect_fixable([group])) == []
    assert (tmp_path / ".claude" / "skills" / "cx-prime" / "SKILL.md").read_bytes() == FULL_SKILL
    after = doctor.check_skill_files(tmp_path, skills)
    assert [r.severity for r in after.results] == [Severity.PASS]


def test_subagent_files_without_agents(tmp_path):
    assert doctor.check_subagent_files(tmp_path).results == []


def test_subagent_files_missing_then_present(tmp_path, templates):
    codex = by_slug("codex")
    ensure_agent_dir(tmp_path, codex)
    total = len(subagent_slugs())

    missing = doctor.check_subagent_files(tmp_path).results[0]
    assert missing.severity is Severity.WARNING
    assert missing.message == f"Codex CLI: {total}/{total} subagent(s) missing"

    write_subagents(tmp_path, codex, templates)

    [result] = doctor.check_subagent_files(tmp_path).results
    assert result.severity is Severity.PASS
    assert result.message == f"Codex CLI: {total} subagents present"


def test_collect_fixable_skips_results_without_fix():
    group = CheckGroup(
        "g",
        [
            CheckResult("a", Severity.WARNING, "a", fixable=True, fix_label="no fn"),
            CheckResult("b", Severity.ERROR, "b", fixable=True, fix_label="fix b", fix=lambda: None),
            CheckResult("c", Severity.PASS, "c"),
        ],
    )
    items = doctor.collect_fixable([group, group])
    assert [(i.index, i.label) for i in items] == [(1, "fix b"), (2, "fix b")]


def test_apply_fixes_collects_failures():
    def boom():
        raise OSError("disk full")

    calls = []
    items = [FixableItem(1, "bad", boom), FixableItem(2, "good", lambda: calls.append(1))]
    errors = doctor.apply_fixes(items)
    assert [str(e) for e in errors] == ["disk full"]
    assert calls == [1]


def test_format_reports_count_severities():
    group = CheckGroup(
        "health",
        [
            CheckResult("p", Severity.PASS, "all good"),
            CheckResult("w", Severity.WARNING, "careful"),
            CheckResult("e", Severity.ERROR, "broken"),
        ],
    )
    text, errors, warnings = doctor.format_group_report(group)
    assert (errors, warnings) == (1, 1)
    assert "health" in text and "all good" in text and "broken" in text

    total_text, total_errors, total_warnings = doctor.format_report([group, group])
    assert (total_errors, total_warnings) == (2, 2)
    assert total_text == text + text


def test_format_fixable_list_numbers_items():
    text = doctor.format_fixable_list([FixableItem(1, "create docs/", lambda: None)])
    assert "fixable issues" in text
    assert "1. create docs/" in text


@pytest.mark.parametrize(
    "content, expected",
    [
        ("---\nid: x\n---\n  body text \n", "body text"),
        ("no frontmatter\n", "no frontmatter\n"),
        ("---\nunterminated", "---\nunterminated"),
    ],
)
def test_extract_body(content, expected):
    assert doctor.extract_body(content) == expected