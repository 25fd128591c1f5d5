import pytest

from cxkit.instructions import InstructionsError, build
from cxkit.templates import TemplateStore


@pytest.fixture
def store():
    return TemplateStore(
        {
            "docs/proposal.md": "PROPOSAL TEMPLATE",
            "docs/delta-spec.md": "DELTA TEMPLATE",
            "docs/design.md": "DESIGN TEMPLATE",
            "docs/tasks.md": "TASKS TEMPLATE",
            "docs/verify.md": "VERIFY TEMPLATE",
        }
    )


def test_unknown_artifact_raises(tmp_path, store):
    with pytest.raises(InstructionsError, match="unknown artifact"):
        build(tmp_path, "readme", store)


def test_missing_template_raises(tmp_path):
    with pytest.raises(InstructionsError, match="loading template for design"):
        build(tmp_path, "design", TemplateStore({}))


def test_bad_config_raises(tmp_path, store):
    (tmp_path / ".cx").mkdir()
    (tmp_path / ".cx" / "cx.yaml").write_text("oops: 1\n", encoding="utf-8")
    with pytest.raises(InstructionsError, match="loading config"):
        build(tmp_path, "proposal", store)


def test_proposal_without_config_or_specs(tmp_path, store):
    result = build(tmp_path, "proposal", store)
    sections = result.split("\n\n---\n\n")
    assert sections[0] == "## Template\n\nPROPOSAL TEMPLATE"
    assert sections[1] == (
        "## Dependencies\n\nThis artifact has no dependencies — it can be created first."
    )
    assert sections[2] == "## Unlocks\n\nCompleting this artifact enables: specs, design"
    assert sections[3] == "## Spec Index\n\n(no specs found — run cx init)"
    assert len(sections) == 4


def test_specs_uses_delta_template(tmp_path, store):
    result = build(tmp_path, "specs", store)
    assert result.startswith("## Template\n\nDELTA TEMPLATE")
    assert "This artifact requires: proposal" in result


def test_verify_has_no_unlocks_section(tmp_path, store):
    result = build(tmp_path, "verify", store)
    assert "## Unlocks" not in result
    assert "This artifact requires: tasks" in result


def test_context_rules_and_index_included(tmp_path, store):
    (tmp_path / ".cx").mkdir()
    (tmp_path / ".cx" / "cx.yaml").write_text(
        "context: |\n  Shop backend\nrules:\n  tasks:\n    - small steps\n    - test first\n",
        encoding="utf-8",
    )
    specs = tmp_path / "docs" / "specs"
    specs.mkdir(parents=True)
    (specs / "index.md").write_text("\n# Specs\n- auth\n\n", encoding="utf-8")

    sections = build(tmp_path, "tasks", store).split("\n\n---\n\n")
    assert "## Project Context\n\nShop backend" in sections
    assert "## Rules for tasks\n\n- small steps\n- test first" in sections
    assert sections[-1] == "## Spec Index\n\n# Specs\n- auth"


def test_rules_for_other_artifacts_are_ignored(tmp_path, store):
    (tmp_path / ".cx").mkdir()
    (tmp_path / ".cx" / "cx.yaml").write_text(
        "rules:\n  design:\n    - diagrams\n", encoding="utf-8"
    )
    result = build(tmp_path, "proposal", store)
    assert "## Rules for" not in result
    assert "diagrams" not in result