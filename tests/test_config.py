import pytest

from cxkit.config import Config, ConfigError, load


def write_config(root, text):
    cx = root / ".cx"
    cx.mkdir(exist_ok=True)
    (cx / "cx.yaml").write_text(text, encoding="utf-8")


def test_missing_file_gives_empty_config(tmp_path):
    assert load(tmp_path) == Config()


def test_empty_file_gives_empty_config(tmp_path):
    write_config(tmp_path, "")
    assert load(tmp_path) == Config()


def test_full_config_parsed(tmp_path):
    write_config(
        tmp_path,
        "schema: spec-driven\ncontext: |\n  A web app\nrules:\n  proposal:\n    - keep it short\n    - cite specs\n",
    )
    cfg = load(tmp_path)
    assert cfg.schema == "spec-driven"
    assert cfg.context == "A web app\n"
    assert cfg.rules == {"proposal": ["keep it short", "cite specs"]}


def test_unknown_key_rejected(tmp_path):
    write_config(tmp_path, "schema: x\nbogus: 1\n")
    with pytest.raises(ConfigError, match="unrecognized key \"bogus\""):
        load(tmp_path)


def test_invalid_yaml_rejected(tmp_path):
    write_config(tmp_path, "schema: [unclosed\n")
    with pytest.raises(ConfigError, match="parsing cx.yaml"):
        load(tmp_path)


def test_non_mapping_top_level_rejected(tmp_path):
    write_config(tmp_path, "- a\n- b\n")
    with pytest.raises(ConfigError):
        load(tmp_path)


def test_rules_must_be_lists_of_strings(tmp_path):
    write_config(tmp_path, "rules:\n  tasks: not-a-list\n")
    with pytest.raises(ConfigError):
        load(tmp_path)


def test_null_rule_list_becomes_empty(tmp_path):
    write_config(tmp_path, "rules:\n  design:\n")
    assert load(tmp_path).rules == {"design": []}