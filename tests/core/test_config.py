from __future__ import annotations

import stat

import pytest

from pdf_quizzer.core import config


def test_load_toml_reads_tables(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text('[ai]\nmodel = "gpt-test"\n', encoding="utf-8")

    assert config.load_toml(path) == {"ai": {"model": "gpt-test"}}


def test_load_toml_reports_missing_and_invalid_files(tmp_path):
    with pytest.raises(config.TomlConfigError, match="not found"):
        config.load_toml(tmp_path / "missing.toml")

    broken = tmp_path / "broken.toml"
    broken.write_text("[ai\nmodel=", encoding="utf-8")
    with pytest.raises(config.TomlConfigError, match="broken.toml"):
        config.load_toml(broken)


def test_merge_defaults_overrides_nested_values():
    base = {"ai": {"model": "a", "temperature": 0.0}, "quiz": {"mode": "quiz"}}

    config.merge_defaults(base, {"ai": {"model": "b"}})

    assert base == {
        "ai": {"model": "b", "temperature": 0.0},
        "quiz": {"mode": "quiz"},
    }


def test_merge_defaults_rejects_unknown_keys_and_bad_tables():
    base = {"ai": {"model": "a"}}

    with pytest.raises(config.TomlConfigError, match="'ai.colour'"):
        config.merge_defaults(base, {"ai": {"colour": "red"}})
    with pytest.raises(config.TomlConfigError, match="Expected table"):
        config.merge_defaults(base, {"ai": "flat"})


def test_write_toml_template_respects_overwrite(tmp_path):
    target = tmp_path / "nested" / "pdf_quizzer.toml"

    written = config.write_toml_template(target, template="a = 1\n")
    assert written.read_text(encoding="utf-8") == "a = 1\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o600

    with pytest.raises(config.TomlConfigError, match="already exists"):
        config.write_toml_template(target, template="a = 2\n")

    config.write_toml_template(target, template="a = 2\n", overwrite=True)
    assert target.read_text(encoding="utf-8") == "a = 2\n"
