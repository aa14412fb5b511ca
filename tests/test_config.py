"""Tests for .callflat.yml configuration loading."""

import pytest
import yaml

from callflat.config import CallflatConfig, ConfigError


def test_defaults_without_config_file(tmp_path):
    config = CallflatConfig.load(tmp_path)
    assert config.analysis.warn_unresolved_asserts is True
    assert config.analysis.entry_points == []
    assert config.output.format == "text"
    assert config.output.pretty is True
    assert config.logging.level == "WARNING"


def test_dashed_keys(tmp_path):
    (tmp_path / ".callflat.yml").write_text(
        "analysis:\n"
        "  warn-unresolved-asserts: false\n"
        "  entry-points: [main, init]\n"
        "output:\n"
        "  format: smt2\n"
        "logging:\n"
        "  level: debug\n"
    )
    config = CallflatConfig.load(tmp_path)
    assert config.analysis.warn_unresolved_asserts is False
    assert config.analysis.entry_points == ["main", "init"]
    assert config.output.format == "smt2"
    assert config.logging.level == "DEBUG"


def test_underscored_keys_and_yaml_extension(tmp_path):
    (tmp_path / ".callflat.yaml").write_text("analysis:\n  entry_points: main\n")
    config = CallflatConfig.load(tmp_path)
    assert config.analysis.entry_points == ["main"]


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert CallflatConfig.load_file(path).output.format == "text"


def test_unknown_output_format(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("output:\n  format: html\n")
    with pytest.raises(ConfigError):
        CallflatConfig.load_file(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        CallflatConfig.load_file(path)


def test_to_yaml_round_trip():
    config = CallflatConfig()
    config.analysis.entry_points = ["main"]
    config.output.format = "smt2"
    config.analysis.warn_unresolved_asserts = False

    reloaded = CallflatConfig._from_dict(yaml.safe_load(config.to_yaml()))
    assert reloaded == config


def test_logging_level_names(tmp_path):
    path = tmp_path / "levels.yml"
    path.write_text("logging:\n  level: info\n")
    assert CallflatConfig.load_file(path).logging.level == "INFO"
    path.write_text("logging:\n  level: loud\n")
    with pytest.raises(ConfigError, match="LOUD"):
        CallflatConfig.load_file(path)


def test_invalid_yaml_is_a_config_error(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("analysis: [unclosed\n")
    with pytest.raises(ConfigError):
        CallflatConfig.load_file(path)
