"""設定ローダーのユニットテスト"""

from pathlib import Path

import pytest
from aishu_config.exceptions import ConfigError, ConfigErrorCodes
from aishu_config.loader import deep_merge, load


def test_load_minimal_config(tmp_path: Path) -> None:
    """最小設定ファイルの読み込み。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("app:\n  name: ai-shu\n")
    config = load(config_file)
    assert config.app.name == "ai-shu"
    assert config.app.environment == "development"
    assert config.csrf.max_age_seconds == 3600


def test_load_with_env_override(tmp_path: Path) -> None:
    """環境別設定のマージ確認。"""
    base_file = tmp_path / "base.yaml"
    base_file.write_text(
        "app:\n  name: base\ncsrf:\n  cookie_name: csrf-token\n  max_age_seconds: 3600\n"
    )
    env_file = tmp_path / "production.yaml"
    env_file.write_text("app:\n  environment: production\ncsrf:\n  max_age_seconds: 1800\n")
    config = load(base_file, env_file)
    assert config.app.name == "base"
    assert config.app.environment == "production"
    assert config.csrf.cookie_name == "csrf-token"
    assert config.csrf.max_age_seconds == 1800


def test_load_env_not_exists(tmp_path: Path) -> None:
    """env_path が存在しない場合は base のみ使用。"""
    base_file = tmp_path / "base.yaml"
    base_file.write_text("app:\n  name: fallback\n")
    config = load(base_file, tmp_path / "nonexistent.yaml")
    assert config.app.name == "fallback"


def test_load_file_not_found(tmp_path: Path) -> None:
    """存在しないファイルで ConfigError(READ_FILE_ERROR) が発生すること。"""
    with pytest.raises(ConfigError) as exc_info:
        load(tmp_path / "missing.yaml")
    assert exc_info.value.code == ConfigErrorCodes.READ_FILE


def test_load_invalid_yaml(tmp_path: Path) -> None:
    """不正 YAML で ConfigError(PARSE_YAML_ERROR) が発生すること。"""
    bad_file = tmp_path / "bad.yaml"
    bad_file.write_text("app: {invalid: yaml: content:\n")
    with pytest.raises(ConfigError) as exc_info:
        load(bad_file)
    assert exc_info.value.code == ConfigErrorCodes.PARSE_YAML


def test_load_non_mapping_yaml(tmp_path: Path) -> None:
    """トップレベルがリストの YAML は PARSE_YAML_ERROR。"""
    bad_file = tmp_path / "list.yaml"
    bad_file.write_text("- a\n- b\n")
    with pytest.raises(ConfigError) as exc_info:
        load(bad_file)
    assert exc_info.value.code == ConfigErrorCodes.PARSE_YAML


def test_load_validation_error(tmp_path: Path) -> None:
    """バリデーション失敗で ConfigError(VALIDATION_ERROR) が発生すること。"""
    bad_config = tmp_path / "bad_config.yaml"
    bad_config.write_text("app:\n  name: x\n  environment: moon\n")
    with pytest.raises(ConfigError) as exc_info:
        load(bad_config)
    assert exc_info.value.code == ConfigErrorCodes.VALIDATION


def test_deep_merge_nested_and_lists() -> None:
    """ネストした辞書はマージ、リストは置換。"""
    base = {"csrf": {"cookie_name": "a", "exempt_paths": ["/x"]}}
    override = {"csrf": {"exempt_paths": ["/y"]}}
    result = deep_merge(base, override)
    assert result == {"csrf": {"cookie_name": "a", "exempt_paths": ["/y"]}}


def test_deep_merge_does_not_mutate_base() -> None:
    """base が変更されないこと。"""
    base = {"a": {"b": 1}}
    deep_merge(base, {"a": {"c": 2}})
    assert base == {"a": {"b": 1}}
