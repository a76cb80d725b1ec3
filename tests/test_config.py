"""Tests for assetrev.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetrev.config import AssetRevConfig, ConfigError, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, AssetRevConfig)
    assert config.root == tmp_path.resolve()
    assert config.rev == []
    assert config.targets == {}
    assert config.files == {}
    assert config.revmap is None
    assert config.summary_dest is None
    assert config.hash_algorithm == "md5"
    assert config.hash_length == 8


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".assetrev.yml"
    config_file.write_text(
        """
rev:
  - "dist/js/*.js"
  - "!dist/js/vendor.js"
assets_dirs: ["dist"]
revmap: "build/revmap.json"
summary_dest: "build/summary.json"
ext2type:
  tpl: html
  .mjs: js
revision:
  algorithm: sha1
  length: 10
types:
  js:
    assets_dirs: ["dist/js"]
    patterns:
      - "loadModule\\\\('([^']+)'\\\\)"
      - pattern: "worker=([\\\\w./-]+)"
        message: "Worker scripts"
  css:
    block_replacement: '<link href="{{ dest }}" media="all">'
targets:
  html: ["dist/*.html"]
files:
  html: ["dist/index.html"]
  js: ["dist/js/*.js"]
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    root = tmp_path.resolve()
    assert config.rev == ["dist/js/*.js", "!dist/js/vendor.js"]
    assert config.assets_dirs == [root / "dist"]
    assert config.revmap == root / "build" / "revmap.json"
    assert config.summary_dest == root / "build" / "summary.json"
    assert config.ext2type == {"tpl": "html", "mjs": "js"}
    assert config.hash_algorithm == "sha1"
    assert config.hash_length == 10
    assert config.targets == {"html": ["dist/*.html"]}
    assert config.files == {"html": ["dist/index.html"], "js": ["dist/js/*.js"]}

    js = config.types["js"]
    assert js.assets_dirs == [root / "dist" / "js"]
    assert js.patterns[0].message.startswith("Update references matching")
    assert js.patterns[1].message == "Worker scripts"
    assert js.patterns[0].regex.search("loadModule('a.js')").group(1) == "a.js"
    assert config.types["css"].block_replacement == '<link href="{{ dest }}" media="all">'


def test_options_for_falls_back_to_top_level(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text(
        """
assets_dirs: ["public"]
revmap: "map.json"
types:
  css:
    assets_dirs: ["public/css"]
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    root = tmp_path.resolve()
    assert config.options_for("html").assets_dirs == [root / "public"]
    assert config.options_for("html").revmap == root / "map.json"
    assert config.options_for("css").assets_dirs == [root / "public" / "css"]
    assert config.options_for("css").revmap == root / "map.json"


def test_type_for_honours_ext2type(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text("ext2type:\n  tpl: html\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.type_for(Path("views/page.tpl")) == "html"
    assert config.type_for(Path("js/app.js")) == "js"


def test_files_is_reserved_as_target_name(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text(
        "targets:\n  files: ['*.html']\n", encoding="utf-8"
    )

    with pytest.raises(ConfigError, match="reserved"):
        load_config(tmp_path)


def test_pattern_without_capture_group_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text(
        "types:\n  js:\n    patterns: ['require\\(.*\\)']\n", encoding="utf-8"
    )

    with pytest.raises(ConfigError, match="types.js.patterns"):
        load_config(tmp_path)


def test_invalid_revision_settings_are_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / ".assetrev.yml"

    config_file.write_text("revision:\n  algorithm: nope\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="hash algorithm"):
        load_config(tmp_path)

    config_file.write_text("revision:\n  length: 0\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="positive"):
        load_config(tmp_path)


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text("rev: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".assetrev.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)
