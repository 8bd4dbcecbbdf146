"""Tests for settings loading."""

from pathlib import Path

import pytest

from klinewaker.config import Settings, config_path, load_settings, write_template
from klinewaker.errors import ConfigError


class TestLoadSettings:

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path / "nope.toml")
        assert settings == Settings()
        assert settings.notifications.sound == "default"
        assert settings.db_path.name == "klinewaker.db"

    def test_template_round_trip(self, tmp_path: Path):
        path = write_template(tmp_path / "conf" / "config.toml")
        settings = load_settings(path)
        assert settings.notifications.custom_sound_path is None
        assert settings.logging.level == "WARNING"

    def test_values_are_applied(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text(
            f'[storage]\ndata_dir = "{tmp_path / "data"}"\n'
            '[notifications]\nsound = "off"\ntts = true\n'
            '[logging]\nlevel = "debug"\n'
        )
        settings = load_settings(path)
        assert settings.images_dir == tmp_path / "data" / "trade_images"
        assert settings.notifications.sound == "off"
        assert settings.notifications.tts is True
        assert settings.logging.level == "DEBUG"

    @pytest.mark.parametrize(
        "content",
        [
            "[storage\n",
            '[notifications]\nsound = "loud"\n',
            '[logging]\nlevel = "chatty"\n',
        ],
    )
    def test_invalid_file_raises(self, tmp_path: Path, content: str):
        path = tmp_path / "config.toml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KLINEWAKER_CONFIG", str(tmp_path / "alt.toml"))
        assert config_path() == tmp_path / "alt.toml"
