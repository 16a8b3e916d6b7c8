"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

from whalebuilder.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings(_env_file=None)

        assert settings.image == "debian:sid-slim"
        assert settings.engine == "podman"
        assert settings.build_args == ["-i", "-I", "-us", "-uc"]
        assert settings.container_prefix == "whale"
        assert settings.tmp_dir is None
        assert "python3" in settings.bootstrap_packages
        assert settings.follow_grace == 0.5

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "WHALEBUILDER_IMAGE": "debian:bookworm",
                "WHALEBUILDER_ENGINE": "docker",
                "WHALEBUILDER_FOLLOW_GRACE": "0",
            },
        ):
            settings = Settings(_env_file=None)
            assert settings.image == "debian:bookworm"
            assert settings.engine == "docker"
            assert settings.follow_grace == 0

    def test_settings_tmp_dir_from_env(self) -> None:
        """Session parent dir should be configurable via env."""
        with patch.dict(os.environ, {"WHALEBUILDER_TMP_DIR": "/tmp/whale-sessions"}):
            settings = Settings(_env_file=None)
            assert settings.tmp_dir == Path("/tmp/whale-sessions")

    def test_build_args_from_env_json(self) -> None:
        """List settings should parse JSON from env."""
        with patch.dict(os.environ, {"WHALEBUILDER_BUILD_ARGS": '["-b", "-uc"]'}):
            settings = Settings(_env_file=None)
            assert settings.build_args == ["-b", "-uc"]


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        settings = get_settings()
        assert isinstance(settings, Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        settings = Settings(_env_file=None)
        parsed = json.loads(print_settings_json(settings))

        assert parsed["image"] == "debian:sid-slim"
        assert parsed["engine"] == "podman"
        assert "build_args" in parsed
        assert "tmp_dir" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert "image" in parsed
