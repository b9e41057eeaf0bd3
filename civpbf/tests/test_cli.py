"""
Tests for the command line and runtime settings.
"""

import pytest

from ..cli import main
from ..config import Settings, configure_logging
from ..engine_core.errors import ConfigurationError


class TestDeckCommand:
    def test_prints_sizes(self, capsys):
        assert main(["deck", "base"]) == 0

        out = capsys.readouterr().out
        assert "Ruleset: base" in out
        assert "Infantry" in out
        assert "Total" in out
        assert "Social policies: 6" in out

    def test_unknown_ruleset(self, capsys):
        assert main(["deck", "tic_tac_toe"]) == 1
        assert "Unknown ruleset" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings == Settings()
        assert not settings.is_production
        assert settings.allowed_origins == ["*"]

    def test_from_environment(self):
        settings = Settings.from_env({
            "CIVPBF_ENV": "production",
            "CIVPBF_LOCK_TIMEOUT": "2.5",
            "CIVPBF_MAX_RETRIES": "5",
            "CIVPBF_LOG_LEVEL": "debug",
            "CIVPBF_SEED": "99",
            "ALLOWED_ORIGINS": "https://forum.example, https://other.example",
        })

        assert settings.is_production
        assert settings.lock_timeout == 2.5
        assert settings.max_retries == 5
        assert settings.log_level == "DEBUG"
        assert settings.seed == 99
        assert settings.allowed_origins == ["https://forum.example", "https://other.example"]

    @pytest.mark.parametrize("name,value", [
        ("CIVPBF_LOCK_TIMEOUT", "soon"),
        ("CIVPBF_MAX_RETRIES", "-1"),
        ("CIVPBF_SEED", "abc"),
    ])
    def test_bad_numbers(self, name, value):
        with pytest.raises(ConfigurationError, match=name):
            Settings.from_env({name: value})

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            configure_logging(Settings(log_level="CHATTY"))
