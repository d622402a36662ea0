"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from techspec.infrastructure.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("BACKEND_URL", "SUPABASE_URL", "ADMIN_API_TOKEN"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.backend_url == ""
        assert config.admin_api_token == ""
        assert config.stats_cache_ttl_seconds == 15.0
        assert config.stats_poll_interval_seconds == 30.0
        assert config.search_debounce_ms == 400

    def test_reads_hosted_service_variable_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("BACKEND_URL", raising=False)
        monkeypatch.delenv("BACKEND_ANON_KEY", raising=False)
        monkeypatch.setenv("SUPABASE_URL", "https://project.backend.test")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")

        config = Settings(_env_file=None)

        assert config.backend_url == "https://project.backend.test"
        assert config.backend_anon_key == "anon"
        assert config.admin_backend_key == "service"

    def test_reads_own_variable_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BACKEND_URL", "https://other.backend.test")
        monkeypatch.setenv("ADMIN_API_TOKEN", "s3cret")

        config = Settings(_env_file=None)

        assert config.backend_url == "https://other.backend.test"
        assert config.admin_api_token == "s3cret"

    @pytest.mark.parametrize("delay", ["100", "299", "501", "2000"])
    def test_debounce_outside_window_rejected(
        self, monkeypatch: pytest.MonkeyPatch, delay: str
    ) -> None:
        monkeypatch.setenv("SEARCH_DEBOUNCE_MS", delay)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_debounce_inside_window(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SEARCH_DEBOUNCE_MS", "300")

        assert Settings(_env_file=None).search_debounce_ms == 300
