"""Test RepositoryConfig validation and Settings loading."""

import pytest
from pydantic import ValidationError

from domain_repository.core.config import RepositoryConfig, Settings, load_settings
from domain_repository.core.enums import LogFormat
from domain_repository.core.errors import InvalidConfigError
from domain_repository.core.events import ModelEvent
from domain_repository.data import EntitiesProvider
from domain_repository.domain import DataMapper
from domain_repository.storage.sql import Finder, RecordQuery


class TestRepositoryConfig:
    def test_defaults(self):
        config = RepositoryConfig()

        assert config.use_transactions is True
        assert config.suppress_save_errors is False
        assert config.default_finder_class is Finder
        assert config.default_query_class is RecordQuery
        assert config.data_mapper_class is DataMapper
        assert config.model_event_class is ModelEvent
        assert config.entities_provider_class is EntitiesProvider

    def test_frozen(self):
        config = RepositoryConfig()
        with pytest.raises(ValidationError):
            config.use_transactions = False

    def test_dotted_path_resolved(self):
        config = RepositoryConfig(
            default_finder_class="domain_repository.storage.sql.finder.Finder",
        )
        assert config.default_finder_class is Finder

    def test_unknown_finder_class_is_config_error(self):
        with pytest.raises(InvalidConfigError, match="Default finder class"):
            RepositoryConfig(default_finder_class="no.such.Finder")

    def test_unknown_query_class_is_config_error(self):
        with pytest.raises(InvalidConfigError, match="Default query class"):
            RepositoryConfig(default_query_class="no.such.Query")

    def test_non_class_is_config_error(self):
        with pytest.raises(InvalidConfigError, match="Default query class"):
            RepositoryConfig(default_query_class=42)

    def test_other_class_fields_checked(self):
        with pytest.raises(InvalidConfigError, match="Configured class"):
            RepositoryConfig(model_event_class="not.a.Class")

    def test_model_validate_path_is_config_error(self):
        with pytest.raises(InvalidConfigError):
            RepositoryConfig.model_validate({"default_finder_class": "no.such.Finder"})

    def test_bad_scalar_is_config_error(self):
        with pytest.raises(InvalidConfigError):
            RepositoryConfig(use_transactions="sometimes")


class TestSettings:
    def test_default_settings(self):
        settings = Settings()

        assert settings.database.url.startswith("sqlite")
        assert settings.database.expire_on_commit is False
        assert settings.observability.log_format == LogFormat.JSON

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "repo.toml"
        path.write_text(
            "[database]\n"
            'url = "sqlite+pysqlite:///app.db"\n'
            "echo = true\n"
            "\n"
            "[repository]\n"
            "use_transactions = false\n"
            "\n"
            "[observability]\n"
            'log_level = "DEBUG"\n'
            'log_format = "console"\n'
        )

        settings = load_settings(path)

        assert settings.database.url == "sqlite+pysqlite:///app.db"
        assert settings.database.echo is True
        assert settings.repository.use_transactions is False
        assert settings.observability.log_format == LogFormat.CONSOLE

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.repository.use_transactions is True

    def test_overrides_applied(self):
        settings = load_settings(overrides={"repository": {"suppress_save_errors": True}})
        assert settings.repository.suppress_save_errors is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DOMAIN_REPO_OBSERVABILITY__LOG_LEVEL", "WARNING")
        assert load_settings().observability.log_level == "WARNING"

    def test_invalid_settings_raise(self):
        with pytest.raises(InvalidConfigError):
            load_settings(overrides={"repository": {"default_finder_class": "x.Y"}})
