import json

import pytest

from autodocs.config import AutoDocsConfig, ConfigurationError, VersioningConfig, to_snake_case


class TestValidation:
    @pytest.mark.parametrize("title, version", [("", "1.0"), ("   ", "1.0"), ("API", ""), ("API", "  ")])
    def test_blank_required_fields(self, title, version):
        with pytest.raises(ConfigurationError):
            AutoDocsConfig(title=title, version=version)

    def test_error_message_names_field(self):
        with pytest.raises(ConfigurationError, match='"title" is required'):
            AutoDocsConfig(version="1.0")

    def test_defaults(self):
        config = AutoDocsConfig(title="API", version="1.0")
        assert config.source_path == "src"
        assert config.docs_path == "/docs"
        assert config.spec_path == "/docs-json"
        assert config.scan_on_start
        assert not config.watch_mode
        assert config.include_security
        assert not config.versioning.enabled
        assert config.versioning.prefix == "/api"
        assert config.security_scheme_name == "bearerAuth"

    def test_bad_versioning_strategy(self):
        with pytest.raises(ConfigurationError):
            VersioningConfig(strategy="header")


class TestFromDict:
    def test_camel_case_keys(self):
        config = AutoDocsConfig.from_dict({
            "title": "Shop API",
            "version": 2,
            "globalPrefix": "/api",
            "includeSecurity": False,
            "categoryMapping": {"Admin Auth": "Auth"},
            "versioning": {"enabled": True, "prefix": "/svc", "fallback": "/svc/legacy"},
            "somethingElse": 1,
        })
        assert config.version == "2"
        assert config.global_prefix == "/api"
        assert config.include_security is False
        assert config.category_mapping == {"Admin Auth": "Auth"}
        assert config.versioning.enabled
        assert config.versioning.fallback == "/svc/legacy"

    def test_round_trip(self):
        config = AutoDocsConfig(title="API", version="1.0", exclude=["**/*.spec.ts"])
        assert AutoDocsConfig.from_dict(config.to_dict()).to_dict() == config.to_dict()

    def test_snake_case(self):
        assert to_snake_case("globalPrefix") == "global_prefix"
        assert to_snake_case("scan_on_start") == "scan_on_start"


class TestFromFile:
    def test_yaml(self, tmp_path):
        path = tmp_path / "autodocs.yaml"
        path.write_text("title: Shop API\nversion: '1.2'\nwatchMode: true\nexclude:\n  - '**/tests/**'\n")
        config = AutoDocsConfig.from_file(str(path))
        assert config.title == "Shop API"
        assert config.version == "1.2"
        assert config.watch_mode
        assert config.exclude == ["**/tests/**"]

    def test_json_with_overrides(self, tmp_path):
        path = tmp_path / "autodocs.json"
        path.write_text(json.dumps({"title": "Shop API", "version": "1.0"}))
        config = AutoDocsConfig.from_file(str(path), title="Override", version=None)
        assert config.title == "Override"
        assert config.version == "1.0"

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "autodocs.toml"
        path.write_text("title = 'x'")
        with pytest.raises(ConfigurationError):
            AutoDocsConfig.from_file(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "autodocs.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            AutoDocsConfig.from_file(str(path))


class TestFromEnv:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("AUTODOCS_TITLE", "Env API")
        monkeypatch.setenv("AUTODOCS_VERSION", "3.0")
        monkeypatch.setenv("AUTODOCS_VERSIONING", "true")
        monkeypatch.setenv("AUTODOCS_EXCLUDE", "**/*.spec.py, migrations/*")
        config = AutoDocsConfig.from_env()
        assert config.title == "Env API"
        assert config.versioning.enabled
        assert config.exclude == ["**/*.spec.py", "migrations/*"]

    def test_missing_title(self, monkeypatch):
        monkeypatch.delenv("AUTODOCS_TITLE", raising=False)
        monkeypatch.setenv("AUTODOCS_VERSION", "1.0")
        with pytest.raises(ConfigurationError):
            AutoDocsConfig.from_env()

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("AUTODOCS_TITLE", "Env API")
        monkeypatch.setenv("AUTODOCS_VERSION", "1.0")
        assert AutoDocsConfig.from_env(title="CLI API").title == "CLI API"
