"""Integration tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from newsdesk.models.config import FeedsConfig, PipelineConfig
from newsdesk.utils.config_loader import load_feeds_config, load_pipeline_config, load_yaml_config

pytestmark = pytest.mark.integration

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"


class TestShippedConfiguration:
    """The YAML files in config/ must always validate."""

    def test_pipeline_yaml(self) -> None:
        config = load_pipeline_config(REPO_CONFIG / "pipeline.yaml", env={})

        assert isinstance(config, PipelineConfig)
        assert [s.name for s in config.fetch.strategies] == ["direct", "corsproxy", "allorigins", "rss2json"]
        assert config.ingestion.run_timeout_seconds == 240
        assert config.trending.target_count == 7

    def test_feeds_yaml(self) -> None:
        config = load_feeds_config(REPO_CONFIG / "feeds.yaml")

        assert isinstance(config, FeedsConfig)
        assert len(config.feeds) == 11
        assert len([f for f in config.feeds if not f.enabled]) == 1
        assert {f.category for f in config.feeds} >= {"belgaum", "technology", "sports"}


class TestPipelineLoading:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_pipeline_config(tmp_path / "absent.yaml", env={})
        assert config == PipelineConfig()

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("")
        assert load_pipeline_config(path, env={}) == PipelineConfig()

    def test_env_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text(yaml.safe_dump({"store": {"database_url": "sqlite:///from-yaml.db"}}))

        config = load_pipeline_config(
            path,
            env={"NEWSDESK_DATABASE_URL": "sqlite:///from-env.db", "NEWSDESK_LLM_PROVIDER": "openai"},
        )

        assert config.store.database_url == "sqlite:///from-env.db"
        assert config.trending.provider == "openai"

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text(yaml.safe_dump({"trending": {"target_count": 0}}))
        with pytest.raises(ValidationError):
            load_pipeline_config(path, env={})

    def test_invalid_override_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            load_pipeline_config(tmp_path / "absent.yaml", env={"NEWSDESK_LOG_LEVEL": "LOUD"})


class TestYamlLoading:
    def test_missing_feeds_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_feeds_config(tmp_path / "feeds.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "feeds.yaml"
        path.write_text("feeds: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_yaml_config(path, FeedsConfig)

    def test_feed_without_category(self, tmp_path: Path) -> None:
        path = tmp_path / "feeds.yaml"
        path.write_text(yaml.safe_dump({"feeds": [{"name": "x", "url": "https://example.com/x.xml"}]}))
        with pytest.raises(ValidationError):
            load_feeds_config(path)
