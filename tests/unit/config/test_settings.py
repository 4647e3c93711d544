"""Tests for settings loading and runtime query configuration."""

import pytest
from pydantic import ValidationError

from athena_express import QueryConfig
from athena_express.config import Settings, get_settings, load_yaml_config
from athena_express.retry import ConstantDelay, ExponentialDelay

YAML_CONFIG = """
aws:
  region: eu-west-1
athena:
  database: sales
  workgroup: analytics
  output_location: s3://results/athena
  encryption_option: SSE_KMS
  kms_key: arn:aws:kms:eu-west-1:123:key/abc
results:
  get_stats: true
  page_size: 50
retry:
  poll_interval_seconds: 0.5
  poll_backoff_factor: 1.5
  max_polls: 100
logging:
  level: DEBUG
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(YAML_CONFIG)
    return path


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings()
        assert settings.aws_region == "us-east-1"
        assert settings.athena_database == "default"
        assert settings.athena_workgroup == "primary"
        assert settings.format_json is True
        assert settings.ignore_empty is True
        assert settings.get_stats is False
        assert settings.page_size is None
        assert settings.poll_interval_seconds == 0.2
        assert settings.transient_retry_delay_seconds == 2.0
        assert settings.max_polls is None
        assert settings.encryption is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("ATHENA_DATABASE", "logs")
        monkeypatch.setenv("GET_STATS", "true")
        settings = Settings()
        assert settings.athena_database == "logs"
        assert settings.get_stats is True

    def test_output_location_gets_trailing_slash(self):
        assert Settings(athena_output_location="s3://b/prefix").athena_output_location == "s3://b/prefix/"

    def test_output_location_must_be_s3(self):
        with pytest.raises(ValidationError):
            Settings(athena_output_location="/tmp/results")

    @pytest.mark.parametrize("page_size", [0, 1000])
    def test_page_size_bounds(self, page_size):
        with pytest.raises(ValidationError):
            Settings(page_size=page_size)

    def test_load_yaml(self, config_file):
        values = load_yaml_config(config_file)
        assert values["aws_region"] == "eu-west-1"
        assert values["athena_database"] == "sales"
        assert values["page_size"] == 50
        assert values["log_level"] == "DEBUG"

    def test_missing_yaml(self, tmp_path):
        assert load_yaml_config(tmp_path / "missing.yaml") == {}

    def test_get_settings_from_yaml(self, config_file):
        settings = get_settings(config_path=config_file, reload=True)
        assert settings.athena_workgroup == "analytics"
        assert settings.athena_output_location == "s3://results/athena/"
        assert settings.encryption == {
            "EncryptionOption": "SSE_KMS",
            "KmsKey": "arn:aws:kms:eu-west-1:123:key/abc",
        }

    def test_environment_beats_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("ATHENA_DATABASE", "from_env")
        settings = get_settings(config_path=config_file, reload=True)
        assert settings.athena_database == "from_env"


class TestQueryConfigFromSettings:
    """Tests for QueryConfig.from_settings."""

    def test_constant_poll_interval(self):
        config = QueryConfig.from_settings(Settings())
        assert config.poll_policy.delay == ConstantDelay(0.2)
        assert config.poll_policy.max_attempts is None
        assert config.transient_policy.delay == ConstantDelay(2.0)
        assert config.transient_policy.max_attempts is None

    @pytest.mark.parametrize("retries,attempts", [(0, 1), (1, 2), (5, 6)])
    def test_transient_retries_exclude_first_call(self, retries, attempts):
        config = QueryConfig.from_settings(Settings(max_transient_retries=retries))
        assert config.transient_policy.max_attempts == attempts

    def test_exponential_poll_interval(self, config_file):
        config = QueryConfig.from_settings(get_settings(config_path=config_file, reload=True))
        assert config.poll_policy.delay == ExponentialDelay(0.5, factor=1.5)
        assert config.poll_policy.max_attempts == 100
        assert config.page_size == 50
        assert config.get_stats is True
