import os

import pytest

from calendar_sql.config import Settings

ENV_VARS = (
    "OPENAI_API_KEY", "OPENAI_MODEL", "AZURE_OPENAI_MODEL", "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_API_VERSION", "SQL_MAX_TOKENS", "SQL_TEMPERATURE",
    "SUMMARY_MAX_TOKENS", "SUMMARY_TEMPERATURE", "LLM_TIMEOUT", "READ_ONLY_SQL",
    "DEFAULT_STRATEGY",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    empty_env = tmp_path / ".env"
    empty_env.write_text("")
    return str(empty_env)


def test_defaults(clean_env):
    settings = Settings.from_env(clean_env)
    assert settings == Settings()
    assert not settings.use_azure
    assert settings.summary_temperature < settings.sql_temperature


def test_reads_environment(clean_env, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", " sk-test ")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    monkeypatch.setenv("SQL_MAX_TOKENS", "300")
    monkeypatch.setenv("SQL_TEMPERATURE", "0.9")
    monkeypatch.setenv("LLM_TIMEOUT", "5")
    monkeypatch.setenv("READ_ONLY_SQL", "yes")
    monkeypatch.setenv("DEFAULT_STRATEGY", "cross-domain")

    settings = Settings.from_env(clean_env)

    assert settings.openai_api_key == "sk-test"
    assert settings.model == "gpt-4o"
    assert settings.sql_max_tokens == 300
    assert settings.sql_temperature == 0.9
    assert settings.llm_timeout == 5.0
    assert settings.read_only is True
    assert settings.strategy == "cross-domain"


def test_azure_settings(clean_env, monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com/")
    monkeypatch.setenv("AZURE_OPENAI_MODEL", "my-deployment")

    settings = Settings.from_env(clean_env)

    assert settings.use_azure
    assert settings.azure_endpoint == "https://example.openai.azure.com"
    assert settings.model == "my-deployment"


def test_dotenv_file_is_loaded(clean_env, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("SUMMARY_MAX_TOKENS=42\n")

    try:
        assert Settings.from_env(str(env_file)).summary_max_tokens == 42
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("SUMMARY_MAX_TOKENS", None)


@pytest.mark.parametrize("name, value", [
    ("SQL_MAX_TOKENS", "lots"),
    ("SQL_TEMPERATURE", "warm"),
    ("LLM_TIMEOUT", "1s"),
])
def test_malformed_numbers_name_the_variable(clean_env, monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        Settings.from_env(clean_env)
