import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from flyway_backend.core.config import load_settings

ENV_VARS = [
    "ENRICHMENT_WORKER_COMMAND",
    "ENRICHMENT_MAX_CONCURRENCY",
    "ENRICHMENT_MAX_RECORD_BYTES",
    "ENRICHMENT_KILL_TIMEOUT",
    "ENRICHMENT_HISTORY_LIMIT",
    "TRANSCRIPTS_PATH",
    "API_CORS_ORIGINS",
    "LOG_LEVEL",
    "HOST",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.worker_command == (sys.executable, "flyway.py")
    assert settings.max_concurrency == 4
    assert settings.max_record_bytes == 1024 * 1024
    assert settings.transcripts_path is None
    assert settings.cors_origins == ("http://localhost:3000", "http://127.0.0.1:3000")
    assert settings.port == 3001


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ENRICHMENT_WORKER_COMMAND", "python3 'workers/flight extract.py' --json")
    monkeypatch.setenv("ENRICHMENT_MAX_CONCURRENCY", "2")
    monkeypatch.setenv("ENRICHMENT_KILL_TIMEOUT", "0.5")
    monkeypatch.setenv("TRANSCRIPTS_PATH", str(tmp_path / "t.jsonl"))
    monkeypatch.setenv("API_CORS_ORIGINS", "https://a.example, ,https://b.example")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.worker_command == ("python3", "workers/flight extract.py", "--json")
    assert settings.max_concurrency == 2
    assert settings.kill_timeout == 0.5
    assert settings.transcripts_path == (tmp_path / "t.jsonl").resolve()
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name, value",
    [
        ("ENRICHMENT_MAX_CONCURRENCY", "0"),
        ("ENRICHMENT_MAX_CONCURRENCY", "many"),
        ("ENRICHMENT_KILL_TIMEOUT", "-1"),
    ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        load_settings()
