import os

import pytest

from conciliador.config import (
    NOT_CONFIGURED,
    InvokerConfig,
    MongoConfig,
    NatsConfig,
    SqlServerSir,
    get_env,
    load_dotenv_file,
    load_invoker_config,
    load_kiosco_config,
    load_report_config,
    load_sir_writer_config,
)

KEYS = [
    "MONGO_URI",
    "MONGO_DATABASE",
    "NATS_URI",
    "SIR_DATABASE",
    "TIMEZONE",
    "TIME_OFFSET",
    "CONCILIADOR_API",
    "CONCILIADOR_PUSH_SERVICE",
    "HTTP_SERVER",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in KEYS:
        monkeypatch.delenv(key, raising=False)
    return tmp_path


def test_get_env_default_when_missing(clean_env):
    assert get_env("MONGO_URI", "fallback") == "fallback"


def test_get_env_empty_value_counts_as_set(clean_env, monkeypatch):
    monkeypatch.setenv("MONGO_URI", "")
    assert get_env("MONGO_URI", "fallback") == ""


def test_load_dotenv_file_missing_returns_false(clean_env):
    assert load_dotenv_file() is False


def test_load_dotenv_file_reads_values(clean_env, monkeypatch):
    monkeypatch.setenv("NATS_URI", "x")
    monkeypatch.delenv("NATS_URI")
    (clean_env / ".env").write_text("NATS_URI=nats://localhost:4222\n")
    assert load_dotenv_file() is True
    assert os.environ["NATS_URI"] == "nats://localhost:4222"


def test_load_dotenv_file_keeps_existing(clean_env, monkeypatch):
    monkeypatch.setenv("TIMEZONE", "America/Guayaquil")
    (clean_env / ".env").write_text("TIMEZONE=UTC\n")
    assert load_dotenv_file() is True
    assert os.environ["TIMEZONE"] == "America/Guayaquil"


def test_invoker_defaults(clean_env):
    cfg = load_invoker_config()
    assert cfg == InvokerConfig(
        mongo=MongoConfig(NOT_CONFIGURED, NOT_CONFIGURED),
        nats=NatsConfig(NOT_CONFIGURED),
        time_zone=NOT_CONFIGURED,
        time_offset="0d",
        api_central_conciliador=NOT_CONFIGURED,
        conciliador_service_push=NOT_CONFIGURED,
    )
    assert NOT_CONFIGURED == "no_configurado"


def test_invoker_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("MONGO_DATABASE", "conciliador")
    monkeypatch.setenv("TIME_OFFSET", "-1d")
    monkeypatch.setenv("CONCILIADOR_API", "http://localhost/api")
    monkeypatch.setenv("CONCILIADOR_PUSH_SERVICE", "DATAFAST")
    cfg = load_invoker_config()
    assert cfg.mongo == MongoConfig("mongodb://localhost:27017", "conciliador")
    assert cfg.time_offset == "-1d"
    assert cfg.api_central_conciliador == "http://localhost/api"
    assert cfg.conciliador_service_push == "DATAFAST"


def test_kiosco_reads_sir_database(clean_env, monkeypatch):
    monkeypatch.setenv("SIR_DATABASE", "sqlserver://localhost")
    monkeypatch.setenv("TIMEZONE", "America/Guayaquil")
    cfg = load_kiosco_config()
    assert cfg.sql_server_sir == SqlServerSir("sqlserver://localhost")
    assert cfg.time_zone == "America/Guayaquil"
    assert cfg.nats == NatsConfig(NOT_CONFIGURED)


def test_report_default_http_server(clean_env):
    cfg = load_report_config()
    assert cfg.http_server == ":8080"
    assert cfg.mongo.database == NOT_CONFIGURED


def test_report_http_server_from_env(clean_env, monkeypatch):
    monkeypatch.setenv("HTTP_SERVER", "0.0.0.0:9000")
    assert load_report_config().http_server == "0.0.0.0:9000"


def test_sir_writer_defaults(clean_env):
    cfg = load_sir_writer_config()
    assert cfg.sql_server_sir.jdbc == NOT_CONFIGURED
    assert cfg.time_zone == NOT_CONFIGURED


def test_sir_writer_uses_dotenv(clean_env, monkeypatch):
    monkeypatch.setenv("MONGO_DATABASE", "x")
    monkeypatch.delenv("MONGO_DATABASE")
    (clean_env / ".env").write_text("MONGO_DATABASE=pagos\n")
    assert load_sir_writer_config().mongo.database == "pagos"


def test_config_is_immutable(clean_env):
    cfg = load_kiosco_config()
    with pytest.raises(AttributeError):
        cfg.time_zone = "UTC"
    assert cfg.time_zone == NOT_CONFIGURED