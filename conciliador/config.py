"""Environment driven configuration for each conciliation service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .utils import log

NOT_CONFIGURED = "no_configurado"


@dataclass(frozen=True)
class MongoConfig:
    uri: str
    database: str


@dataclass(frozen=True)
class NatsConfig:
    uri: str


@dataclass(frozen=True)
class SqlServerSir:
    jdbc: str


@dataclass(frozen=True)
class InvokerConfig:
    mongo: MongoConfig
    nats: NatsConfig
    time_zone: str
    time_offset: str
    api_central_conciliador: str
    conciliador_service_push: str


@dataclass(frozen=True)
class KioscoConfig:
    mongo: MongoConfig
    nats: NatsConfig
    sql_server_sir: SqlServerSir
    time_zone: str


@dataclass(frozen=True)
class ReportConfig:
    http_server: str
    mongo: MongoConfig
    nats: NatsConfig
    time_zone: str


@dataclass(frozen=True)
class SirWriterConfig:
    mongo: MongoConfig
    nats: NatsConfig
    sql_server_sir: SqlServerSir
    time_zone: str


def get_env(key: str, default: str) -> str:
    """Value of an environment variable, or the default when it is not set at all."""
    return os.environ.get(key, default)


def load_dotenv_file() -> bool:
    """Load ``.env`` from the working directory without overriding set variables."""
    path = Path(".env")
    if not path.is_file():
        log.info("No se pudo cargar el archivo .env, usando variables de entorno del sistema")
        return False
    load_dotenv(dotenv_path=path, override=False)
    return True


def _mongo() -> MongoConfig:
    return MongoConfig(
        uri=get_env("MONGO_URI", NOT_CONFIGURED),
        database=get_env("MONGO_DATABASE", NOT_CONFIGURED),
    )


def _nats() -> NatsConfig:
    return NatsConfig(uri=get_env("NATS_URI", NOT_CONFIGURED))


def _sql_server_sir() -> SqlServerSir:
    return SqlServerSir(jdbc=get_env("SIR_DATABASE", NOT_CONFIGURED))


def _begin() -> None:
    log.info("📌 Cargando configuración...")
    load_dotenv_file()


def _done() -> None:
    log.info("✅ Configuración cargada correctamente")


def load_invoker_config() -> InvokerConfig:
    """Configuration of the invoker job."""
    _begin()
    cfg = InvokerConfig(
        mongo=_mongo(),
        nats=_nats(),
        time_zone=get_env("TIMEZONE", NOT_CONFIGURED),
        time_offset=get_env("TIME_OFFSET", "0d"),
        api_central_conciliador=get_env("CONCILIADOR_API", NOT_CONFIGURED),
        conciliador_service_push=get_env("CONCILIADOR_PUSH_SERVICE", NOT_CONFIGURED),
    )
    _done()
    return cfg


def load_kiosco_config() -> KioscoConfig:
    """Configuration of the kiosk payments service."""
    _begin()
    cfg = KioscoConfig(
        mongo=_mongo(),
        nats=_nats(),
        sql_server_sir=_sql_server_sir(),
        time_zone=get_env("TIMEZONE", NOT_CONFIGURED),
    )
    _done()
    return cfg


def load_report_config() -> ReportConfig:
    """Configuration of the report service."""
    _begin()
    cfg = ReportConfig(
        http_server=get_env("HTTP_SERVER", ":8080"),
        mongo=_mongo(),
        nats=_nats(),
        time_zone=get_env("TIMEZONE", NOT_CONFIGURED),
    )
    _done()
    return cfg


def load_sir_writer_config() -> SirWriterConfig:
    """Configuration of the SIR writer service."""
    _begin()
    cfg = SirWriterConfig(
        mongo=_mongo(),
        nats=_nats(),
        sql_server_sir=_sql_server_sir(),
        time_zone=get_env("TIMEZONE", NOT_CONFIGURED),
    )
    _done()
    return cfg