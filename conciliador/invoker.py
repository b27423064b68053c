"""Job that asks the central conciliation API to start a service for a date."""

from __future__ import annotations

import argparse
import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

import requests

from .config import InvokerConfig, load_invoker_config
from .mongo import new_mongo_client
from .repository import InvokerRepository
from .utils import log

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class RequestPayload:
    fecha: str
    service: str

    def to_json(self) -> dict[str, str]:
        return {"fecha": self.fecha, "service": self.service}


def parse_day_duration(text: str) -> timedelta:
    """Parse an offset such as ``-1d`` into a whole number of days."""
    text = text.strip()
    if not text.endswith("d"):
        raise ValueError("formato inválido, debe terminar en 'd'")
    value = text[:-1]
    if not _DECIMAL.fullmatch(value) or not _INT64_MIN <= int(value) <= _INT64_MAX:
        raise ValueError(f"valor de días inválido: {value!r}")
    return timedelta(hours=int(value) * 24)


def _location(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return timezone.utc
    if name == "Local":
        return datetime.now().astimezone().tzinfo
    return ZoneInfo(name)


def build_payload(cfg: InvokerConfig, now: datetime | None = None) -> RequestPayload:
    """Payload for the date ``now`` shifted by the configured day offset."""
    location = _location(cfg.time_zone)
    if now is None:
        current = datetime.now(location)
    elif now.tzinfo is None:
        current = now.replace(tzinfo=location)
    else:
        current = now.astimezone(location)
    duration = parse_day_duration(cfg.time_offset or "0d")
    shifted = (current.astimezone(timezone.utc) + duration).astimezone(location)
    return RequestPayload(fecha=shifted.strftime("%Y-%m-%d"), service=cfg.conciliador_service_push)


def _timestamp() -> str:
    return datetime.now().astimezone().isoformat()


def send_http_request(payload: RequestPayload, url: str) -> dict[str, Any] | None:
    """POST the payload and print a summary of the answer.

    Returns the printed summary, or None when the request or its answer failed.
    """
    try:
        response = requests.post(url, json=payload.to_json())
    except requests.RequestException as exc:
        print("Error en la petición HTTP:", exc)
        return None

    request_part = {"service": payload.service, "date": payload.fecha}
    if response.status_code == 200:
        result = {
            "_id": "",
            "createdAt": _timestamp(),
            "request": request_part,
            "response": {"status": response.status_code},
        }
        print("Respuesta OK:")
    else:
        try:
            minified = json.dumps(
                json.loads(response.content), separators=(",", ":"), ensure_ascii=False
            )
        except ValueError as exc:
            print("Error minificando JSON:", exc)
            return None
        result = {
            "createdAt": _timestamp(),
            "request": request_part,
            "response": {"status": response.status_code, "body": minified},
        }
        print("Respuesta Error:")
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return result


def run(cfg: InvokerConfig, now: datetime | None = None) -> dict[str, Any] | None:
    """Open storage, send the request for the configured date and close again."""
    repository = InvokerRepository(new_mongo_client(cfg.mongo.uri), cfg.mongo.database)
    try:
        _location(cfg.time_zone)
        try:
            parse_day_duration(cfg.time_offset or "0d")
        except ValueError as exc:
            print(f"Error en TIME_OFFSET: {exc}")
            return None
        payload = build_payload(cfg, now)
        return send_http_request(payload, cfg.api_central_conciliador)
    finally:
        repository.close()


def main(argv: list[str] | None = None) -> int:
    """Run the invoker job once with configuration from the environment."""
    argparse.ArgumentParser(description=__doc__).parse_args(argv)
    cfg = load_invoker_config()
    run(cfg)
    log.info("✅ Invoker Servicio inicializado")
    return 0