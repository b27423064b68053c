"""Kiosk sales retrieval: restaurant lookup, kiosk API access and record helpers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date as _date
from enum import Enum
from typing import Any, TypeVar

import requests

from .models import KioscoPayment
from .repository import MerchantPaymentHash
from .sql import SQLServerConnection
from .utils import is_empty_string, log

T = TypeVar("T")

LOGIN_ROUTE = "/api/login"
SALES_ROUTE = "/api/reportes/ventas-switch?"
LOGIN_TIMEOUT = 60.0
SALES_TIMEOUT = 180.0

RESTAURANT_QUERY = (
    "SELECT SwitchT, Cod_Restaurante FROM Restaurante "
    "where SwitchT is not null and TRIM(SwitchT) <> ''"
)
KIOSK_QUERY = "select distinct(idLocal), direccion, puerto, email, clave from KioskoWs"

_CARD_GROUPS = {
    "DEBITO": "DEBI",
    "DINERS CLUB": "DINE",
    "MASTERCARD": "MAST",
    "DISCOVER": "DISC",
    "AMERICAN EXPRESS": "AMEX",
    "ALIA": "CUOT",
    "UNION PAY": "UPAY",
}

_ACCEPTED_STATUS = (200, 201)


class Operation(str, Enum):
    """What must be done in SIR with a fetched payment."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    IGNORE = "IGNORE"


class TokenError(Exception):
    """The kiosk server did not hand out an API token."""


@dataclass(frozen=True)
class Restaurante:
    id_local: str
    switch_t: str


@dataclass
class RestaurantCache:
    """Merchant identifiers of the restaurants, keyed by local id."""

    restaurants: dict[str, Restaurante] = field(default_factory=dict)

    def load(self, connection: SQLServerConnection) -> None:
        """Fill the cache with every restaurant that has a merchant id."""
        for switch_t, id_local in connection.query(RESTAURANT_QUERY):
            key = str(id_local)
            self.restaurants[key] = Restaurante(id_local=key, switch_t=str(switch_t))

    def get_merchant_id(self, id_local: str) -> str:
        """Merchant id of a restaurant, or an empty string when it is unknown."""
        for restaurante in self.restaurants.values():
            if restaurante.id_local == id_local:
                return restaurante.switch_t
        return ""


@dataclass(frozen=True)
class IpAddressRestaurant:
    direccion: str
    puerto: str
    email: str
    clave: str
    id_local: str


def create_http_address(direccion: str, puerto: str) -> str:
    """Base URL of a kiosk server; the port is left out when it is blank."""
    address = "http://" + direccion
    if not is_empty_string(puerto):
        address += ":" + puerto
    return address


def formatear_tipo_tarjeta(grupo: str) -> str:
    """Short card group code used by SIR; unknown groups come back upper-cased."""
    normalized = grupo.strip().upper()
    return _CARD_GROUPS.get(normalized, normalized)


def format_hora(hora: str) -> str:
    """Turn ``HH:MM:SS.fff`` into ``HHMMSS``; blank input gives an empty string."""
    if hora.strip() == "":
        print("Error: la hora está vacía")
        return ""
    return hora.split(".")[0].replace(":", "")


def batch_items(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive batches of at most ``size`` elements."""
    if size <= 0:
        raise ValueError("el tamaño del lote debe ser positivo")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


def generate_token_api(
    http_address: str, email: str, password: str, timeout: float = LOGIN_TIMEOUT
) -> str:
    """Log in to a kiosk server and return its API token.

    Raises :class:`TokenError` when the request fails or is refused.
    """
    headers = {
        "Content-Type": "application/json",
        "verify": "false",
        "Accept": "application/json",
    }
    try:
        response = requests.post(
            http_address + LOGIN_ROUTE,
            json={"email": email, "password": password},
            headers=headers,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TokenError(f"[kiosco] error conectando a la petición: {exc}") from exc

    if response.status_code not in _ACCEPTED_STATUS:
        raise TokenError(f"StatusCode: {response.status_code}, Body: {response.text}\n")

    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenError(f"[kiosco] error al parsear la respuesta JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise TokenError("[kiosco] error al parsear la respuesta JSON: se esperaba un objeto")

    if payload.get("estado") == "OK":
        data = payload.get("data") or {}
        token = data.get("api_token", "") if isinstance(data, dict) else ""
        return token or ""
    raise TokenError(f"error en la respuesta: {payload.get('msg') or ''}")


def fetch_sales(
    http_address: str, token: str, date: str | _date, timeout: float = SALES_TIMEOUT
) -> list[KioscoPayment]:
    """Sales of one day (``YYYYMMDD`` or a date) from a kiosk server.

    Raises ``requests.HTTPError`` when the server refuses the request and
    ``ValueError`` when its answer is not a list of payments.
    """
    day = date.strftime("%Y%m%d") if isinstance(date, _date) else date
    url = f"{http_address}{SALES_ROUTE}&fechainicio={day}&fechafin={day}"
    headers = {"Authorization": "Bearer " + token, "verify": "false"}
    log.info("[kiosco][client.Do][WAITING] solicitando datos a uri: %s", http_address)
    response = requests.get(url, headers=headers, timeout=timeout)
    if response.status_code not in _ACCEPTED_STATUS:
        raise requests.HTTPError(
            f"error al obtener transacciones en el server: {http_address} "
            f"StatusCode: {response.status_code}, Body: {response.text}",
            response=response,
        )
    payload: Any = response.json()
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("[kiosco][Unmarshal] se esperaba una lista de pagos")
    return [KioscoPayment.from_json(item) for item in payload]


def load_kiosk_addresses(connection: SQLServerConnection) -> list[IpAddressRestaurant]:
    """Every kiosk server with its credentials; incomplete rows are skipped."""
    addresses = []
    for row in connection.query(KIOSK_QUERY):
        if len(row) != 5 or any(value is None for value in row):
            log.error("error scaning data la consulta: %r", row)
            continue
        id_local, direccion, puerto, email, clave = (str(value) for value in row)
        addresses.append(
            IpAddressRestaurant(
                direccion=direccion,
                puerto=puerto,
                email=email,
                clave=clave,
                id_local=id_local,
            )
        )
    return addresses


def classify_operation(
    unique_id: str, hash_value: str, existing: Iterable[MerchantPaymentHash]
) -> Operation:
    """Decide whether a payment is new, changed or already stored unchanged."""
    for stored in existing:
        if unique_id.casefold() == stored.unique_id.casefold():
            if hash_value.casefold() == stored.hash.casefold():
                return Operation.IGNORE
            return Operation.UPDATE
    return Operation.INSERT