"""Payment records exchanged with the kiosk servers and the report system."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any


def _as_object(data: Any) -> Mapping[str, Any]:
    if isinstance(data, (str, bytes, bytearray)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError("se esperaba un objeto JSON")
    return data


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Value for ``key``, matching exactly first and then ignoring case."""
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if isinstance(name, str) and name.casefold() == folded:
            return value
    return None


def _string(data: Mapping[str, Any], key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"el campo {key!r} debe ser texto")
    return value


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = _lookup(data, key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"el campo {key!r} debe ser un entero")
    return value


def _json_field(key: str) -> Any:
    return field(default="", metadata={"json": key})


@dataclass
class KioscoPayment:
    """One sale as reported by a kiosk server."""

    merchant_id: str = _json_field("Merchantid")
    fecha_transaccion: str = _json_field("Fecha_Transaccion")
    hora_transaccion: str = _json_field("Hora_Transaccion")
    estado: str = _json_field("Estado")
    numero_lote: str = _json_field("Numero_Lote")
    face_value: str = _json_field("Face_Value")
    id_grupo_tarjeta: str = _json_field("Id_Grupo_Tarjeta")
    id_adquirente: str = _json_field("Id_Adquirente")
    numero_tarjeta_mask: str = _json_field("numero_tarjeta_mask")
    numero_autorizacion: str = _json_field("Numero_Autorizacion")
    numero_referencia: str = _json_field("Numero_Referencia")
    tipo_transaccion: str = _json_field("Tipo_Transaccion")
    resultado_externo: str = _json_field("Resultado_externo")
    tipo_switch: str = _json_field("Tipo_Switch")
    origen_transaccion: str = _json_field("Origen_Transaccion")

    @classmethod
    def from_json(cls, data: Any) -> KioscoPayment:
        """Build a payment from a decoded JSON object or JSON text."""
        obj = _as_object(data)
        return cls(**{f.name: _string(obj, f.metadata["json"]) for f in fields(cls)})

    def to_json(self) -> dict[str, str]:
        """The payment as a JSON object with the kiosk server's key names."""
        return {f.metadata["json"]: getattr(self, f.name) for f in fields(self)}


@dataclass
class ReportStore:
    id: int = 0
    name: str = ""

    @classmethod
    def _from_object(cls, data: Any) -> ReportStore:
        if data is None:
            return cls()
        obj = _as_object(data)
        return cls(id=_integer(obj, "id"), name=_string(obj, "name"))


@dataclass
class ReportPayment:
    reference_id: str = ""
    amount: str = ""
    created_at: str = ""
    transaction_hour: str = ""
    transfer_number: str = ""
    store: ReportStore = field(default_factory=ReportStore)

    @classmethod
    def _from_object(cls, data: Any) -> ReportPayment:
        obj = _as_object(data)
        return cls(
            reference_id=_string(obj, "referenceId"),
            amount=_string(obj, "amount"),
            created_at=_string(obj, "createdAt"),
            transaction_hour=_string(obj, "transactionHour"),
            transfer_number=_string(obj, "transferNumber"),
            store=ReportStore._from_object(_lookup(obj, "store")),
        )


@dataclass
class ReportPaymentResponse:
    """A page of payments; ``data`` is None when the response carries none."""

    total_data: int = 0
    pages: int = 0
    current_page: int = 0
    data: list[ReportPayment] | None = None

    @classmethod
    def from_json(cls, data: Any) -> ReportPaymentResponse:
        """Build a response from a decoded JSON object or JSON text."""
        obj = _as_object(data)
        raw = _lookup(obj, "data")
        if raw is None:
            payments = None
        elif isinstance(raw, list):
            payments = [ReportPayment._from_object(item) for item in raw]
        else:
            raise ValueError("el campo 'data' debe ser una lista")
        return cls(
            total_data=_integer(obj, "totalData"),
            pages=_integer(obj, "pages"),
            current_page=_integer(obj, "currentPage"),
            data=payments,
        )