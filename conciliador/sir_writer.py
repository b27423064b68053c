"""Writer of conciliated card transactions into the SIR ``ST_Transaccional`` table."""

from __future__ import annotations

import queue
import re
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .kiosco import batch_items
from .sql import SQLServerConnection, open_connection
from .utils import log

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")

BATCH_SIZE = 25
WORKERS = 10

RESTAURANT_QUERY = """SELECT 
				r.Cod_Tienda, 
				r.SwitchT, 
				mids.MID, 
				ts.Id_tipo_switch AS tipo_switch, 
				ot.id_origen AS origen, 
				'DATBALANCE' AS sistema, 
				r.Cod_Cadena
			FROM dbo.MIDs_Restaurante AS mids WITH(NOLOCK)
			INNER JOIN dbo.Restaurante AS r WITH(NOLOCK) 
				ON r.Cod_Restaurante = mids.Cod_Restaurante 
			INNER JOIN dbo.Red_Pagos AS medio WITH(NOLOCK) 
				ON medio.Cod_Red_Pagos = mids.Cod_Red_Pagos 
			CROSS JOIN (SELECT Id_tipo_switch FROM ST_Tipo_Switch WITH(NOLOCK) WHERE Descripcion = 'Alignet/Externo') ts
			CROSS JOIN (SELECT id_origen FROM ST_Origen_Transaccion WITH(NOLOCK) WHERE Descripcion = 'DataFast') ot
			WHERE medio.Descripcion = 'DATAFAST' 
			AND mids.Estado = 1;"""

GRUPO_TARJETA_QUERY = """SELECT 
				id_grupo_tarjeta, 
				FPN.Cod_Cadena, 
				FPN.Minimo, 
				FPN.Maximo 
			FROM ST_Grupo_Tarjeta WITH(NOLOCK) 
			INNER JOIN (
				SELECT DISTINCT 
					RTRIM(LTRIM(fp.Nombre)) AS Nombre, 
					fpb.Cod_Cadena, 
					fpb.Minimo, 
					fpb.Maximo 
				FROM FormadePago_Bines AS fpb WITH(NOLOCK) 
				INNER JOIN FormasPago AS fp WITH(NOLOCK) 
					ON fp.Cod_FormaPago = fpb.Cod_FormaPago
			) AS FPN 
			ON LTRIM(RTRIM(Descripcion)) LIKE '%' + 
				(CASE 
					WHEN Nombre = 'ALIA' THEN 'COUTA FACIL' 
					ELSE Nombre 
				END) + '%';"""

# Table column and the key under which the transaction data carries its value.
_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Merchantid", "merchantId"),
    ("Fecha_Transaccion", "fechaTransaccion"),
    ("Hora_Transaccion", "horaTransaccion"),
    ("Estado", "estado"),
    ("Numero_Lote", "numeroLote"),
    ("Face_Value", "faceValue"),
    ("Id_Grupo_Tarjeta", "idGrupoTarjeta"),
    ("Id_Adquirente", "idAdquirente"),
    ("numero_tarjeta_mask", "numeroTarjetaMask"),
    ("Numero_Autorizacion", "numeroAutorizacion"),
    ("Numero_Referencia", "numeroReferencia"),
    ("Tipo_Transaccion", "tipoTransaccion"),
    ("Resultado_Externo", "resultadoExterno"),
    ("Tipo_Switch", "tipoSwitch"),
    ("origen_Transaccion", "origenTransaccion"),
    ("Sistema", "sistema"),
    ("Voucher", "voucher"),
    ("CuentaNombre", "cuentaNombre"),
    ("Subtotal", "subtotal"),
    ("Descuento", "descuento"),
    ("Iva", "iva"),
    ("IvaAplicado", "ivaAplicado"),
    ("FidelizacionOpera", "fidelizacionOpera"),
    ("FidelizacionMerca", "fidelizacionMerca"),
    ("FidelizacionTotal", "fidelizacionTotal"),
    ("FidelizacionValor", "fidelizacionValor"),
)
_KEY_COLUMNS = ("Merchantid", "Fecha_Transaccion")

INSERT_SQL = (
    "INSERT INTO ST_Transaccional ("
    + ", ".join(column for column, _ in _COLUMNS)
    + ") VALUES ("
    + ", ".join(f"%({name})s" for _, name in _COLUMNS)
    + ")"
)
UPDATE_SQL = (
    "UPDATE ST_Transaccional SET "
    + ", ".join(f"{column} = %({name})s" for column, name in _COLUMNS if column not in _KEY_COLUMNS)
    + " WHERE Merchantid = %(merchantId)s AND Fecha_Transaccion = %(fechaTransaccion)s"
)
DELETE_SQL = (
    "DELETE FROM ST_Transaccional WHERE "
    "Merchantid = %(merchantId)s AND Fecha_Transaccion = %(fechaTransaccion)s"
)


def _parse_int(text: str) -> int | None:
    if not _DECIMAL.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _scan_str(value: Any) -> str:
    if value is None:
        raise ValueError("valor nulo en la columna")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    return str(value)


def _scan_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = _parse_int(_scan_str(value).strip())
    if parsed is None:
        raise ValueError(f"valor no entero en la columna: {value!r}")
    return parsed


@dataclass(frozen=True)
class SirRestaurant:
    cod_tienda: str
    switch_t: str
    mid: str
    tipo_switch: str
    origen: str
    sistema: str
    cod_cadena: str


@dataclass(frozen=True)
class GrupoTarjeta:
    id_grupo_tarjeta: str
    cod_cadena: int
    minimo: int
    maximo: int


@dataclass
class SirDataCache:
    """Restaurants keyed by store code and card groups keyed by their id."""

    restaurants: dict[str, SirRestaurant] = field(default_factory=dict)
    grupos: dict[str, GrupoTarjeta] = field(default_factory=dict)

    def load(self, connection: SQLServerConnection) -> None:
        """Fill the cache from SIR; a row that cannot be read raises ValueError."""
        for row in connection.query(RESTAURANT_QUERY):
            if len(row) != 7:
                raise ValueError("[cache-restaurant-datafast] error al retornar los datos (Scan)")
            try:
                values = [_scan_str(value) for value in row]
            except ValueError as exc:
                raise ValueError(
                    f"[cache-restaurant-datafast] error al retornar los datos (Scan): {exc}"
                ) from exc
            restaurant = SirRestaurant(*values)
            self.restaurants[restaurant.cod_tienda] = restaurant

        for row in connection.query(GRUPO_TARJETA_QUERY):
            if len(row) != 4:
                raise ValueError("[cache-restaurant-datafast] error al retornar los datos (Scan)")
            try:
                grupo = GrupoTarjeta(
                    id_grupo_tarjeta=_scan_str(row[0]),
                    cod_cadena=_scan_int(row[1]),
                    minimo=_scan_int(row[2]),
                    maximo=_scan_int(row[3]),
                )
            except ValueError as exc:
                raise ValueError(
                    f"[cache-restaurant-datafast] error al retornar los datos (Scan): {exc}"
                ) from exc
            self.grupos[grupo.id_grupo_tarjeta] = grupo

    def _by_mid(self, mid: str) -> SirRestaurant | None:
        return next((r for r in self.restaurants.values() if r.mid == mid), None)

    def get_merchant_id(self, mid: str) -> str:
        """Merchant id of the restaurant with this MID, or an empty string."""
        restaurant = self._by_mid(mid)
        return restaurant.switch_t if restaurant else ""

    def get_tipo_switch(self, mid: str) -> int:
        """Switch type of the restaurant with this MID, or -1."""
        restaurant = self._by_mid(mid)
        if restaurant is None:
            return -1
        value = _parse_int(restaurant.tipo_switch)
        return -1 if value is None else value

    def get_origen(self, mid: str) -> int:
        """Transaction origin of the restaurant with this MID, or -1."""
        restaurant = self._by_mid(mid)
        if restaurant is None:
            return -1
        value = _parse_int(restaurant.origen)
        return -1 if value is None else value

    def get_sistema(self, mid: str) -> str:
        """System name of the restaurant with this MID, or an empty string."""
        restaurant = self._by_mid(mid)
        return restaurant.sistema if restaurant else ""

    def get_cod_cadena(self, mid: str) -> int:
        """Chain code of the restaurant with this MID, or 0."""
        restaurant = self._by_mid(mid)
        if restaurant is None:
            return 0
        value = _parse_int(restaurant.cod_cadena)
        if value is None:
            log.error(
                "[getCodCadenaFromCache] Error al convertir CodCadena: %r", restaurant.cod_cadena
            )
            return 0
        return value

    def get_id_grupo_tarjeta(self, cod_cadena: int, bin_number: str) -> str:
        """Card group of a chain whose BIN range holds ``bin_number``, or an empty string."""
        bin_value = _parse_int(bin_number)
        if bin_value is None:
            log.error("[getIdGrupoTarjeta] Error al convertir Bin a entero: %r", bin_number)
            return ""
        for grupo in self.grupos.values():
            if grupo.cod_cadena == cod_cadena and grupo.minimo <= bin_value <= grupo.maximo:
                return grupo.id_grupo_tarjeta
        return ""


@dataclass(frozen=True)
class Transaction:
    """One SIR operation: ``INSERT``, ``UPDATE`` or ``DELETE`` of a transaction."""

    operation_type: str
    data: Mapping[str, Any]


@dataclass(frozen=True)
class BatchCounts:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0

    def __add__(self, other: BatchCounts) -> BatchCounts:
        return BatchCounts(
            self.inserted + other.inserted,
            self.updated + other.updated,
            self.deleted + other.deleted,
        )


def _all_params(data: Mapping[str, Any]) -> dict[str, Any]:
    return {name: data.get(name) for _, name in _COLUMNS}


def insert_transaction(connection: SQLServerConnection, data: Mapping[str, Any]) -> int:
    """Insert a transaction; failures are logged and give 0 affected rows."""
    try:
        return connection.execute(INSERT_SQL, _all_params(data))
    except Exception as exc:  # noqa: BLE001
        log.error("Error al insertar: %s", exc)
        return 0


def update_transaction(connection: SQLServerConnection, data: Mapping[str, Any]) -> int:
    """Update the transaction of a merchant and date; failures are logged."""
    try:
        return connection.execute(UPDATE_SQL, _all_params(data))
    except Exception as exc:  # noqa: BLE001
        log.error("Error al actualizar: %s", exc)
        return 0


def delete_transaction(connection: SQLServerConnection, data: Mapping[str, Any]) -> int:
    """Delete the transaction of a merchant and date; failures are logged."""
    params = {"merchantId": data.get("merchantId"), "fechaTransaccion": data.get("fechaTransaccion")}
    try:
        return connection.execute(DELETE_SQL, params)
    except Exception as exc:  # noqa: BLE001
        log.error("Error al eliminar: %s", exc)
        return 0


_OPERATIONS: dict[str, Callable[[SQLServerConnection, Mapping[str, Any]], int]] = {
    "INSERT": insert_transaction,
    "UPDATE": update_transaction,
    "DELETE": delete_transaction,
}


class SirWriter:
    """Applies batches of transaction operations to SIR."""

    def __init__(self, conn_string: str, connector: Callable[[str], Any]) -> None:
        self.conn_string = conn_string
        self.connector = connector

    def process_batch(self, batch: Sequence[Transaction]) -> BatchCounts:
        """Apply a batch over one connection and count the operations by kind."""
        try:
            connection = open_connection(self.conn_string, self.connector)
        except Exception as exc:  # noqa: BLE001
            log.error("Error conectando a la base de datos: %s", exc)
            return BatchCounts()
        counts = {"INSERT": 0, "UPDATE": 0, "DELETE": 0}
        with connection:
            for transaction in batch:
                operation = _OPERATIONS.get(transaction.operation_type)
                if operation is None:
                    log.error("Operación desconocida: %s", transaction.operation_type)
                    continue
                operation(connection, transaction.data)
                counts[transaction.operation_type] += 1
        return BatchCounts(counts["INSERT"], counts["UPDATE"], counts["DELETE"])

    def save_transactions(
        self,
        transactions: Sequence[Transaction],
        on_progress: Callable[[], None] | None = None,
    ) -> BatchCounts:
        """Apply all transactions in batches of 25 across 10 workers.

        ``on_progress`` is called after every batch and when each worker ends.
        """
        log.info("[sql-sir][StTransactions] starting batch with payments %d", len(transactions))
        work: queue.Queue[list[Transaction] | None] = queue.Queue()
        results: list[BatchCounts] = []
        lock = threading.Lock()

        def notify() -> None:
            if on_progress is not None:
                on_progress()

        def worker() -> None:
            try:
                while (batch := work.get()) is not None:
                    counts = self.process_batch(batch)
                    with lock:
                        results.append(counts)
                    notify()
                    log.info(
                        "[sql-sir][StTransactions] end batch insert:%d, updated:%d, deleted:%d",
                        counts.inserted,
                        counts.updated,
                        counts.deleted,
                    )
            finally:
                notify()

        threads = [threading.Thread(target=worker, daemon=True) for _ in range(WORKERS)]
        for thread in threads:
            thread.start()
        for batch in batch_items(list(transactions), BATCH_SIZE):
            work.put(batch)
        for _ in threads:
            work.put(None)
        for thread in threads:
            thread.join()

        total = sum(results, BatchCounts())
        log.info(
            "[sql-sir][StTransactions] all batched finished inserted %d, updated %d, deleted %d",
            total.inserted,
            total.updated,
            total.deleted,
        )
        return total