import threading

import pytest

from conciliador.sir_writer import (
    BatchCounts,
    GrupoTarjeta,
    SirDataCache,
    SirRestaurant,
    SirWriter,
    Transaction,
    delete_transaction,
    insert_transaction,
    update_transaction,
)
from conciliador.sql import SQLServerConnection


class FakeCursor:
    def __init__(self, db):
        self.db = db
        self.rowcount = -1
        self._rows = []

    def execute(self, sql, params=None):
        with self.db.lock:
            self.db.statements.append((sql, params))
        if self.db.fail_on and self.db.fail_on in sql:
            raise RuntimeError("boom")
        self._rows = self.db.rows_for(sql)
        self.rowcount = 1

    def fetchall(self):
        return list(self._rows)

    def fetchone(self):
        return self._rows[0] if self._rows else None


class FakeDB:
    def __init__(self, results=None, fail_on=None):
        self.results = results or {}
        self.fail_on = fail_on
        self.statements = []
        self.commits = []
        self.closed = []
        self.lock = threading.Lock()

    def rows_for(self, sql):
        for marker, rows in self.results.items():
            if marker in sql:
                return rows
        return []

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits.append(True)

    def rollback(self):
        pass

    def close(self):
        self.closed.append(True)


def _loaded_cache():
    db = FakeDB(
        {
            "MIDs_Restaurante": [
                ("T1", "SW1", "MID1", "3", "7", "DATBALANCE", "10"),
                ("T2", "SW2", "MID2", "x", "y", "DATBALANCE", "z"),
            ],
            "ST_Grupo_Tarjeta": [("VISA", 10, 400000, 499999), ("MAST", 10, 510000, 559999)],
        }
    )
    cache = SirDataCache()
    cache.load(SQLServerConnection(db))
    return cache


def _data(merchant):
    return {"merchantId": merchant, "fechaTransaccion": "20240101", "estado": "A"}


def test_load_fills_both_caches():
    cache = _loaded_cache()
    assert cache.restaurants["T1"] == SirRestaurant("T1", "SW1", "MID1", "3", "7", "DATBALANCE", "10")
    assert cache.grupos["VISA"] == GrupoTarjeta("VISA", 10, 400000, 499999)
    assert set(cache.restaurants) == {"T1", "T2"}


def test_getters_by_mid():
    cache = _loaded_cache()
    assert cache.get_merchant_id("MID1") == "SW1"
    assert cache.get_sistema("MID1") == "DATBALANCE"
    assert cache.get_tipo_switch("MID1") == 3
    assert cache.get_origen("MID1") == 7
    assert cache.get_cod_cadena("MID1") == 10


def test_getters_for_unknown_or_invalid_values():
    cache = _loaded_cache()
    assert cache.get_merchant_id("NOPE") == ""
    assert cache.get_sistema("NOPE") == ""
    assert cache.get_tipo_switch("NOPE") == -1
    assert cache.get_origen("NOPE") == -1
    assert cache.get_cod_cadena("NOPE") == 0
    assert cache.get_tipo_switch("MID2") == -1
    assert cache.get_origen("MID2") == -1
    assert cache.get_cod_cadena("MID2") == 0


def test_id_grupo_tarjeta_ranges():
    cache = _loaded_cache()
    assert cache.get_id_grupo_tarjeta(10, "450000") == "VISA"
    assert cache.get_id_grupo_tarjeta(10, "400000") == "VISA"
    assert cache.get_id_grupo_tarjeta(10, "559999") == "MAST"
    assert cache.get_id_grupo_tarjeta(11, "450000") == ""
    assert cache.get_id_grupo_tarjeta(10, "600000") == ""
    assert cache.get_id_grupo_tarjeta(10, "abc") == ""


def test_load_rejects_null_column():
    db = FakeDB({"MIDs_Restaurante": [("T1", None, "MID1", "3", "7", "DATBALANCE", "10")]})
    with pytest.raises(ValueError):
        SirDataCache().load(SQLServerConnection(db))


def test_insert_transaction_sends_all_parameters():
    db = FakeDB()
    affected = insert_transaction(SQLServerConnection(db), _data("SW1"))
    assert affected == 1
    sql, params = db.statements[-1]
    assert "INSERT INTO ST_Transaccional" in sql
    assert params["merchantId"] == "SW1"
    assert params["estado"] == "A"
    assert len(params) == 26
    assert db.commits


def test_update_and_delete_transaction():
    db = FakeDB()
    conn = SQLServerConnection(db)
    update_transaction(conn, _data("SW1"))
    delete_transaction(conn, _data("SW1"))
    update_sql, update_params = db.statements[0]
    delete_sql, delete_params = db.statements[1]
    assert update_sql.startswith("UPDATE ST_Transaccional SET")
    assert "WHERE Merchantid = %(merchantId)s" in update_sql
    assert update_params["fechaTransaccion"] == "20240101"
    assert delete_sql.startswith("DELETE FROM ST_Transaccional")
    assert delete_params == {"merchantId": "SW1", "fechaTransaccion": "20240101"}


def test_insert_failure_is_logged_not_raised():
    db = FakeDB(fail_on="INSERT INTO")
    assert insert_transaction(SQLServerConnection(db), _data("SW1")) == 0


def test_process_batch_counts_operations():
    db = FakeDB()
    writer = SirWriter("conn", lambda _: db)
    batch = [
        Transaction("INSERT", _data("A")),
        Transaction("INSERT", _data("B")),
        Transaction("UPDATE", _data("C")),
        Transaction("DELETE", _data("D")),
        Transaction("BOGUS", _data("E")),
    ]
    counts = writer.process_batch(batch)
    assert counts == BatchCounts(inserted=2, updated=1, deleted=1)
    assert db.closed


def test_process_batch_counts_even_when_statement_fails():
    db = FakeDB(fail_on="INSERT INTO")
    writer = SirWriter("conn", lambda _: db)
    counts = writer.process_batch([Transaction("INSERT", _data("A"))])
    assert counts.inserted == 1


def test_process_batch_connection_failure_gives_zero():
    def connector(_):
        raise ConnectionError("unreachable")

    writer = SirWriter("conn", connector)
    assert writer.process_batch([Transaction("INSERT", _data("A"))]) == BatchCounts()


def test_save_transactions_totals_and_progress():
    db = FakeDB()
    writer = SirWriter("conn", lambda _: db)
    transactions = [Transaction("INSERT", _data(f"M{i}")) for i in range(40)]
    transactions += [Transaction("UPDATE", _data(f"U{i}")) for i in range(20)]
    calls = []
    total = writer.save_transactions(transactions, lambda: calls.append(1))
    assert total == BatchCounts(inserted=40, updated=20, deleted=0)
    inserted_merchants = {p["merchantId"] for s, p in db.statements if s.startswith("INSERT")}
    assert inserted_merchants == {f"M{i}" for i in range(40)}
    assert len(calls) >= 3


def test_save_transactions_empty():
    db = FakeDB()
    writer = SirWriter("conn", lambda _: db)
    assert writer.save_transactions([]) == BatchCounts()
    assert db.statements == []


def test_batch_counts_addition():
    assert BatchCounts(1, 2, 3) + BatchCounts(4, 5, 6) == BatchCounts(5, 7, 9)