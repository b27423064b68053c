"""Thin wrapper over a DB-API connection to the SIR SQL Server database."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .utils import log

Params = Mapping[str, Any] | Sequence[Any] | None


class SQLServerConnection:
    """A database connection that may hold an explicit transaction.

    Outside a transaction every statement run through :meth:`execute` is
    committed at once; inside one, nothing is committed until :meth:`commit`.
    """

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._in_transaction = False

    @property
    def in_transaction(self) -> bool:
        """True while an explicit transaction is open."""
        return self._in_transaction

    def begin(self) -> None:
        """Start an explicit transaction."""
        self._in_transaction = True

    def commit(self) -> None:
        """Commit the open transaction, if any."""
        if not self._in_transaction:
            return
        try:
            self._connection.commit()
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        """Roll back the open transaction, if any; failures are only logged."""
        if not self._in_transaction:
            return
        try:
            self._connection.rollback()
        except Exception as exc:  # noqa: BLE001
            log.error("Register Log: %s", exc)
        finally:
            self._in_transaction = False

    def _run(self, sql: str, params: Params) -> Any:
        cursor = self._connection.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
        except Exception as exc:
            log.error("%s %s", sql, params)
            log.error("%s", exc)
            raise
        return cursor

    def query(self, sql: str, params: Params = None) -> list[tuple]:
        """Run a query and return all of its rows."""
        return [tuple(row) for row in self._run(sql, params).fetchall()]

    def query_row(self, sql: str, params: Params = None) -> tuple | None:
        """Run a query and return its first row, or None when it has none."""
        row = self._run(sql, params).fetchone()
        return None if row is None else tuple(row)

    def execute(self, sql: str, params: Params = None) -> int:
        """Run a statement and return the number of rows it affected."""
        cursor = self._run(sql, params)
        if not self._in_transaction:
            self._connection.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the connection, ignoring any failure."""
        try:
            self._connection.close()
        except Exception:  # noqa: BLE001
            pass

    def __enter__(self) -> SQLServerConnection:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._in_transaction:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        self.close()


def open_connection(conn_string: str, connector: Callable[[str], Any]) -> SQLServerConnection:
    """Open a connection with ``connector`` and check that it answers.

    The connection is closed again and the error raised when the check fails.
    """
    try:
        raw = connector(conn_string)
    except Exception as exc:
        log.info("Error al conectar a la base de datos: %s", exc)
        raise
    try:
        cursor = raw.cursor()
        cursor.execute("SELECT 1")
        cursor.fetchall()
    except Exception:
        try:
            raw.close()
        except Exception:  # noqa: BLE001
            pass
        raise
    return SQLServerConnection(raw)