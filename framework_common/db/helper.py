"""
Data access helper: query / execute / transaction calls over named connections.

Each call checks out a connection from the ConnectionFactory, runs the
statement through SQLAlchemy, commits and closes the connection before
returning. Calls that receive a TransactionContext reuse its connection and
leave commit/close to the owner of the transaction.

Statements use named ``:placeholders``; parameters may be a mapping, a
dataclass, a pydantic model, a plain object or a list of those (executemany).
"""

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, TypeVar

from sqlalchemy.engine import Connection, CursorResult, Result, Transaction
from sqlalchemy.exc import MultipleResultsFound, NoResultFound, ResourceClosedError

from .factory import ConnectionFactory, get_connection_factory
from .mapping import (
    build_statement,
    coerce_scalar,
    is_scalar_type,
    map_row,
    split_statements,
    to_params,
)
from .models import CommandType, TransactionContext

_log = logging.getLogger(__name__)

T = TypeVar("T")

TransactionWork = (
    Iterable[str] | Iterable[tuple[str, Any]] | Callable[[TransactionContext], Any]
)


def _rowcount(result: CursorResult) -> int:
    rc = result.rowcount
    return rc if rc is not None and rc >= 0 else 0


def _first(rows: list[Any]) -> Any:
    if not rows:
        raise NoResultFound("No row was found when one was required")
    return rows[0]


def _single(rows: list[Any], *, strict: bool) -> Any:
    if len(rows) > 1:
        raise MultipleResultsFound("Multiple rows were found when exactly one was required")
    if not rows:
        if strict:
            raise NoResultFound("No row was found when exactly one was required")
        return None
    return rows[0]


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Rows of the current DB-API result set as dicts (empty when it has no columns)."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def _procedure_result_sets(
    conn: Connection, name: str, params: dict[str, Any] | None
) -> list[list[dict[str, Any]]]:
    """
    CALL a stored procedure on the raw DB-API cursor and collect every result set.

    pymysql and psycopg both use the ``pyformat`` paramstyle, so binds are
    rendered as ``%(key)s``.
    """
    keys = list(params or {})
    sql = f"CALL {name.strip()}({', '.join(f'%({k})s' for k in keys)})"
    cursor = conn.connection.cursor()
    try:
        cursor.execute(sql, params or None)
        result_sets: list[list[dict[str, Any]]] = []
        while True:
            if cursor.description:
                result_sets.append(cursor_to_dicts(cursor))
            if not cursor.nextset():
                break
        return result_sets
    finally:
        cursor.close()


class GridReader:
    """
    Forward-only reader over the result sets of one ``query_multiple`` call.

    Result sets are buffered, so the connection is already back in the pool
    when the reader is handed out. Each ``read*`` call consumes one result set.
    """

    def __init__(self, result_sets: Iterable[list[Mapping[str, Any]]]) -> None:
        self._pending: deque[list[Mapping[str, Any]]] = deque(result_sets)

    @property
    def is_consumed(self) -> bool:
        return not self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def _next(self) -> list[Mapping[str, Any]]:
        if not self._pending:
            raise ResourceClosedError("All result sets have been consumed")
        return self._pending.popleft()

    def read(self, row_type: Any = None) -> list[Any]:
        return [map_row(row, row_type) for row in self._next()]

    def read_first(self, row_type: Any = None) -> Any:
        return map_row(_first(self._next()), row_type)

    def read_first_or_default(self, row_type: Any = None, default: Any = None) -> Any:
        rows = self._next()
        return map_row(rows[0], row_type) if rows else default

    def read_single(self, row_type: Any = None) -> Any:
        return map_row(_single(self._next(), strict=True), row_type)

    def read_single_or_default(self, row_type: Any = None, default: Any = None) -> Any:
        row = _single(self._next(), strict=False)
        return map_row(row, row_type) if row is not None else default


class DbHelper:
    """
    Query and execute helpers bound to a ConnectionFactory.

    ``connection_name`` selects a configured connection (default connection
    when omitted). ``command_type=CommandType.STORED_PROCEDURE`` treats the SQL
    text as a procedure name called with the parameter keys as arguments.
    """

    def __init__(self, factory: ConnectionFactory | None = None) -> None:
        self._factory = factory

    @property
    def factory(self) -> ConnectionFactory:
        if self._factory is None:
            self._factory = get_connection_factory()
        return self._factory

    def _connect(self, connection_name: str | None) -> Connection:
        return self.factory.get_connection(connection_name)

    @staticmethod
    def _run(
        conn: Connection,
        sql: str,
        params: Any,
        command_type: CommandType | None,
    ) -> CursorResult:
        stmt, shaped = build_statement(sql, params, command_type)
        return conn.execute(stmt, shaped)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        sql: str,
        params: Any = None,
        *,
        row_type: Any = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
        buffered: bool = True,
    ) -> list[Any] | Iterator[Any]:
        """
        Run a query and return its mapped rows.

        - buffered=True: a list; the connection is closed before returning.
        - buffered=False: a generator that keeps the connection until it is
          exhausted or closed.
        """
        if not buffered:
            return self._iter_query(sql, params, row_type, command_type, connection_name)
        with self._connect(connection_name) as conn:
            result = self._run(conn, sql, params, command_type)
            rows = [map_row(row, row_type) for row in result]
            conn.commit()
        return rows

    def _iter_query(
        self,
        sql: str,
        params: Any,
        row_type: Any,
        command_type: CommandType | None,
        connection_name: str | None,
    ) -> Iterator[Any]:
        with self._connect(connection_name) as conn:
            result = self._run(conn, sql, params, command_type)
            try:
                for row in result:
                    yield map_row(row, row_type)
            finally:
                result.close()

    def query_first(
        self,
        sql: str,
        params: Any = None,
        *,
        row_type: Any = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> Any:
        """First mapped row; NoResultFound when the query returns no rows."""
        with self._connect(connection_name) as conn:
            row = self._run(conn, sql, params, command_type).first()
            conn.commit()
        if row is None:
            raise NoResultFound("No row was found when one was required")
        return map_row(row, row_type)

    def query_first_or_default(
        self,
        sql: str,
        params: Any = None,
        *,
        row_type: Any = None,
        default: Any = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> Any:
        """First mapped row, or *default* when the query returns no rows."""
        with self._connect(connection_name) as conn:
            row = self._run(conn, sql, params, command_type).first()
            conn.commit()
        return map_row(row, row_type) if row is not None else default

    def query_single(
        self,
        sql: str,
        params: Any = None,
        *,
        row_type: Any = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> Any:
        """The only mapped row; NoResultFound / MultipleResultsFound otherwise."""
        with self._connect(connection_name) as conn:
            row = self._run(conn, sql, params, command_type).one()
            conn.commit()
        return map_row(row, row_type)

    def query_single_or_default(
        self,
        sql: str,
        params: Any = None,
        *,
        row_type: Any = None,
        default: Any = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> Any:
        """The only mapped row, *default* for no rows; MultipleResultsFound for more than one."""
        with self._connect(connection_name) as conn:
            row = self._run(conn, sql, params, command_type).one_or_none()
            conn.commit()
        return map_row(row, row_type) if row is not None else default

    def query_multiple(
        self,
        sql: str,
        params: Any = None,
        *,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> GridReader:
        """
        Run several statements (``;``-separated) or a stored procedure and
        return their row-returning result sets as a GridReader.

        The same parameters are offered to every statement; each statement
        binds the names it uses.
        """
        with self._connect(connection_name) as conn:
            if command_type == CommandType.STORED_PROCEDURE:
                shaped = to_params(params)
                if isinstance(shaped, list):
                    raise TypeError("query_multiple takes one parameter object, not a list")
                result_sets = _procedure_result_sets(conn, sql, shaped)
            else:
                result_sets = []
                for stmt in split_statements(sql):
                    result = self._run(conn, stmt, params, CommandType.TEXT)
                    if result.returns_rows:
                        result_sets.append([dict(row._mapping) for row in result])
                    else:
                        result.close()
            conn.commit()
        return GridReader(result_sets)

    def execute_scalar(
        self,
        sql: str,
        params: Any = None,
        *,
        as_type: type[T] | None = None,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> T | Any:
        """
        First column of the first row, converted to *as_type*.

        Only scalar types (str, numbers, bool, Decimal, dates/times, UUID,
        bytes, Enum) are read. For any other *as_type* nothing is executed and
        None is returned. A NULL or missing value gives the type's default
        (0, 0.0, False, Decimal(0), otherwise None).
        """
        if as_type is not None and not is_scalar_type(as_type):
            _log.debug("execute_scalar skipped: %r is not a scalar type", as_type)
            return None
        with self._connect(connection_name) as conn:
            result = self._run(conn, sql, params, command_type)
            value = result.scalar() if result.returns_rows else None
            conn.commit()
        return coerce_scalar(value, as_type)

    def execute_reader(
        self,
        sql: str,
        params: Any = None,
        *,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> Result:
        """
        Run a statement and return a forward-only SQLAlchemy Result.

        Rows are buffered before the connection is closed; ``keys()``,
        ``fetchone()``, ``mappings()`` and iteration work on the returned Result.
        """
        with self._connect(connection_name) as conn:
            result = self._run(conn, sql, params, command_type)
            frozen = result.freeze() if result.returns_rows else None
            conn.commit()
        if frozen is None:
            return result
        return frozen()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def execute(
        self,
        sql: str,
        params: Any = None,
        transaction: TransactionContext | None = None,
        *,
        command_type: CommandType | None = None,
        connection_name: str | None = None,
    ) -> int:
        """
        Run a command and return the affected row count.

        With *transaction*, the statement runs on the transaction's connection
        and is neither committed nor closed here. Otherwise a connection is
        checked out, committed and closed.
        """
        if transaction is not None:
            result = self._run(transaction.connection, sql, params, command_type)
            affected = _rowcount(result)
            result.close()
            return affected

        with self._connect(connection_name) as conn:
            result = self._run(conn, sql, params, command_type)
            affected = _rowcount(result)
            result.close()
            conn.commit()
        return affected

    def execute_transaction(
        self,
        work: TransactionWork,
        *,
        connection_name: str | None = None,
    ) -> Any:
        """
        Run *work* inside one transaction and commit it.

        *work* is one of:
        - a list of SQL strings, run in order (returns True);
        - a list of ``(sql, params)`` pairs, run in order (returns True);
        - a callable taking the TransactionContext (returns its return value).
          Use ``execute(..., transaction=ctx)`` inside it.

        On any exception the transaction is rolled back, the connection is
        invalidated and closed, and the original exception is re-raised.
        """
        if callable(work):
            run = work
        else:
            statements = list(work)

            def run(ctx: TransactionContext) -> bool:
                for item in statements:
                    if isinstance(item, str):
                        self.execute(item, transaction=ctx)
                    else:
                        sql, params = item
                        self.execute(sql, params, transaction=ctx)
                return True

        conn = self._connect(connection_name)
        try:
            tx = conn.begin()
            try:
                result = run(TransactionContext(connection=conn, transaction=tx))
                tx.commit()
            except Exception:
                _log.warning(
                    "Transaction on %r failed, rolling back",
                    connection_name or self.factory.resolver.default_name,
                )
                self._rollback_quiet(tx)
                conn.invalidate()
                raise
            return result
        finally:
            conn.close()

    @staticmethod
    def _rollback_quiet(tx: Transaction) -> None:
        try:
            tx.rollback()
        except Exception as e:
            _log.debug("Rollback failed: %s", e)


_helper: DbHelper | None = None
_helper_lock = threading.Lock()


def get_db_helper() -> DbHelper:
    """Return the process-wide DbHelper bound to the process-wide ConnectionFactory."""
    global _helper
    if _helper is None:
        with _helper_lock:
            if _helper is None:
                _helper = DbHelper()
    return _helper
