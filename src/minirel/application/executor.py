"""Statement Executor using the Volcano iterator model.

This module runs parsed statements against a database:

    - DDL goes straight to the catalog
    - INSERT/UPDATE/DELETE stage operations in a transaction's overlay
    - SELECT snapshots the visible rows and returns a cursor that pulls
      them through a pipeline of operators

The Volcano model:
    - Each operator is an iterator with open(), next(), close() methods
    - Operators pull rows from their children on demand
    - Only the scan is materialised; filtering, sorting, limiting and
      projection happen as the cursor advances

References:
    - Graefe, "Volcano" (1994)
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator

from minirel.adapters.inbound.sql_parser import (
    ArithmeticExpr,
    ArithmeticOp,
    ColumnExpr,
    ComparisonExpr,
    ComparisonOp,
    CreateTablePlan,
    DeletePlan,
    DropTablePlan,
    Expression,
    Filter,
    InsertPlan,
    Limit,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    LogicalPlan,
    NegateExpr,
    OrderByItem,
    ParameterExpr,
    Project,
    SelectItem,
    Sort,
    Statement,
    StatementKind,
    TableScan,
    UpdatePlan,
)
from minirel.application.cursor import Cursor
from minirel.domain.entities import Row, StagedDelete, StagedInsert, StagedUpdate, TableSchema
from minirel.domain.errors import DataTypeError, StatementError, UnknownTableError

if TYPE_CHECKING:
    from minirel.domain.services import Catalog, OverlayTransactionManager
    from minirel.ports.inbound.row_store import RowStore
    from minirel.ports.inbound.transaction_manager import Transaction


def evaluate(expr: Expression, row: Row | None, params: tuple[Any, ...]) -> Any:
    """Evaluate an expression against a row.

    Comparisons involving NULL evaluate to None (unknown), which filters
    treat as false.

    Args:
        expr: The expression to evaluate.
        row: The row supplying column values, or None where no row is in
            scope (INSERT values).
        params: Bound parameter values in slot order.

    Raises:
        StatementError: If a column is referenced where no row is in scope.
        DataTypeError: If operand types are incompatible.
    """
    if isinstance(expr, LiteralExpr):
        return expr.literal.value
    elif isinstance(expr, ParameterExpr):
        return params[expr.slot.index]
    elif isinstance(expr, ColumnExpr):
        if row is None:
            raise StatementError(f"Column '{expr.column}' cannot be referenced here")
        return row[expr.column.name]
    elif isinstance(expr, ComparisonExpr):
        left = evaluate(expr.left, row, params)
        if expr.op == ComparisonOp.IS_NULL:
            return left is None
        right = evaluate(expr.right, row, params) if expr.right is not None else None
        return _compare(left, expr.op, right)
    elif isinstance(expr, LogicalExpr):
        values = [evaluate(o, row, params) for o in expr.operands]
        if expr.op == LogicalOp.NOT:
            return None if values[0] is None else not values[0]
        if expr.op == LogicalOp.AND:
            if any(v is False for v in values):
                return False
            return None if any(v is None for v in values) else True
        if any(v is True for v in values):
            return True
        return None if any(v is None for v in values) else False
    elif isinstance(expr, ArithmeticExpr):
        left = evaluate(expr.left, row, params)
        right = evaluate(expr.right, row, params)
        return _arithmetic(left, expr.op, right)
    elif isinstance(expr, NegateExpr):
        value = evaluate(expr.operand, row, params)
        if value is None:
            return None
        try:
            return -value
        except TypeError as e:
            raise DataTypeError(f"Cannot negate {value!r}") from e
    raise StatementError(f"Unsupported expression: {expr}")


def _compare(left: Any, op: ComparisonOp, right: Any) -> bool | None:
    """Compare two values with the given operator."""
    if left is None or right is None:
        return None
    try:
        if op == ComparisonOp.EQ:
            return left == right
        elif op == ComparisonOp.NE:
            return left != right
        elif op == ComparisonOp.LT:
            return left < right
        elif op == ComparisonOp.LE:
            return left <= right
        elif op == ComparisonOp.GT:
            return left > right
        elif op == ComparisonOp.GE:
            return left >= right
    except TypeError as e:
        raise DataTypeError(f"Cannot compare {left!r} {op.value} {right!r}") from e

    if op == ComparisonOp.LIKE:
        return _like_pattern(str(right)).match(str(left)) is not None
    return None


def _like_pattern(pattern: str) -> re.Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _arithmetic(left: Any, op: ArithmeticOp, right: Any) -> Any:
    if left is None or right is None:
        return None
    try:
        if op == ArithmeticOp.ADD:
            return left + right
        elif op == ArithmeticOp.SUB:
            return left - right
        elif op == ArithmeticOp.MUL:
            return left * right
        # Division by zero yields NULL, integer division truncates.
        if right == 0:
            return None
        if isinstance(left, int) and isinstance(right, int):
            quotient = abs(left) // abs(right)
            if (left < 0) != (right < 0):
                quotient = -quotient
            return quotient if op == ArithmeticOp.DIV else left - right * quotient
        if op == ArithmeticOp.DIV:
            return left / right
        return left % right
    except (TypeError, OverflowError) as e:
        raise DataTypeError(f"Cannot compute {left!r} {op.value} {right!r}") from e


def _is_true(value: Any) -> bool:
    return value is True or (value is not None and value is not False and bool(value))


@dataclass
class ExecutionResult:
    """Result of statement execution.

    Attributes:
        kind: Kind of the executed statement
        affected_rows: Rows inserted, or rows matched by UPDATE/DELETE
        cursor: Result cursor for SELECT, otherwise None
        message: Human readable status
    """

    kind: StatementKind
    affected_rows: int = 0
    cursor: Cursor | None = None
    message: str = "OK"

    @property
    def produced_results(self) -> bool:
        return self.cursor is not None


class Operator(ABC):
    """Base class for executor operators (Volcano model)."""

    @abstractmethod
    def open(self) -> None:
        """Initialize the operator."""
        pass

    @abstractmethod
    def next(self) -> Row | None:
        """Return the next row or None if exhausted."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        pass

    def __iter__(self) -> Iterator[Row]:
        """Allow iteration over operator results."""
        self.open()
        try:
            while True:
                row = self.next()
                if row is None:
                    break
                yield row
        finally:
            self.close()


class SeqScanOperator(Operator):
    """Sequential scan over a snapshot of a table's rows.

    The snapshot is taken when the operator is built, so rows written
    afterwards are never seen.
    """

    def __init__(self, schema: TableSchema, store: RowStore) -> None:
        self._columns = tuple(schema.column_names)
        self._rows = list(store.scan(schema.name))
        self._current_row = 0

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def open(self) -> None:
        self._current_row = 0

    def next(self) -> Row | None:
        if self._current_row >= len(self._rows):
            return None
        values = self._rows[self._current_row]
        self._current_row += 1
        return Row(columns=self._columns, values=values)

    def close(self) -> None:
        self._rows = []
        self._current_row = 0


class FilterOperator(Operator):
    """Filter operator that applies a predicate."""

    def __init__(self, child: Operator, predicate: Expression, params: tuple[Any, ...]) -> None:
        self._child = child
        self._predicate = predicate
        self._params = params

    def open(self) -> None:
        self._child.open()

    def next(self) -> Row | None:
        while True:
            row = self._child.next()
            if row is None:
                return None
            if _is_true(evaluate(self._predicate, row, self._params)):
                return row

    def close(self) -> None:
        self._child.close()


class SortOperator(Operator):
    """Sort operator that orders rows. NULLs sort first."""

    def __init__(
        self, child: Operator, order_by: list[OrderByItem], params: tuple[Any, ...]
    ) -> None:
        self._child = child
        self._order_by = order_by
        self._params = params
        self._sorted_rows: list[Row] = []
        self._current_idx = 0

    def open(self) -> None:
        self._child.open()
        # Materialize all rows and sort
        rows = []
        while True:
            row = self._child.next()
            if row is None:
                break
            rows.append(row)

        # Stable sorts applied from the last key to the first.
        try:
            for item in reversed(self._order_by):
                rows.sort(
                    key=lambda r, e=item.expr: self._sort_key(evaluate(e, r, self._params)),
                    reverse=not item.ascending,
                )
        except TypeError as e:
            raise DataTypeError(f"Cannot order mixed values: {e}") from e

        self._sorted_rows = rows
        self._current_idx = 0

    @staticmethod
    def _sort_key(value: Any) -> tuple[bool, Any]:
        return (value is not None, value if value is not None else 0)

    def next(self) -> Row | None:
        if self._current_idx >= len(self._sorted_rows):
            return None
        row = self._sorted_rows[self._current_idx]
        self._current_idx += 1
        return row

    def close(self) -> None:
        self._child.close()
        self._sorted_rows = []
        self._current_idx = 0


class LimitOperator(Operator):
    """Limit operator that restricts row count."""

    def __init__(self, child: Operator, limit: int | None, offset: int = 0) -> None:
        self._child = child
        self._limit = limit
        self._offset = offset
        self._returned = 0
        self._offset_done = False

    def open(self) -> None:
        self._child.open()
        self._returned = 0
        self._offset_done = False

    def next(self) -> Row | None:
        # Skip offset rows (only once at the beginning)
        if not self._offset_done:
            self._offset_done = True
            for _ in range(self._offset):
                if self._child.next() is None:
                    return None

        if self._limit is not None and self._returned >= self._limit:
            return None
        row = self._child.next()
        if row is None:
            return None
        self._returned += 1
        return row

    def close(self) -> None:
        self._child.close()


class ProjectOperator(Operator):
    """Project operator that computes the output columns."""

    def __init__(
        self,
        child: Operator,
        items: list[SelectItem],
        columns: tuple[str, ...],
        params: tuple[Any, ...],
    ) -> None:
        self._child = child
        self._items = items
        self._columns = columns
        self._params = params

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    def open(self) -> None:
        self._child.open()

    def next(self) -> Row | None:
        row = self._child.next()
        if row is None:
            return None

        values: list[Any] = []
        for item in self._items:
            if item.is_star:
                values.extend(row.values)
            else:
                values.append(evaluate(item.expr, row, self._params))
        return Row(columns=self._columns, values=tuple(values))

    def close(self) -> None:
        self._child.close()


class StatementExecutor:
    """Executes statements against a catalog and transaction manager.

    Transaction control statements are not handled here; the connection
    owns the transaction and passes it in. Write statements require a
    transaction to stage into.

    Example:
        >>> executor = StatementExecutor(catalog, txn_manager)
        >>> result = executor.execute(statement, params, txn)
        >>> result.affected_rows
        1
    """

    def __init__(
        self,
        catalog: Catalog,
        txn_manager: OverlayTransactionManager,
        on_cursor_close: Callable[[Cursor], None] | None = None,
    ) -> None:
        self._catalog = catalog
        self._txn_manager = txn_manager
        self._on_cursor_close = on_cursor_close

    def resolve_parameters(self, statement: Statement) -> None:
        """Type parameter slots from the columns they are bound against.

        Slots whose table or column is unknown stay untyped; the statement
        fails with the proper schema error when it runs.
        """
        for slot in statement.parameters:
            if slot.table is None or slot.column is None:
                continue
            if not self._catalog.has_table(slot.table):
                continue
            schema = self._catalog.lookup(slot.table)
            if slot.column.startswith("#"):
                position = int(slot.column[1:])
                if position < schema.arity:
                    slot.data_type = schema.columns[position].data_type
            elif schema.has_column(slot.column):
                slot.data_type = schema.column(slot.column).data_type

    def execute(
        self,
        statement: Statement,
        params: tuple[Any, ...],
        txn: Transaction | None = None,
    ) -> ExecutionResult:
        """Execute a bound statement.

        Args:
            statement: The parsed statement.
            params: Values bound to its parameter slots.
            txn: The transaction writes are staged into and reads see.

        Returns:
            ExecutionResult; SELECT results carry a cursor.

        Raises:
            ValueError: If a write is executed without a transaction, or a
                transaction control statement is passed.
        """
        plan = statement.plan
        if isinstance(plan, CreateTablePlan):
            return self._execute_create_table(plan)
        elif isinstance(plan, DropTablePlan):
            return self._execute_drop_table(plan)
        elif statement.kind == StatementKind.SELECT:
            return self._execute_query(plan, params, txn)

        if statement.kind == StatementKind.TRANSACTION:
            raise ValueError("Transaction control is handled by the connection")
        if txn is None:
            raise ValueError(f"{statement.kind.value.upper()} requires a transaction")

        if isinstance(plan, InsertPlan):
            return self._execute_insert(plan, params, txn)
        elif isinstance(plan, UpdatePlan):
            return self._execute_update(plan, params, txn)
        elif isinstance(plan, DeletePlan):
            return self._execute_delete(plan, params, txn)
        raise StatementError(f"Unsupported plan type: {type(plan).__name__}")

    def _execute_query(
        self, plan: LogicalPlan, params: tuple[Any, ...], txn: Transaction | None
    ) -> ExecutionResult:
        """Execute a SELECT query."""
        view = self._txn_manager.read_view(txn)
        operator = self._build_operator_tree(plan, view, params)
        columns = operator.columns if isinstance(operator, ProjectOperator) else ()
        cursor = Cursor(columns=columns, operator=operator, on_close=self._on_cursor_close)
        return ExecutionResult(kind=StatementKind.SELECT, cursor=cursor)

    def _build_operator_tree(
        self, plan: LogicalPlan, view: RowStore, params: tuple[Any, ...]
    ) -> Operator:
        """Build a physical operator tree from a logical plan."""
        if isinstance(plan, TableScan):
            return SeqScanOperator(schema=self._catalog.lookup(plan.table_name), store=view)
        elif isinstance(plan, Filter):
            child = self._build_operator_tree(plan.input, view, params)
            self._check_columns(plan.predicate, self._schema_of(plan))
            return FilterOperator(child=child, predicate=plan.predicate, params=params)
        elif isinstance(plan, Sort):
            child = self._build_operator_tree(plan.input, view, params)
            for item in plan.order_by:
                self._check_columns(item.expr, self._schema_of(plan))
            return SortOperator(child=child, order_by=plan.order_by, params=params)
        elif isinstance(plan, Limit):
            child = self._build_operator_tree(plan.input, view, params)
            return LimitOperator(child=child, limit=plan.count, offset=plan.offset)
        elif isinstance(plan, Project):
            child = self._build_operator_tree(plan.input, view, params)
            schema = self._schema_of(plan)
            columns: list[str] = []
            for item in plan.items:
                if item.is_star:
                    columns.extend(schema.column_names)
                else:
                    self._check_columns(item.expr, schema)
                    columns.append(item.output_name)
            return ProjectOperator(
                child=child, items=plan.items, columns=tuple(columns), params=params
            )
        raise StatementError(f"Unsupported plan node: {type(plan).__name__}")

    def _schema_of(self, plan: LogicalPlan) -> TableSchema:
        while not isinstance(plan, TableScan):
            plan = plan.input  # type: ignore[attr-defined]
        return self._catalog.lookup(plan.table_name)

    def _check_columns(self, expr: Expression | None, schema: TableSchema) -> None:
        """Fail early on references to columns the table does not have."""
        if expr is None:
            return
        if isinstance(expr, ColumnExpr):
            if expr.column.name != "*":
                schema.index_of(expr.column.name)
            return
        for child in _children(expr):
            self._check_columns(child, schema)

    def _execute_insert(
        self, plan: InsertPlan, params: tuple[Any, ...], txn: Transaction
    ) -> ExecutionResult:
        """Stage an INSERT statement."""
        schema = self._catalog.lookup(plan.table_name)
        columns = plan.columns or schema.column_names
        if len(set(columns)) != len(columns):
            raise StatementError(f"INSERT names a column of '{schema.name}' twice")
        positions = [schema.index_of(name) for name in columns]

        rows = []
        for value_row in plan.values:
            if len(value_row) != len(columns):
                raise StatementError(
                    f"INSERT has {len(columns)} columns but {len(value_row)} values"
                )
            values: list[Any] = [None] * schema.arity
            for position, expr in zip(positions, value_row):
                values[position] = evaluate(expr, None, params)
            rows.append(schema.validate_row(values))

        # Key and reference checks run against the transaction's view.
        view = self._txn_manager.read_view(txn)
        if len(rows) == 1:
            view.check_insert(schema.name, rows[0])
        else:
            scratch = view.clone()
            for row in rows:
                scratch.insert(schema.name, row)

        for row in rows:
            txn.stage(StagedInsert(schema.name, row))

        return ExecutionResult(
            kind=StatementKind.INSERT,
            affected_rows=len(rows),
            message=f"OK: {len(rows)} row(s) inserted",
        )

    def _execute_update(
        self, plan: UpdatePlan, params: tuple[Any, ...], txn: Transaction
    ) -> ExecutionResult:
        """Stage an UPDATE statement."""
        schema = self._catalog.lookup(plan.table_name)
        assignments = []
        for name, expr in plan.assignments.items():
            self._check_columns(expr, schema)
            assignments.append((schema.index_of(name), expr))
        self._check_columns(plan.predicate, schema)

        columns = tuple(schema.column_names)

        def mutator(current: tuple[Any, ...]) -> tuple[Any, ...]:
            row = Row(columns=columns, values=current)
            values = list(current)
            for idx, expr in assignments:
                values[idx] = evaluate(expr, row, params)
            return tuple(values)

        keys = self._matching_keys(schema, plan.predicate, params, txn)
        matched = self._count_present(schema, keys, plan.predicate, params, txn)
        for key in keys:
            txn.stage(StagedUpdate(schema.name, key, mutator))

        return ExecutionResult(
            kind=StatementKind.UPDATE,
            affected_rows=matched,
            message=f"OK: {matched} row(s) updated",
        )

    def _execute_delete(
        self, plan: DeletePlan, params: tuple[Any, ...], txn: Transaction
    ) -> ExecutionResult:
        """Stage a DELETE statement."""
        schema = self._catalog.lookup(plan.table_name)
        self._check_columns(plan.predicate, schema)

        keys = self._matching_keys(schema, plan.predicate, params, txn)
        matched = self._count_present(schema, keys, plan.predicate, params, txn)
        for key in keys:
            txn.stage(StagedDelete(schema.name, key))

        return ExecutionResult(
            kind=StatementKind.DELETE,
            affected_rows=matched,
            message=f"OK: {matched} row(s) deleted",
        )

    def _matching_keys(
        self,
        schema: TableSchema,
        predicate: Expression | None,
        params: tuple[Any, ...],
        txn: Transaction,
    ) -> list[Any]:
        """Primary keys of the rows an UPDATE or DELETE targets.

        A predicate that is exactly an equality on the primary key yields
        that key whether or not the row exists; the write then fails with
        NotFoundError when the overlay is applied.
        """
        key = _primary_key_lookup(schema, predicate, params)
        if key is not _NO_KEY:
            return [key]

        view = self._txn_manager.read_view(txn)
        columns = tuple(schema.column_names)
        keys = []
        for values in view.scan(schema.name):
            row = Row(columns=columns, values=values)
            if predicate is None or _is_true(evaluate(predicate, row, params)):
                keys.append(schema.key_of(values))
        return keys

    def _count_present(
        self,
        schema: TableSchema,
        keys: list[Any],
        predicate: Expression | None,
        params: tuple[Any, ...],
        txn: Transaction,
    ) -> int:
        if _primary_key_lookup(schema, predicate, params) is _NO_KEY:
            return len(keys)
        view = self._txn_manager.read_view(txn)
        return sum(1 for key in keys if view.get(schema.name, key) is not None)

    def _execute_create_table(self, plan: CreateTablePlan) -> ExecutionResult:
        """Execute a CREATE TABLE statement."""
        if plan.if_not_exists and self._catalog.has_table(plan.table_name):
            return ExecutionResult(kind=StatementKind.DDL, message="OK: Table already exists")

        self._catalog.define_table(plan.table_name, plan.columns)
        return ExecutionResult(
            kind=StatementKind.DDL, message=f"OK: Table '{plan.table_name}' created"
        )

    def _execute_drop_table(self, plan: DropTablePlan) -> ExecutionResult:
        """Execute a DROP TABLE statement."""
        if not self._catalog.has_table(plan.table_name):
            if plan.if_exists:
                return ExecutionResult(kind=StatementKind.DDL, message="OK: Table does not exist")
            raise UnknownTableError(plan.table_name)

        self._catalog.drop_table(plan.table_name)
        self._txn_manager.store.discard_table(plan.table_name)
        return ExecutionResult(
            kind=StatementKind.DDL, message=f"OK: Table '{plan.table_name}' dropped"
        )


_NO_KEY = object()


def _primary_key_lookup(
    schema: TableSchema, predicate: Expression | None, params: tuple[Any, ...]
) -> Any:
    """Return the key of a `pk = value` predicate, or _NO_KEY."""
    if not isinstance(predicate, ComparisonExpr) or predicate.op != ComparisonOp.EQ:
        return _NO_KEY
    pk_columns = schema.primary_key_columns
    if len(pk_columns) != 1:
        return _NO_KEY

    column, value = predicate.left, predicate.right
    if not isinstance(column, ColumnExpr):
        column, value = value, column
    if not isinstance(column, ColumnExpr) or column.column.name != pk_columns[0].name:
        return _NO_KEY
    if not isinstance(value, (LiteralExpr, ParameterExpr)):
        return _NO_KEY

    key = evaluate(value, None, params)
    if key is None:
        return _NO_KEY
    return pk_columns[0].coerce(key)


def _children(expr: Expression) -> list[Expression]:
    if isinstance(expr, (ComparisonExpr, ArithmeticExpr)):
        return [e for e in (expr.left, expr.right) if e is not None]
    if isinstance(expr, LogicalExpr):
        return list(expr.operands)
    if isinstance(expr, NegateExpr):
        return [expr.operand]
    return []
