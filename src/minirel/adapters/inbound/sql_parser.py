"""SQL Parser using sqlglot.

This module converts SQL strings into a minimal statement representation:
a statement kind, a logical plan and an ordered list of parameter slots.
Placeholders never become string interpolation; they stay typed slots
that must all be bound before the statement runs.

Supported statements:
    - SELECT (with WHERE, ORDER BY, LIMIT/OFFSET)
    - INSERT ... VALUES
    - UPDATE
    - DELETE
    - CREATE TABLE (PRIMARY KEY, NOT NULL, REFERENCES, FOREIGN KEY)
    - DROP TABLE
    - BEGIN / COMMIT / ROLLBACK

Placeholders:
    - Positional: ``?``
    - Named: ``:name``

References:
    - sqlglot documentation: https://sqlglot.com/
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from minirel.domain.entities import Column, DataType, ForeignKeyRef
from minirel.domain.errors import ParseError, StatementError, UnboundParameterError


class StatementKind(Enum):
    """Kinds of statements the executor dispatches on."""

    DDL = "ddl"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    SELECT = "select"
    TRANSACTION = "transaction"


class TransactionAction(Enum):
    """Transaction control statements."""

    BEGIN = "begin"
    COMMIT = "commit"
    ROLLBACK = "rollback"


class ComparisonOp(Enum):
    """Comparison operators for predicates."""

    EQ = "="
    NE = "<>"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IS_NULL = "IS NULL"
    LIKE = "LIKE"


class LogicalOp(Enum):
    """Logical operators for combining predicates."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class ArithmeticOp(Enum):
    """Binary arithmetic operators."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"


@dataclass
class ParameterSlot:
    """A placeholder in a statement.

    Slots are typed from their context once the statement is resolved
    against the catalog: a slot compared with or assigned to a column
    takes that column's type.
    """

    index: int
    name: str | None = None
    table: str | None = None
    column: str | None = None
    data_type: DataType | None = None

    @property
    def label(self) -> str:
        if self.name is not None:
            return f":{self.name}"
        return f"?{self.index + 1}"

    def coerce(self, value: Any) -> Any:
        if self.data_type is None:
            return value
        return self.data_type.coerce(value)


@dataclass
class ColumnRef:
    """Reference to a column, optionally qualified with table name."""

    name: str
    table: str | None = None

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.{self.name}"
        return self.name


@dataclass
class Literal:
    """A literal value."""

    value: Any


@dataclass
class Expression(ABC):
    """Base class for expressions."""

    @abstractmethod
    def __str__(self) -> str:
        pass


@dataclass
class ColumnExpr(Expression):
    """Column reference expression."""

    column: ColumnRef

    def __str__(self) -> str:
        return str(self.column)


@dataclass
class LiteralExpr(Expression):
    """Literal value expression."""

    literal: Literal

    def __str__(self) -> str:
        if self.literal.value is None:
            return "NULL"
        if isinstance(self.literal.value, str):
            return f"'{self.literal.value}'"
        return str(self.literal.value)


@dataclass
class ParameterExpr(Expression):
    """Placeholder expression bound at execution time."""

    slot: ParameterSlot

    def __str__(self) -> str:
        return self.slot.label


@dataclass
class ComparisonExpr(Expression):
    """Comparison expression (e.g., col = value)."""

    left: Expression
    op: ComparisonOp
    right: Expression | None = None  # None for IS NULL

    def __str__(self) -> str:
        if self.right is None:
            return f"{self.left} {self.op.value}"
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class LogicalExpr(Expression):
    """Logical expression combining other expressions."""

    op: LogicalOp
    operands: list[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        if self.op == LogicalOp.NOT:
            return f"NOT ({self.operands[0]})"
        op_str = f" {self.op.value} "
        return f"({op_str.join(str(o) for o in self.operands)})"


@dataclass
class ArithmeticExpr(Expression):
    """Binary arithmetic expression (e.g., balance - 50)."""

    left: Expression
    op: ArithmeticOp
    right: Expression

    def __str__(self) -> str:
        return f"{self.left} {self.op.value} {self.right}"


@dataclass
class NegateExpr(Expression):
    """Unary minus."""

    operand: Expression

    def __str__(self) -> str:
        return f"-{self.operand}"


@dataclass
class SelectItem:
    """An item in a SELECT list."""

    expr: Expression
    alias: str | None = None

    @property
    def is_star(self) -> bool:
        return isinstance(self.expr, ColumnExpr) and self.expr.column.name == "*"

    @property
    def output_name(self) -> str:
        return self.alias or str(self.expr)


@dataclass
class OrderByItem:
    """An item in an ORDER BY clause."""

    expr: Expression
    ascending: bool = True


# Logical Plan Nodes


@dataclass
class LogicalPlan(ABC):
    """Base class for logical plan nodes."""

    @abstractmethod
    def __str__(self) -> str:
        pass


@dataclass
class TableScan(LogicalPlan):
    """Scan a table."""

    table_name: str
    alias: str | None = None

    def __str__(self) -> str:
        if self.alias:
            return f"TableScan({self.table_name} AS {self.alias})"
        return f"TableScan({self.table_name})"


@dataclass
class Filter(LogicalPlan):
    """Filter rows based on a predicate."""

    input: LogicalPlan
    predicate: Expression

    def __str__(self) -> str:
        return f"Filter({self.predicate})\n  -> {self.input}"


@dataclass
class Sort(LogicalPlan):
    """Sort rows by specified expressions."""

    input: LogicalPlan
    order_by: list[OrderByItem]

    def __str__(self) -> str:
        cols = ", ".join(
            f"{item.expr} {'ASC' if item.ascending else 'DESC'}" for item in self.order_by
        )
        return f"Sort({cols})\n  -> {self.input}"


@dataclass
class Limit(LogicalPlan):
    """Limit the number of rows returned."""

    input: LogicalPlan
    count: int | None
    offset: int = 0

    def __str__(self) -> str:
        return f"Limit({self.count}, offset={self.offset})\n  -> {self.input}"


@dataclass
class Project(LogicalPlan):
    """Project (select) specific columns."""

    input: LogicalPlan
    items: list[SelectItem]

    def __str__(self) -> str:
        cols = ", ".join(str(item.expr) for item in self.items)
        return f"Project({cols})\n  -> {self.input}"


@dataclass
class InsertPlan(LogicalPlan):
    """Insert rows into a table."""

    table_name: str
    columns: list[str]
    values: list[list[Expression]]

    def __str__(self) -> str:
        return f"Insert({self.table_name}, cols={self.columns}, rows={len(self.values)})"


@dataclass
class UpdatePlan(LogicalPlan):
    """Update rows in a table."""

    table_name: str
    assignments: dict[str, Expression]
    predicate: Expression | None = None

    def __str__(self) -> str:
        assigns = ", ".join(f"{k}={v}" for k, v in self.assignments.items())
        where = f" WHERE {self.predicate}" if self.predicate else ""
        return f"Update({self.table_name}, SET {assigns}{where})"


@dataclass
class DeletePlan(LogicalPlan):
    """Delete rows from a table."""

    table_name: str
    predicate: Expression | None = None

    def __str__(self) -> str:
        where = f" WHERE {self.predicate}" if self.predicate else ""
        return f"Delete({self.table_name}{where})"


@dataclass
class CreateTablePlan(LogicalPlan):
    """Create a new table."""

    table_name: str
    columns: list[Column]
    if_not_exists: bool = False

    def __str__(self) -> str:
        cols = ", ".join(f"{c.name} {c.data_type.value}" for c in self.columns)
        return f"CreateTable({self.table_name}, [{cols}])"


@dataclass
class DropTablePlan(LogicalPlan):
    """Drop a table."""

    table_name: str
    if_exists: bool = False

    def __str__(self) -> str:
        return f"DropTable({self.table_name})"


@dataclass
class TransactionPlan(LogicalPlan):
    """Transaction control statement."""

    action: TransactionAction

    def __str__(self) -> str:
        return f"Transaction({self.action.value})"


def plan_table(plan: LogicalPlan) -> str | None:
    """Return the table a plan reads from or writes to, if any."""
    while True:
        if isinstance(plan, TableScan):
            return plan.table_name
        if isinstance(plan, (InsertPlan, UpdatePlan, DeletePlan, CreateTablePlan, DropTablePlan)):
            return plan.table_name
        if isinstance(plan, (Filter, Sort, Limit, Project)):
            plan = plan.input
            continue
        return None


@dataclass
class Statement:
    """A parsed statement: kind, logical plan and parameter slots."""

    sql: str
    kind: StatementKind
    plan: LogicalPlan
    parameters: list[ParameterSlot] = field(default_factory=list)

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    @property
    def uses_named_parameters(self) -> bool:
        return any(slot.name is not None for slot in self.parameters)

    @property
    def table_name(self) -> str | None:
        return plan_table(self.plan)

    def bind(self, params: Sequence[Any] | Mapping[str, Any] | None = None) -> tuple[Any, ...]:
        """Bind values to every parameter slot.

        Args:
            params: A sequence for positional placeholders or a mapping
                for named placeholders.

        Returns:
            The bound values, in slot order, coerced to slot types.

        Raises:
            UnboundParameterError: If a slot has no value.
            StatementError: If the wrong style or too many values are given.
            DataTypeError: If a value does not fit its slot type.
        """
        if params is None:
            params = ()

        if self.uses_named_parameters:
            if not isinstance(params, Mapping):
                raise StatementError("Statement uses named parameters; pass a mapping")
            missing = [slot.label for slot in self.parameters if slot.name not in params]
            if missing:
                raise UnboundParameterError(missing)
            return tuple(slot.coerce(params[slot.name]) for slot in self.parameters)

        if isinstance(params, Mapping):
            if params and not self.parameters:
                raise StatementError("Statement takes no parameters")
            if self.parameters:
                raise StatementError("Statement uses positional parameters; pass a sequence")
            return ()

        values = list(params)
        if len(values) < len(self.parameters):
            raise UnboundParameterError(
                [slot.label for slot in self.parameters[len(values):]]
            )
        if len(values) > len(self.parameters):
            raise StatementError(
                f"Statement takes {len(self.parameters)} parameter(s), got {len(values)}"
            )
        return tuple(slot.coerce(v) for slot, v in zip(self.parameters, values))

    def __str__(self) -> str:
        return str(self.plan)


class SQLParser:
    """SQL parser using sqlglot.

    Parses SQL strings and produces statements whose logical plans the
    executor runs.

    Example:
        >>> parser = SQLParser()
        >>> stmt = parser.parse("SELECT id, name FROM users WHERE age > ?")
        >>> stmt.kind
        <StatementKind.SELECT: 'select'>
        >>> stmt.parameter_count
        1
    """

    def __init__(self, dialect: str = "sqlite") -> None:
        """Initialize the parser.

        Args:
            dialect: SQL dialect to use for parsing (default: sqlite).
        """
        self._dialect = dialect
        self._slots: list[ParameterSlot] = []

    @property
    def dialect(self) -> str:
        return self._dialect

    def parse(self, sql: str) -> Statement:
        """Parse a SQL string into a statement.

        Args:
            sql: The SQL statement to parse.

        Returns:
            A Statement carrying the logical plan and parameter slots.

        Raises:
            ParseError: If the SQL is invalid or unsupported.
        """
        try:
            statements = sqlglot.parse(sql, dialect=self._dialect)
        except SqlglotError as e:
            raise ParseError(f"Failed to parse SQL: {e}") from e

        statements = [s for s in statements if s is not None]
        if not statements:
            raise ParseError("Empty SQL statement")

        if len(statements) > 1:
            raise ParseError("Multiple statements not supported")

        self._slots = []
        kind, plan = self._convert_statement(statements[0])
        slots = self._slots
        self._slots = []

        if any(s.name is not None for s in slots) and any(s.name is None for s in slots):
            raise ParseError("Cannot mix positional and named parameters")

        table = plan_table(plan)
        for slot in slots:
            if slot.column is not None:
                slot.table = table

        return Statement(sql=sql, kind=kind, plan=plan, parameters=slots)

    def _convert_statement(self, stmt: exp.Expression) -> tuple[StatementKind, LogicalPlan]:
        """Convert a sqlglot expression to a statement kind and logical plan."""
        if isinstance(stmt, exp.Select):
            return StatementKind.SELECT, self._convert_select(stmt)
        elif isinstance(stmt, exp.Insert):
            return StatementKind.INSERT, self._convert_insert(stmt)
        elif isinstance(stmt, exp.Update):
            return StatementKind.UPDATE, self._convert_update(stmt)
        elif isinstance(stmt, exp.Delete):
            return StatementKind.DELETE, self._convert_delete(stmt)
        elif isinstance(stmt, exp.Create):
            return StatementKind.DDL, self._convert_create(stmt)
        elif isinstance(stmt, exp.Drop):
            return StatementKind.DDL, self._convert_drop(stmt)
        elif isinstance(stmt, exp.Transaction):
            return StatementKind.TRANSACTION, TransactionPlan(TransactionAction.BEGIN)
        elif isinstance(stmt, exp.Commit):
            return StatementKind.TRANSACTION, TransactionPlan(TransactionAction.COMMIT)
        elif isinstance(stmt, exp.Rollback):
            if stmt.args.get("savepoint"):
                raise ParseError("Savepoints are not supported")
            return StatementKind.TRANSACTION, TransactionPlan(TransactionAction.ROLLBACK)
        else:
            raise ParseError(f"Unsupported statement type: {type(stmt).__name__}")

    def _convert_select(self, stmt: exp.Select) -> LogicalPlan:
        """Convert a SELECT statement to a logical plan."""
        from_clause = stmt.find(exp.From)
        if from_clause is None:
            raise ParseError("SELECT requires FROM clause")
        if stmt.args.get("joins"):
            raise ParseError("Joins are not supported")
        if stmt.args.get("group") or stmt.args.get("having"):
            raise ParseError("GROUP BY is not supported")
        if stmt.args.get("distinct") is not None:
            raise ParseError("DISTINCT is not supported")

        table = from_clause.this
        if not isinstance(table, exp.Table):
            raise ParseError("Invalid FROM clause")

        # Parameters are numbered in text order, so the select list goes first.
        select_items = [self._convert_select_item(col) for col in stmt.expressions]

        plan: LogicalPlan = TableScan(table_name=table.name, alias=table.alias or None)

        where = stmt.args.get("where")
        if where is not None:
            plan = Filter(input=plan, predicate=self._convert_expression(where.this))

        # Sorting happens before projection so ORDER BY may use any column.
        order = stmt.args.get("order")
        if order is not None:
            order_items = []
            for expr in order.expressions:
                ascending = True
                if isinstance(expr, exp.Ordered):
                    ascending = not expr.args.get("desc", False)
                    expr = expr.this
                key = self._order_expression(expr, select_items)
                order_items.append(OrderByItem(expr=key, ascending=ascending))
            plan = Sort(input=plan, order_by=order_items)

        limit = stmt.args.get("limit")
        offset = stmt.args.get("offset")
        if limit is not None or offset is not None:
            plan = Limit(
                input=plan,
                count=self._clause_int(limit, "LIMIT") if limit is not None else None,
                offset=self._clause_int(offset, "OFFSET") if offset is not None else 0,
            )

        return Project(input=plan, items=select_items)

    def _order_expression(self, expr: exp.Expression, select_items: list[SelectItem]) -> Expression:
        """Convert an ORDER BY key; an integer literal names a select item."""
        if not (isinstance(expr, exp.Literal) and expr.is_int):
            return self._convert_expression(expr)
        position = int(expr.this)
        if not 1 <= position <= len(select_items):
            raise ParseError(f"ORDER BY position {position} is out of range")
        item = select_items[position - 1]
        if item.is_star:
            raise ParseError("ORDER BY position cannot refer to *")
        return item.expr

    def _clause_int(self, node: exp.Expression, clause: str) -> int:
        """Read the integer literal of a LIMIT or OFFSET clause."""
        value = node.args.get("expression")
        if value is None:
            value = node.this
        if isinstance(value, exp.Literal) and value.is_number:
            try:
                count = int(value.this)
            except ValueError:
                pass
            else:
                if count >= 0:
                    return count
        raise ParseError(f"{clause} requires a non-negative integer literal")

    def _convert_select_item(self, col: exp.Expression) -> SelectItem:
        """Convert a SELECT item."""
        alias = None
        if isinstance(col, exp.Alias):
            alias = col.alias
            col = col.this

        expr = self._convert_expression(col)
        return SelectItem(expr=expr, alias=alias)

    def _convert_expression(self, expr: exp.Expression) -> Expression:
        """Convert a sqlglot expression to our internal representation."""
        if isinstance(expr, exp.Column):
            if isinstance(expr.this, exp.Star):
                return ColumnExpr(column=ColumnRef(name="*"))
            return ColumnExpr(
                column=ColumnRef(name=expr.name, table=expr.table or None)
            )
        elif isinstance(expr, exp.Literal):
            if expr.is_string:
                return LiteralExpr(literal=Literal(value=expr.this))
            try:
                value: Any = int(expr.this)
            except ValueError:
                value = float(expr.this)
            return LiteralExpr(literal=Literal(value=value))
        elif isinstance(expr, exp.Null):
            return LiteralExpr(literal=Literal(value=None))
        elif isinstance(expr, exp.Boolean):
            return LiteralExpr(literal=Literal(value=bool(expr.this)))
        elif isinstance(expr, exp.Placeholder):
            return self._new_parameter(expr)
        elif isinstance(expr, exp.Star):
            return ColumnExpr(column=ColumnRef(name="*"))
        elif isinstance(expr, exp.Paren):
            return self._convert_expression(expr.this)
        elif isinstance(expr, exp.Neg):
            operand = self._convert_expression(expr.this)
            if isinstance(operand, LiteralExpr) and isinstance(operand.literal.value, (int, float)):
                return LiteralExpr(literal=Literal(value=-operand.literal.value))
            return NegateExpr(operand=operand)
        elif isinstance(expr, (exp.EQ, exp.NEQ, exp.LT, exp.LTE, exp.GT, exp.GTE)):
            op_map = {
                exp.EQ: ComparisonOp.EQ,
                exp.NEQ: ComparisonOp.NE,
                exp.LT: ComparisonOp.LT,
                exp.LTE: ComparisonOp.LE,
                exp.GT: ComparisonOp.GT,
                exp.GTE: ComparisonOp.GE,
            }
            left = self._convert_expression(expr.left)
            right = self._convert_expression(expr.right)
            self._type_from_column(left, right)
            return ComparisonExpr(left=left, op=op_map[type(expr)], right=right)
        elif isinstance(expr, (exp.Add, exp.Sub, exp.Mul, exp.Div, exp.Mod)):
            arith_map = {
                exp.Add: ArithmeticOp.ADD,
                exp.Sub: ArithmeticOp.SUB,
                exp.Mul: ArithmeticOp.MUL,
                exp.Div: ArithmeticOp.DIV,
                exp.Mod: ArithmeticOp.MOD,
            }
            left = self._convert_expression(expr.left)
            right = self._convert_expression(expr.right)
            self._type_from_column(left, right)
            return ArithmeticExpr(left=left, op=arith_map[type(expr)], right=right)
        elif isinstance(expr, exp.And):
            return LogicalExpr(
                op=LogicalOp.AND,
                operands=[
                    self._convert_expression(expr.left),
                    self._convert_expression(expr.right),
                ],
            )
        elif isinstance(expr, exp.Or):
            return LogicalExpr(
                op=LogicalOp.OR,
                operands=[
                    self._convert_expression(expr.left),
                    self._convert_expression(expr.right),
                ],
            )
        elif isinstance(expr, exp.Not):
            return LogicalExpr(
                op=LogicalOp.NOT, operands=[self._convert_expression(expr.this)]
            )
        elif isinstance(expr, exp.Is):
            if not isinstance(expr.expression, exp.Null):
                raise ParseError("Only IS NULL / IS NOT NULL are supported")
            return ComparisonExpr(
                left=self._convert_expression(expr.this),
                op=ComparisonOp.IS_NULL,
                right=None,
            )
        elif isinstance(expr, exp.Like):
            left = self._convert_expression(expr.this)
            right = self._convert_expression(expr.expression)
            self._type_from_column(left, right)
            return ComparisonExpr(left=left, op=ComparisonOp.LIKE, right=right)
        elif isinstance(expr, exp.Alias):
            return self._convert_expression(expr.this)
        else:
            raise ParseError(f"Unsupported expression type: {type(expr).__name__}")

    def _new_parameter(self, placeholder: exp.Placeholder) -> ParameterExpr:
        # Placeholder.name reports "?" for positional slots; read the raw arg.
        raw = placeholder.args.get("this")
        name = str(raw) if raw else None
        slot = ParameterSlot(index=len(self._slots), name=name)
        self._slots.append(slot)
        return ParameterExpr(slot=slot)

    @staticmethod
    def _type_from_column(left: Expression, right: Expression) -> None:
        """Attach the column a placeholder is compared with to its slot."""
        if isinstance(left, ParameterExpr) and isinstance(right, ColumnExpr):
            left.slot.column = right.column.name
        elif isinstance(right, ParameterExpr) and isinstance(left, ColumnExpr):
            right.slot.column = left.column.name

    def _convert_insert(self, stmt: exp.Insert) -> LogicalPlan:
        """Convert an INSERT statement to a logical plan."""
        self._reject_returning(stmt)
        if stmt.args.get("alternative") or stmt.args.get("conflict"):
            raise ParseError("INSERT conflict clauses are not supported")

        target = stmt.this
        columns: list[str] = []
        if isinstance(target, exp.Schema):
            columns = [self._identifier_name(col) for col in target.expressions]
            target = target.this
        if not isinstance(target, exp.Table):
            raise ParseError("INSERT requires table name")

        values = stmt.expression
        if not isinstance(values, exp.Values):
            raise ParseError("INSERT supports VALUES lists only")

        values_list = []
        for tuple_expr in values.expressions:
            items = tuple_expr.expressions if isinstance(tuple_expr, exp.Tuple) else [tuple_expr]
            row = []
            for position, val in enumerate(items):
                converted = self._convert_expression(val)
                if isinstance(converted, ParameterExpr) and position < len(columns):
                    converted.slot.column = columns[position]
                elif isinstance(converted, ParameterExpr):
                    # Resolved against the table's column order later.
                    converted.slot.column = f"#{position}"
                row.append(converted)
            values_list.append(row)

        return InsertPlan(table_name=target.name, columns=columns, values=values_list)

    def _convert_update(self, stmt: exp.Update) -> LogicalPlan:
        """Convert an UPDATE statement to a logical plan."""
        self._reject_returning(stmt)
        table = stmt.this
        if not isinstance(table, exp.Table):
            raise ParseError("UPDATE requires table name")

        assignments: dict[str, Expression] = {}
        for eq in stmt.expressions:
            if not isinstance(eq, exp.EQ) or not isinstance(eq.left, exp.Column):
                raise ParseError(f"Unsupported SET clause: {eq.sql()}")
            value = self._convert_expression(eq.right)
            if isinstance(value, ParameterExpr):
                value.slot.column = eq.left.name
            assignments[eq.left.name] = value

        if not assignments:
            raise ParseError("UPDATE requires at least one assignment")

        predicate = None
        where = stmt.args.get("where")
        if where is not None:
            predicate = self._convert_expression(where.this)

        return UpdatePlan(table_name=table.name, assignments=assignments, predicate=predicate)

    def _convert_delete(self, stmt: exp.Delete) -> LogicalPlan:
        """Convert a DELETE statement to a logical plan."""
        self._reject_returning(stmt)
        table = stmt.this
        if not isinstance(table, exp.Table):
            raise ParseError("DELETE requires table name")

        predicate = None
        where = stmt.args.get("where")
        if where is not None:
            predicate = self._convert_expression(where.this)

        return DeletePlan(table_name=table.name, predicate=predicate)

    def _reject_returning(self, stmt: exp.Expression) -> None:
        if stmt.args.get("returning") is not None:
            raise ParseError("RETURNING is not supported")

    def _convert_create(self, stmt: exp.Create) -> LogicalPlan:
        """Convert a CREATE TABLE statement to a logical plan."""
        if str(stmt.args.get("kind", "")).upper() != "TABLE":
            raise ParseError(f"Unsupported CREATE {stmt.args.get('kind')}")

        schema = stmt.this
        if not isinstance(schema, exp.Schema) or not isinstance(schema.this, exp.Table):
            raise ParseError("CREATE TABLE requires a column list")

        columns: dict[str, dict[str, Any]] = {}
        table_pk: list[str] = []
        table_fks: list[tuple[str, ForeignKeyRef]] = []

        for item in schema.expressions:
            if isinstance(item, exp.Constraint):
                parts = item.expressions
            else:
                parts = [item]
            for part in parts:
                if isinstance(part, exp.ColumnDef):
                    columns[part.name] = self._convert_column_def(part)
                elif isinstance(part, exp.PrimaryKey):
                    table_pk.extend(self._identifier_name(e) for e in part.expressions)
                elif isinstance(part, exp.ForeignKey):
                    local = [self._identifier_name(e) for e in part.expressions]
                    refs = self._convert_reference(part.args.get("reference"))
                    if len(local) != 1 or len(refs) != 1:
                        raise ParseError("Only single-column foreign keys are supported")
                    table_fks.append((local[0], refs[0]))
                else:
                    raise ParseError(f"Unsupported table element: {part.sql()}")

        for name in table_pk:
            if name not in columns:
                raise ParseError(f"PRIMARY KEY names unknown column '{name}'")
            columns[name]["primary_key"] = True
        for name, ref in table_fks:
            if name not in columns:
                raise ParseError(f"FOREIGN KEY names unknown column '{name}'")
            columns[name]["references"] = ref

        return CreateTablePlan(
            table_name=schema.this.name,
            columns=[Column(name=name, **attrs) for name, attrs in columns.items()],
            if_not_exists=bool(stmt.args.get("exists", False)),
        )

    def _convert_column_def(self, col_def: exp.ColumnDef) -> dict[str, Any]:
        """Convert a column definition to Column keyword arguments."""
        kind = col_def.args.get("kind")
        attrs: dict[str, Any] = {
            "data_type": self._convert_data_type(kind),
            "nullable": True,
            "primary_key": False,
            "references": None,
            "max_length": None,
        }

        for constraint in col_def.args.get("constraints") or []:
            ckind = constraint.args.get("kind")
            if isinstance(ckind, exp.NotNullColumnConstraint):
                attrs["nullable"] = bool(ckind.args.get("allow_null", False))
            elif isinstance(ckind, exp.PrimaryKeyColumnConstraint):
                attrs["primary_key"] = True
            elif isinstance(ckind, exp.Reference):
                refs = self._convert_reference(ckind)
                if len(refs) != 1:
                    raise ParseError("Only single-column foreign keys are supported")
                attrs["references"] = refs[0]
            else:
                raise ParseError(f"Unsupported column constraint: {constraint.sql()}")

        if attrs["data_type"] == DataType.VARCHAR and kind is not None:
            for param in kind.expressions:
                literal = param.find(exp.Literal)
                if literal is not None and literal.is_number:
                    attrs["max_length"] = int(literal.this)

        return attrs

    def _convert_reference(self, ref: exp.Expression | None) -> list[ForeignKeyRef]:
        """Convert a REFERENCES clause to foreign key targets."""
        if not isinstance(ref, exp.Reference):
            raise ParseError("FOREIGN KEY requires a REFERENCES clause")

        target = ref.this
        names: list[str] = [self._identifier_name(e) for e in ref.expressions]
        if isinstance(target, exp.Schema):
            names = names or [self._identifier_name(e) for e in target.expressions]
            target = target.this
        if not isinstance(target, exp.Table):
            raise ParseError("REFERENCES requires a table name")
        if not names:
            raise ParseError(f"REFERENCES {target.name} must name the referenced column")

        return [ForeignKeyRef(table=target.name, column=name) for name in names]

    @staticmethod
    def _identifier_name(node: exp.Expression) -> str:
        if isinstance(node, exp.Ordered):
            node = node.this
        if isinstance(node, (exp.Identifier, exp.Column)) and node.name:
            return node.name
        raise ParseError(f"Expected a column name, got {node.sql()}")

    def _convert_data_type(self, dtype: exp.DataType | None) -> DataType:
        """Convert a sqlglot data type to our internal representation."""
        if dtype is None:
            return DataType.TEXT

        type_map = {
            "INT": DataType.INTEGER,
            "INTEGER": DataType.INTEGER,
            "SMALLINT": DataType.INTEGER,
            "TINYINT": DataType.INTEGER,
            "BIGINT": DataType.BIGINT,
            "FLOAT": DataType.FLOAT,
            "DOUBLE": DataType.DOUBLE,
            "REAL": DataType.DOUBLE,
            "DECIMAL": DataType.DOUBLE,
            "VARCHAR": DataType.VARCHAR,
            "NVARCHAR": DataType.VARCHAR,
            "CHAR": DataType.VARCHAR,
            "TEXT": DataType.TEXT,
            "BOOLEAN": DataType.BOOLEAN,
            "BOOL": DataType.BOOLEAN,
            "TIMESTAMP": DataType.TIMESTAMP,
            "DATETIME": DataType.TIMESTAMP,
            "BLOB": DataType.BLOB,
            "BINARY": DataType.BLOB,
            "VARBINARY": DataType.BLOB,
        }

        # dtype.this is a DataType.Type enum, we need its name
        if hasattr(dtype.this, "name"):
            type_name = dtype.this.name.upper()
        else:
            type_name = str(dtype.this).upper() if dtype.this else "TEXT"
        return type_map.get(type_name, DataType.TEXT)

    def _convert_drop(self, stmt: exp.Drop) -> LogicalPlan:
        """Convert a DROP TABLE statement to a logical plan."""
        if str(stmt.args.get("kind", "")).upper() != "TABLE":
            raise ParseError(f"Unsupported DROP {stmt.args.get('kind')}")

        tables = stmt.args.get("tables") or []
        if len(tables) > 1:
            raise ParseError("DROP TABLE supports one table at a time")
        table = tables[0] if tables else stmt.this
        if not isinstance(table, exp.Table):
            raise ParseError("DROP TABLE requires table name")

        return DropTablePlan(table_name=table.name, if_exists=bool(stmt.args.get("exists", False)))
