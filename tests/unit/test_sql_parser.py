"""Unit tests for SQL Parser."""

from __future__ import annotations

import pytest

from minirel.adapters.inbound import (
    ArithmeticExpr,
    ArithmeticOp,
    ColumnExpr,
    ComparisonExpr,
    ComparisonOp,
    CreateTablePlan,
    DeletePlan,
    DropTablePlan,
    Filter,
    InsertPlan,
    Limit,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    ParameterExpr,
    Project,
    Sort,
    SQLParser,
    StatementKind,
    TableScan,
    TransactionAction,
    TransactionPlan,
    UpdatePlan,
)
from minirel.domain.entities import DataType, ForeignKeyRef
from minirel.domain.errors import ParseError, StatementError, UnboundParameterError


@pytest.fixture
def parser() -> SQLParser:
    """Create a SQL parser for testing."""
    return SQLParser()


@pytest.mark.unit
class TestSQLParserSelect:
    """Tests for SELECT statement parsing."""

    def test_simple_select(self, parser: SQLParser) -> None:
        """Parse simple SELECT."""
        stmt = parser.parse("SELECT id, name FROM users")

        assert stmt.kind == StatementKind.SELECT
        assert isinstance(stmt.plan, Project)
        assert len(stmt.plan.items) == 2
        assert isinstance(stmt.plan.input, TableScan)
        assert stmt.plan.input.table_name == "users"
        assert stmt.table_name == "users"

    def test_select_star(self, parser: SQLParser) -> None:
        """Parse SELECT *."""
        plan = parser.parse("SELECT * FROM users").plan

        assert isinstance(plan, Project)
        assert len(plan.items) == 1
        assert plan.items[0].is_star

    def test_select_with_where(self, parser: SQLParser) -> None:
        """Parse SELECT with WHERE clause."""
        plan = parser.parse("SELECT * FROM users WHERE age > 18").plan

        assert isinstance(plan.input, Filter)
        predicate = plan.input.predicate
        assert isinstance(predicate, ComparisonExpr)
        assert predicate.op == ComparisonOp.GT
        assert isinstance(predicate.left, ColumnExpr)
        assert isinstance(predicate.right, LiteralExpr)
        assert predicate.right.literal.value == 18

    def test_select_with_and_or(self, parser: SQLParser) -> None:
        """Parse compound predicates."""
        plan = parser.parse(
            "SELECT * FROM users WHERE age > 18 AND (name = 'Neha' OR name IS NULL)"
        ).plan

        predicate = plan.input.predicate
        assert isinstance(predicate, LogicalExpr)
        assert predicate.op == LogicalOp.AND
        inner = predicate.operands[1]
        assert isinstance(inner, LogicalExpr)
        assert inner.op == LogicalOp.OR
        assert inner.operands[1].op == ComparisonOp.IS_NULL

    def test_is_not_null(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT * FROM users WHERE name IS NOT NULL").plan

        predicate = plan.input.predicate
        assert isinstance(predicate, LogicalExpr)
        assert predicate.op == LogicalOp.NOT

    def test_order_by_sorts_before_projection(self, parser: SQLParser) -> None:
        """ORDER BY may use columns that are not projected."""
        plan = parser.parse("SELECT name FROM users ORDER BY age DESC, id").plan

        assert isinstance(plan, Project)
        assert isinstance(plan.input, Sort)
        order = plan.input.order_by
        assert [item.ascending for item in order] == [False, True]
        assert order[0].expr.column.name == "age"

    def test_limit_offset(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT * FROM users LIMIT 10 OFFSET 5").plan

        assert isinstance(plan.input, Limit)
        assert plan.input.count == 10
        assert plan.input.offset == 5

    def test_alias(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT firstName AS name FROM users").plan

        assert plan.items[0].output_name == "name"

    def test_arithmetic_and_negation(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT balance * 2 FROM accounts WHERE balance > -5").plan

        item = plan.items[0].expr
        assert isinstance(item, ArithmeticExpr)
        assert item.op == ArithmeticOp.MUL
        assert plan.input.predicate.right.literal.value == -5

    def test_select_without_from(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT 1")

    def test_joins_unsupported(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT * FROM a JOIN b ON a.id = b.id")

    def test_aggregates_unsupported(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT COUNT(*) FROM users")

    def test_distinct_unsupported(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT DISTINCT age FROM users")

    def test_order_by_position(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT id, age + 1 AS next_age FROM users ORDER BY 2 DESC").plan

        sort = plan.input
        assert isinstance(sort, Sort)
        assert sort.order_by[0].expr is plan.items[1].expr
        assert not sort.order_by[0].ascending

    @pytest.mark.parametrize(
        "sql", ["SELECT id FROM users ORDER BY 2", "SELECT * FROM users ORDER BY 1"]
    )
    def test_order_by_bad_position(self, parser: SQLParser, sql: str) -> None:
        with pytest.raises(ParseError):
            parser.parse(sql)

    def test_parameters_numbered_in_text_order(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT age + ? FROM users WHERE id = ?")

        assert stmt.plan.items[0].expr.right.slot.index == 0
        assert stmt.plan.input.predicate.right.slot.index == 1


@pytest.mark.unit
class TestSQLParserWrites:
    """Tests for INSERT, UPDATE and DELETE."""

    def test_insert_with_columns(self, parser: SQLParser) -> None:
        stmt = parser.parse("INSERT INTO users (id, name) VALUES (1, 'Alice'), (2, 'Bob')")

        assert stmt.kind == StatementKind.INSERT
        assert isinstance(stmt.plan, InsertPlan)
        assert stmt.plan.table_name == "users"
        assert stmt.plan.columns == ["id", "name"]
        assert len(stmt.plan.values) == 2
        assert stmt.plan.values[1][1].literal.value == "Bob"

    def test_insert_without_columns(self, parser: SQLParser) -> None:
        plan = parser.parse("INSERT INTO users VALUES (1, NULL, TRUE)").plan

        assert plan.columns == []
        assert [v.literal.value for v in plan.values[0]] == [1, None, True]

    def test_update(self, parser: SQLParser) -> None:
        stmt = parser.parse("UPDATE accounts SET balance = balance - 30 WHERE id = 1")

        assert stmt.kind == StatementKind.UPDATE
        assert isinstance(stmt.plan, UpdatePlan)
        assert isinstance(stmt.plan.assignments["balance"], ArithmeticExpr)
        assert stmt.plan.predicate.op == ComparisonOp.EQ

    def test_delete(self, parser: SQLParser) -> None:
        stmt = parser.parse("DELETE FROM users WHERE id <> 3")

        assert stmt.kind == StatementKind.DELETE
        assert isinstance(stmt.plan, DeletePlan)
        assert stmt.plan.predicate.op == ComparisonOp.NE

    def test_delete_all(self, parser: SQLParser) -> None:
        plan = parser.parse("DELETE FROM users").plan
        assert plan.predicate is None


@pytest.mark.unit
class TestSQLParserDDL:
    """Tests for CREATE TABLE and DROP TABLE."""

    def test_create_table(self, parser: SQLParser) -> None:
        stmt = parser.parse(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(100) NOT NULL, "
            "active BOOLEAN)"
        )

        assert stmt.kind == StatementKind.DDL
        plan = stmt.plan
        assert isinstance(plan, CreateTablePlan)
        assert plan.table_name == "users"
        id_col, name_col, active_col = plan.columns
        assert id_col.primary_key and id_col.data_type == DataType.INTEGER
        assert name_col.data_type == DataType.VARCHAR
        assert name_col.max_length == 100
        assert not name_col.nullable
        assert active_col.data_type == DataType.BOOLEAN
        assert active_col.nullable

    def test_create_table_with_references(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "CREATE TABLE accounts (id INTEGER PRIMARY KEY, "
            "owner INTEGER REFERENCES users(id), balance INTEGER NOT NULL)"
        ).plan

        assert plan.columns[1].references == ForeignKeyRef("users", "id")

    def test_table_level_keys(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "CREATE TABLE membership (user_id INTEGER, group_id INTEGER, "
            "PRIMARY KEY (user_id, group_id), "
            "FOREIGN KEY (user_id) REFERENCES users(id))"
        ).plan

        assert [c.primary_key for c in plan.columns] == [True, True]
        assert plan.columns[0].references == ForeignKeyRef("users", "id")

    def test_create_if_not_exists(self, parser: SQLParser) -> None:
        plan = parser.parse("CREATE TABLE IF NOT EXISTS t (id INTEGER PRIMARY KEY)").plan
        assert plan.if_not_exists

    def test_drop_table(self, parser: SQLParser) -> None:
        stmt = parser.parse("DROP TABLE IF EXISTS users")

        assert stmt.kind == StatementKind.DDL
        assert isinstance(stmt.plan, DropTablePlan)
        assert stmt.plan.if_exists
        assert stmt.plan.table_name == "users"

    def test_create_index_unsupported(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("CREATE INDEX idx ON users (id)")


@pytest.mark.unit
class TestSQLParserTransactions:
    """Tests for transaction control."""

    @pytest.mark.parametrize(
        "sql,action",
        [
            ("BEGIN", TransactionAction.BEGIN),
            ("BEGIN TRANSACTION", TransactionAction.BEGIN),
            ("COMMIT", TransactionAction.COMMIT),
            ("ROLLBACK", TransactionAction.ROLLBACK),
        ],
    )
    def test_transaction_statements(
        self, parser: SQLParser, sql: str, action: TransactionAction
    ) -> None:
        stmt = parser.parse(sql)

        assert stmt.kind == StatementKind.TRANSACTION
        assert isinstance(stmt.plan, TransactionPlan)
        assert stmt.plan.action == action


@pytest.mark.unit
class TestSQLParserParameters:
    """Tests for placeholders and binding."""

    def test_positional_slots(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE age > ? AND name = ?")

        assert stmt.parameter_count == 2
        assert not stmt.uses_named_parameters
        assert [s.label for s in stmt.parameters] == ["?1", "?2"]
        assert [s.column for s in stmt.parameters] == ["age", "name"]
        assert all(s.table == "users" for s in stmt.parameters)

    def test_named_slots(self, parser: SQLParser) -> None:
        stmt = parser.parse("UPDATE users SET name = :name WHERE id = :id")

        assert stmt.uses_named_parameters
        assert [s.label for s in stmt.parameters] == [":name", ":id"]
        assert isinstance(stmt.plan.assignments["name"], ParameterExpr)

    def test_insert_slots_follow_column_order(self, parser: SQLParser) -> None:
        stmt = parser.parse("INSERT INTO users VALUES (?, ?)")

        assert [s.column for s in stmt.parameters] == ["#0", "#1"]

    def test_mixed_styles_rejected(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT * FROM users WHERE id = ? AND name = :name")

    def test_bind_positional(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE id = ? AND name = ?")

        assert stmt.bind([1, "Neha"]) == (1, "Neha")

    def test_bind_missing_positional(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE id = ? AND name = ?")

        with pytest.raises(UnboundParameterError) as exc_info:
            stmt.bind([1])
        assert exc_info.value.missing == ["?2"]

    def test_bind_too_many(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE id = ?")

        with pytest.raises(StatementError):
            stmt.bind([1, 2])

    def test_bind_named(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE id = :id OR id = :id")

        assert stmt.bind({"id": 7}) == (7, 7)
        with pytest.raises(UnboundParameterError):
            stmt.bind({})
        with pytest.raises(StatementError):
            stmt.bind([7])

    def test_no_parameters(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users")

        assert stmt.bind() == ()
        with pytest.raises(StatementError):
            stmt.bind([1])


@pytest.mark.unit
class TestSQLParserErrors:
    """Tests for malformed input."""

    def test_syntax_error(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("INSERT INTO users VALUES (1, 'a'")

    def test_empty(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("")

    def test_multiple_statements(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("SELECT * FROM a; SELECT * FROM b")

    @pytest.mark.parametrize(
        "sql",
        [
            "INSERT INTO users VALUES (1, 'a') RETURNING id",
            "UPDATE users SET name = 'b' WHERE id = 1 RETURNING id",
            "DELETE FROM users WHERE id = 1 RETURNING id",
        ],
    )
    def test_returning_unsupported(self, parser: SQLParser, sql: str) -> None:
        with pytest.raises(ParseError):
            parser.parse(sql)
