"""Inbound adapters for minirel.

Inbound adapters handle incoming requests and convert them to
internal domain operations.

Exports:
    SQL Parser:
        - SQLParser: Parser that converts SQL strings to statements
        - Statement: Kind, logical plan and parameter slots
        - LogicalPlan: Base class for all logical plan nodes
"""

from minirel.adapters.inbound.sql_parser import (
    ArithmeticExpr,
    ArithmeticOp,
    ColumnExpr,
    ColumnRef,
    ComparisonExpr,
    ComparisonOp,
    CreateTablePlan,
    DeletePlan,
    DropTablePlan,
    Expression,
    Filter,
    InsertPlan,
    Limit,
    Literal,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    LogicalPlan,
    NegateExpr,
    OrderByItem,
    ParameterExpr,
    ParameterSlot,
    Project,
    SelectItem,
    Sort,
    SQLParser,
    Statement,
    StatementKind,
    TableScan,
    TransactionAction,
    TransactionPlan,
    UpdatePlan,
)

__all__ = [
    # SQL Parser
    "SQLParser",
    "Statement",
    "ParameterSlot",
    # Types
    "StatementKind",
    "TransactionAction",
    "ComparisonOp",
    "LogicalOp",
    "ArithmeticOp",
    # Expressions
    "Expression",
    "ColumnRef",
    "ColumnExpr",
    "Literal",
    "LiteralExpr",
    "ParameterExpr",
    "ComparisonExpr",
    "LogicalExpr",
    "ArithmeticExpr",
    "NegateExpr",
    "SelectItem",
    "OrderByItem",
    # Logical Plans
    "LogicalPlan",
    "TableScan",
    "Filter",
    "Project",
    "Sort",
    "Limit",
    "InsertPlan",
    "UpdatePlan",
    "DeletePlan",
    "CreateTablePlan",
    "DropTablePlan",
    "TransactionPlan",
]
