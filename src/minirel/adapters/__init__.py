"""Adapters layer - concrete implementations of port interfaces.

Inbound adapters turn incoming requests (SQL text) into the statements
the application layer executes.
"""

from minirel.adapters.inbound import SQLParser, Statement, StatementKind

__all__ = [
    "SQLParser",
    "Statement",
    "StatementKind",
]
