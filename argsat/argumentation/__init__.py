"""Argumentation core — SAT-based reasoning over dynamic Dung frameworks."""
from .engine import ArgumentationEngine, replay
from .errors import (
    ArgumentationError,
    MalformedFramework,
    OracleExhausted,
    SessionBusy,
    UnsupportedQuery,
)
from .grounded import grounded_extension
from .iccma import parse_problem, read_framework
from .models import (
    ArgumentationFramework,
    Extension,
    Mutation,
    MutationKind,
    Query,
    QueryResult,
    ResultStatus,
    Semantics,
    Task,
)
from .oracle import OracleSettings
from .session import Session

__all__ = [
    "ArgumentationEngine",
    "replay",
    "ArgumentationError",
    "MalformedFramework",
    "OracleExhausted",
    "SessionBusy",
    "UnsupportedQuery",
    "grounded_extension",
    "parse_problem",
    "read_framework",
    "ArgumentationFramework",
    "Extension",
    "Mutation",
    "MutationKind",
    "Query",
    "QueryResult",
    "ResultStatus",
    "Semantics",
    "Task",
    "OracleSettings",
    "Session",
]
