"""
Error kinds raised by the argumentation core.

Structural problems are rejected before any clause reaches the oracle.
Oracle failures abort only the query in flight; the owning session stays
usable and its previous answers stay valid.
"""

from __future__ import annotations


class ArgumentationError(Exception):
    """Base class for every error raised by argsat."""


class MalformedFramework(ArgumentationError):
    """An attack or query references an argument that is not live,
    or an instance file cannot be read."""


class UnsupportedQuery(ArgumentationError):
    """The semantics/task combination is not routed by the dispatcher."""


class OracleExhausted(ArgumentationError):
    """The SAT oracle did not decide within its time or conflict budget."""

    def __init__(self, message: str = "oracle exhausted its budget",
                 calls: int = 0):
        super().__init__(message)
        self.calls = calls


class SessionBusy(ArgumentationError):
    """A second query reached a session while another one is in flight."""
