"""
SAT Oracle Adapter — incremental solving under assumptions

The oracle is an external PySAT solver. The core only adds clauses and
solves under temporary assumption literals; it never deletes a clause.
Two consequences shape everything built on top:

- Constraints that may need to disappear later are written as
  ``¬selector ∨ clause`` and enabled by assuming ``selector``. Retiring
  them means adding the unit clause ``¬selector``.
- Query-local clauses (blocking clauses, extremal steps) live in an
  ``OracleScope`` whose selector is retired when the query ends.

A per-query wall-clock budget is enforced by a watchdog timer that asks
the solver to stop at its next checkpoint. An interrupted call raises
``OracleExhausted``; the solver itself stays usable.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from pysat.solvers import Solver

from .errors import OracleExhausted
from .literals import LiteralMapper

logger = logging.getLogger("argsat.oracle")

# ── Configuration ────────────────────────────────────────────────

DEFAULT_SOLVER = "glucose4"


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    value = int(raw)
    return value if value > 0 else None


@dataclass
class OracleSettings:
    """Solver backend and per-query resource budget."""
    solver: str = DEFAULT_SOLVER
    query_timeout: Optional[float] = None   # seconds, None = unlimited
    conflict_budget: Optional[int] = None   # per solve call

    @classmethod
    def from_env(cls) -> "OracleSettings":
        return cls(
            solver=os.environ.get("ARGSAT_SAT_SOLVER", DEFAULT_SOLVER),
            query_timeout=_env_float("ARGSAT_QUERY_TIMEOUT"),
            conflict_budget=_env_int("ARGSAT_CONFLICT_BUDGET"),
        )

    def deadline(self) -> Optional[float]:
        """Absolute monotonic deadline for a query starting now."""
        if self.query_timeout is None:
            return None
        return time.monotonic() + self.query_timeout


# ── Models ───────────────────────────────────────────────────────

class Model:
    """A satisfying assignment; variables the solver never saw read false."""

    __slots__ = ("_true",)

    def __init__(self, literals: Iterable[int]):
        self._true = frozenset(lit for lit in literals if lit > 0)

    def holds(self, var: int) -> bool:
        return var in self._true

    def true_among(self, variables: Iterable[int]) -> list[int]:
        return [v for v in variables if v in self._true]

    def false_among(self, variables: Iterable[int]) -> list[int]:
        return [v for v in variables if v not in self._true]


# ── Oracle ───────────────────────────────────────────────────────

@dataclass
class OracleStats:
    calls: int = 0
    clauses: int = 0
    interrupted: int = 0
    solve_seconds: float = 0.0


class SatOracle:
    """
    Thin adapter over one live ``pysat.solvers.Solver``.

    The adapter owns the solver for the lifetime of a session; call
    ``close()`` to release the native resources.
    """

    def __init__(self, settings: OracleSettings | None = None):
        self.settings = settings or OracleSettings()
        self._solver = Solver(name=self.settings.solver)
        self.stats = OracleStats()
        logger.debug(f"Oracle started ({self.settings.solver})")

    def add_clause(self, clause: Sequence[int]) -> None:
        self._solver.add_clause(list(clause))
        self.stats.clauses += 1

    def add_clauses(self, clauses: Iterable[Sequence[int]]) -> int:
        n = 0
        for clause in clauses:
            self.add_clause(clause)
            n += 1
        return n

    def solve(self, assumptions: Sequence[int] = (),
              deadline: Optional[float] = None) -> Optional[Model]:
        """
        Solve under ``assumptions``.

        Returns the model, or None if unsatisfiable. Raises
        ``OracleExhausted`` when the deadline passes or the conflict
        budget runs out before the solver decides.
        """
        self.stats.calls += 1
        assumptions = list(assumptions)
        budget = self.settings.conflict_budget
        start = time.perf_counter()

        if deadline is None and budget is None:
            status = self._solver.solve(assumptions=assumptions)
        else:
            status = self._solve_limited(assumptions, deadline, budget)

        elapsed = time.perf_counter() - start
        self.stats.solve_seconds += elapsed
        logger.debug(
            f"solve #{self.stats.calls}: {len(assumptions)} assumptions -> "
            f"{'SAT' if status else 'UNSAT'} in {elapsed * 1000:.2f}ms"
        )
        if not status:
            return None
        return Model(self._solver.get_model() or ())

    def _solve_limited(self, assumptions: list[int],
                       deadline: Optional[float],
                       budget: Optional[int]) -> bool:
        watchdog = None
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.stats.interrupted += 1
                raise OracleExhausted("query deadline passed", self.stats.calls)
            watchdog = threading.Timer(remaining, self._solver.interrupt)
            watchdog.daemon = True
            watchdog.start()
        if budget is not None:
            self._solver.conf_budget(budget)
        try:
            status = self._solver.solve_limited(
                assumptions=assumptions,
                expect_interrupt=watchdog is not None,
            )
        finally:
            if watchdog is not None:
                watchdog.cancel()
                self._solver.clear_interrupt()
        if status is None:
            self.stats.interrupted += 1
            logger.warning(f"solve #{self.stats.calls} interrupted")
            raise OracleExhausted("oracle stopped before deciding", self.stats.calls)
        return status

    @property
    def n_vars(self) -> int:
        return self._solver.nof_vars()

    @property
    def n_clauses(self) -> int:
        return self._solver.nof_clauses()

    def close(self) -> None:
        if self._solver is not None:
            self._solver.delete()
            self._solver = None


# ── Query Scopes ─────────────────────────────────────────────────

@dataclass
class OracleScope:
    """
    Clause area owned by one query.

    Every clause added through ``block`` is gated by the scope selector,
    which is assumed on each solve of the scope. ``close`` retires the
    selector so later queries see none of these clauses.
    """
    oracle: SatOracle
    mapper: LiteralMapper
    assumptions: list[int]
    deadline: Optional[float] = None
    selector: int = 0
    _engaged: bool = field(default=False, repr=False)
    _closed: bool = field(default=False, repr=False)

    def __post_init__(self):
        if not self.selector:
            self.selector = self.mapper.fresh()

    def solve(self, extra: Sequence[int] = ()) -> Optional[Model]:
        assumptions = list(self.assumptions)
        if self._engaged:
            assumptions.append(self.selector)
        assumptions.extend(extra)
        return self.oracle.solve(assumptions, self.deadline)

    def block(self, clause: Sequence[int]) -> None:
        """Add a clause that holds for the rest of this query only."""
        self.oracle.add_clause([-self.selector, *clause])
        self._engaged = True

    def step(self, clause: Sequence[int]) -> int:
        """
        Add a one-shot clause behind a fresh selector and return it.
        The caller assumes the selector for one solve, then retires it.
        """
        selector = self.mapper.fresh()
        self.oracle.add_clause([-selector, *clause])
        return selector

    def retire(self, selector: int) -> None:
        self.oracle.add_clause([-selector])

    def child(self, extra_assumptions: Sequence[int] = ()) -> "OracleScope":
        """A nested scope sharing this scope's clauses."""
        assumptions = list(self.assumptions)
        if self._engaged:
            assumptions.append(self.selector)
        assumptions.extend(extra_assumptions)
        return OracleScope(self.oracle, self.mapper, assumptions, self.deadline)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._engaged:
            self.retire(self.selector)

    def __enter__(self) -> "OracleScope":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
