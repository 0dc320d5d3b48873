"""
Extremal Search — ⊆-maximal / ⊆-minimal models over a target set

The oracle only decides satisfiability, so set-inclusion extremality is
an iterative refinement:

    1. solve the base; S = true targets of the model
    2. assume S and require one more target to become true
    3. re-solve; stop at UNSAT, the last S is ⊆-maximal

Minimization is symmetric. Step clauses are one-shot: each sits behind
its own selector, retired right after its solve.

Preferred, semi-stable and stage extensions are maxima of this search
(over ``in`` or range variables). The ideal extension is a two-phase
search: intersect all preferred extensions, then find the largest
admissible set inside the intersection.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, Optional, Sequence

from .encoder import Base, SemanticsEncoder, Target
from .oracle import Model, OracleScope

logger = logging.getLogger("argsat.extremal")


class Direction(str, Enum):
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"


class ExtremalSearch:
    """
    Set-inclusion optimization of ``targets`` inside one query scope.

    ``extra`` literals are assumed on every solve, on top of the scope's
    own assumptions.
    """

    def __init__(self, scope: OracleScope, targets: Sequence[int],
                 direction: Direction = Direction.MAXIMIZE,
                 extra: Sequence[int] = ()):
        self.scope = scope
        self.targets = list(targets)
        self.direction = direction
        self.extra = list(extra)
        self.improvements = 0

    def steps(self, start: Model) -> Iterator[tuple[Model, bool]]:
        """
        Yield every model visited from ``start``, each flagged False, then
        the extremal one again flagged True.

        No step clause is pending while the caller holds a yielded model,
        so the caller may stop iterating at any point.
        """
        current = start
        while True:
            yield current, False
            if self.direction is Direction.MAXIMIZE:
                kept = current.true_among(self.targets)
                open_ = current.false_among(self.targets)
                fixed = kept
                improve = open_
            else:
                kept = current.false_among(self.targets)
                open_ = current.true_among(self.targets)
                fixed = [-t for t in kept]
                improve = [-t for t in open_]
            if not open_:
                break
            selector = self.scope.step(improve)
            try:
                nxt = self.scope.solve([*self.extra, *fixed, selector])
            finally:
                self.scope.retire(selector)
            if nxt is None:
                break
            current = nxt
            self.improvements += 1
        yield current, True

    def climb(self, start: Model) -> Model:
        model = start
        for model, _ in self.steps(start):
            pass
        return model

    def run(self) -> Optional[Model]:
        """One extremal model, or None when the base has no model at all."""
        start = self.scope.solve(self.extra)
        if start is None:
            return None
        return self.climb(start)

    def exclusion_clause(self, model: Model) -> list[int]:
        """
        Clause ruling out ``model`` and everything it dominates: for a
        maximum, every subset of its targets; for a minimum, every superset.
        """
        if self.direction is Direction.MAXIMIZE:
            return model.false_among(self.targets)
        return [-t for t in model.true_among(self.targets)]

    def extrema(self) -> Iterator[Model]:
        """
        Yield pairwise incomparable extremal models until none is left.

        After each extremum the scope is blocked from re-deriving it or
        anything it dominates; the next search restarts from a fresh
        model of the remaining space.
        """
        while True:
            model = self.run()
            if model is None:
                return
            clause = self.exclusion_clause(model)
            if clause:
                self.scope.block(clause)
            yield model
            if not clause:
                return


def range_fixing(encoder: SemanticsEncoder, model: Model) -> list[int]:
    """Assumptions pinning the range of every live argument to ``model``'s."""
    return [
        var if model.holds(var) else -var
        for var in encoder.targets(Target.RANGE)
    ]


def ideal_extension(encoder: SemanticsEncoder, grounded: frozenset[str],
                    deadline: Optional[float] = None) -> frozenset[str]:
    """
    The ⊆-maximal admissible set contained in every preferred extension.

    ``grounded`` is a lower bound: once the running intersection of
    preferred extensions shrinks to it, the ideal extension is known.
    """
    candidates = set(encoder.af.arg_ids)
    with encoder.scope(Base.COMPLETE, deadline) as scope:
        search = ExtremalSearch(scope, encoder.targets(Target.ACCEPTED))
        for n, model in enumerate(search.extrema(), start=1):
            candidates &= encoder.decode(model)
            if candidates <= grounded:
                logger.debug(f"Ideal: intersection reached grounded after {n} preferred")
                return grounded

    outside = encoder.af.arg_ids - candidates
    excluded = [-encoder.mapper.accepted(a) for a in sorted(outside)]
    with encoder.scope(Base.ADMISSIBLE, deadline, excluded) as scope:
        search = ExtremalSearch(scope, encoder.targets(Target.ACCEPTED, candidates))
        # the empty set is always admissible
        model = search.run()
    return encoder.decode(model)
