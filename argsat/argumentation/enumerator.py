"""
Enumerator — every extension exactly once

Solve, yield, block, repeat. What gets blocked depends on how the
semantics is defined:

- complete / stable: the exact in-assignment just found;
- preferred: every subset of the maximal set just found, so the search
  never re-derives a non-maximal part of a known extension;
- semi-stable / stage: extensions are grouped by their maximal range R.
  Every extension whose range is exactly R is enumerated under the
  assumption "range = R", then every range ⊆ R is blocked. Distinct
  extensions may share a range, so blocking by range alone would lose
  some of them;
- grounded / ideal: the unique extension.

The loop terminates: the space is finite and each round permanently
excludes at least one model for the rest of the query.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from .encoder import PROFILES, SemanticsEncoder, Target
from .extremal import ExtremalSearch, ideal_extension, range_fixing
from .grounded import grounded_extension
from .models import Extension, Semantics
from .oracle import Model, OracleScope

logger = logging.getLogger("argsat.enumerator")


class Enumerator:
    """Lazy, duplicate-free enumeration of the extensions of one semantics."""

    def __init__(self, encoder: SemanticsEncoder, semantics: Semantics,
                 deadline: Optional[float] = None):
        self.encoder = encoder
        self.semantics = semantics
        self.deadline = deadline
        self.count = 0

    def __iter__(self) -> Iterator[Extension]:
        if self.semantics is Semantics.GROUNDED:
            yield self._emit(grounded_extension(self.encoder.af).arguments)
            return
        if self.semantics is Semantics.IDEAL:
            grounded = grounded_extension(self.encoder.af).arguments
            yield self._emit(ideal_extension(self.encoder, grounded, self.deadline))
            return

        profile = PROFILES[self.semantics]
        with self.encoder.scope(profile.base, self.deadline) as scope:
            if profile.target is None:
                models = models_of(scope, self.encoder)
            elif profile.target is Target.ACCEPTED:
                models = ExtremalSearch(
                    scope, self.encoder.targets(Target.ACCEPTED)
                ).extrema()
            else:
                models = range_groups(scope, self.encoder)
            for model in models:
                yield self._emit(self.encoder.decode(model))
        logger.debug(f"Enumerated {self.count} {self.semantics.value} extension(s)")

    def _emit(self, arguments: frozenset[str]) -> Extension:
        self.count += 1
        return Extension(arguments=arguments, semantics=self.semantics)


def models_of(scope: OracleScope, encoder: SemanticsEncoder) -> Iterator[Model]:
    """Every model of the scope, one per distinct in-assignment."""
    while True:
        model = scope.solve()
        if model is None:
            return
        scope.block(encoder.difference_clause(encoder.decode(model)))
        yield model


def maximal_ranges(scope: OracleScope, encoder: SemanticsEncoder) -> Iterator[Model]:
    """
    One model per ⊆-maximal range.

    The range of a yielded witness stays reachable while the caller holds
    it; ranges at or below it are blocked only when iteration resumes.
    """
    search = ExtremalSearch(scope, encoder.targets(Target.RANGE))
    while True:
        witness = search.run()
        if witness is None:
            return
        yield witness
        clause = search.exclusion_clause(witness)
        if not clause:
            return
        scope.block(clause)


def range_groups(scope: OracleScope, encoder: SemanticsEncoder) -> Iterator[Model]:
    """Every model whose range is ⊆-maximal, grouped by range."""
    for witness in maximal_ranges(scope, encoder):
        with scope.child(range_fixing(encoder, witness)) as group:
            yield from models_of(group, encoder)


def first_in_range_group(scope: OracleScope, encoder: SemanticsEncoder,
                         accept: Callable[[Model], list[int]]) -> Optional[Model]:
    """
    Walk maximal ranges and return the first model, inside some group,
    that also satisfies the literals ``accept(witness)`` returns.
    """
    for witness in maximal_ranges(scope, encoder):
        model = scope.solve([*range_fixing(encoder, witness), *accept(witness)])
        if model is not None:
            return model
    return None
