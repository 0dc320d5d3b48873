"""
Argumentation Engine — query dispatch over a dynamic session

Routes a (semantics, task) pair to the component that answers it:

- Grounded: direct fixpoint, no oracle. Complete skeptical acceptance
  is grounded membership as well.
- Complete / Stable: one oracle call per answer; enumeration blocks
  each model found.
- Preferred: extremal search over ``in`` variables. Credulous acceptance
  is a single call (every admissible set extends to a preferred one);
  skeptical acceptance walks the maxima until one lacks the argument.
- Semi-stable / Stage: extremal search over range variables, with
  acceptance decided inside maximal range groups.
- Ideal: two-phase search, then membership.

The engine is the failure boundary: ``solve()`` turns an exhausted
oracle into a timeout result and leaves the session intact. Structural
errors surface before any oracle work.

Computational complexity:
- Grounded: polynomial
- Complete / Stable / Preferred credulous: NP
- Preferred / Semi-stable / Stage skeptical: Π₂ᵖ, several oracle calls
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, Optional

from .encoder import Base, Target
from .enumerator import Enumerator, first_in_range_group
from .errors import MalformedFramework, OracleExhausted, UnsupportedQuery
from .extremal import ExtremalSearch, ideal_extension
from .grounded import grounded_extension
from .models import (
    ArgumentationFramework,
    Extension,
    Mutation,
    Query,
    QueryResult,
    ResultStatus,
    Semantics,
    Task,
)
from .oracle import OracleSettings
from .session import Session

logger = logging.getLogger("argsat.engine")


class ArgumentationEngine:
    """
    Query dispatcher bound to one session.

    Answers are cached per session revision, so the same query asked
    twice without a mutation in between returns the same answer.
    """

    def __init__(self, session: Session | None = None,
                 framework: ArgumentationFramework | None = None,
                 settings: OracleSettings | None = None):
        self.session = session if session is not None else Session(framework, settings)

    @property
    def af(self) -> ArgumentationFramework:
        return self.session.af

    @property
    def encoder(self):
        return self.session.encoder

    # ── Public API ──────────────────────────────────────────────

    def compute_one(self, semantics: Semantics) -> Optional[Extension]:
        """One extension, or None when the semantics has none (stable only)."""
        query = Query(Semantics(semantics), Task.COMPUTE_ONE)
        return self._answer(query, self._compute_one)

    def is_credulously_accepted(self, semantics: Semantics, arg: str) -> bool:
        query = Query(Semantics(semantics), Task.DECIDE_CREDULOUS, arg)
        return self._answer(query, self._credulous)

    def is_skeptically_accepted(self, semantics: Semantics, arg: str) -> bool:
        query = Query(Semantics(semantics), Task.DECIDE_SKEPTICAL, arg)
        return self._answer(query, self._skeptical)

    def enumerate(self, semantics: Semantics) -> Iterator[Extension]:
        """
        Lazy, finite, non-restartable sequence of all extensions.

        The session is held from the first ``next()`` until the sequence
        is exhausted or closed.
        """
        semantics = Semantics(semantics)

        def run() -> Iterator[Extension]:
            with self.session.exclusive():
                deadline = self.session.settings.deadline()
                yield from Enumerator(self.encoder, semantics, deadline)

        return run()

    def solve(self, query: Query, materialize: bool = False) -> QueryResult:
        """
        Answer ``query`` and report the outcome.

        Enumeration results stay lazy unless ``materialize`` is set; only
        a materialized enumeration can report a timeout here.
        """
        query = self._check(query)
        start = time.perf_counter()
        calls = self.session.oracle.stats.calls
        result = QueryResult(query=query)
        try:
            if query.task is Task.COMPUTE_ONE:
                result.extension = self.compute_one(query.semantics)
                if result.extension is None:
                    result.status = ResultStatus.NO_EXTENSION
            elif query.task is Task.ENUMERATE_ALL:
                extensions = self.enumerate(query.semantics)
                result.extensions = list(extensions) if materialize else extensions
            elif query.task is Task.DECIDE_CREDULOUS:
                result.accepted = self.is_credulously_accepted(query.semantics, query.argument)
            else:
                result.accepted = self.is_skeptically_accepted(query.semantics, query.argument)
        except OracleExhausted as e:
            logger.warning(f"{_describe(query)} failed: {e}")
            result.status = ResultStatus.TIMEOUT
            result.error = str(e)
        result.elapsed_ms = round((time.perf_counter() - start) * 1000, 3)
        result.oracle_calls = self.session.oracle.stats.calls - calls
        return result

    # ── Verification helpers ────────────────────────────────────

    def is_conflict_free(self, candidate: Iterable[str]) -> bool:
        """Check if no argument in candidate attacks another in candidate."""
        candidate = set(candidate)
        return all(not self.af.is_attacked_by(a, candidate) for a in candidate)

    def is_admissible(self, candidate: Iterable[str]) -> bool:
        """
        S is admissible iff:
        1. S is conflict-free
        2. S defends all its members
        """
        candidate = set(candidate)
        if not self.is_conflict_free(candidate):
            return False
        return all(self.af.is_defended_by(a, candidate) for a in candidate)

    def is_complete(self, candidate: Iterable[str]) -> bool:
        """
        S is complete iff S is admissible and contains every
        argument it defends.
        """
        candidate = set(candidate)
        if not self.is_admissible(candidate):
            return False
        return all(
            not self.af.is_defended_by(a, candidate)
            for a in self.af.arg_ids - candidate
        )

    def is_stable(self, candidate: Iterable[str]) -> bool:
        """S is stable iff S is conflict-free and attacks every argument outside S."""
        candidate = set(candidate)
        if not self.is_conflict_free(candidate):
            return False
        return all(
            self.af.is_attacked_by(a, candidate)
            for a in self.af.arg_ids - candidate
        )

    # ── Dispatch ────────────────────────────────────────────────

    def _check(self, query: Query) -> Query:
        try:
            semantics = Semantics(query.semantics)
            task = Task(query.task)
        except ValueError as e:
            raise UnsupportedQuery(str(e)) from None
        if task.is_decision:
            if query.argument is None:
                raise UnsupportedQuery(f"{task.value} needs a designated argument")
            if query.argument not in self.af:
                raise MalformedFramework(f"unknown argument {query.argument!r}")
        return Query(semantics, task, query.argument if task.is_decision else None)

    def _answer(self, query: Query, route: Callable):
        query = self._check(query)
        with self.session.exclusive():
            answers = self.session.answers
            if query.key in answers:
                return answers[query.key]
            start = time.perf_counter()
            deadline = self.session.settings.deadline()
            answer = route(query, deadline)
            answers[query.key] = answer
        logger.info(
            f"{_describe(query)} -> {_render(answer)} "
            f"({(time.perf_counter() - start) * 1000:.2f}ms)"
        )
        return answer

    def _compute_one(self, query: Query, deadline: Optional[float]) -> Optional[Extension]:
        semantics = query.semantics
        if semantics is Semantics.GROUNDED:
            return grounded_extension(self.af)
        if semantics is Semantics.IDEAL:
            return Extension(self._ideal(deadline), semantics)

        if semantics in (Semantics.COMPLETE, Semantics.STABLE):
            base = Base.STABLE if semantics is Semantics.STABLE else Base.COMPLETE
            with self.encoder.scope(base, deadline) as scope:
                model = scope.solve()
        else:
            base = Base.CONFLICT_FREE if semantics is Semantics.STAGE else Base.COMPLETE
            target = Target.ACCEPTED if semantics is Semantics.PREFERRED else Target.RANGE
            with self.encoder.scope(base, deadline) as scope:
                model = ExtremalSearch(scope, self.encoder.targets(target)).run()
        if model is None:
            return None
        return Extension(self.encoder.decode(model), semantics)

    def _credulous(self, query: Query, deadline: Optional[float]) -> bool:
        semantics, arg = query.semantics, query.argument
        if semantics is Semantics.GROUNDED:
            return arg in grounded_extension(self.af)
        if semantics is Semantics.IDEAL:
            return arg in self._ideal(deadline)

        in_a = self.session.mapper.accepted(arg)
        if semantics in (Semantics.COMPLETE, Semantics.PREFERRED, Semantics.STABLE):
            base = Base.STABLE if semantics is Semantics.STABLE else Base.COMPLETE
            with self.encoder.scope(base, deadline) as scope:
                return scope.solve([in_a]) is not None

        base = Base.CONFLICT_FREE if semantics is Semantics.STAGE else Base.COMPLETE
        with self.encoder.scope(base, deadline) as scope:
            return first_in_range_group(scope, self.encoder, lambda _: [in_a]) is not None

    def _skeptical(self, query: Query, deadline: Optional[float]) -> bool:
        semantics, arg = query.semantics, query.argument
        if semantics in (Semantics.GROUNDED, Semantics.COMPLETE):
            return arg in grounded_extension(self.af)
        if semantics is Semantics.IDEAL:
            return arg in self._ideal(deadline)

        in_a = self.session.mapper.accepted(arg)
        if semantics is Semantics.STABLE:
            with self.encoder.scope(Base.STABLE, deadline) as scope:
                return scope.solve([-in_a]) is None
        if semantics is Semantics.PREFERRED:
            return self._skeptical_preferred(arg, deadline)

        base = Base.CONFLICT_FREE if semantics is Semantics.STAGE else Base.COMPLETE
        with self.encoder.scope(base, deadline) as scope:
            return first_in_range_group(scope, self.encoder, lambda _: [-in_a]) is None

    def _skeptical_preferred(self, arg: str, deadline: Optional[float]) -> bool:
        """
        Search for a preferred extension without ``arg``.

        Every climb runs to a ⊆-maximal complete extension. A maximum that
        contains ``arg`` has its subsets blocked and the search restarts
        from what is left. A set on the way up that attacks ``arg`` proves
        the answer early: every preferred extension above it rejects ``arg``.
        """
        in_a = self.session.mapper.accepted(arg)
        out_a = self.session.mapper.defeated(arg)
        with self.encoder.scope(Base.COMPLETE, deadline) as scope:
            if scope.solve([in_a]) is None:
                return False
            search = ExtremalSearch(scope, self.encoder.targets(Target.ACCEPTED))
            while True:
                start = scope.solve()
                if start is None:
                    return True
                for model, maximal in search.steps(start):
                    if model.holds(out_a):
                        return False
                    if maximal:
                        if not model.holds(in_a):
                            return False
                        scope.block(search.exclusion_clause(model))

    def _ideal(self, deadline: Optional[float]) -> frozenset[str]:
        grounded = grounded_extension(self.af).arguments
        return ideal_extension(self.encoder, grounded, deadline)


def replay(session: Session, queries: Iterable[Query],
           mutations: Iterable[Mutation]) -> Iterator[QueryResult]:
    """
    Run a dynamic track: answer query *i*, then apply the mutations tagged
    ``after_query == i``. Untagged mutations are applied before the first
    query. Order is never changed.
    """
    batches: dict[int, list[Mutation]] = {}
    for mutation in mutations:
        index = -1 if mutation.after_query is None else mutation.after_query
        batches.setdefault(index, []).append(mutation)

    engine = ArgumentationEngine(session)
    session.apply(batches.pop(-1, []))
    last = -1
    for i, query in enumerate(queries):
        yield engine.solve(query, materialize=True)
        session.apply(batches.pop(i, []))
        last = i
    for index in sorted(batches):
        if index > last:
            session.apply(batches[index])


def _describe(query: Query) -> str:
    arg = f"({query.argument})" if query.argument is not None else ""
    return f"{query.task.value}/{query.semantics.value}{arg}"


def _render(answer) -> str:
    if isinstance(answer, Extension):
        return "{" + ", ".join(answer) + "}"
    if answer is None:
        return "no extension"
    return "YES" if answer else "NO"
