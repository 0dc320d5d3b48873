"""
Semantics Encoder — Dung semantics as CNF

For each argument ``a`` with attackers ``B``:

    out_a ↔ OR(in_b : b ∈ B)           attacked by the extension
    in_a  ↔ AND(out_b : b ∈ B)         accepted iff defended
    ¬in_a ∨ ¬out_a                     conflict-freeness

The models of these clauses are exactly the complete extensions. The
clauses of one argument form a constraint group whose families sit
behind separate activation literals, so a base (conflict-free,
admissible, complete, stable) is selected purely by assumptions and an
argument whose attacker set changed is re-encoded by retiring its old
group and emitting a new one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .literals import ArgumentVars, LiteralMapper
from .models import ArgumentationFramework, Semantics
from .oracle import Model, OracleScope, SatOracle

logger = logging.getLogger("argsat.encoder")


class Base(str, Enum):
    """Constraint families enabled for a solve."""
    CONFLICT_FREE = "conflict-free"
    ADMISSIBLE = "admissible"
    COMPLETE = "complete"
    STABLE = "stable"


class Target(str, Enum):
    """Variable family an extremal search ranges over."""
    ACCEPTED = "accepted"
    RANGE = "range"


@dataclass(frozen=True)
class Profile:
    base: Base
    target: Optional[Target] = None


PROFILES: dict[Semantics, Profile] = {
    Semantics.COMPLETE: Profile(Base.COMPLETE),
    Semantics.STABLE: Profile(Base.STABLE),
    Semantics.PREFERRED: Profile(Base.COMPLETE, Target.ACCEPTED),
    Semantics.SEMI_STABLE: Profile(Base.COMPLETE, Target.RANGE),
    Semantics.STAGE: Profile(Base.CONFLICT_FREE, Target.RANGE),
    Semantics.IDEAL: Profile(Base.COMPLETE, Target.ACCEPTED),
}


@dataclass(frozen=True)
class ConstraintGroup:
    """Activation literals of one argument's current encoding."""
    structure: int
    admissible: Optional[int]   # None when the argument is unattacked
    complete: int
    total: int

    def selectors(self, base: Base) -> list[int]:
        out = [self.structure]
        if base is Base.CONFLICT_FREE:
            return out
        if self.admissible is not None:
            out.append(self.admissible)
        if base is Base.ADMISSIBLE:
            return out
        out.append(self.complete)
        if base is Base.STABLE:
            out.append(self.total)
        return out

    @property
    def all(self) -> list[int]:
        return [s for s in (self.structure, self.admissible,
                            self.complete, self.total) if s is not None]


class SemanticsEncoder:
    """
    Emits and maintains the clause set of a framework inside one oracle.

    ``sync()`` brings the oracle up to date with the framework: dirty
    arguments get a fresh group, removed arguments have theirs retired.
    """

    def __init__(self, af: ArgumentationFramework, mapper: LiteralMapper,
                 oracle: SatOracle):
        self.af = af
        self.mapper = mapper
        self.oracle = oracle
        self._groups: dict[str, ConstraintGroup] = {}
        self._dirty: set[str] = set(af.arg_ids)
        self._removed: set[str] = set()
        self.generations = 0

    # ── Change tracking ─────────────────────────────────────────

    def mark_dirty(self, args: Iterable[str]) -> None:
        self._dirty.update(args)

    def mark_removed(self, arg: str) -> None:
        self._dirty.discard(arg)
        self._removed.add(arg)

    @property
    def pending(self) -> int:
        return len(self._dirty) + len(self._removed)

    def sync(self) -> int:
        """Flush pending changes into the oracle; returns clauses added."""
        added = 0
        for arg in sorted(self._removed):
            added += self._retire(arg)
            self.mapper.release(arg)
        self._removed.clear()

        dirty = sorted(a for a in self._dirty if a in self.af)
        for arg in dirty:
            self.mapper.allocate(arg)
            for attacker in self.af.get_attackers(arg):
                self.mapper.allocate(attacker)
        for arg in dirty:
            added += self._retire(arg)
            added += self._encode(arg)
        self._dirty.clear()
        if dirty:
            logger.debug(f"Encoded {len(dirty)} argument(s), {added} clause(s)")
        return added

    def _retire(self, arg: str) -> int:
        group = self._groups.pop(arg, None)
        if group is None:
            return 0
        for selector in group.all:
            self.oracle.add_clause([-selector])
        return len(group.all)

    def _encode(self, arg: str) -> int:
        v = self.mapper.vars_of(arg)
        attackers = [self.mapper.vars_of(b) for b in sorted(self.af.get_attackers(arg))]
        group = ConstraintGroup(
            structure=self.mapper.fresh(),
            admissible=self.mapper.fresh() if attackers else None,
            complete=self.mapper.fresh(),
            total=self.mapper.fresh(),
        )
        n = 0
        n += self.oracle.add_clauses(_gate(group.structure, structure_clauses(v, attackers)))
        if group.admissible is not None:
            n += self.oracle.add_clauses(_gate(group.admissible, admissibility_clauses(v, attackers)))
        n += self.oracle.add_clauses(_gate(group.complete, [completeness_clause(v, attackers)]))
        n += self.oracle.add_clauses(_gate(group.total, [[v.accepted, v.defeated]]))
        self._groups[arg] = group
        self.generations += 1
        return n

    # ── Solving helpers ─────────────────────────────────────────

    def assumptions(self, base: Base) -> list[int]:
        """Activation literals selecting ``base`` over all live arguments."""
        if self.pending:
            self.sync()
        out: list[int] = []
        for arg in sorted(self._groups):
            out.extend(self._groups[arg].selectors(base))
        return out

    def targets(self, target: Target, args: Iterable[str] | None = None) -> list[int]:
        args = sorted(self.af.arg_ids if args is None else args)
        if target is Target.RANGE:
            return self.mapper.ranged_vars(args)
        return self.mapper.accepted_vars(args)

    def decode(self, model: Model) -> frozenset[str]:
        """Positive projection of a model onto the live arguments."""
        return frozenset(
            arg for arg in self.af
            if model.holds(self.mapper.accepted(arg))
        )

    def decode_range(self, model: Model) -> frozenset[str]:
        return frozenset(
            arg for arg in self.af
            if model.holds(self.mapper.ranged(arg))
        )

    def difference_clause(self, extension: Iterable[str]) -> list[int]:
        """Clause satisfied by every in-assignment except ``extension``."""
        inside = set(extension)
        return [
            -self.mapper.accepted(arg) if arg in inside else self.mapper.accepted(arg)
            for arg in sorted(self.af.arg_ids)
        ]

    def group_of(self, arg: str) -> Optional[ConstraintGroup]:
        return self._groups.get(arg)

    def scope(self, base: Base, deadline: Optional[float] = None,
              extra: Iterable[int] = ()) -> OracleScope:
        """Open a query scope solving under ``base`` plus ``extra`` literals."""
        return OracleScope(
            self.oracle,
            self.mapper,
            [*self.assumptions(base), *extra],
            deadline,
        )


def _gate(selector: int, clauses: Iterable[list[int]]) -> Iterable[list[int]]:
    for clause in clauses:
        yield [-selector, *clause]


def structure_clauses(v: ArgumentVars, attackers: list[ArgumentVars]) -> list[list[int]]:
    """Conflict-freeness, the definition of ``out_a`` and of the range variable."""
    clauses = [[-v.accepted, -v.defeated]]
    for b in attackers:
        clauses.append([v.defeated, -b.accepted])
    clauses.append([-v.defeated, *(b.accepted for b in attackers)])
    clauses.append([-v.accepted, v.ranged])
    clauses.append([-v.defeated, v.ranged])
    clauses.append([-v.ranged, v.accepted, v.defeated])
    return clauses


def admissibility_clauses(v: ArgumentVars, attackers: list[ArgumentVars]) -> list[list[int]]:
    """An accepted argument has every attacker defeated."""
    return [[-v.accepted, b.defeated] for b in attackers]


def completeness_clause(v: ArgumentVars, attackers: list[ArgumentVars]) -> list[int]:
    """An argument whose attackers are all defeated is accepted."""
    return [v.accepted, *(-b.defeated for b in attackers)]
