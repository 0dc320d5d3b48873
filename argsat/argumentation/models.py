"""
Argumentation Framework Models — Dung's Abstract Argumentation

Implements the formal structures from:
- Dung (1995): On the acceptability of arguments
- Baroni, Caminada, Giacomin (2011): semantics of abstract argumentation
- ICCMA problem descriptors (task × semantics)

Arguments carry no attributes beyond their identity. The framework keeps
explicit in/out edge sets per argument so every algorithm can iterate
over the vertex set without recursion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from .errors import MalformedFramework


class Semantics(str, Enum):
    """Argumentation semantics for extension computation."""
    GROUNDED = "grounded"
    COMPLETE = "complete"
    STABLE = "stable"
    PREFERRED = "preferred"
    SEMI_STABLE = "semi-stable"
    STAGE = "stage"
    IDEAL = "ideal"

    @property
    def is_extremal(self) -> bool:
        return self in (
            Semantics.PREFERRED,
            Semantics.SEMI_STABLE,
            Semantics.STAGE,
            Semantics.IDEAL,
        )

    @property
    def is_unique(self) -> bool:
        """Grounded and ideal semantics always have exactly one extension."""
        return self in (Semantics.GROUNDED, Semantics.IDEAL)


class Task(str, Enum):
    """Reasoning task applied to a semantics."""
    COMPUTE_ONE = "compute-one"
    ENUMERATE_ALL = "enumerate-all"
    DECIDE_CREDULOUS = "decide-credulous"
    DECIDE_SKEPTICAL = "decide-skeptical"

    @property
    def is_decision(self) -> bool:
        return self in (Task.DECIDE_CREDULOUS, Task.DECIDE_SKEPTICAL)


class MutationKind(str, Enum):
    """Edit applied to a framework between two queries of a dynamic run."""
    ADD_ARGUMENT = "add_argument"
    REMOVE_ARGUMENT = "remove_argument"
    ADD_ATTACK = "add_attack"
    REMOVE_ATTACK = "remove_attack"


class ResultStatus(str, Enum):
    OK = "ok"
    NO_EXTENSION = "no_extension"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Mutation:
    """
    One event of a mutation stream.

    For argument events ``argument`` is the argument; for attack events
    ``argument`` is the attacker and ``target`` the attacked argument.
    ``after_query`` tags the query index after which the event applies.
    """
    kind: MutationKind
    argument: str
    target: Optional[str] = None
    after_query: Optional[int] = None

    @classmethod
    def add_argument(cls, arg: str, after_query: Optional[int] = None) -> "Mutation":
        return cls(MutationKind.ADD_ARGUMENT, arg, after_query=after_query)

    @classmethod
    def remove_argument(cls, arg: str, after_query: Optional[int] = None) -> "Mutation":
        return cls(MutationKind.REMOVE_ARGUMENT, arg, after_query=after_query)

    @classmethod
    def add_attack(cls, attacker: str, target: str,
                   after_query: Optional[int] = None) -> "Mutation":
        return cls(MutationKind.ADD_ATTACK, attacker, target, after_query)

    @classmethod
    def remove_attack(cls, attacker: str, target: str,
                      after_query: Optional[int] = None) -> "Mutation":
        return cls(MutationKind.REMOVE_ATTACK, attacker, target, after_query)

    def __str__(self) -> str:
        if self.target is None:
            return f"{self.kind.value}({self.argument})"
        return f"{self.kind.value}({self.argument}, {self.target})"


@dataclass(frozen=True)
class Query:
    """A (semantics, task) pair with the designated argument of decision tasks."""
    semantics: Semantics
    task: Task
    argument: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.semantics, self.task, self.argument)


@dataclass(frozen=True)
class Extension:
    """
    A set of arguments that are collectively acceptable under
    a given semantics.
    """
    arguments: frozenset[str] = frozenset()
    semantics: Semantics = Semantics.GROUNDED

    @property
    def size(self) -> int:
        return len(self.arguments)

    @property
    def is_empty(self) -> bool:
        return not self.arguments

    def __contains__(self, arg: object) -> bool:
        return arg in self.arguments

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.arguments))


@dataclass
class ArgumentationFramework:
    """
    Dung's Abstract Argumentation Framework (AAF).

    AF = (Args, Attacks) where:
    - Args is a finite set of arguments
    - Attacks ⊆ Args × Args is a binary attack relation

    Both endpoints of every attack are live arguments; removing an
    argument removes its incident attacks.
    """
    _attackers: dict[str, set[str]] = field(default_factory=dict)
    _attacked: dict[str, set[str]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, arguments: Iterable[str],
                   attacks: Iterable[tuple[str, str]] = ()) -> "ArgumentationFramework":
        af = cls()
        for arg in arguments:
            if arg not in af:
                af.add_argument(arg)
        for attacker, target in attacks:
            af.add_attack(attacker, target)
        return af

    # ── Mutation ────────────────────────────────────────────────

    def add_argument(self, arg: str) -> None:
        if arg in self._attackers:
            raise MalformedFramework(f"argument {arg!r} already exists")
        self._attackers[arg] = set()
        self._attacked[arg] = set()

    def remove_argument(self, arg: str) -> set[str]:
        """
        Remove an argument and every attack incident to it.

        Returns the surviving arguments that lost an attacker.
        """
        self._require(arg)
        affected = self._attacked.pop(arg) - {arg}
        for target in affected:
            self._attackers[target].discard(arg)
        for attacker in self._attackers.pop(arg):
            if attacker != arg:
                self._attacked[attacker].discard(arg)
        return affected

    def add_attack(self, attacker: str, target: str) -> bool:
        """Add ``attacker → target``; returns False if it already existed."""
        self._require(attacker)
        self._require(target)
        if attacker in self._attackers[target]:
            return False
        self._attackers[target].add(attacker)
        self._attacked[attacker].add(target)
        return True

    def remove_attack(self, attacker: str, target: str) -> None:
        self._require(attacker)
        self._require(target)
        if attacker not in self._attackers[target]:
            raise MalformedFramework(f"no attack {attacker!r} -> {target!r}")
        self._attackers[target].discard(attacker)
        self._attacked[attacker].discard(target)

    def apply(self, mutation: "Mutation") -> set[str]:
        """
        Apply one mutation and return the live arguments whose attacker
        set changed (including a newly added argument).
        """
        kind = mutation.kind
        if kind is MutationKind.ADD_ARGUMENT:
            self.add_argument(mutation.argument)
            return {mutation.argument}
        if kind is MutationKind.REMOVE_ARGUMENT:
            return self.remove_argument(mutation.argument)
        if mutation.target is None:
            raise MalformedFramework(f"attack mutation without target: {mutation}")
        if kind is MutationKind.ADD_ATTACK:
            changed = self.add_attack(mutation.argument, mutation.target)
            return {mutation.target} if changed else set()
        self.remove_attack(mutation.argument, mutation.target)
        return {mutation.target}

    def copy(self) -> "ArgumentationFramework":
        return ArgumentationFramework(
            _attackers={a: set(s) for a, s in self._attackers.items()},
            _attacked={a: set(s) for a, s in self._attacked.items()},
        )

    def _require(self, arg: str) -> None:
        if arg not in self._attackers:
            raise MalformedFramework(f"unknown argument {arg!r}")

    # ── Queries ─────────────────────────────────────────────────

    def get_attackers(self, arg_id: str) -> set[str]:
        """Get all arguments that attack the given argument."""
        return self._attackers[arg_id]

    def get_attacked(self, arg_id: str) -> set[str]:
        """Get all arguments attacked by the given argument."""
        return self._attacked[arg_id]

    def is_attacked_by(self, arg_id: str, candidate: set[str]) -> bool:
        """Check if arg_id is attacked by any member of candidate set."""
        return not self._attackers[arg_id].isdisjoint(candidate)

    def is_defended_by(self, arg_id: str, candidate: set[str]) -> bool:
        """
        Check if candidate defends arg_id.
        arg_id is defended by S if for every attacker of arg_id,
        there exists a member of S that attacks the attacker.
        """
        return all(
            self.is_attacked_by(attacker, candidate)
            for attacker in self._attackers[arg_id]
        )

    def range_of(self, candidate: set[str]) -> set[str]:
        """Arguments either in the candidate set or attacked by it."""
        out = set(candidate)
        for arg in candidate:
            out |= self._attacked[arg]
        return out

    @property
    def arg_ids(self) -> set[str]:
        return set(self._attackers)

    @property
    def attacks(self) -> set[tuple[str, str]]:
        return {
            (attacker, target)
            for target, attackers in self._attackers.items()
            for attacker in attackers
        }

    @property
    def n_attacks(self) -> int:
        return sum(len(s) for s in self._attackers.values())

    def __contains__(self, arg: object) -> bool:
        return arg in self._attackers

    def __len__(self) -> int:
        return len(self._attackers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._attackers)

    def to_dict(self) -> dict:
        return {
            "arguments": sorted(self._attackers),
            "attacks": sorted(self.attacks),
            "stats": {
                "num_arguments": len(self),
                "num_attacks": self.n_attacks,
            },
        }


@dataclass
class QueryResult:
    """
    The answer to one query, or the reason no answer could be given.

    ``extensions`` is a lazy, non-restartable iterator for enumeration
    tasks answered by the engine directly.
    """
    query: Query
    status: ResultStatus = ResultStatus.OK
    extension: Optional[Extension] = None
    extensions: Optional[Iterable[Extension]] = None
    accepted: Optional[bool] = None
    elapsed_ms: float = 0.0
    oracle_calls: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not ResultStatus.TIMEOUT
