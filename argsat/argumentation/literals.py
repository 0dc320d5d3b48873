"""
Literal Mapper — arguments to SAT variables

A session owns one variable arena. Variables are handed out in
allocation order and a number is never handed out twice, even after the
argument it stood for has been removed: the oracle cannot forget
clauses, so a recycled number would inherit constraints it never meant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .errors import MalformedFramework

logger = logging.getLogger("argsat.literals")


@dataclass(frozen=True)
class ArgumentVars:
    """
    The variables reasoning about one argument.

    accepted: the argument is in the extension (``in_a``)
    defeated: the argument is attacked by an accepted one (``out_a``)
    ranged:   the argument is in the range, ``in_a ∨ out_a``
    """
    accepted: int
    defeated: int
    ranged: int


class LiteralMapper:
    """Stable correspondence between argument labels and oracle variables."""

    def __init__(self):
        self._next_var = 1
        self._vars: dict[str, ArgumentVars] = {}
        self._by_accepted: dict[int, str] = {}
        self._released = 0

    def fresh(self) -> int:
        """Allocate a variable that no clause has mentioned yet."""
        var = self._next_var
        self._next_var += 1
        return var

    def allocate(self, arg: str) -> ArgumentVars:
        """Return the variables of ``arg``, allocating them on first use."""
        existing = self._vars.get(arg)
        if existing is not None:
            return existing
        arg_vars = ArgumentVars(self.fresh(), self.fresh(), self.fresh())
        self._vars[arg] = arg_vars
        self._by_accepted[arg_vars.accepted] = arg
        return arg_vars

    def release(self, arg: str) -> None:
        """Forget the mapping of a removed argument; its numbers stay consumed."""
        arg_vars = self._vars.pop(arg, None)
        if arg_vars is not None:
            del self._by_accepted[arg_vars.accepted]
            self._released += 1

    def vars_of(self, arg: str) -> ArgumentVars:
        try:
            return self._vars[arg]
        except KeyError:
            raise MalformedFramework(f"argument {arg!r} has no variables") from None

    def accepted(self, arg: str) -> int:
        return self.vars_of(arg).accepted

    def defeated(self, arg: str) -> int:
        return self.vars_of(arg).defeated

    def ranged(self, arg: str) -> int:
        return self.vars_of(arg).ranged

    def label_of(self, accepted_var: int) -> str | None:
        return self._by_accepted.get(accepted_var)

    def accepted_vars(self, args: Iterable[str]) -> list[int]:
        return [self._vars[a].accepted for a in args]

    def ranged_vars(self, args: Iterable[str]) -> list[int]:
        return [self._vars[a].ranged for a in args]

    @property
    def n_vars(self) -> int:
        """Number of variables allocated so far, retired ones included."""
        return self._next_var - 1

    @property
    def n_released(self) -> int:
        return self._released

    def __contains__(self, arg: object) -> bool:
        return arg in self._vars

    def __len__(self) -> int:
        return len(self._vars)
