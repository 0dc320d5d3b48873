"""
Grounded Engine — least fixpoint of the characteristic function

    F(S) = { a ∈ Args | S defends a }

The grounded extension is the least fixpoint of F, reached from S₀ = ∅.
It is unique and polynomial to compute, so no oracle is involved.
"""

from __future__ import annotations

from collections import deque

from .models import ArgumentationFramework, Extension, Semantics


def grounded_labelling(af: ArgumentationFramework) -> tuple[set[str], set[str]]:
    """
    Compute the accepted (IN) and rejected (OUT) sets of the grounded
    labelling.

    Algorithm:
        accept every argument with no live attacker;
        reject everything an accepted argument attacks;
        an argument whose attackers are all rejected is accepted;
        repeat until nothing changes.

    Each argument is accepted or rejected at most once, so the loop is
    linear in the number of attacks.
    """
    undefeated_attackers = {arg: len(af.get_attackers(arg)) for arg in af}
    accepted: set[str] = set()
    rejected: set[str] = set()
    queue = deque(arg for arg, n in undefeated_attackers.items() if n == 0)

    while queue:
        arg = queue.popleft()
        if arg in accepted:
            continue
        accepted.add(arg)
        for defeated in af.get_attacked(arg):
            if defeated in rejected:
                continue
            rejected.add(defeated)
            for defended in af.get_attacked(defeated):
                undefeated_attackers[defended] -= 1
                if undefeated_attackers[defended] == 0:
                    queue.append(defended)

    return accepted, rejected


def grounded_extension(af: ArgumentationFramework) -> Extension:
    """Return the unique grounded extension (empty for an empty framework)."""
    accepted, _ = grounded_labelling(af)
    return Extension(arguments=frozenset(accepted), semantics=Semantics.GROUNDED)
