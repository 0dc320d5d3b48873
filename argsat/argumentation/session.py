"""
Dynamic Session Manager — one framework, one live oracle

A session applies batches of mutations to its framework between queries
and keeps the oracle, the literal arena and every clause emitted so far.
Nothing is rebuilt from scratch: changed arguments are re-encoded behind
fresh activation literals and their old groups are switched off for
good.

A session serves one query at a time. Queries arrive in order and later
ones may depend on mutations applied after earlier ones, so nothing here
is reordered or shared between threads.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from .encoder import SemanticsEncoder
from .errors import SessionBusy
from .literals import LiteralMapper
from .models import ArgumentationFramework, Mutation, MutationKind
from .oracle import OracleSettings, SatOracle

logger = logging.getLogger("argsat.session")


class Session:
    """
    Exclusive owner of a framework, its oracle and its literal mapper.

    ``answers`` caches results per query key for the current revision, so
    re-issuing a query without an intervening mutation gives back the
    same answer.
    """

    def __init__(self, framework: ArgumentationFramework | None = None,
                 settings: OracleSettings | None = None,
                 session_id: str | None = None):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.settings = settings or OracleSettings.from_env()
        self.af = framework.copy() if framework is not None else ArgumentationFramework()
        self.mutations: list[Mutation] = []
        self.revision = 0
        self.answers: dict[tuple, object] = {}
        self.closed = False
        self._lock = threading.Lock()
        self._build()
        logger.info(
            f"Session {self.id} opened: {len(self.af)} arguments, "
            f"{self.af.n_attacks} attacks ({self.settings.solver})"
        )

    def _build(self) -> None:
        self.oracle = SatOracle(self.settings)
        self.mapper = LiteralMapper()
        self.encoder = SemanticsEncoder(self.af, self.mapper, self.oracle)
        self.encoder.sync()

    # ── Exclusive access ────────────────────────────────────────

    @contextmanager
    def exclusive(self) -> Iterator["Session"]:
        """Hold the session for one query or one mutation batch."""
        if not self._lock.acquire(blocking=False):
            raise SessionBusy(f"session {self.id} is serving another query")
        try:
            if self.closed:
                raise SessionBusy(f"session {self.id} is closed")
            yield self
        finally:
            self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ── Mutations ───────────────────────────────────────────────

    def apply(self, mutations: Iterable[Mutation]) -> int:
        """
        Apply a batch of mutations in order.

        The whole batch is checked against a copy of the framework first,
        so a malformed event leaves the session untouched. Returns the
        number of clauses added to the oracle.
        """
        batch = list(mutations)
        if not batch:
            return 0
        with self.exclusive():
            trial = self.af.copy()
            for mutation in batch:
                trial.apply(mutation)

            for mutation in batch:
                if mutation.kind is MutationKind.REMOVE_ARGUMENT:
                    self.encoder.mark_removed(mutation.argument)
                self.encoder.mark_dirty(self.af.apply(mutation))
            added = self.encoder.sync()

            self.mutations.extend(batch)
            self.revision += 1
            self.answers.clear()
        logger.info(
            f"Session {self.id} rev {self.revision}: applied {len(batch)} "
            f"mutation(s), {added} clause(s) added"
        )
        return added

    def add_argument(self, arg: str) -> int:
        return self.apply([Mutation.add_argument(arg)])

    def remove_argument(self, arg: str) -> int:
        return self.apply([Mutation.remove_argument(arg)])

    def add_attack(self, attacker: str, target: str) -> int:
        return self.apply([Mutation.add_attack(attacker, target)])

    def remove_attack(self, attacker: str, target: str) -> int:
        return self.apply([Mutation.remove_attack(attacker, target)])

    # ── Lifecycle ───────────────────────────────────────────────

    def reset(self, framework: Optional[ArgumentationFramework] = None) -> None:
        """Drop the oracle state and encode the (given or current) framework anew."""
        with self.exclusive():
            self.oracle.close()
            if framework is not None:
                self.af = framework.copy()
                self.mutations.clear()
            self.revision += 1
            self.answers.clear()
            self._build()
        logger.info(f"Session {self.id} reset at rev {self.revision}")

    def close(self) -> None:
        """Release the solver; raises ``SessionBusy`` while a query is in flight."""
        if self.closed:
            return
        with self.exclusive():
            self.oracle.close()
            self.closed = True
        logger.info(f"Session {self.id} closed after {self.oracle.stats.calls} oracle call(s)")

    @property
    def stats(self) -> dict:
        return {
            "session_id": self.id,
            "revision": self.revision,
            "arguments": len(self.af),
            "attacks": self.af.n_attacks,
            "mutations": len(self.mutations),
            "variables": self.mapper.n_vars,
            "clauses": self.oracle.stats.clauses,
            "oracle_calls": self.oracle.stats.calls,
            "encoded_groups": self.encoder.generations,
            "cached_answers": len(self.answers),
        }
