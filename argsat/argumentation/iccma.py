"""
ICCMA Bridge — competition formats to frameworks and back

Reads argumentation frameworks and problem descriptors in the formats
used by the International Competition on Computational Models of
Argumentation, and renders answers the way competition solvers print
them.

Instance formats:
- ICCMA'23: ``p af <n>`` header, arguments ``1..n``, one ``i j`` attack
  per line, ``#`` comments
- ASPARTIX: ``arg(a).`` and ``att(a,b).`` facts

Problem descriptors: ``<TASK>-<SEM>``, e.g. ``SE-PR``, ``DC-CO``.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from .errors import MalformedFramework, UnsupportedQuery
from .models import ArgumentationFramework, Extension, Query, Semantics, Task

logger = logging.getLogger("argsat.iccma")

TASK_TAGS: dict[str, Task] = {
    "SE": Task.COMPUTE_ONE,
    "EE": Task.ENUMERATE_ALL,
    "DC": Task.DECIDE_CREDULOUS,
    "DS": Task.DECIDE_SKEPTICAL,
}

SEMANTICS_TAGS: dict[str, Semantics] = {
    "GR": Semantics.GROUNDED,
    "CO": Semantics.COMPLETE,
    "ST": Semantics.STABLE,
    "PR": Semantics.PREFERRED,
    "SST": Semantics.SEMI_STABLE,
    "STG": Semantics.STAGE,
    "ID": Semantics.IDEAL,
}

_HEADER = re.compile(r"^p\s+af\s+(\d+)$")
_ARG_FACT = re.compile(r"^arg\(\s*([^()\s,]+)\s*\)\.$")
_ATT_FACT = re.compile(r"^att\(\s*([^()\s,]+)\s*,\s*([^()\s,]+)\s*\)\.$")


def parse_problem(problem: str, argument: Optional[str] = None) -> Query:
    """Turn ``SE-PR``-style descriptors into a query."""
    task_tag, sep, sem_tag = problem.strip().upper().partition("-")
    if not sep:
        raise UnsupportedQuery(f"malformed problem descriptor {problem!r}")
    task = TASK_TAGS.get(task_tag)
    if task is None:
        raise UnsupportedQuery(f"unsupported task {task_tag!r}")
    semantics = SEMANTICS_TAGS.get(sem_tag)
    if semantics is None:
        raise UnsupportedQuery(f"unsupported semantics {sem_tag!r}")
    if task.is_decision and argument is None:
        raise UnsupportedQuery(f"{problem} needs a designated argument")
    return Query(semantics, task, argument if task.is_decision else None)


def problem_string(query: Query) -> str:
    task_tag = next(t for t, v in TASK_TAGS.items() if v is query.task)
    sem_tag = next(t for t, v in SEMANTICS_TAGS.items() if v is query.semantics)
    return f"{task_tag}-{sem_tag}"


def read_iccma23(text: str) -> ArgumentationFramework:
    """Parse an ICCMA'23 ``p af`` instance."""
    af: Optional[ArgumentationFramework] = None
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if af is None:
            header = _HEADER.match(line)
            if header is None:
                raise MalformedFramework(f"line {lineno}: expected 'p af <n>' header")
            n = int(header.group(1))
            af = ArgumentationFramework.from_edges(str(i) for i in range(1, n + 1))
            continue
        parts = line.split()
        if len(parts) != 2:
            raise MalformedFramework(f"line {lineno}: expected '<attacker> <target>'")
        try:
            af.add_attack(parts[0], parts[1])
        except MalformedFramework as e:
            raise MalformedFramework(f"line {lineno}: {e}") from None
    if af is None:
        raise MalformedFramework("missing 'p af <n>' header")
    logger.debug(f"Read ICCMA'23 instance: {len(af)} arguments, {af.n_attacks} attacks")
    return af


def read_aspartix(text: str) -> ArgumentationFramework:
    """Parse ASPARTIX ``arg/1`` and ``att/2`` facts; arguments precede attacks."""
    af = ArgumentationFramework()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("%", 1)[0].strip()
        if not line:
            continue
        arg = _ARG_FACT.match(line)
        if arg is not None:
            label = arg.group(1)
            if label in af:
                raise MalformedFramework(f"line {lineno}: argument {label!r} declared twice")
            af.add_argument(label)
            continue
        att = _ATT_FACT.match(line)
        if att is None:
            raise MalformedFramework(f"line {lineno}: unrecognized fact {line!r}")
        try:
            af.add_attack(att.group(1), att.group(2))
        except MalformedFramework as e:
            raise MalformedFramework(f"line {lineno}: {e}") from None
    return af


READERS = {
    "iccma23": read_iccma23,
    "apx": read_aspartix,
}


def read_framework(text: str, fmt: str = "iccma23") -> ArgumentationFramework:
    reader = READERS.get(fmt)
    if reader is None:
        raise MalformedFramework(f"unknown instance format {fmt!r}")
    return reader(text)


def write_iccma23(af: ArgumentationFramework) -> tuple[str, dict[str, str]]:
    """
    Render ``af`` as an ICCMA'23 instance.

    Arguments are renumbered ``1..n`` in sorted order; the returned map
    gives the number assigned to each label.
    """
    numbering = {arg: str(i) for i, arg in enumerate(sorted(af), start=1)}
    lines = [f"p af {len(af)}"]
    for attacker, target in sorted(af.attacks):
        lines.append(f"{numbering[attacker]} {numbering[target]}")
    return "\n".join(lines) + "\n", numbering


def write_extension(extension: Optional[Extension]) -> str:
    if extension is None:
        return "NO"
    return " ".join(["w", *extension])


def write_extensions(extensions: Iterable[Extension]) -> str:
    lines = [write_extension(ext) for ext in extensions]
    return "\n".join(lines) if lines else "NO"


def write_acceptance(accepted: bool) -> str:
    return "YES" if accepted else "NO"
