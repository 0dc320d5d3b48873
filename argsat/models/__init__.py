"""
models — API Request/Response Schemas

Pydantic models for the session service. Frameworks arrive either as
JSON (argument list + attack pairs) or as ICCMA'23 / ASPARTIX text.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from argsat.argumentation.models import MutationKind, Semantics, Task


# ── Enums ────────────────────────────────────────────────────────

class InstanceFormat(str, Enum):
    JSON = "json"
    ICCMA23 = "iccma23"
    APX = "apx"


# ── Request Models ───────────────────────────────────────────────

class FrameworkPayload(BaseModel):
    arguments: list[str] = Field(default_factory=list)
    attacks: list[tuple[str, str]] = Field(default_factory=list)

    @field_validator("arguments")
    @classmethod
    def no_duplicate_arguments(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("arguments must be unique")
        return v


class CreateSessionRequest(BaseModel):
    format: InstanceFormat = InstanceFormat.JSON
    framework: Optional[FrameworkPayload] = None
    instance: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self) -> "CreateSessionRequest":
        if self.format is InstanceFormat.JSON:
            if self.instance is not None:
                raise ValueError("JSON sessions take 'framework', not 'instance'")
        elif self.instance is None:
            raise ValueError(f"format '{self.format.value}' needs 'instance' text")
        return self


class MutationPayload(BaseModel):
    op: MutationKind
    argument: str
    target: Optional[str] = None
    after_query: Optional[int] = None

    @model_validator(mode="after")
    def check_target(self) -> "MutationPayload":
        is_attack = self.op in (MutationKind.ADD_ATTACK, MutationKind.REMOVE_ATTACK)
        if is_attack and self.target is None:
            raise ValueError(f"{self.op.value} needs a target")
        if not is_attack and self.target is not None:
            raise ValueError(f"{self.op.value} takes no target")
        return self


class MutationBatchRequest(BaseModel):
    mutations: list[MutationPayload] = Field(..., min_length=1)


class QueryRequest(BaseModel):
    problem: Optional[str] = None           # e.g. "SE-PR", "DC-CO"
    semantics: Optional[Semantics] = None
    task: Optional[Task] = None
    argument: Optional[str] = None

    @model_validator(mode="after")
    def check_problem(self) -> "QueryRequest":
        if self.problem is None and (self.semantics is None or self.task is None):
            raise ValueError("give either 'problem' or both 'semantics' and 'task'")
        return self


# ── Response Models ──────────────────────────────────────────────

class SessionStats(BaseModel):
    session_id: str
    revision: int
    arguments: int
    attacks: int
    mutations: int
    variables: int
    clauses: int
    oracle_calls: int
    encoded_groups: int
    cached_answers: int


class MutationBatchResponse(BaseModel):
    applied: int
    clauses_added: int
    stats: SessionStats


class QueryResponse(BaseModel):
    session_id: str
    problem: str
    semantics: Semantics
    task: Task
    argument: Optional[str] = None
    status: str
    extension: Optional[list[str]] = None
    extensions: Optional[list[list[str]]] = None
    accepted: Optional[bool] = None
    answer: str = ""                        # ICCMA rendering
    elapsed_ms: float = 0.0
    oracle_calls: int = 0
    error: str = ""


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: int
    solver: str
    sessions: int
    max_sessions: int
