"""
app.py — argsat: Dynamic Argumentation Session API

Each session owns one framework and one live SAT oracle. Clients create
a session, then interleave mutation batches and queries; the oracle
state is reused across the whole session.

  Client ──POST /v1/sessions──────────────▶ Session (framework + oracle)
         ──POST /v1/sessions/{id}/queries──▶ Engine ──▶ answer + audit
         ──POST /v1/sessions/{id}/mutations▶ incremental re-encoding

Usage:
  uvicorn argsat.app:app --port 8787
  # or: python -m argsat.app
"""

from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from argsat import __version__
from argsat.argumentation import (
    ArgumentationEngine,
    ArgumentationFramework,
    MalformedFramework,
    Mutation,
    OracleSettings,
    Query,
    QueryResult,
    Session,
    SessionBusy,
    Task,
    UnsupportedQuery,
    parse_problem,
    read_framework,
)
from argsat.argumentation.iccma import (
    problem_string,
    write_acceptance,
    write_extension,
    write_extensions,
)
from argsat.models import (
    CreateSessionRequest,
    HealthResponse,
    InstanceFormat,
    MutationBatchRequest,
    MutationBatchResponse,
    QueryRequest,
    QueryResponse,
    SessionStats,
)
from argsat.utils.audit import get_recent_queries, log_query

# ── Logging ──────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(name)-16s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("argsat.server")

# ── Configuration ────────────────────────────────────────────────

SETTINGS = OracleSettings.from_env()
MAX_SESSIONS = int(os.environ.get("ARGSAT_MAX_SESSIONS", "64"))
HOST = os.environ.get("ARGSAT_HOST", "0.0.0.0")
PORT = int(os.environ.get("ARGSAT_PORT", "8787"))
SERVER_START_TIME = time.time()

# ── Session Registry ─────────────────────────────────────────────

sessions: dict[str, Session] = {}
_registry_lock = threading.Lock()


def _get_session(session_id: str) -> Session:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


def _build_framework(req: CreateSessionRequest) -> ArgumentationFramework:
    if req.format is InstanceFormat.JSON:
        payload = req.framework
        if payload is None:
            return ArgumentationFramework()
        return ArgumentationFramework.from_edges(payload.arguments, payload.attacks)
    return read_framework(req.instance, req.format.value)


def _render(result: QueryResult) -> QueryResponse:
    query = result.query
    response = QueryResponse(
        session_id="",
        problem=problem_string(query),
        semantics=query.semantics,
        task=query.task,
        argument=query.argument,
        status=result.status.value,
        accepted=result.accepted,
        elapsed_ms=result.elapsed_ms,
        oracle_calls=result.oracle_calls,
        error=result.error,
    )
    if not result.ok:
        return response
    if query.task is Task.COMPUTE_ONE:
        if result.extension is not None:
            response.extension = list(result.extension)
        response.answer = write_extension(result.extension)
    elif query.task is Task.ENUMERATE_ALL:
        extensions = list(result.extensions or [])
        response.extensions = [list(ext) for ext in extensions]
        response.answer = write_extensions(extensions)
    else:
        response.answer = write_acceptance(bool(result.accepted))
    return response


# ── App Lifecycle ────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("=" * 60)
    log.info("  argsat — Dynamic Argumentation Session API")
    log.info(f"  Solver:       {SETTINGS.solver}")
    log.info(f"  Timeout:      {SETTINGS.query_timeout or 'none'}")
    log.info(f"  Max sessions: {MAX_SESSIONS}")
    log.info("=" * 60)

    yield

    with _registry_lock:
        for session in sessions.values():
            try:
                session.close()
            except SessionBusy:
                log.warning(f"Session {session.id} still busy at shutdown; solver left to exit")
        sessions.clear()
    log.info("argsat server stopped.")


# ── FastAPI App ──────────────────────────────────────────────────

app = FastAPI(
    title="argsat API",
    description="SAT-based abstract argumentation with incremental dynamic sessions.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(MalformedFramework)
async def malformed_handler(request, exc: MalformedFramework):
    return JSONResponse(status_code=422, content={"error": "malformed_framework", "detail": str(exc)})


@app.exception_handler(UnsupportedQuery)
async def unsupported_handler(request, exc: UnsupportedQuery):
    return JSONResponse(status_code=400, content={"error": "unsupported_query", "detail": str(exc)})


@app.exception_handler(SessionBusy)
async def busy_handler(request, exc: SessionBusy):
    return JSONResponse(status_code=409, content={"error": "session_busy", "detail": str(exc)})


# ═════════════════════════════════════════════════════════════════
#  ENDPOINTS
# ═════════════════════════════════════════════════════════════════


# ── Health ───────────────────────────────────────────────────────

@app.get("/v1/health", response_model=HealthResponse, tags=["System"])
async def health():
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=int(time.time() - SERVER_START_TIME),
        solver=SETTINGS.solver,
        sessions=len(sessions),
        max_sessions=MAX_SESSIONS,
    )


# ── Sessions ─────────────────────────────────────────────────────

@app.post("/v1/sessions", response_model=SessionStats, status_code=201, tags=["Sessions"])
async def create_session(req: CreateSessionRequest):
    framework = _build_framework(req)
    with _registry_lock:
        if len(sessions) >= MAX_SESSIONS:
            raise HTTPException(status_code=429, detail=f"Session limit ({MAX_SESSIONS}) reached")
        session = Session(framework, SETTINGS)
        sessions[session.id] = session
    return SessionStats(**session.stats)


@app.get("/v1/sessions/{session_id}", response_model=SessionStats, tags=["Sessions"])
async def get_session(session_id: str):
    return SessionStats(**_get_session(session_id).stats)


@app.get("/v1/sessions/{session_id}/framework", tags=["Sessions"])
async def get_framework(session_id: str):
    return _get_session(session_id).af.to_dict()


@app.post("/v1/sessions/{session_id}/reset", response_model=SessionStats, tags=["Sessions"])
async def reset_session(session_id: str):
    session = _get_session(session_id)
    await run_in_threadpool(session.reset)
    return SessionStats(**session.stats)


@app.delete("/v1/sessions/{session_id}", tags=["Sessions"])
async def delete_session(session_id: str):
    session = _get_session(session_id)
    # a session serving a query stays registered and answers 409
    session.close()
    with _registry_lock:
        sessions.pop(session_id, None)
    return {"deleted": session_id}


# ── Mutations ────────────────────────────────────────────────────

@app.post("/v1/sessions/{session_id}/mutations", response_model=MutationBatchResponse,
          tags=["Dynamics"])
async def apply_mutations(session_id: str, req: MutationBatchRequest):
    session = _get_session(session_id)
    batch = [
        Mutation(m.op, m.argument, m.target, m.after_query)
        for m in req.mutations
    ]
    added = await run_in_threadpool(session.apply, batch)
    return MutationBatchResponse(
        applied=len(batch),
        clauses_added=added,
        stats=SessionStats(**session.stats),
    )


# ── Queries ──────────────────────────────────────────────────────

@app.post("/v1/sessions/{session_id}/queries", response_model=QueryResponse, tags=["Queries"])
async def run_query(session_id: str, req: QueryRequest):
    session = _get_session(session_id)
    if req.problem is not None:
        query = parse_problem(req.problem, req.argument)
    else:
        query = Query(req.semantics, req.task, req.argument)

    engine = ArgumentationEngine(session)
    result = await run_in_threadpool(engine.solve, query, True)
    response = _render(result)
    response.session_id = session.id

    log_query(
        session_id=session.id,
        revision=session.revision,
        problem=response.problem,
        argument=response.argument,
        status=response.status,
        answer=response.answer or response.error,
        elapsed_ms=response.elapsed_ms,
        oracle_calls=response.oracle_calls,
    )
    return response


# ── Audit Log ────────────────────────────────────────────────────

@app.get("/v1/audit/queries", tags=["Audit"])
async def list_audit_queries(limit: int = 50):
    entries = get_recent_queries(limit=min(limit, 200))
    return {"queries": entries, "total": len(entries)}


# ── Entrypoint ───────────────────────────────────────────────────

def main():
    uvicorn.run(
        "argsat.app:app",
        host=HOST,
        port=PORT,
        log_level="info",
        reload=False,
    )


if __name__ == "__main__":
    main()
