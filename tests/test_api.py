"""
argsat Test Suite — HTTP service

Tests covering:
- Session lifecycle: create (JSON / ICCMA'23 / ASPARTIX), inspect, reset, delete
- Queries by problem string and by semantics/task
- Mutation batches over HTTP
- Error mapping and the query audit trail
"""
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture
def client(tmp_path, monkeypatch):
    from fastapi.testclient import TestClient
    from argsat import app as server
    monkeypatch.setattr("argsat.utils.audit.AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))
    with TestClient(server.app) as c:
        yield c


def _create(client, arguments, attacks=()):
    resp = client.post("/v1/sessions", json={
        "framework": {"arguments": arguments, "attacks": [list(a) for a in attacks]},
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["session_id"]


def _query(client, session_id, **body):
    return client.post(f"/v1/sessions/{session_id}/queries", json=body)


# ── Sessions ───────────────────────────────────────────────────

class TestSessions:
    def test_health(self, client):
        data = client.get("/v1/health").json()
        assert data["status"] == "ok"
        assert data["sessions"] == 0

    def test_create_json_session(self, client):
        sid = _create(client, ["a", "b"], [("b", "a")])
        stats = client.get(f"/v1/sessions/{sid}").json()
        assert stats["arguments"] == 2
        assert stats["attacks"] == 1
        assert stats["revision"] == 0
        assert stats["variables"] > 0

    def test_create_iccma23_session(self, client):
        resp = client.post("/v1/sessions", json={
            "format": "iccma23", "instance": "p af 3\n1 2\n2 3\n",
        })
        assert resp.status_code == 201
        sid = resp.json()["session_id"]
        framework = client.get(f"/v1/sessions/{sid}/framework").json()
        assert framework["arguments"] == ["1", "2", "3"]
        assert framework["attacks"] == [["1", "2"], ["2", "3"]]

    def test_create_apx_session(self, client):
        resp = client.post("/v1/sessions", json={
            "format": "apx", "instance": "arg(a).\narg(b).\natt(b,a).\n",
        })
        assert resp.status_code == 201
        assert resp.json()["attacks"] == 1

    def test_malformed_instance(self, client):
        resp = client.post("/v1/sessions", json={
            "format": "iccma23", "instance": "p af 2\n1 3\n",
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "malformed_framework"

    def test_attack_on_unknown_argument(self, client):
        resp = client.post("/v1/sessions", json={
            "framework": {"arguments": ["a"], "attacks": [["a", "b"]]},
        })
        assert resp.status_code == 422

    def test_instance_format_needs_text(self, client):
        resp = client.post("/v1/sessions", json={"format": "apx"})
        assert resp.status_code == 422

    def test_unknown_session(self, client):
        assert client.get("/v1/sessions/nope").status_code == 404
        assert _query(client, "nope", problem="SE-GR").status_code == 404

    def test_delete_session(self, client):
        sid = _create(client, ["a"])
        assert client.delete(f"/v1/sessions/{sid}").json() == {"deleted": sid}
        assert client.get(f"/v1/sessions/{sid}").status_code == 404
        assert client.delete(f"/v1/sessions/{sid}").status_code == 404

    def test_delete_busy_session(self, client):
        from argsat import app as server
        sid = _create(client, ["a", "b"], [("a", "b"), ("b", "a")])
        session = server.sessions[sid]
        with session.exclusive():
            resp = client.delete(f"/v1/sessions/{sid}")
        assert resp.status_code == 409
        assert resp.json()["error"] == "session_busy"
        assert not session.closed
        assert _query(client, sid, problem="EE-PR").json()["status"] == "ok"
        assert client.delete(f"/v1/sessions/{sid}").status_code == 200
        assert session.closed

    def test_reset_session(self, client):
        sid = _create(client, ["a", "b"], [("a", "b")])
        stats = client.post(f"/v1/sessions/{sid}/reset").json()
        assert stats["revision"] == 1
        assert stats["arguments"] == 2

    def test_session_limit(self, client, monkeypatch):
        from argsat import app as server
        monkeypatch.setattr(server, "MAX_SESSIONS", 1)
        _create(client, ["a"])
        resp = client.post("/v1/sessions", json={"framework": {"arguments": ["b"]}})
        assert resp.status_code == 429


# ── Queries ────────────────────────────────────────────────────

class TestQueries:
    def test_grounded_by_problem_string(self, client):
        sid = _create(client, ["a", "b"], [("b", "a")])
        data = _query(client, sid, problem="SE-GR").json()
        assert data["status"] == "ok"
        assert data["extension"] == ["b"]
        assert data["answer"] == "w b"
        assert data["semantics"] == "grounded"

    def test_enumerate_preferred(self, client):
        sid = _create(client, ["a", "b"], [("a", "b"), ("b", "a")])
        data = _query(client, sid, problem="EE-PR").json()
        assert sorted(data["extensions"]) == [["a"], ["b"]]
        assert sorted(data["answer"].splitlines()) == ["w a", "w b"]

    def test_decision_query(self, client):
        sid = _create(client, ["a", "b"], [("a", "b"), ("b", "a")])
        credulous = _query(client, sid, problem="DC-PR", argument="a").json()
        skeptical = _query(client, sid, problem="DS-PR", argument="a").json()
        assert credulous["accepted"] is True
        assert credulous["answer"] == "YES"
        assert skeptical["accepted"] is False
        assert skeptical["answer"] == "NO"

    def test_semantics_and_task_form(self, client):
        sid = _create(client, ["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        data = _query(client, sid, semantics="stable", task="compute-one").json()
        assert data["status"] == "no_extension"
        assert data["extension"] is None
        assert data["answer"] == "NO"
        assert data["problem"] == "SE-ST"

    def test_unsupported_problem(self, client):
        sid = _create(client, ["a"])
        resp = _query(client, sid, problem="CE-PR")
        assert resp.status_code == 400
        assert resp.json()["error"] == "unsupported_query"

    def test_decision_needs_argument(self, client):
        sid = _create(client, ["a"])
        assert _query(client, sid, problem="DC-CO").status_code == 400

    def test_unknown_designated_argument(self, client):
        sid = _create(client, ["a"])
        assert _query(client, sid, problem="DS-ST", argument="zz").status_code == 422

    def test_query_needs_problem_or_pair(self, client):
        sid = _create(client, ["a"])
        assert _query(client, sid, semantics="stable").status_code == 422

    def test_busy_session(self, client):
        from argsat import app as server
        sid = _create(client, ["a"])
        session = server.sessions[sid]
        with session.exclusive():
            resp = _query(client, sid, problem="SE-CO")
        assert resp.status_code == 409
        assert _query(client, sid, problem="SE-CO").status_code == 200

    def test_timeout_reports_status(self, client, monkeypatch):
        from argsat import app as server
        sid = _create(client, ["a", "b"], [("a", "b"), ("b", "a")])
        monkeypatch.setattr(server.SETTINGS, "query_timeout", 1e-9)
        resp = _query(client, sid, problem="SE-PR")
        assert resp.status_code == 200
        assert resp.json()["status"] == "timeout"
        assert resp.json()["error"]

        monkeypatch.setattr(server.SETTINGS, "query_timeout", None)
        assert _query(client, sid, problem="SE-PR").json()["status"] == "ok"


# ── Mutations ──────────────────────────────────────────────────

class TestMutations:
    def test_mutation_batch(self, client):
        sid = _create(client, ["a", "b"], [("b", "a")])
        resp = client.post(f"/v1/sessions/{sid}/mutations", json={"mutations": [
            {"op": "remove_attack", "argument": "b", "target": "a"},
            {"op": "add_argument", "argument": "c"},
        ]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["applied"] == 2
        assert data["stats"]["revision"] == 1
        assert data["stats"]["arguments"] == 3
        assert _query(client, sid, problem="SE-GR").json()["extension"] == ["a", "b", "c"]

    def test_malformed_batch_is_rejected_whole(self, client):
        sid = _create(client, ["a", "b"], [("b", "a")])
        resp = client.post(f"/v1/sessions/{sid}/mutations", json={"mutations": [
            {"op": "remove_attack", "argument": "b", "target": "a"},
            {"op": "add_attack", "argument": "a", "target": "ghost"},
        ]})
        assert resp.status_code == 422
        assert resp.json()["error"] == "malformed_framework"
        assert client.get(f"/v1/sessions/{sid}").json()["revision"] == 0

    def test_attack_mutation_needs_target(self, client):
        sid = _create(client, ["a"])
        resp = client.post(f"/v1/sessions/{sid}/mutations", json={"mutations": [
            {"op": "add_attack", "argument": "a"},
        ]})
        assert resp.status_code == 422

    def test_empty_batch_is_invalid(self, client):
        sid = _create(client, ["a"])
        resp = client.post(f"/v1/sessions/{sid}/mutations", json={"mutations": []})
        assert resp.status_code == 422


# ── Audit Trail ────────────────────────────────────────────────

class TestAuditTrail:
    def test_queries_are_chained(self, client):
        from argsat.utils.audit import verify_chain
        sid = _create(client, ["a", "b"], [("b", "a")])
        _query(client, sid, problem="SE-GR")
        _query(client, sid, problem="DC-ST", argument="a")

        data = client.get("/v1/audit/queries").json()
        assert data["total"] == 2
        newest, oldest = data["queries"]
        assert newest["problem"] == "DC-ST"
        assert newest["answer"] == "NO"
        assert oldest["answer"] == "w b"
        assert verify_chain([oldest, newest])

    def test_tampering_breaks_the_chain(self, tmp_path):
        from argsat.utils.audit import get_recent_queries, log_query, verify_chain
        path = str(tmp_path / "trail.jsonl")
        log_query("s1", 0, "SE-GR", "ok", "w a", path=path)
        log_query("s1", 1, "SE-GR", "ok", "w a b", path=path)
        entries = list(reversed(get_recent_queries(path=path)))
        assert verify_chain(entries)
        entries[0]["answer"] = "w b"
        assert not verify_chain(entries)
