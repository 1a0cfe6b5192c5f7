"""Tests for RequestIdMiddleware."""

from __future__ import annotations

import uuid

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from provisio.infra.fastapi import RequestIdMiddleware, get_request_id


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/echo")
    async def echo() -> dict[str, str]:
        bound = structlog.contextvars.get_contextvars()
        return {"request_id": get_request_id(), "bound": bound.get("request_id", "")}

    return app


@pytest.mark.unit
class TestRequestIdMiddleware:
    def test_propagates_valid_header(self) -> None:
        request_id = str(uuid.uuid4())
        resp = TestClient(_make_app()).get("/echo", headers={"X-Request-ID": request_id})

        assert resp.headers["x-request-id"] == request_id
        assert resp.json() == {"request_id": request_id, "bound": request_id}

    def test_generates_id_when_missing(self) -> None:
        resp = TestClient(_make_app()).get("/echo")

        generated = resp.headers["x-request-id"]
        assert uuid.UUID(generated)
        assert resp.json()["request_id"] == generated

    def test_replaces_non_uuid_header(self) -> None:
        resp = TestClient(_make_app()).get("/echo", headers={"X-Request-ID": "not-a-uuid"})
        assert resp.headers["x-request-id"] != "not-a-uuid"

    def test_context_is_empty_outside_requests(self) -> None:
        TestClient(_make_app()).get("/echo")
        assert get_request_id() == ""
