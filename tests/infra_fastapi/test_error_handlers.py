"""Unit tests for provisio.infra.fastapi.error_handlers."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    DomainError,
    DuplicateIdentifierError,
    InvalidStateTransitionError,
    OrphanedResourcesError,
    SchemaProvisioningFailedError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
    ValidationError,
)
from provisio.infra.fastapi import RequestIdMiddleware
from provisio.infra.fastapi.error_handlers import (
    PROBLEM_MEDIA_TYPE,
    _is_sensitive_key,
    _sanitize_context,
    _sanitize_value,
    register_exception_handlers,
)

REQUEST_ID = "5f0c6a4e-2d7b-4e39-9d0a-6f3c1b2a7e11"


def _make_app(exc: Exception) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    @app.get("/boom")
    def boom() -> None:
        raise exc

    return app


def _get(exc: Exception, **client_kwargs: bool):  # type: ignore[no-untyped-def]
    client = TestClient(_make_app(exc), **client_kwargs)
    return client.get("/boom", headers={"X-Request-ID": REQUEST_ID})


class TestStatusMapping:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("exc", "status", "error_code"),
        [
            (TenantNotFoundError("acme-corp"), 404, "TENANT_NOT_FOUND"),
            (ValidationError("identifier", "bad"), 422, "VALIDATION_ERROR"),
            (TenantAlreadyExistsError("acme-corp"), 409, "TENANT_ALREADY_EXISTS"),
            (DuplicateIdentifierError("acme-corp"), 409, "DUPLICATE_IDENTIFIER"),
            (OrphanedResourcesError("acme-corp"), 409, "ORPHANED_RESOURCES"),
            (InvalidStateTransitionError("nope"), 409, "INVALID_STATE_TRANSITION"),
            (DomainError("generic"), 400, "DOMAIN_ERROR"),
        ],
    )
    def test_client_errors(self, exc: Exception, status: int, error_code: str) -> None:
        resp = _get(exc)

        assert resp.status_code == status
        assert resp.headers["content-type"] == PROBLEM_MEDIA_TYPE
        body = resp.json()
        assert body["status"] == status
        assert body["error_code"] == error_code
        assert body["instance"] == "/boom"
        assert "correlation_id" not in body

    @pytest.mark.unit
    def test_provisioning_error_is_502_with_step(self) -> None:
        resp = _get(SchemaProvisioningFailedError("acme-corp", "migration failed"))

        assert resp.status_code == 502
        body = resp.json()
        assert body["type"] == "/errors/schema-provisioning-failed"
        assert body["title"] == "Provisioning Failed"
        assert body["context"] == {"identifier": "acme-corp", "step": "schema"}
        assert body["correlation_id"] == REQUEST_ID

    @pytest.mark.unit
    def test_backend_unavailable_is_503_with_retry_after(self) -> None:
        resp = _get(BackendUnavailableError("identity", "connection refused"))

        assert resp.status_code == 503
        assert resp.headers["retry-after"] == "30"
        body = resp.json()
        assert body["context"] == {"backend": "identity"}
        assert body["correlation_id"] == REQUEST_ID

    @pytest.mark.unit
    def test_unhandled_exception_is_sanitized_500(self) -> None:
        resp = _get(RuntimeError("db password=hunter2"), raise_server_exceptions=False)

        assert resp.status_code == 500
        body = resp.json()
        assert body["error_code"] == "INTERNAL_ERROR"
        assert "hunter2" not in resp.text
        assert "correlation_id" in body

    @pytest.mark.unit
    def test_request_validation_error(self) -> None:
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/items/{item_id}")
        def item(item_id: int) -> dict[str, int]:
            return {"id": item_id}

        resp = TestClient(app).get("/items/abc")

        assert resp.status_code == 422
        body = resp.json()
        assert body["error_code"] == "REQUEST_VALIDATION_ERROR"
        assert body["context"]["errors"][0]["loc"] == ["path", "item_id"]


class TestSanitization:
    @pytest.mark.unit
    def test_sensitive_keys_are_dropped(self) -> None:
        assert _sanitize_context({"password": "x", "client_secret": "y", "backend": "b"}) == {
            "backend": "b"
        }

    @pytest.mark.unit
    def test_is_sensitive_key_case_insensitive(self) -> None:
        assert _is_sensitive_key("Token") is True
        assert _is_sensitive_key("identifier") is False

    @pytest.mark.unit
    def test_values_are_made_serializable(self) -> None:
        ident = UUID("12345678-1234-5678-1234-567812345678")
        when = datetime(2026, 1, 2, 3, 4, 5)
        assert _sanitize_value(ident) == str(ident)
        assert _sanitize_value(when) == "2026-01-02T03:04:05"
        assert _sanitize_value(object.__new__(object)).startswith("<object")

    @pytest.mark.unit
    def test_connection_strings_are_redacted(self) -> None:
        value = _sanitize_value("postgresql+psycopg://admin:pw@db:5432/provisio failed")
        assert "admin:pw" not in value
        assert "[REDACTED]" in value

    @pytest.mark.unit
    def test_empty_context_becomes_none(self) -> None:
        assert _sanitize_context({"secret": "x"}) is None
