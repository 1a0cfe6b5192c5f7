"""HTTP client for the Keycloak Admin REST API.

Implements IdentityBackendPort over a synchronous httpx.Client. The admin
access token is obtained with a password grant against the admin realm,
cached, and re-acquired once when the API answers 401.

Error mapping:
- Network failures, timeouts, 5xx responses and rejected admin
  credentials raise BackendUnavailableError.
- 409 on a create raises ConflictDetectedError, which every ``ensure_*``
  method absorbs and reports as "already existed".
- Any other unexpected response raises IdentityRequestError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    ConflictDetectedError,
)

if TYPE_CHECKING:
    from provisio.infra.identity.settings import IdentitySettings

logger = logging.getLogger(__name__)

_BACKEND = "identity"


class IdentityRequestError(Exception):
    """Raised when the admin API rejects a request for a non-transient reason.

    Attributes:
        status_code: HTTP status returned by the admin API.
        method: HTTP method of the failed request.
        path: Request path relative to the base URL.
    """

    def __init__(self, status_code: int, method: str, path: str, body: str = "") -> None:
        self.status_code = status_code
        self.method = method
        self.path = path
        self.body = body
        super().__init__(f"Identity admin request {method} {path} failed ({status_code})")


def _created_id(response: httpx.Response) -> str:
    """Extract the new resource id from a 201 response's Location header."""
    location = response.headers.get("location", "")
    return location.rstrip("/").rsplit("/", 1)[-1]


class KeycloakAdminClient:
    """Keycloak-backed implementation of IdentityBackendPort.

    If ``client`` is provided it is reused across calls and the caller
    manages its lifecycle. Otherwise an internal client is created lazily
    and released by :meth:`close`.

    Args:
        settings: Identity backend settings.
        client: Optional shared httpx.Client (tests pass one built on
            ``httpx.MockTransport``).
    """

    def __init__(
        self,
        settings: IdentitySettings,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._external_client = client is not None
        self._client: httpx.Client | None = client
        self._access_token: str | None = None

    # ------------------------------------------------------------------
    # IdentityBackendPort
    # ------------------------------------------------------------------

    def realm_exists(self, name: str) -> bool:
        response = self._send("GET", f"/admin/realms/{name}")
        if response.status_code == 404:
            return False
        self._expect(response, 200)
        return True

    def ensure_realm(self, name: str, display_name: str) -> bool:
        if self.realm_exists(name):
            logger.info("identity_realm_exists", extra={"realm": name})
            return False
        payload = {
            "realm": name,
            "displayName": display_name,
            "enabled": True,
            "registrationAllowed": False,
            "registrationEmailAsUsername": True,
        }
        try:
            self._create("/admin/realms", payload, "realm", name)
        except ConflictDetectedError:
            logger.info("identity_realm_create_race", extra={"realm": name})
            return False
        logger.info("identity_realm_created", extra={"realm": name})
        return True

    def ensure_client(self, realm: str, client_id: str, secret: str) -> tuple[str, bool]:
        existing = self._find_client(realm, client_id)
        if existing is not None:
            return existing, False
        payload = {
            "clientId": client_id,
            "secret": secret,
            "enabled": True,
            "publicClient": False,
            "bearerOnly": False,
            "standardFlowEnabled": True,
            "implicitFlowEnabled": False,
            "directAccessGrantsEnabled": True,
            "serviceAccountsEnabled": True,
        }
        try:
            response = self._create(f"/admin/realms/{realm}/clients", payload, "client", client_id)
        except ConflictDetectedError:
            found = self._find_client(realm, client_id)
            if found is None:
                raise
            return found, False
        created_id = _created_id(response)
        logger.info(
            "identity_client_created",
            extra={"realm": realm, "client_id": client_id, "id": created_id},
        )
        return created_id, True

    def ensure_role(self, realm: str, role_name: str) -> bool:
        if self._get_role(realm, role_name) is not None:
            return False
        payload = {
            "name": role_name,
            "description": f"Auto-generated role for {realm}",
            "composite": False,
        }
        try:
            self._create(f"/admin/realms/{realm}/roles", payload, "role", role_name)
        except ConflictDetectedError:
            return False
        logger.info("identity_role_created", extra={"realm": realm, "role": role_name})
        return True

    def ensure_user(
        self,
        realm: str,
        username: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role_name: str,
    ) -> tuple[str, bool]:
        existing = self._find_user(realm, username)
        if existing is not None:
            return existing, False
        payload = {
            "username": username,
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "enabled": True,
            "emailVerified": True,
        }
        try:
            response = self._create(f"/admin/realms/{realm}/users", payload, "user", username)
        except ConflictDetectedError:
            found = self._find_user(realm, username)
            if found is None:
                raise
            return found, False
        user_id = _created_id(response)

        credential = {"type": "password", "value": password, "temporary": False}
        reset = self._send(
            "PUT", f"/admin/realms/{realm}/users/{user_id}/reset-password", json=credential
        )
        self._expect(reset, 204, 200)

        role = self._get_role(realm, role_name)
        if role is None:
            raise IdentityRequestError(404, "GET", f"/admin/realms/{realm}/roles/{role_name}")
        mapping = self._send(
            "POST",
            f"/admin/realms/{realm}/users/{user_id}/role-mappings/realm",
            json=[role],
        )
        self._expect(mapping, 204, 200)

        logger.info(
            "identity_user_created",
            extra={"realm": realm, "username": username, "id": user_id},
        )
        return user_id, True

    def delete_realm(self, name: str) -> bool:
        response = self._send("DELETE", f"/admin/realms/{name}")
        if response.status_code == 404:
            return False
        self._expect(response, 204, 200)
        logger.info("identity_realm_deleted", extra={"realm": name})
        return True

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_client(self, realm: str, client_id: str) -> str | None:
        response = self._send(
            "GET", f"/admin/realms/{realm}/clients", params={"clientId": client_id}
        )
        self._expect(response, 200)
        matches: list[dict[str, Any]] = response.json()
        for item in matches:
            if item.get("clientId") == client_id:
                return str(item["id"])
        return None

    def _find_user(self, realm: str, username: str) -> str | None:
        response = self._send(
            "GET",
            f"/admin/realms/{realm}/users",
            params={"username": username, "exact": "true"},
        )
        self._expect(response, 200)
        matches: list[dict[str, Any]] = response.json()
        for item in matches:
            if str(item.get("username", "")).lower() == username.lower():
                return str(item["id"])
        return None

    def _get_role(self, realm: str, role_name: str) -> dict[str, Any] | None:
        response = self._send("GET", f"/admin/realms/{realm}/roles/{role_name}")
        if response.status_code == 404:
            return None
        self._expect(response, 200)
        role: dict[str, Any] = response.json()
        return role

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _create(
        self,
        path: str,
        payload: dict[str, Any],
        resource_type: str,
        resource_id: str,
    ) -> httpx.Response:
        response = self._send("POST", path, json=payload)
        if response.status_code == 409:
            raise ConflictDetectedError(resource_type, resource_id)
        self._expect(response, 201)
        return response

    def _expect(self, response: httpx.Response, *statuses: int) -> None:
        if response.status_code not in statuses:
            raise IdentityRequestError(
                response.status_code,
                response.request.method,
                response.request.url.path,
                response.text,
            )

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated admin request, re-authenticating once on 401."""
        response = self._send_once(method, path, json=json, params=params)
        if response.status_code in (401, 403):
            self._access_token = None
            response = self._send_once(method, path, json=json, params=params)
            if response.status_code in (401, 403):
                raise BackendUnavailableError(_BACKEND, "admin credentials rejected")
        if response.status_code >= 500:
            raise BackendUnavailableError(
                _BACKEND,
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _send_once(
        self,
        method: str,
        path: str,
        *,
        json: Any,
        params: dict[str, str] | None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._get_access_token()}"}
        try:
            return self._get_client().request(
                method,
                f"{self._base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self._settings.timeout,
            )
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError(_BACKEND, f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(_BACKEND, f"{method} {path}: {exc}") from exc

    def _get_access_token(self) -> str:
        if self._access_token is None:
            self._access_token = self._request_token()
        return self._access_token

    def _request_token(self) -> str:
        s = self._settings
        data = {
            "grant_type": "password",
            "client_id": s.admin_client_id,
            "username": s.admin_username,
            "password": s.admin_password,
        }
        try:
            response = self._get_client().post(
                f"{self._base_url}/realms/{s.admin_realm}/protocol/openid-connect/token",
                data=data,
                timeout=s.timeout,
            )
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError(_BACKEND, "admin token request timed out") from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(_BACKEND, f"admin token request: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "identity_admin_token_failed",
                extra={"status": response.status_code},
            )
            raise BackendUnavailableError(
                _BACKEND,
                f"admin token request returned {response.status_code}",
                status_code=response.status_code,
            )
        body: dict[str, Any] = response.json()
        return str(body["access_token"])

    def _get_client(self) -> httpx.Client:
        """Return the shared or lazily-created httpx.Client."""
        if self._client is None:
            self._client = httpx.Client()
        return self._client

    def close(self) -> None:
        """Close the internal httpx.Client if we own it."""
        if self._client is not None and not self._external_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> KeycloakAdminClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
