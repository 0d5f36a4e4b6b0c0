# FinSync Remote API Client
# requests-based client for the finance REST API

import logging
from collections.abc import Callable, Iterator
from typing import Any, Optional, Protocol

import requests

from finsync.errors import RemoteProtocolError, RemoteRejectedError, TransportError
from finsync.models import EntityType, SyncableRecord
from finsync.remote.payloads import RemoteRecord, server_id_from_create

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Encodes a local record into a request body
Encoder = Callable[[SyncableRecord], dict[str, Any]]


class RemoteEndpoint(Protocol):
    """Remote operations for one entity type, as used by the reconcilers."""

    def create(self, record: SyncableRecord) -> Optional[str]: ...

    def update(self, server_id: str, record: SyncableRecord) -> None: ...

    def delete(self, server_id: str) -> None: ...

    def list_changed(self, since: int) -> list[RemoteRecord]: ...


class ApiClient:
    """
    Thin wrapper around a ``requests.Session`` for the finance API.

    Every failure is mapped into the ``RemoteError`` family so callers never
    see ``requests`` exceptions.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify = verify
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        allow_status: tuple[int, ...] = (),
    ) -> tuple[int, Any]:
        """
        Perform one request and decode its JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            json_body: Request body to send as JSON.
            params: Query string parameters.
            allow_status: Non-2xx status codes to return instead of raising.

        Returns:
            Tuple of (status code, decoded body or None).
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self._session.request(
                method,
                url,
                json=json_body,
                params=params,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code in allow_status:
            return response.status_code, None
        if not 200 <= response.status_code < 300:
            raise RemoteRejectedError(method, path, response.status_code, response.text or "")

        if not response.content:
            return response.status_code, None
        try:
            return response.status_code, response.json()
        except ValueError as e:
            raise RemoteProtocolError(f"{method} {path} returned invalid JSON") from e

    def ping(self) -> bool:
        """True if the server answers the reachability probe."""
        try:
            self.request("GET", "ping")
        except (TransportError, RemoteRejectedError):
            return False
        return True

    def endpoint(self, entity_type: EntityType, encoder: Encoder) -> "EntityEndpoint":
        return EntityEndpoint(self, entity_type, encoder)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class EntityEndpoint:
    """CRUD and change-feed operations for one REST resource."""

    def __init__(self, client: ApiClient, entity_type: EntityType, encoder: Encoder):
        self._client = client
        self.entity_type = entity_type
        self._encoder = encoder

    @property
    def resource(self) -> str:
        return self.entity_type.resource

    def create(self, record: SyncableRecord) -> Optional[str]:
        """POST the record. Returns the server id, or None if the server sent none."""
        _, body = self._client.request("POST", self.resource, json_body=self._encoder(record))
        if isinstance(body, dict) and body.get("success") is False:
            raise RemoteRejectedError("POST", self.resource, 200, str(body.get("message", "")))
        return server_id_from_create(body)

    def update(self, server_id: str, record: SyncableRecord) -> None:
        path = f"{self.resource}/{server_id}"
        _, body = self._client.request("PUT", path, json_body=self._encoder(record))
        if isinstance(body, dict) and body.get("success") is False:
            raise RemoteRejectedError("PUT", path, 200, str(body.get("message", "")))

    def delete(self, server_id: str) -> None:
        """DELETE the record. A 404 means it is already gone and counts as done."""
        path = f"{self.resource}/{server_id}"
        status, _ = self._client.request("DELETE", path, allow_status=(404,))
        if status == 404:
            logger.info("%s %s already deleted on server", self.entity_type.value, server_id)

    def list_changed(self, since: int) -> list[RemoteRecord]:
        """All records changed on the server since ``since`` (epoch ms)."""
        return [RemoteRecord.from_json(item) for item in self._iter_items(since)]

    def _iter_items(self, since: int) -> Iterator[Any]:
        page = 1
        while True:
            params: dict[str, Any] = {"updatedSince": since}
            if page > 1:
                params["page"] = page
            _, body = self._client.request("GET", self.resource, params=params)
            if not isinstance(body, dict) or "data" not in body:
                raise RemoteProtocolError(f"GET {self.resource} returned no data")

            data = body["data"]
            if isinstance(data, list):
                yield from data
                return
            if not isinstance(data, dict) or not isinstance(data.get("data"), list):
                raise RemoteProtocolError(f"GET {self.resource} returned unexpected data")

            # Paginated resource
            yield from data["data"]
            try:
                current_page = int(data.get("current_page") or page)
                last_page = int(data.get("last_page") or current_page)
            except (TypeError, ValueError) as e:
                raise RemoteProtocolError(f"GET {self.resource} returned invalid pagination") from e
            if current_page >= last_page:
                return
            page = current_page + 1
