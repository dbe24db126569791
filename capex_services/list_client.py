"""
List Client (``capex_services.list_client``).

Responsibility
--------------
CRUD and query access to named collections of the remote list store.  The
rest of the system depends only on the ``ListClient`` protocol; the
``SharePointListClient`` implementation speaks the SharePoint REST API
(odata=verbose JSON) through a ``requests.Session``.

Architecture position
---------------------
**Services layer** -- the single I/O boundary.  Called sequentially by
``StructureOrchestrator`` and ``ProjectService``.

Invariants enforced
-------------------
* Every write carries a fresh ``X-RequestDigest`` (form digest).
* ``create`` returns a positive integer id or raises; it never returns a
  falsy sentinel.
* No request is retried.

Failure modes
-------------
* Network failure or non-2xx status  -> ``RemoteUnavailableError``.
* Body that is not valid JSON  -> ``MalformedResponseError`` (logged).
* Create response without ``d.Id`` / ``d.ID``  -> ``InvalidIdentityError``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import requests

from capex_kernel.exceptions import (
    InvalidIdentityError,
    MalformedResponseError,
    RemoteUnavailableError,
)
from capex_kernel.logging_config import get_logger

logger = get_logger("services.list_client")

ODATA_VERBOSE = "application/json;odata=verbose"


@runtime_checkable
class ListClient(Protocol):
    """Access to the remote list-oriented store."""

    def create(self, collection: str, fields: dict[str, Any]) -> int:
        ...

    def update(self, collection: str, item_id: int, fields: dict[str, Any]) -> None:
        ...

    def delete(self, collection: str, item_id: int) -> None:
        ...

    def query(
        self,
        collection: str,
        select: str | None = None,
        filter: str | None = None,
        orderby: str | None = None,
    ) -> list[dict[str, Any]]:
        ...

    def get_by_id(self, collection: str, item_id: int) -> dict[str, Any]:
        ...

    def form_digest(self) -> str:
        ...

    def current_user_id(self) -> int:
        ...


def encode_entity_type(collection: str) -> str:
    """``__metadata.type`` of an item of ``collection``."""
    # underscores first, the space escape itself contains one
    return "SP.Data." + collection.replace("_", "_x005f_").replace(" ", "_x0020_") + "ListItem"


def build_list_url(site_url: str, collection: str, endpoint: str = "") -> str:
    if not collection:
        raise ValueError("collection name is required")
    base = site_url.rstrip("/")
    return f"{base}/_api/web/lists/getbytitle('{collection}'){endpoint}"


def extract_item_id(body: Any) -> int | None:
    """Item id of a create response (``d.Id``, falling back to ``d.ID``)."""
    if not isinstance(body, dict):
        return None
    payload = body.get("d")
    if not isinstance(payload, dict):
        return None
    raw = payload.get("Id")
    if raw is None:
        raw = payload.get("ID")
    try:
        item_id = int(raw)
    except (TypeError, ValueError):
        return None
    return item_id if item_id > 0 else None


class SharePointListClient:
    """
    ``ListClient`` over the SharePoint REST API.

    Contract
    --------
    * Requests are blocking; ``timeout=None`` waits indefinitely.
    * ``fallback_form_digest`` is used only when ``/_api/contextinfo``
      cannot be read; without it the failure propagates.
    """

    def __init__(
        self,
        site_url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
        fallback_form_digest: str | None = None,
    ):
        self.site_url = site_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._fallback_form_digest = fallback_form_digest

    @classmethod
    def from_config(cls, config: Any, session: requests.Session | None = None) -> SharePointListClient:
        return cls(
            config.site_url,
            session=session,
            timeout=config.request_timeout,
            fallback_form_digest=config.fallback_form_digest,
        )

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> SharePointListClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Transport
    # =========================================================================

    def _send(
        self,
        method: str,
        url: str,
        *,
        collection: str | None,
        operation: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> requests.Response:
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("remote_request_failed", extra={
                "collection": collection,
                "operation": operation,
                "error": str(exc),
            })
            raise RemoteUnavailableError(collection, operation, detail=str(exc)) from exc

        if not response.ok:
            logger.warning("remote_request_rejected", extra={
                "collection": collection,
                "operation": operation,
                "status_code": response.status_code,
            })
            raise RemoteUnavailableError(
                collection, operation, status_code=response.status_code,
                detail=response.text[:200],
            )
        return response

    def _json(self, response: requests.Response, collection: str | None, operation: str) -> Any:
        try:
            return response.json()
        except ValueError:
            logger.error("remote_response_malformed", extra={
                "collection": collection,
                "operation": operation,
                "status_code": response.status_code,
            })
            raise MalformedResponseError(collection, operation, response.text or "") from None

    def _write_headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "Accept": ODATA_VERBOSE,
            "Content-Type": ODATA_VERBOSE,
            "X-RequestDigest": self.form_digest(),
        }
        headers.update(extra)
        return headers

    # =========================================================================
    # ListClient
    # =========================================================================

    def form_digest(self) -> str:
        url = f"{self.site_url}/_api/contextinfo"
        headers = {"Accept": ODATA_VERBOSE, "Content-Type": ODATA_VERBOSE}
        try:
            response = self._send("POST", url, collection=None, operation="contextinfo", headers=headers)
            body = self._json(response, None, "contextinfo")
            return body["d"]["GetContextWebInformation"]["FormDigestValue"]
        except (RemoteUnavailableError, MalformedResponseError, KeyError, TypeError) as exc:
            if self._fallback_form_digest is None:
                if isinstance(exc, (KeyError, TypeError)):
                    raise MalformedResponseError(None, "contextinfo", str(exc)) from exc
                raise
            logger.warning("form_digest_fallback", extra={"error": str(exc)})
            return self._fallback_form_digest

    def create(self, collection: str, fields: dict[str, Any]) -> int:
        url = build_list_url(self.site_url, collection, "/items")
        body = {"__metadata": {"type": encode_entity_type(collection)}, "Title": ""}
        body.update(fields)
        response = self._send(
            "POST", url, collection=collection, operation="create",
            headers=self._write_headers(), json_body=body,
        )
        payload = self._json(response, collection, "create")
        item_id = extract_item_id(payload)
        if item_id is None:
            logger.error("remote_create_without_id", extra={"collection": collection})
            raise InvalidIdentityError(collection, payload)
        logger.debug("remote_item_created", extra={"collection": collection, "item_id": item_id})
        return item_id

    def update(self, collection: str, item_id: int, fields: dict[str, Any]) -> None:
        url = build_list_url(self.site_url, collection, f"/items({int(item_id)})")
        body = {"__metadata": {"type": encode_entity_type(collection)}}
        body.update(fields)
        self._send(
            "POST", url, collection=collection, operation="update",
            headers=self._write_headers(**{"IF-MATCH": "*", "X-HTTP-Method": "MERGE"}),
            json_body=body,
        )
        logger.debug("remote_item_updated", extra={"collection": collection, "item_id": item_id})

    def delete(self, collection: str, item_id: int) -> None:
        url = build_list_url(self.site_url, collection, f"/items({int(item_id)})")
        headers = {
            "Accept": ODATA_VERBOSE,
            "X-RequestDigest": self.form_digest(),
            "IF-MATCH": "*",
            "X-HTTP-Method": "DELETE",
        }
        self._send("POST", url, collection=collection, operation="delete", headers=headers)
        logger.debug("remote_item_deleted", extra={"collection": collection, "item_id": item_id})

    def query(
        self,
        collection: str,
        select: str | None = None,
        filter: str | None = None,
        orderby: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {
            f"${name}": value
            for name, value in (("select", select), ("filter", filter), ("orderby", orderby))
            if value
        }
        url = build_list_url(self.site_url, collection, "/items")
        response = self._send(
            "GET", url, collection=collection, operation="query",
            headers={"Accept": ODATA_VERBOSE}, params=params,
        )
        body = self._json(response, collection, "query")
        try:
            results = body["d"]["results"]
        except (KeyError, TypeError):
            raise MalformedResponseError(collection, "query", str(body)) from None
        return list(results)

    def get_by_id(self, collection: str, item_id: int) -> dict[str, Any]:
        url = build_list_url(self.site_url, collection, f"/items({int(item_id)})")
        response = self._send(
            "GET", url, collection=collection, operation="get",
            headers={"Accept": ODATA_VERBOSE},
        )
        body = self._json(response, collection, "get")
        if not isinstance(body, dict) or not isinstance(body.get("d"), dict):
            raise MalformedResponseError(collection, "get", str(body))
        return body["d"]

    def current_user_id(self) -> int:
        url = f"{self.site_url}/_api/web/currentuser"
        response = self._send(
            "GET", url, collection=None, operation="currentuser",
            headers={"Accept": ODATA_VERBOSE},
        )
        body = self._json(response, None, "currentuser")
        try:
            return int(body["d"]["Id"])
        except (KeyError, TypeError, ValueError):
            raise MalformedResponseError(None, "currentuser", str(body)) from None
