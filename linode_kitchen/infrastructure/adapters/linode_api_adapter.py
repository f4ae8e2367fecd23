"""
Linode API Adapter

Architectural Intent:
- Implements CloudApiPort against the Linode v4 REST API using requests
- Translates transport failures into ApiTimeout / ApiError so the domain can
  classify them without importing requests
- Blocking HTTP calls run in the default executor to keep the port async

Design Decisions:
- One requests.Session per adapter, carrying the bearer token and JSON headers
- Every request has a timeout; there are no unbounded waits on the wire
- Listings follow the page/pages envelope until the last page
- No retrying here: retry policy belongs to the use cases
"""

from __future__ import annotations
import asyncio
import json
import logging
from functools import partial
from typing import Any, Optional

import requests

from linode_kitchen.domain.exceptions import ApiError, ApiTimeout

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.linode.com/v4"

CATALOG_PATHS = {
    "regions": "/regions",
    "types": "/linode/types",
    "images": "/images",
    "kernels": "/linode/kernels",
}


class LinodeApiAdapter:
    """
    Linode compute API adapter.

    Configuration parameters
    ------------------------
    token : str
        Personal access token sent as a bearer token.
    base_url : str
        API root, without trailing slash.
    timeout : float
        Connect and read timeout, in seconds, for every request.
    page_size : int
        Page size requested from paginated endpoints.
    session : requests.Session | None
        Pre-built session, mainly for tests.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        page_size: int = 500,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("Linode API %s %s params=%s", method, path, params)
        try:
            resp = self._session.request(
                method,
                url,
                json=body,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ApiTimeout(f"Linode API {method} {path} timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise ApiError(f"Linode API {method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise ApiError(
                f"Linode API {method} {path}: {resp.status_code} {resp.text}",
                status=resp.status_code,
                headers=resp.headers,
                body=resp.text,
            )

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(
                f"Linode API {method} {path}: undecodable response body",
                status=resp.status_code,
                headers=resp.headers,
                body=resp.text,
            ) from exc

    async def _run(self, method: str, path: str, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self._request, method, path, **kwargs)
        )

    async def _paginate(
        self, path: str, headers: Optional[dict[str, str]] = None
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            result = await self._run(
                "GET",
                path,
                params={"page": page, "page_size": self.page_size},
                headers=headers,
            )
            items.extend(result.get("data", []))
            pages = int(result.get("pages", 1) or 1)
            if page >= pages:
                return items
            page += 1

    # ------------------------------------------------------------------
    # CloudApiPort implementation
    # ------------------------------------------------------------------

    async def list_instances(self, label: Optional[str] = None) -> list[dict[str, Any]]:
        headers = {"X-Filter": json.dumps({"label": label})} if label else None
        return await self._paginate("/linode/instances", headers=headers)

    async def create_instance(self, payload: dict[str, Any]) -> dict[str, Any]:
        logger.debug("Linode API create label=%s", payload.get("label"))
        return await self._run("POST", "/linode/instances", body=payload)

    async def get_instance(self, instance_id: int) -> dict[str, Any]:
        return await self._run("GET", f"/linode/instances/{instance_id}")

    async def delete_instance(self, instance_id: int) -> None:
        await self._run("DELETE", f"/linode/instances/{instance_id}")

    async def list_catalog(self, kind: str) -> list[dict[str, Any]]:
        try:
            path = CATALOG_PATHS[kind]
        except KeyError:
            raise ValueError(f"Unknown catalog: {kind!r}") from None
        return await self._paginate(path)
