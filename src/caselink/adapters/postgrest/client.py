"""Low-level async client for a hosted PostgREST endpoint."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx

from caselink.adapters.http_resilience import ResilientClient
from caselink.domain.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from caselink.config.hosted_store import HostedStoreConfig
    from caselink.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000

type Row = dict[str, Any]
type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


class PostgrestAPIError(StoreError):
    """Raised when the hosted endpoint answers with an error or an unexpected payload."""


def in_filter(values: Iterable[str]) -> str:
    quoted = ",".join('"{}"'.format(value.replace('"', '\\"')) for value in values)
    return f"in.({quoted})"


class PostgrestClient:
    """Table-level select/patch/upsert over ``ResilientClient``."""

    def __init__(
        self,
        *,
        config: HostedStoreConfig,
        client_factory: ClientFactory | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._page_size = page_size

    def open(self) -> ResilientClient:
        return self._client_factory(self._resilience)

    async def select(
        self,
        client: ResilientClient,
        table: str,
        params: dict[str, str] | None = None,
    ) -> list[Row]:
        """All rows of ``table`` matching ``params``, fetched page by page."""

        rows: list[Row] = []
        offset = 0
        while True:
            page_params = {"select": "*", **(params or {})}
            page_params["limit"] = str(self._page_size)
            page_params["offset"] = str(offset)
            page = await self._request_rows(client, "GET", table, params=page_params)
            rows.extend(page)
            if len(page) < self._page_size:
                return rows
            offset += self._page_size

    async def patch(
        self,
        client: ResilientClient,
        table: str,
        params: dict[str, str],
        body: Row,
    ) -> list[Row]:
        return await self._request_rows(
            client,
            "PATCH",
            table,
            params=params,
            json=body,
            headers={"Prefer": "return=representation"},
        )

    async def upsert(self, client: ResilientClient, table: str, rows: list[Row]) -> None:
        await self._request(
            client,
            "POST",
            table,
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def _request_rows(
        self,
        client: ResilientClient,
        method: str,
        table: str,
        **kwargs: Any,
    ) -> list[Row]:
        response = await self._request(client, method, table, **kwargs)
        try:
            payload = response.json()
        except ValueError as exc:
            raise PostgrestAPIError(f"{method} {table}: response is not JSON") from exc
        if not isinstance(payload, list):
            kind = type(payload).__name__
            raise PostgrestAPIError(f"{method} {table}: unexpected payload {kind}")
        items = cast(list[object], payload)
        return [cast(Row, item) for item in items if isinstance(item, dict)]

    async def _request(
        self,
        client: ResilientClient,
        method: str,
        table: str,
        **kwargs: Any,
    ) -> httpx.Response:
        if self._resilience.base_url is None:
            raise PostgrestAPIError("Missing hosted store base_url in resilience configuration")
        try:
            response = await client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.warning(
                "%s %s failed with %s: %s",
                method,
                table,
                exc.response.status_code,
                exc.response.text,
            )
            raise PostgrestAPIError(
                f"{method} {table}: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PostgrestAPIError(f"{method} {table}: {exc}") from exc
        return response
