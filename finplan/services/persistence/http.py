"""
REST Persistence Adapter

Talks to the financial data service over HTTP with httpx.

Endpoints per resource (assets, liabilities, cashflow/incomes, cashflow/expenses):
- GET    /<resource>        list
- GET    /<resource>/<id>   get
- POST   /<resource>        create
- PATCH  /<resource>/<id>   update
- DELETE /<resource>/<id>   delete

Error mapping:
- non-2xx                   -> RequestFailedError (NotFoundError for 404),
                               details hold the JSON body or the raw text
- timeout / transport error -> StorageConnectionError

Request bodies carry only the writable fields of each resource (WRITE_FIELDS);
the service rejects unknown keys.

Only failures to connect are retried. A request that reached the server is
never replayed, so a POST cannot be applied twice.
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finplan.config import PersistenceSettings, get_settings
from finplan.models.intent import IntentEntity
from finplan.models.plan import PlanEntity
from finplan.services.persistence.interface import (
    RESOURCE_MODELS,
    RESOURCE_PATHS,
    FinancialStorageInterface,
    NotFoundError,
    RequestFailedError,
    ResourceStorageInterface,
    StorageConnectionError,
    StorageError,
    write_payload,
)

logger = structlog.get_logger(__name__)


class FinancialApiClient:
    """
    Thin HTTP client shared by all resources.

    Handles retries, error mapping and JSON decoding.
    """

    def __init__(
        self,
        settings: Optional[PersistenceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().persistence
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body (None when empty).

        Raises:
            RequestFailedError: non-2xx response
            StorageConnectionError: the server could not be reached
        """
        url = path if path.startswith("/") else f"/{path}"

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.retry_attempts),
                wait=wait_exponential(
                    multiplier=1,
                    min=self._settings.retry_wait_min_seconds,
                    max=self._settings.retry_wait_max_seconds,
                ),
                retry=retry_if_exception_type(httpx.ConnectError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.request(method, url, json=payload)
        except httpx.TimeoutException as e:
            logger.warning("persistence_request_timeout", method=method, path=url)
            raise StorageConnectionError(f"Request to {url} timed out") from e
        except httpx.TransportError as e:
            logger.warning(
                "persistence_request_unreachable",
                method=method,
                path=url,
                error=str(e),
            )
            raise StorageConnectionError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            self._raise_for_status(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StorageError(f"Response from {url} is not valid JSON") from e

    def _raise_for_status(self, response: httpx.Response) -> None:
        full_url = str(response.request.url)
        try:
            details = response.json()
        except ValueError:
            details = response.text

        message = f"Request to {full_url} failed with status {response.status_code}"
        logger.warning(
            "persistence_request_failed",
            url=full_url,
            status_code=response.status_code,
        )

        if response.status_code == 404:
            raise NotFoundError(message, details=details, url=full_url)
        raise RequestFailedError(message, response.status_code, details, full_url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class HttpResourceStorage(ResourceStorageInterface):
    """CRUD for one resource of the financial data service."""

    def __init__(self, api: FinancialApiClient, entity: IntentEntity):
        self._api = api
        self.entity = entity
        self._path = RESOURCE_PATHS[entity]
        self._model = RESOURCE_MODELS[entity]

    def _item_path(self, entity_id: str) -> str:
        return f"{self._path}/{quote(str(entity_id), safe='')}"

    def _parse(self, data: Any) -> PlanEntity:
        try:
            return self._model.model_validate(data)
        except ValidationError as e:
            raise StorageError(
                f"Malformed {self.entity.value} returned by {self._path}: {e}"
            ) from e

    async def get(self, entity_id: str) -> PlanEntity:
        return self._parse(await self._api.request("GET", self._item_path(entity_id)))

    async def create(self, record: PlanEntity) -> PlanEntity:
        data = await self._api.request(
            "POST", self._path, write_payload(self.entity, record)
        )
        return record if data is None else self._parse(data)

    async def update(self, record: PlanEntity) -> PlanEntity:
        data = await self._api.request(
            "PATCH", self._item_path(record.id), write_payload(self.entity, record)
        )
        return record if data is None else self._parse(data)

    async def delete(self, entity_id: str) -> None:
        await self._api.request("DELETE", self._item_path(entity_id))

    async def list(self):
        data = await self._api.request("GET", self._path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError(f"Expected a list from {self._path}")
        return [self._parse(item) for item in data]


class HttpFinancialStorage(FinancialStorageInterface):
    """
    FinancialStorageInterface backed by the REST service.

    Usage:
        storage = HttpFinancialStorage()
        plan = await storage.fetch_plan()
        await storage.aclose()
    """

    def __init__(
        self,
        settings: Optional[PersistenceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api = FinancialApiClient(settings=settings, client=client)
        self._resources = {
            entity: HttpResourceStorage(self._api, entity)
            for entity in IntentEntity
        }

    def resource(self, entity: IntentEntity) -> ResourceStorageInterface:
        return self._resources[IntentEntity(entity)]

    async def aclose(self) -> None:
        await self._api.aclose()
