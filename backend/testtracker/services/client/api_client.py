from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx
from pydantic.alias_generators import to_camel
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from testtracker.core.config import settings
from testtracker.core.logging import get_logger
from testtracker.models.schemas import StatusUpdateResponse
from testtracker.models.testcase import TestCaseRecord

logger = get_logger("api_client")

_read_retry = retry(
    stop=stop_after_attempt(settings.API_MAX_RETRIES + 1),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)


def _segment(value: str) -> str:
    return quote(value, safe="")


def _parse_update(response: httpx.Response) -> StatusUpdateResponse:
    # Domain errors come back as {"success": false, "message": ...}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and "success" in body:
        return StatusUpdateResponse.model_validate(body)
    response.raise_for_status()
    return StatusUpdateResponse(success=True)


class TestCasesAPI:
    __test__ = False

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @_read_retry
    async def get_all(self) -> List[Dict[str, Any]]:
        response = await self._client.get("/test-cases")
        response.raise_for_status()
        return response.json()["data"]

    @_read_retry
    async def get_cell_types(self) -> List[str]:
        response = await self._client.get("/test-cases/cell-types")
        response.raise_for_status()
        return response.json()["data"]

    @_read_retry
    async def get_by_site(self, site: str, phase: Optional[str] = None) -> List[TestCaseRecord]:
        params = {"phase": phase} if phase else None
        response = await self._client.get(f"/test-cases/site/{_segment(site)}", params=params)
        response.raise_for_status()
        records = [TestCaseRecord.model_validate(r) for r in response.json()["data"]]
        logger.debug(f"Fetched {len(records)} records for site {site} phase {phase}")
        return records


class TestStatusAPI:
    """Write side. Writes are never retried here; a new edit re-arms them."""

    __test__ = False

    def __init__(self, client: httpx.AsyncClient, user: Optional[str] = None):
        self._client = client
        self.user = user or settings.DEFAULT_USER

    async def update_status(self, unique_test_id: str, status_or_fields: Union[str, Dict[str, Any]]) -> StatusUpdateResponse:
        if isinstance(status_or_fields, str):
            fields = {"status": status_or_fields}
        else:
            fields = dict(status_or_fields)
        payload = {to_camel(k): v for k, v in fields.items()}
        payload["modifiedUser"] = self.user
        response = await self._client.put(f"/test-status/{_segment(unique_test_id)}", json=payload)
        return _parse_update(response)

    async def update_note(self, unique_test_id: str, note: str) -> StatusUpdateResponse:
        payload = {"note": note, "modifiedUser": self.user}
        response = await self._client.put(f"/test-status/{_segment(unique_test_id)}/note", json=payload)
        return _parse_update(response)

    @_read_retry
    async def get_statistics(self) -> Dict[str, Any]:
        response = await self._client.get("/test-status/statistics")
        response.raise_for_status()
        return response.json()["data"]


class TestTrackerClient:
    __test__ = False

    def __init__(
        self,
        base_url: Optional[str] = None,
        user: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout or settings.API_TIMEOUT,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self.test_cases = TestCasesAPI(self._http)
        self.test_status = TestStatusAPI(self._http, user)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "TestTrackerClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
