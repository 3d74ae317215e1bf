import logging
from typing import Any, Callable, Dict, Protocol

import httpx

from ..core.exceptions import ResourceApiError

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "todo": "/todos",
    "habit": "/habits",
    "meal_plan": "/meal",
    "workout_plan": "/workout",
    "journal_entry": "/journal",
}


class ResourceApi(Protocol):
    async def create_todo(self, payload: Dict[str, Any]) -> Any: ...

    async def create_habit(self, payload: Dict[str, Any]) -> Any: ...

    async def create_meal_plan(self, payload: Dict[str, Any]) -> Any: ...

    async def create_workout_plan(self, payload: Dict[str, Any]) -> Any: ...

    async def create_journal_entry(self, payload: Dict[str, Any]) -> Any: ...


ResourceApiFactory = Callable[[str], ResourceApi]


def _remote_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return f"Request failed with status {response.status_code}"


class HttpResourceApi:
    """Productivity backend client acting on behalf of one user."""

    def __init__(self, client: httpx.AsyncClient, token: str) -> None:
        self._client = client
        self._headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def _post(self, resource: str, payload: Dict[str, Any]) -> Any:
        path = ENDPOINTS[resource]
        try:
            response = await self._client.post(path, json=payload, headers=self._headers)
        except httpx.HTTPError as error:
            raise ResourceApiError(str(error) or f"{type(error).__name__} calling {path}") from error
        if response.is_error:
            raise ResourceApiError(_remote_message(response), status=response.status_code)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("success") is False:
            raise ResourceApiError(body.get("message") or f"{resource} was rejected", status=response.status_code)
        logger.debug("Created %s via %s", resource, path)
        return body

    async def create_todo(self, payload: Dict[str, Any]) -> Any:
        return await self._post("todo", payload)

    async def create_habit(self, payload: Dict[str, Any]) -> Any:
        return await self._post("habit", payload)

    async def create_meal_plan(self, payload: Dict[str, Any]) -> Any:
        return await self._post("meal_plan", payload)

    async def create_workout_plan(self, payload: Dict[str, Any]) -> Any:
        return await self._post("workout_plan", payload)

    async def create_journal_entry(self, payload: Dict[str, Any]) -> Any:
        return await self._post("journal_entry", payload)


def build_http_client(base_url: str, timeout_s: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, timeout=timeout_s)
