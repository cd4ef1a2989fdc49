from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..settings import get_settings


class WorkoutStoreClient:
    """Thin async wrapper over the workout store HTTP surface.

    Every call raises ``httpx.HTTPError`` on transport failure, a non-2xx
    answer, or a body that is not JSON; deciding what to do about that is
    the caller's business.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _payload(resp: httpx.Response) -> Any:
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError as e:
            # proxies and captive portals answer 200 with an HTML page
            raise httpx.DecodingError(f"non-JSON reply from store: {e}", request=resp.request) from e

    async def list_workouts(self) -> List[Dict[str, Any]]:
        data = self._payload(await self._client.get("/workouts"))
        return data if isinstance(data, list) else []

    async def create_workout(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._payload(await self._client.post("/workouts", json=payload))

    async def replace_workout(self, workout_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._payload(await self._client.put(f"/workouts/{workout_id}", json=payload))

    async def delete_history_entry(self, workout_id: str, index: int) -> Dict[str, Any]:
        return self._payload(await self._client.delete(f"/workouts/{workout_id}/history/{index}"))

    async def delete_workout(self, workout_id: str) -> Dict[str, Any]:
        return self._payload(await self._client.delete(f"/workouts/{workout_id}"))
