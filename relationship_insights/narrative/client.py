"""
HTTP adapter for the external narrative-generation service.

POSTs {systemPrompt, userPrompt, temperature} and reads {result}. Only
transport and status handling live here; prompt wording is deliberately thin
since prompt engineering belongs to the service. Retries are not done here:
the enrichment stage owns the retry budget so a call is never retried twice.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

import httpx

from relationship_insights.config.settings import Settings, get_settings
from relationship_insights.core.exceptions import NarrativeUnavailableError
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)

NarrativeGenerator = Callable[[dict[str, Any]], Awaitable[str]]

SYSTEM_PROMPT = (
    "You comment on a gap between two partners' ratings of one aspect of their "
    "relationship. Be brief, neutral and constructive."
)
TRANSIENT_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


def build_user_prompt(context: dict[str, Any]) -> str:
    return "Discrepancy context (JSON):\n" + json.dumps(context, sort_keys=True, default=str)


class HttpNarrativeClient:
    """
    Async callable: await client(context) -> commentary text.

    Pass an httpx.AsyncClient to share a connection pool (or a MockTransport
    in tests); otherwise one is created and closed with aclose().
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        temperature: float = 0.7,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.temperature = temperature
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._headers = headers
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HttpNarrativeClient":
        s = settings or get_settings()
        if not s.narrative_api_url:
            raise NarrativeUnavailableError("NARRATIVE_API_URL is not configured")
        return cls(
            s.narrative_api_url,
            api_key=s.narrative_api_key,
            temperature=s.narrative_temperature,
            timeout=s.narrative_timeout_sec,
        )

    async def __call__(self, context: dict[str, Any]) -> str:
        body = {
            "systemPrompt": SYSTEM_PROMPT,
            "userPrompt": build_user_prompt(context),
            "temperature": self.temperature,
        }
        try:
            r = await self._client.post(self.url, json=body, headers=self._headers)
        except httpx.TransportError as e:
            raise NarrativeUnavailableError(f"narrative request failed: {e}", transient=True) from e
        if r.status_code in TRANSIENT_STATUS:
            raise NarrativeUnavailableError(
                f"narrative service returned {r.status_code}",
                transient=True,
                status=r.status_code,
            )
        if r.status_code >= 400:
            raise NarrativeUnavailableError(
                f"narrative service returned {r.status_code}",
                status=r.status_code,
            )
        try:
            data = r.json()
        except ValueError as e:
            raise NarrativeUnavailableError("narrative response is not JSON") from e
        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, str) or not result.strip():
            raise NarrativeUnavailableError("narrative response has no result text")
        return result.strip()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpNarrativeClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
