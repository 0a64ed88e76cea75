"""Supabase (PostgREST) storage for customer profiles and observations."""

from typing import Any

import httpx

from ..memory.models import ObservationSummary, Profile
from .base import BackendError, IntegrityError, MemoryBackend

PROFILES_TABLE = "customer_profiles"
OBSERVATIONS_TABLE = "customer_observations"

# Postgres text search configuration, must match the GIN index below.
SEARCH_CONFIG = "english"

POSTGRES_SCHEMA = """\
-- Create customer_observations table for storing facts about customers
CREATE TABLE IF NOT EXISTS customer_observations (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  customer_phone TEXT NOT NULL,
  content TEXT NOT NULL,
  source TEXT NOT NULL CHECK (source IN ('voice', 'sms', 'whatsapp')),
  occurred_at TIMESTAMPTZ DEFAULT NOW(),
  created_at TIMESTAMPTZ DEFAULT NOW(),
  FOREIGN KEY (customer_phone) REFERENCES customer_profiles(phone) ON DELETE CASCADE
);

CREATE INDEX idx_observations_customer_phone ON customer_observations(customer_phone);
CREATE INDEX idx_observations_occurred_at ON customer_observations(occurred_at DESC);

CREATE INDEX idx_observations_content_search ON customer_observations USING gin(to_tsvector('english', content));
"""


class SupabaseBackend(MemoryBackend):
    """Customer memory stored in Postgres, reached through Supabase's REST API."""

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            url: Supabase project URL (e.g. https://xyz.supabase.co).
            service_key: Service role key, sent as apikey and bearer token.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Send a PostgREST request and return the decoded body."""
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            raise BackendError(f"Request timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            raise BackendError(f"Request failed: {e}") from e

        if not response.is_success:
            raise self._error_from_response(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {table}: {e}") from e

    def _error_from_response(self, response: httpx.Response) -> BackendError:
        """Map a PostgREST error response to a BackendError."""
        code = ""
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("code") or "")
            message = body.get("message") or message

        detail = f"HTTP {response.status_code}: {message}"
        if code:
            detail = f"HTTP {response.status_code} [{code}]: {message}"
        # SQLSTATE class 23 covers not-null, foreign key, unique and check violations
        if code.startswith("23"):
            return IntegrityError(detail)
        return BackendError(detail)

    async def fetch_profile(self, phone: str) -> Profile | None:
        rows = await self._request(
            "GET",
            PROFILES_TABLE,
            params={
                "select": "phone,name,email,created_at,updated_at",
                "phone": f"eq.{phone}",
                "limit": "1",
            },
        )
        if not rows:
            return None
        row = rows[0]
        return Profile(
            phone=row["phone"],
            name=row.get("name"),
            email=row.get("email"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    async def insert_profile(
        self, phone: str, name: str | None = None, email: str | None = None
    ) -> None:
        await self._request(
            "POST",
            PROFILES_TABLE,
            json={"phone": phone, "name": name, "email": email},
            prefer="return=minimal",
        )

    async def update_profile(self, phone: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        await self._request(
            "PATCH",
            PROFILES_TABLE,
            params={"phone": f"eq.{phone}"},
            json=fields,
            prefer="return=minimal",
        )

    async def insert_observation(
        self,
        customer_phone: str,
        content: str,
        source: str,
        occurred_at: str,
    ) -> None:
        await self._request(
            "POST",
            OBSERVATIONS_TABLE,
            json={
                "customer_phone": customer_phone,
                "content": content,
                "source": source,
                "occurred_at": occurred_at,
            },
            prefer="return=minimal",
        )

    async def recent_observations(
        self, customer_phone: str, limit: int
    ) -> list[ObservationSummary]:
        rows = await self._request(
            "GET",
            OBSERVATIONS_TABLE,
            params={
                "select": "content,occurred_at,source",
                "customer_phone": f"eq.{customer_phone}",
                "order": "occurred_at.desc",
                "limit": str(limit),
            },
        )
        return [self._row_to_summary(row) for row in rows or []]

    async def search_observations(
        self, customer_phone: str, query: str, limit: int
    ) -> list[ObservationSummary]:
        rows = await self._request(
            "GET",
            OBSERVATIONS_TABLE,
            params={
                "select": "content,occurred_at,source",
                "customer_phone": f"eq.{customer_phone}",
                "content": f"plfts({SEARCH_CONFIG}).{query}",
                "order": "occurred_at.desc",
                "limit": str(limit),
            },
        )
        return [self._row_to_summary(row) for row in rows or []]

    async def close(self) -> None:
        await self._client.aclose()

    def _row_to_summary(self, row: dict[str, Any]) -> ObservationSummary:
        return ObservationSummary(
            content=row["content"],
            occurred_at=row["occurred_at"],
            source=row["source"],
        )
