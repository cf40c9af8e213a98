"""Ledger client for the atomic day-record batch and fine transactions"""

import httpx
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict
from collection_gateway.config import settings
from collection_gateway.domain.exceptions import CommitError
from collection_gateway.domain.models import CreateBatch, UpdateBatch
from collection_gateway.infrastructure.observability.metrics import commit_latency_histogram


def _to_wire(value: Any) -> Any:
    """Decimals travel as strings so no precision is lost"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_wire(v) for v in value]
    return value


class LedgerClient:
    """
    Client for the collections backend write side.

    Each call is one request. There is no retry: a failed commit is
    reported and the user retries with all local data intact.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.collections_api_base
        self.timeout = timeout or settings.commit_timeout_seconds
        self.transport = transport

    async def _send(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                with commit_latency_histogram.time():
                    response = await client.request(method, path, json=payload)
                    response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                raise CommitError(f"Ledger timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise CommitError(f"Ledger rejected {method} {path}: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise CommitError(f"Ledger unreachable: {e}") from e
            except ValueError as e:
                raise CommitError(f"Invalid ledger response: {e}") from e

    async def create_day_record(self, batch: CreateBatch) -> str:
        """
        Create the aggregate day record and all of its payment rows in one call.

        Returns:
            Id of the created day record

        Raises:
            CommitError: On timeout, HTTP errors, or invalid response
        """
        data = await self._send("POST", "/day-records", _to_wire(asdict(batch)))
        try:
            return data["id"]
        except (KeyError, TypeError) as e:
            raise CommitError(f"Ledger response missing day record id: {e}") from e

    async def update_day_record(self, batch: UpdateBatch) -> str:
        """
        Replace every payment row of an existing day record.

        Raises:
            CommitError: On timeout, HTTP errors, or invalid response
        """
        payload = _to_wire(asdict(batch))
        day_record_id = payload.pop("day_record_id")
        await self._send("PUT", f"/day-records/{day_record_id}", payload)
        return day_record_id

    async def record_fine(
        self,
        amount: Decimal,
        account_id: str,
        day: date,
        lead_id: str,
        route_id: str | None,
    ) -> str:
        """Record a fine as income on a route cash account"""
        data = await self._send(
            "POST",
            "/transactions",
            _to_wire(
                {
                    "amount": amount,
                    "date": day,
                    "type": "INCOME",
                    "income_source": "MULTA",
                    "source_account_id": account_id,
                    "route_id": route_id,
                    "lead_id": lead_id,
                }
            ),
        )
        try:
            return data["id"]
        except (KeyError, TypeError) as e:
            raise CommitError(f"Ledger response missing transaction id: {e}") from e
