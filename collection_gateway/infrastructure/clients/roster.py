"""Collections backend client for roster, day-record and account lookups"""

import asyncio
import httpx
from datetime import date, tzinfo
from decimal import Decimal
from typing import Any, Dict, List, Optional
from collection_gateway.domain.models import Account, CommittedPayment, Loan, PaymentMethod, Roster
from collection_gateway.domain.exceptions import RosterAPIError
from collection_gateway.config import settings
from collection_gateway.utils.date_utils import business_timezone, day_bounds, is_same_day, parse_timestamp

CASH_ACCOUNT_TYPES = ("EMPLOYEE_CASH_FUND", "OFFICE_CASH_FUND")


def _parse_committed_payment(
    loan_id: str,
    payments: List[Dict[str, Any]],
    day: date,
    tz: tzinfo,
) -> Optional[CommittedPayment]:
    for payment in payments:
        received_at = parse_timestamp(payment["received_at"])
        if is_same_day(received_at, day, tz):
            return CommittedPayment(
                id=payment["id"],
                loan_id=loan_id,
                amount=Decimal(str(payment["amount"])),
                commission=Decimal(str(payment.get("commission") or "0")),
                payment_method=PaymentMethod(payment["payment_method"]),
                day_record_id=payment.get("day_record_id"),
                received_at=received_at,
            )
    return None


def _parse_loan(raw: Dict[str, Any], day: date, tz: tzinfo) -> Loan:
    return Loan(
        id=raw["id"],
        expected_weekly_payment=Decimal(str(raw.get("expected_weekly_payment") or "0")),
        commission_rate=Decimal(str(raw.get("commission_rate") or "0")),
        borrower_name=raw.get("borrower_name") or "",
        sign_date=date.fromisoformat(raw["sign_date"]) if raw.get("sign_date") else None,
        committed_payment=_parse_committed_payment(raw["id"], raw.get("payments") or [], day, tz),
    )


class RosterClient:
    """Client for the lead's loan roster and the day record lookup"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        tz: tzinfo | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.collections_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.tz = tz or business_timezone(settings.business_timezone)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _get_json(self, client: httpx.AsyncClient, path: str, params: Dict[str, str] | None = None) -> Dict[str, Any]:
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise RosterAPIError(f"Collections API timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise RosterAPIError(f"Collections API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise RosterAPIError(f"Collections API unreachable: {e}") from e
        except ValueError as e:
            raise RosterAPIError(f"Invalid JSON from collections API: {e}") from e

    async def get_loans(self, lead_id: str, day: date) -> List[Loan]:
        """
        Active loans for a lead, oldest sign date first, each carrying the
        payment already committed on `day` if any.

        Raises:
            RosterAPIError: On timeout, HTTP errors, or invalid response
        """
        async with self._client() as client:
            data = await self._get_json(client, f"/leads/{lead_id}/loans", params={"day": day.isoformat()})
        try:
            loans = [_parse_loan(raw, day, self.tz) for raw in data.get("loans", [])]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise RosterAPIError(f"Invalid roster data: {e}") from e
        return sorted(loans, key=lambda loan: loan.sign_date or date.min)

    async def get_day_record_id(self, lead_id: str, day: date) -> Optional[str]:
        """Id of the lead's aggregate day record, or None when nothing was committed yet"""
        start, end = day_bounds(day, self.tz)
        async with self._client() as client:
            data = await self._get_json(
                client,
                f"/leads/{lead_id}/day-records",
                params={"start": start.isoformat(), "end": end.isoformat()},
            )
        record = data.get("day_record")
        return record["id"] if record else None

    async def get_roster(self, lead_id: str, day: date) -> Roster:
        loans, day_record_id = await asyncio.gather(
            self.get_loans(lead_id, day),
            self.get_day_record_id(lead_id, day),
        )
        return Roster(loans=loans, day_record_id=day_record_id)

    async def get_cash_accounts(self, route_id: str) -> List[Account]:
        """Cash fund accounts of a route (fine destinations)"""
        async with self._client() as client:
            data = await self._get_json(client, f"/routes/{route_id}/accounts")
        try:
            return [
                Account(
                    id=raw["id"],
                    name=raw.get("name") or "",
                    type=raw["type"],
                    amount=Decimal(str(raw.get("amount") or "0")),
                )
                for raw in data.get("accounts", [])
                if raw.get("type") in CASH_ACCOUNT_TYPES
            ]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise RosterAPIError(f"Invalid account data: {e}") from e
