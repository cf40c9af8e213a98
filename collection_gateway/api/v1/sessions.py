"""Collection session lifecycle, distribution and commit endpoints"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from collection_gateway.api.v1.schemas import (
    AccountSchema,
    AccountsResponse,
    AdHocEntrySchema,
    CommitResponse,
    CommittedPaymentSchema,
    DistributionRequest,
    DistributionSchema,
    EditedPaymentSchema,
    FineRequest,
    FineResponse,
    LoanSchema,
    OpenSessionRequest,
    PaymentEntrySchema,
    SessionResponse,
    TotalsBundle,
    TotalsSchema,
)
from collection_gateway.api.dependencies import (
    get_ledger_client,
    get_registry,
    get_request_id,
    get_roster_client,
    get_session,
)
from collection_gateway.api.registry import SessionRegistry
from collection_gateway.domain.exceptions import CommitError, RosterAPIError
from collection_gateway.domain.models import Loan, SessionContext, TotalsView
from collection_gateway.domain.session import CollectionSession
from collection_gateway.infrastructure.clients.ledger import LedgerClient
from collection_gateway.infrastructure.clients.roster import RosterClient
from collection_gateway.infrastructure.database.repositories import CommitRepository
from collection_gateway.infrastructure.database.session import get_db
from collection_gateway.infrastructure.observability.logging import log_commit
from collection_gateway.infrastructure.observability.metrics import (
    record_commit,
    roster_fetch_failures_counter,
    stale_roster_counter,
)

router = APIRouter()


def totals_schema(totals: TotalsView) -> TotalsSchema:
    return TotalsSchema(
        cash=totals.cash,
        bank=totals.bank,
        total=totals.total,
        count=totals.count,
        no_payment_count=totals.no_payment_count,
        deleted_count=totals.deleted_count,
        commission=totals.commission,
    )


def loan_schema(session: CollectionSession, loan: Loan) -> LoanSchema:
    committed = loan.committed_payment
    return LoanSchema(
        id=loan.id,
        borrower_name=loan.borrower_name,
        sign_date=loan.sign_date,
        expected_weekly_payment=loan.expected_weekly_payment,
        commission_rate=loan.commission_rate,
        committed_payment=(
            CommittedPaymentSchema(
                id=committed.id,
                amount=committed.amount,
                commission=committed.commission,
                payment_method=committed.payment_method,
                day_record_id=committed.day_record_id,
            )
            if committed
            else None
        ),
        status=session.status(loan.id),
    )


def snapshot(session: CollectionSession) -> SessionResponse:
    """Read model of every store and derived view of a session"""
    new = session.new_totals()
    registered = session.registered_totals()
    distribution = session.distribution()

    return SessionResponse(
        session_id=session.id,
        lead_id=session.context.lead_id,
        day=session.context.day,
        route_id=session.context.route_id,
        day_record_id=session.day_record_id,
        global_commission=session.global_commission,
        loans=[loan_schema(session, loan) for loan in session.loans],
        entries={
            loan_id: PaymentEntrySchema(
                loan_id=entry.loan_id,
                amount=entry.amount,
                commission=entry.commission,
                initial_commission=entry.initial_commission,
                payment_method=entry.payment_method,
                is_no_payment=entry.is_no_payment,
            )
            for loan_id, entry in session.entries.entries.items()
        },
        edits={
            loan_id: EditedPaymentSchema(
                payment_id=edit.payment_id,
                loan_id=edit.loan_id,
                amount=edit.amount,
                commission=edit.commission,
                payment_method=edit.payment_method,
                is_deleted=edit.is_deleted,
            )
            for loan_id, edit in session.edits.edits.items()
        },
        adhoc_entries=[
            AdHocEntrySchema(
                temp_id=entry.temp_id,
                loan_id=entry.loan_id,
                amount=entry.amount,
                commission=entry.commission,
                payment_method=entry.payment_method,
            )
            for entry in session.adhoc
        ],
        totals=TotalsBundle(
            new=totals_schema(new),
            registered=totals_schema(registered),
            combined=totals_schema(session.combined_totals()),
            modal=totals_schema(session.modal_totals()),
        ),
        distribution=DistributionSchema(
            bank_transfer_amount=distribution.bank_transfer_amount,
            cash_recorded=distribution.cash_recorded,
            bank_recorded=distribution.bank_recorded,
            total=distribution.total,
            exceeds_cash=distribution.exceeds_cash,
        ),
        exceeds_cash=distribution.exceeds_cash,
    )


async def load_roster(session: CollectionSession, roster_client: RosterClient, request_id: str) -> None:
    try:
        applied = await session.refresh(roster_client)
    except RosterAPIError as e:
        roster_fetch_failures_counter.inc()
        logging.error(f"Roster lookup failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Collections service unavailable")

    if not applied:
        stale_roster_counter.inc()


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def open_session(
    request_body: OpenSessionRequest,
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
    roster_client: RosterClient = Depends(get_roster_client),
):
    """Open a collection session for one lead and day and load its roster"""
    context = SessionContext(lead_id=request_body.lead_id, day=request_body.day, route_id=request_body.route_id)
    session = registry.open(context)
    async with session.lock:
        try:
            await load_roster(session, roster_client, get_request_id(request))
        except HTTPException:
            registry.close(session.id)
            raise
        return snapshot(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session_snapshot(session: CollectionSession = Depends(get_session)):
    return snapshot(session)


@router.put("/sessions/{session_id}/context", response_model=SessionResponse)
async def change_context(
    request_body: OpenSessionRequest,
    request: Request,
    session: CollectionSession = Depends(get_session),
    roster_client: RosterClient = Depends(get_roster_client),
):
    """
    Switch the session to another lead or day.

    Every store is discarded. A roster still in flight for the previous
    context is dropped when it lands.
    """
    session.change_context(
        SessionContext(lead_id=request_body.lead_id, day=request_body.day, route_id=request_body.route_id)
    )
    await load_roster(session, roster_client, get_request_id(request))
    return snapshot(session)


@router.post("/sessions/{session_id}/refresh", response_model=SessionResponse)
async def refresh_session(
    request: Request,
    session: CollectionSession = Depends(get_session),
    roster_client: RosterClient = Depends(get_roster_client),
):
    """Reload the roster; entries in progress are kept"""
    await load_roster(session, roster_client, get_request_id(request))
    return snapshot(session)


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.close(session_id):
        raise HTTPException(status_code=404, detail="Session not found")


@router.put("/sessions/{session_id}/distribution", response_model=SessionResponse)
def set_distribution(request_body: DistributionRequest, session: CollectionSession = Depends(get_session)):
    """Set how much collected cash was deposited at the bank; exceeding cash blocks commit"""
    session.set_bank_transfer(request_body.bank_transfer_amount)
    return snapshot(session)


@router.post("/sessions/{session_id}/commit", response_model=CommitResponse)
async def commit_session(
    request: Request,
    session: CollectionSession = Depends(get_session),
    db: Session = Depends(get_db),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    roster_client: RosterClient = Depends(get_roster_client),
):
    """
    Persist the session as one atomic batch.

    Flow:
    1. Create the day record when there are no pending edits, otherwise
       replace the committed rows of the existing day record
    2. Clear local stores and reload the roster
    3. Write the audit log entry
    """
    start_time = time.time()
    request_id = get_request_id(request)
    context = session.context
    kind = "update" if len(session.edits) > 0 else "create"

    try:
        result = await session.commit(ledger_client, roster_client)
    except CommitError as e:
        record_commit(kind, "failed")
        logging.error(f"Commit failed: {e}", extra={"request_id": request_id, "lead_id": context.lead_id})
        raise HTTPException(status_code=502, detail="Could not save payments, try again")

    if not result.ok:
        record_commit(kind, "rejected")
        logging.warning(f"Commit rejected: {result.error}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(result.error))

    distribution = result.distribution
    record_commit(kind, "ok", distribution.cash_recorded, distribution.bank_recorded)

    try:
        CommitRepository(db).record_commit(context, result)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Audit log write failed: {e}", extra={"request_id": request_id})

    duration_ms = (time.time() - start_time) * 1000
    log_commit(request_id, context.lead_id, context.day.isoformat(), kind, result.saved_count, duration_ms)

    return CommitResponse(
        kind=result.kind,
        saved_count=result.saved_count,
        deleted_count=result.deleted_count,
        day_record_id=result.day_record_id,
        cash_recorded=distribution.cash_recorded,
        bank_recorded=distribution.bank_recorded,
        total=distribution.total,
        commission=result.commission,
        session=snapshot(session),
    )


@router.get("/sessions/{session_id}/accounts", response_model=AccountsResponse)
async def list_cash_accounts(
    request: Request,
    session: CollectionSession = Depends(get_session),
    roster_client: RosterClient = Depends(get_roster_client),
):
    """Cash fund accounts of the session's route, used as fine destinations"""
    route_id = session.context.route_id
    if not route_id:
        raise HTTPException(status_code=422, detail="Session has no route")

    try:
        accounts = await roster_client.get_cash_accounts(route_id)
    except RosterAPIError as e:
        roster_fetch_failures_counter.inc()
        logging.error(f"Accounts lookup failed: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Collections service unavailable")

    return AccountsResponse(
        route_id=route_id,
        accounts=[AccountSchema(id=a.id, name=a.name, type=a.type, amount=a.amount) for a in accounts],
    )


@router.post("/sessions/{session_id}/fines", response_model=FineResponse, status_code=201)
async def record_fine(
    request_body: FineRequest,
    request: Request,
    session: CollectionSession = Depends(get_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
):
    """Record a fine against a route cash account for the session's day"""
    context = session.context
    try:
        transaction_id = await ledger_client.record_fine(
            amount=request_body.amount,
            account_id=request_body.account_id,
            day=context.day,
            lead_id=context.lead_id,
            route_id=context.route_id,
        )
    except CommitError as e:
        logging.error(f"Fine failed: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=502, detail="Could not record fine, try again")

    return FineResponse(transaction_id=transaction_id, amount=request_body.amount, account_id=request_body.account_id)
