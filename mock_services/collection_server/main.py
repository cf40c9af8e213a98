"""In-memory stand-in for the collections backend (roster, day records, accounts, fines)"""

import copy
import uuid
from datetime import date, datetime
from decimal import Decimal
from fastapi import FastAPI, HTTPException, Request

app = FastAPI(title="Mock Collections Server", version="1.0.0")

DEFAULT_DATA = {
    "loans": {
        "lead_1": [
            {"id": "loan_b", "expected_weekly_payment": "300", "commission_rate": "15", "sign_date": "2024-02-01", "borrower_name": "Rosa Perez", "payments": []},
            {"id": "loan_a", "expected_weekly_payment": "500", "commission_rate": "20", "sign_date": "2024-01-05", "borrower_name": "Ana Lopez", "payments": []},
            {"id": "loan_c", "expected_weekly_payment": "200", "commission_rate": "0", "sign_date": "2024-03-10", "borrower_name": "Juan Diaz", "payments": []},
        ],
    },
    "accounts": {
        "route_1": [
            {"id": "acc_cash", "name": "Lead cash fund", "type": "EMPLOYEE_CASH_FUND", "amount": "1500"},
            {"id": "acc_office", "name": "Office cash", "type": "OFFICE_CASH_FUND", "amount": "9000"},
            {"id": "acc_bank", "name": "Route bank", "type": "BANK", "amount": "20000"},
        ],
    },
}

STATE: dict = {}


def seed(data: dict | None = None) -> dict:
    """Reset the server to a known roster"""
    STATE.clear()
    STATE.update(copy.deepcopy(data or DEFAULT_DATA))
    STATE["day_records"] = {}
    STATE["transactions"] = []
    STATE["fail_writes"] = False
    return STATE


seed()


def _loan(lead_id: str, loan_id: str) -> dict:
    for loan in STATE["loans"].get(lead_id, []):
        if loan["id"] == loan_id:
            return loan
    raise HTTPException(status_code=400, detail=f"loan {loan_id} not in roster of {lead_id}")


def _check_writable() -> None:
    if STATE["fail_writes"]:
        raise HTTPException(status_code=500, detail="database unavailable")


@app.get("/health")
def health(): return {"status": "ok"}


@app.get("/leads/{lead_id}/loans")
def get_loans(lead_id: str, day: date | None = None):
    return {"loans": STATE["loans"].get(lead_id, [])}


@app.get("/leads/{lead_id}/day-records")
def get_day_record(lead_id: str, start: datetime, end: datetime):
    for record in STATE["day_records"].values():
        if record["lead_id"] == lead_id and start.date() <= date.fromisoformat(record["payment_date"]) <= end.date():
            return {"day_record": {"id": record["id"]}}
    return {"day_record": None}


@app.post("/day-records", status_code=201)
async def create_day_record(request: Request):
    _check_writable()
    body = await request.json()
    rows = body["payments"]
    paid = Decimal(body["paid_amount"])
    if sum((Decimal(r["amount"]) for r in rows), Decimal("0")) != paid:
        raise HTTPException(status_code=422, detail="payment rows do not add up to paid amount")
    if Decimal(body["cash_paid_amount"]) + Decimal(body["bank_paid_amount"]) != paid:
        raise HTTPException(status_code=422, detail="cash and bank do not add up to paid amount")

    # Validate everything before writing so the batch is all-or-nothing
    loans = [_loan(body["lead_id"], row["loan_id"]) for row in rows]

    record_id = f"dr_{uuid.uuid4().hex[:8]}"
    STATE["day_records"][record_id] = {"id": record_id, **body}
    for loan, row in zip(loans, rows):
        loan["payments"].append(
            {
                "id": f"pay_{uuid.uuid4().hex[:8]}",
                "amount": row["amount"],
                "commission": row["commission"],
                "payment_method": row["payment_method"],
                "received_at": f"{body['payment_date']}T12:00:00Z",
                "day_record_id": record_id,
            }
        )
    return {"id": record_id}


@app.put("/day-records/{record_id}")
async def update_day_record(record_id: str, request: Request):
    _check_writable()
    record = STATE["day_records"].get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="day record not found")
    body = await request.json()

    live = [r for r in body["payments"] if not r.get("is_deleted")]
    paid = Decimal(body["paid_amount"])
    if sum((Decimal(r["amount"]) for r in live), Decimal("0")) != paid:
        raise HTTPException(status_code=422, detail="payment rows do not add up to paid amount")

    for row in body["payments"]:
        loan = _loan(record["lead_id"], row["loan_id"])
        if row.get("is_deleted"):
            loan["payments"] = [p for p in loan["payments"] if p["id"] != row["payment_id"]]
            continue
        for payment in loan["payments"]:
            if payment["id"] == row["payment_id"]:
                payment.update(amount=row["amount"], commission=row["commission"], payment_method=row["payment_method"])

    record.update(
        paid_amount=body["paid_amount"],
        cash_paid_amount=body["cash_paid_amount"],
        bank_paid_amount=body["bank_paid_amount"],
        payments=body["payments"],
    )
    return {"id": record_id}


@app.get("/routes/{route_id}/accounts")
def get_accounts(route_id: str):
    return {"accounts": STATE["accounts"].get(route_id, [])}


@app.post("/transactions", status_code=201)
async def create_transaction(request: Request):
    _check_writable()
    body = await request.json()
    transaction_id = f"txn_{uuid.uuid4().hex[:8]}"
    STATE["transactions"].append({"id": transaction_id, **body})
    return {"id": transaction_id}
