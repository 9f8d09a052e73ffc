import logging
import tomllib
from datetime import date, datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from config import get_settings
from csv_utils import export_report_csv, export_report_json, report_filename
from database import SessionLocal
from models import TransactionType
from periods import PeriodSpec, parse_period_spec, preset_spec
from schemas import (
    AggregateOut,
    CategoryTotalOut,
    InsightOut,
    MonthlyPointOut,
    NavigationOut,
    OverviewOut,
    ReportOut,
    TotalsOut,
    TransactionIn,
    TransactionRecord,
)
from services import (
    PeriodReport,
    ReportService,
    TransactionFilters,
    TransactionNotFound,
    TransactionService,
    local_today,
)
from store import SQLTransactionStore, StoreUnavailableError

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")

EMPTY_PERIOD_MESSAGE = "Nothing to show for this period."


def _load_app_version() -> str:
    try:
        with open(Path(__file__).with_name("pyproject.toml"), "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


APP_VERSION = _load_app_version()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(request: Request) -> int:
    raw = request.headers.get("X-User-Id")
    if not raw:
        return get_settings().default_user_id
    try:
        user_id = int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header") from exc
    if user_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header")
    return user_id


def period_spec_from_request(request: Request, today: date) -> PeriodSpec:
    params = request.query_params
    try:
        preset = params.get("preset")
        if preset:
            return preset_spec(preset, today)
        return parse_period_spec(
            params.get("granularity"),
            params.get("period"),
            params.get("start"),
            params.get("end"),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    params = request.query_params
    txn_type = None
    if params.get("type") and params.get("type") != "all":
        try:
            txn_type = TransactionType(params["type"])
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid type filter") from exc
    category = params.get("category")
    if category == "all":
        category = None
    try:
        start = date.fromisoformat(params["start"]) if params.get("start") else None
        end = date.fromisoformat(params["end"]) if params.get("end") else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TransactionFilters(type=txn_type, category=category, start=start, end=end)


def build_report(request: Request, db: Session, user_id: int) -> PeriodReport:
    today = local_today()
    spec = period_spec_from_request(request, today)
    service = ReportService(SQLTransactionStore(db), user_id)
    try:
        return service.build(spec, today=today)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        logger.exception(f"report_failed: user_id={user_id}")
        raise HTTPException(
            status_code=503, detail=f"Failed to load reports: {exc}"
        ) from exc


@app.get("/api/health")
def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/transactions", response_model=list[TransactionRecord])
def list_transactions(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    filters = filters_from_request(request)
    try:
        limit = int(request.query_params.get("limit", "100"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid limit value") from exc
    limit = min(max(limit, 1), 500)
    return TransactionService(db, user_id).list(filters, limit=limit)


@app.post("/api/transactions", response_model=TransactionRecord, status_code=201)
def create_transaction(
    payload: TransactionIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return TransactionService(db, user_id).create(payload)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionRecord)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        return TransactionService(db, user_id).get(transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.put("/api/transactions/{transaction_id}", response_model=TransactionRecord)
def update_transaction(
    transaction_id: int,
    payload: TransactionIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        return TransactionService(db, user_id).update(transaction_id, payload)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        TransactionService(db, user_id).delete(transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"message": "Transaction deleted successfully"}


@app.get("/api/categories")
def list_categories(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return {"categories": TransactionService(db, user_id).categories()}


@app.get("/api/reports", response_model=ReportOut)
def get_report(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    report = build_report(request, db, user_id)
    return ReportOut(
        current=AggregateOut.model_validate(report.current),
        previous=AggregateOut.model_validate(report.previous),
        insights=[InsightOut.model_validate(i) for i in report.insights],
        navigation=NavigationOut(
            previous=report.previous_spec.value if report.previous_spec else None,
            next=report.next_spec.value if report.next_spec else None,
            can_navigate_forward=report.can_navigate_forward,
        ),
        message=None if report.current.has_transactions else EMPTY_PERIOD_MESSAGE,
    )


@app.get("/api/reports/overview", response_model=OverviewOut)
def get_overview(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        months_back = int(request.query_params.get("months", "6"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid months value") from exc
    months_back = min(max(months_back, 1), 36)
    try:
        overview = ReportService(SQLTransactionStore(db), user_id).overview(
            today=local_today(), months_back=months_back
        )
    except StoreUnavailableError as exc:
        logger.exception(f"overview_failed: user_id={user_id}")
        raise HTTPException(
            status_code=503, detail=f"Failed to load reports: {exc}"
        ) from exc
    return OverviewOut(
        totals=TotalsOut(**overview.all_time.totals),
        category_breakdown=[
            CategoryTotalOut.model_validate(item)
            for item in overview.all_time.category_breakdown
        ],
        monthly_series=[
            MonthlyPointOut.model_validate(point) for point in overview.monthly_series
        ],
        has_transactions=overview.all_time.has_transactions,
    )


@app.get("/api/reports/export.csv")
def export_report_csv_endpoint(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    report = build_report(request, db, user_id)
    filename = report_filename(report, "csv")
    return StreamingResponse(
        iter([export_report_csv(report)]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/reports/export.json")
def export_report_json_endpoint(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    report = build_report(request, db, user_id)
    filename = report_filename(report, "json")
    return Response(
        content=export_report_json(report, datetime.now(timezone.utc)),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
