from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reconcile.config import LOG_LEVEL
from reconcile.models import (
    TransactionRecord, ReconciliationRequest, ReconciliationReport,
    PeriodListing, ExportTable,
)
from reconcile.service import (
    ReconciliationService, ReconciliationError, UnknownViewError,
)

logging.basicConfig(level=LOG_LEVEL)
log = logging.getLogger("pointrecon.lambda")

app = FastAPI(
    title="Point Reconciliation API",
    description="Loyalty-point ledger reconciliation",
    version="1.0.0",
    root_path="/api"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

reconciliation_service = ReconciliationService()


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "point-reconciliation"}


@app.post("/reconcile", response_model=ReconciliationReport)
def reconcile(request: ReconciliationRequest):
    try:
        return reconciliation_service.reconcile(request)
    except ReconciliationError as e:
        log.warning("reconcile rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.post("/periods", response_model=PeriodListing)
def list_periods(rows: list[TransactionRecord], include_canceled: bool = False):
    return reconciliation_service.list_periods(rows, include_canceled)


@app.post("/export/{view}", response_model=ExportTable)
def export(view: str, request: ReconciliationRequest):
    try:
        return reconciliation_service.export(request, view)
    except UnknownViewError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReconciliationError as e:
        log.warning("export rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


handler = Mangum(app)
