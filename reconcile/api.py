import logging
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL
from .models import (
    TransactionRecord, ReconciliationRequest, ReconciliationReport,
    PeriodListing, ExportTable,
)
from .service import ReconciliationService, ReconciliationError, UnknownViewError

log = logging.getLogger("pointrecon.api")

app = FastAPI(
    title="Point Reconciliation API",
    description="Reconciles loyalty-point ledgers and summarizes earn/use activity per period",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

reconciliation_service = ReconciliationService()


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "point-reconciliation"}


@app.post("/reconcile", response_model=ReconciliationReport, tags=["Reports"])
def reconcile(request: ReconciliationRequest) -> ReconciliationReport:
    try:
        return reconciliation_service.reconcile(request)
    except ReconciliationError as e:
        log.warning("reconcile rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.post("/periods", response_model=PeriodListing, tags=["Reports"])
def list_periods(rows: list[TransactionRecord], include_canceled: bool = False) -> PeriodListing:
    return reconciliation_service.list_periods(rows, include_canceled)


@app.post("/export/{view}", response_model=ExportTable, tags=["Export"])
def export(view: str, request: ReconciliationRequest) -> ExportTable:
    try:
        return reconciliation_service.export(request, view)
    except UnknownViewError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReconciliationError as e:
        log.warning("export rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run(app, host="0.0.0.0", port=8000)
