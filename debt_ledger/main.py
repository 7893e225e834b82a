import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from debt_ledger.api.v1.routes.balances import router as balances_router
from debt_ledger.api.v1.routes.settlement import router as settlement_router
from debt_ledger.api.v1.routes.system import router as system_router
from debt_ledger.core.db_check import wait_for_db
from debt_ledger.core.errors import (
    ExhaustedLendersError,
    InvalidAllocationError,
    LedgerError,
    NegativeBalanceError,
    SettlementTimeoutError,
    StorageError,
)
from debt_ledger.core.logging_config import configure_logging
from debt_ledger.db.session import engine

logger = logging.getLogger(__name__)

# most specific first; the first match wins
ERROR_STATUS = [
    (InvalidAllocationError, 400),
    (SettlementTimeoutError, 504),
    (StorageError, 503),
    (NegativeBalanceError, 500),
    (ExhaustedLendersError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await wait_for_db()
    yield
    await engine.dispose()


app = FastAPI(title="Debt Ledger", lifespan=lifespan)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 500)
    if status >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"message": "Debt Ledger is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(settlement_router, prefix="/api/v1/groups")
app.include_router(balances_router, prefix="/api/v1/groups")
