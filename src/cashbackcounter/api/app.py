import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cashbackcounter.api.routes.backup import router as backup_router
from cashbackcounter.api.routes.cards import router as cards_router
from cashbackcounter.api.routes.cashback import router as cashback_router
from cashbackcounter.api.routes.health import router as health_router
from cashbackcounter.api.routes.transactions import router as transactions_router
from cashbackcounter.config import settings
from cashbackcounter.errors import LedgerLookupError

app = FastAPI(title="Cashback Counter API", version="0.1.0")
app.include_router(health_router)
app.include_router(cashback_router)
app.include_router(cards_router)
app.include_router(transactions_router)
app.include_router(backup_router)


@app.exception_handler(LedgerLookupError)
def lookup_error_handler(request: Request, exc: LedgerLookupError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def run() -> None:
    uvicorn.run("cashbackcounter.api.app:app", host=settings.app_host, port=settings.app_port, reload=False)
