import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from splitledger.api.v1.routes.expense import router as expense_router
from splitledger.api.v1.routes.group import router as group_router
from splitledger.api.v1.routes.settlement import router as settlement_router
from splitledger.core.config import settings
from splitledger.core.exceptions import SplitError
from splitledger.core.logging_config import configure_logging
from splitledger.db.session import init_models

configure_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await init_models()
        logger.info("Database tables created")
    yield

app = FastAPI(title="Splitledger Backend", lifespan=lifespan)

@app.exception_handler(SplitError)
async def split_error_handler(request: Request, exc: SplitError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.get("/")
async def root():
    return {"message": "Splitledger Backend is live"}

app.include_router(group_router, prefix="/api/v1/groups")
app.include_router(expense_router, prefix="/api/v1/expense")
app.include_router(settlement_router, prefix="/api/v1/settlements")
