import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dlvery.core.config import settings
from dlvery.core.exceptions import DLVeryError, NotFoundError, StoreError, ValidationError
from dlvery.core.logging_setup import setup_logging
from dlvery.db.database import create_db_and_tables
from dlvery.routers.agents import router as agents_router
from dlvery.routers.deliveries import router as deliveries_router
from dlvery.routers.inventory import router as inventory_router
from dlvery.routers.users import router as users_router
from dlvery.routers.verifications import router as verifications_router

setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    logger.info("database ready")
    yield


app = FastAPI(
    title="DLVery API",
    description="Inventory and delivery coordination for inventory teams and delivery agents",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(DLVeryError)
async def dlvery_error_handler(request: Request, exc: DLVeryError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})


# Inventory team
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(deliveries_router, prefix="/deliveries", tags=["deliveries"])
app.include_router(users_router, prefix="/users", tags=["users"])

# Delivery agents
app.include_router(agents_router, prefix="/agents", tags=["agents"])
app.include_router(verifications_router, prefix="/verifications", tags=["verifications"])

if __name__ == "__main__":
    uvicorn.run("dlvery.main:app", host="0.0.0.0", port=8000, reload=True)
