import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prisma.errors import PrismaError

from buildledger.core.database import prisma
from buildledger.core.settings import settings
from buildledger.domains.admin.routes import router as admin_router
from buildledger.domains.auth.routes import router as auth_router
from buildledger.domains.budgets.routes import router as budgets_router
from buildledger.domains.departments.routes import router as departments_router
from buildledger.domains.expenses.routes import router as expenses_router
from buildledger.domains.expenses.views import ensure_department_summary_view
from buildledger.domains.external_accounting.xero.auth.routes import (
    router as xero_auth_router,
)
from buildledger.domains.external_accounting.xero.routes import (
    router as xero_sync_router,
)
from buildledger.domains.favorites.routes import router as favorites_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await prisma.connect()
    if settings.CREATE_SUMMARY_VIEW_ON_STARTUP:
        try:
            await ensure_department_summary_view(prisma)
        except PrismaError as e:
            # Overview reads fold line items until the view exists
            logger.warning(f"Could not create department summary view: {e}")
        else:
            logger.info("Department summary view is in place")
    yield
    # Shutdown
    await prisma.disconnect()


app = FastAPI(
    title="BuildLedger API",
    description="Construction project financials synced from Xero",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(expenses_router, prefix="/api")
app.include_router(budgets_router, prefix="/api")
app.include_router(departments_router, prefix="/api")
app.include_router(favorites_router, prefix="/api")
app.include_router(xero_auth_router, prefix="/api")
app.include_router(xero_sync_router, prefix="/api")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "BuildLedger API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
