from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.clients.base import close_http_client
from p2p.config import settings
from p2p.database import init_db, close_db, get_db
from p2p.exceptions import P2PError
from p2p.logging_config import setup_logging
from p2p.middleware.correlation import CorrelationIdMiddleware

# Import models so they are registered with Base.metadata
import p2p.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_p2p", env=settings.ENVIRONMENT)
    # migrations own the schema outside development
    await init_db(create_tables=not settings.is_production)
    yield
    await close_http_client()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Exception handlers: every error leaves as {"error": {"code", "message"}}
# ---------------------------------------------------------------------------

@app.exception_handler(P2PError)
async def p2p_error_handler(request: Request, exc: P2PError) -> JSONResponse:
    logger.info("request_rejected", code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from p2p.routes.drafts import router as drafts_router  # noqa: E402
from p2p.routes.approvals import router as approvals_router  # noqa: E402
from p2p.routes.invoices import router as invoices_router  # noqa: E402
from p2p.routes.purchase_orders import router as po_router  # noqa: E402
from p2p.routes.goods_received import router as gr_router  # noqa: E402
from p2p.routes.safe_limits import router as safe_limits_router  # noqa: E402
from p2p.routes.approval_history import router as history_router  # noqa: E402

app.include_router(drafts_router, prefix="/api/v1/invoices/drafts", tags=["Invoice Drafts"])
app.include_router(approvals_router, prefix="/api/v1/invoices", tags=["Approvals"])
app.include_router(invoices_router, prefix="/api/v1/invoices", tags=["Invoices"])
app.include_router(po_router, prefix="/api/v1/purchaseorders", tags=["Purchase Orders"])
app.include_router(gr_router, prefix="/api/v1/goodsreceived", tags=["Goods Received"])
app.include_router(safe_limits_router, prefix="/api/v1/safelimits", tags=["Safe Limits"])
app.include_router(history_router, prefix="/api/v1/approvalhistory", tags=["Approval History"])
