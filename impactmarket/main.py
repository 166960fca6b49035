import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Header, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from impactmarket import config
from impactmarket.database import Base, engine, get_db
from impactmarket.errors import ApiError
from impactmarket.logging_config import setup_logging
from impactmarket.models import PaymentStatus
from impactmarket.rate_limit import RateLimiter
from impactmarket.repository import PaymentNotFound, update_payment_status
from impactmarket.routes import router
from impactmarket.stripe_service import WebhookSignatureError, construct_webhook_event

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    app.state.rate_limiter = RateLimiter(
        cooldown=config.RATE_LIMIT_COOLDOWN,
        retention=config.RATE_LIMIT_RETENTION,
    )

    if not config.webhook_secret():
        logger.warning("stripe_webhook_secret_missing")
    logger.info(
        "application_startup",
        stripe_mode="test" if config.STRIPE_SECRET_KEY.startswith("sk_test_") else "live",
    )

    yield

    app.state.rate_limiter.clear()
    logger.info("application_shutdown")


app = FastAPI(title="ImpactMarket Payments API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "stripe-signature"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    structlog.contextvars.bind_contextvars(
        request_id=str(uuid.uuid4()),
        method=request.method,
        path=request.url.path,
    )
    start = time.perf_counter()
    logger.info("request_started", origin=request.headers.get("origin"))
    try:
        response = await call_next(request)
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "message": "; ".join(messages)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and request.url.path.startswith("/api/"):
        error = f"API endpoint not found: {request.method} {request.url.path}"
    else:
        error = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": error})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": "An unexpected error occurred"},
    )


app.include_router(router)


def _metadata_value(obj, key):
    try:
        return obj["metadata"][key]
    except (KeyError, TypeError):
        return None


def _complete_checkout_payment(db: Session, payment_id: str):
    try:
        update_payment_status(db, payment_id, None, status=PaymentStatus.COMPLETED.value)
        logger.info("checkout_session_completed", payment_id=payment_id)
    except PaymentNotFound:
        logger.warning("webhook_payment_not_found", payment_id=payment_id)
    except SQLAlchemyError as e:
        logger.error("webhook_payment_update_failed", payment_id=payment_id, error=str(e))


@app.post("/api/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
):
    payload = await request.body()

    try:
        event = construct_webhook_event(payload, stripe_signature, config.webhook_secret())
    except WebhookSignatureError as e:
        logger.warning("webhook_signature_invalid", error=str(e))
        raise ApiError(400, "Webhook signature verification failed")

    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type == "checkout.session.completed":
        payment_id = _metadata_value(obj, "payment_id")
        if not payment_id:
            logger.warning("checkout_session_without_payment_id", session_id=obj["id"])
        else:
            # Sync session; keep the round-trip off the event loop
            await run_in_threadpool(_complete_checkout_payment, db, payment_id)

    elif event_type == "payment_intent.succeeded":
        logger.info("payment_intent_succeeded", payment_intent_id=obj["id"])

    elif event_type == "payment_intent.payment_failed":
        logger.info("payment_intent_payment_failed", payment_intent_id=obj["id"])

    else:
        logger.info("webhook_event_unhandled", event_type=event_type)

    return {"received": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("impactmarket.main:app", host="0.0.0.0", port=config.PORT)
