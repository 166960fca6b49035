from typing import List

import stripe
import structlog
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from impactmarket.auth import get_current_creator
from impactmarket.database import get_db
from impactmarket.errors import ApiError
from impactmarket.models import PaymentStatus
from impactmarket.rate_limit import enforce_rate_limit
from impactmarket.repository import (
    PaymentNotFound,
    create_payment,
    fetch_payment,
    list_completed_payments,
    update_payment_status,
)
from impactmarket.schemas import (
    ApiStatusOut,
    CheckoutSessionOut,
    CheckoutSessionRequest,
    PaymentCreateIn,
    PaymentInfoOut,
    PaymentInfoRequest,
    PaymentIntentOut,
    PaymentIntentRequest,
    PaymentOut,
    SessionStatusOut,
)
from impactmarket.stripe_service import (
    create_checkout_session,
    create_payment_intent,
    retrieve_account,
    retrieve_checkout_session,
    retrieve_payment_intent,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")

rate_limited = [Depends(enforce_rate_limit)]


def _require_amount_and_currency(amount, currency):
    if not amount or not currency:
        raise ApiError(400, "Missing required fields")
    if amount < 0:
        raise ApiError(400, "Invalid amount", "Amount must be a positive integer in the minor currency unit")


@router.post("/create-payment-intent", response_model=PaymentIntentOut, dependencies=rate_limited)
def create_payment_intent_api(request: PaymentIntentRequest):
    _require_amount_and_currency(request.amount, request.currency)

    try:
        intent = create_payment_intent(request.amount, request.currency)
    except stripe.StripeError as e:
        logger.error("payment_intent_failed", error=str(e))
        raise ApiError(500, "Failed to create payment intent", str(e))

    return PaymentIntentOut(client_secret=intent.client_secret, payment_intent_id=intent.id)


@router.post("/create-checkout-session", response_model=CheckoutSessionOut, dependencies=rate_limited)
def create_checkout_session_api(
    request: CheckoutSessionRequest,
    origin: str = Header(default=None),
    db: Session = Depends(get_db),
):
    if not request.payment_id:
        raise ApiError(400, "Missing required fields")
    _require_amount_and_currency(request.amount, request.currency)

    try:
        fetch_payment(db, request.payment_id)
    except PaymentNotFound:
        raise ApiError(404, "Payment not found")
    except SQLAlchemyError as e:
        raise ApiError(500, "Failed to fetch payment record", str(e))

    try:
        session = create_checkout_session(
            request.payment_id,
            request.amount,
            request.currency,
            description=request.description,
            email=request.email,
            name=request.name,
            origin=origin,
        )
    except stripe.StripeError as e:
        logger.error("checkout_session_failed", payment_id=request.payment_id, error=str(e))
        raise ApiError(500, "Failed to create checkout session", str(e))

    # Best-effort once the session exists
    try:
        update_payment_status(db, request.payment_id, None, payment_type="stripe")
    except (PaymentNotFound, SQLAlchemyError) as e:
        logger.warning("payment_type_not_recorded", payment_id=request.payment_id, error=str(e))

    return CheckoutSessionOut(id=session.id, url=session.url)


@router.post("/payment-info", response_model=PaymentInfoOut, dependencies=rate_limited)
def payment_info_api(request: PaymentInfoRequest, db: Session = Depends(get_db)):
    if not request.payment_id or not request.stripe_payment_id:
        raise ApiError(400, "Missing required fields: paymentId and stripePaymentId are required")
    if not request.creator_id:
        raise ApiError(400, "Missing required field: creator_id is required")

    try:
        intent = retrieve_payment_intent(request.stripe_payment_id)
    except stripe.StripeError as e:
        logger.error("payment_verification_failed", stripe_payment_id=request.stripe_payment_id, error=str(e))
        raise ApiError(500, "Failed to verify payment with Stripe", str(e))

    if intent.status != "succeeded":
        raise ApiError(400, "Payment not succeeded", f"Payment status is {intent.status}")

    try:
        payment = fetch_payment(db, request.payment_id, request.creator_id)
        if payment.amount != intent.amount or payment.currency != intent.currency.lower():
            logger.warning(
                "payment_amount_reconciled",
                payment_id=request.payment_id,
                recorded=f"{payment.amount} {payment.currency}",
                charged=f"{intent.amount} {intent.currency.lower()}",
            )
        # Amount and currency always come from the verified intent
        update_payment_status(
            db,
            request.payment_id,
            request.creator_id,
            status=PaymentStatus.COMPLETED.value,
            external_reference=request.stripe_payment_id,
            payment_type="stripe",
            amount=intent.amount,
            currency=intent.currency.lower(),
        )
        db.refresh(payment)
    except PaymentNotFound:
        logger.warning("payment_not_owned", payment_id=request.payment_id, creator_id=request.creator_id)
        raise ApiError(
            404,
            "Payment not found",
            "Payment record not found or does not belong to the specified creator",
        )
    except SQLAlchemyError as e:
        logger.error("payment_update_failed", payment_id=request.payment_id, error=str(e))
        raise ApiError(500, "Failed to update payment record", str(e))

    logger.info("payment_confirmed", payment_id=request.payment_id, stripe_payment_id=request.stripe_payment_id)
    return PaymentInfoOut(
        success=True,
        message="Payment processed and recorded successfully",
        payment=PaymentOut.model_validate(payment),
    )


@router.get("/check-session-status", response_model=SessionStatusOut)
def check_session_status_api(session_id: str = Query(default=None)):
    if not session_id:
        raise ApiError(400, "Missing session_id parameter")

    try:
        session = retrieve_checkout_session(session_id)
    except stripe.StripeError as e:
        logger.error("session_status_failed", session_id=session_id, error=str(e))
        raise ApiError(500, "Failed to check session status", str(e))

    status = "complete" if session.payment_status == "paid" else "incomplete"
    return SessionStatusOut(status=status, payment_status=session.payment_status)


@router.post("/payments", response_model=PaymentOut, status_code=201, dependencies=rate_limited)
def create_payment_api(request: PaymentCreateIn, db: Session = Depends(get_db)):
    try:
        return create_payment(
            db,
            creator_id=request.creator_id,
            amount=request.amount,
            currency=request.currency,
            payer_name=request.payer_name,
            payer_email=request.payer_email,
            message=request.message,
            description=request.description,
        )
    except SQLAlchemyError as e:
        raise ApiError(500, "Failed to create payment", str(e))


@router.get("/payments", response_model=List[PaymentOut])
def list_payments_api(creator_id: str = Depends(get_current_creator), db: Session = Depends(get_db)):
    return list_completed_payments(db, creator_id)


@router.get("/test", response_model=ApiStatusOut)
def api_test():
    try:
        account = retrieve_account()
    except stripe.StripeError as e:
        logger.error("stripe_connectivity_failed", error=str(e))
        raise ApiError(503, "Payment service unavailable", "Could not connect to Stripe API")

    return ApiStatusOut(message="API is working!", stripe_status="connected", account_id=account.id)
