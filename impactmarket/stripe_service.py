import stripe
import structlog

from impactmarket.config import FRONTEND_URL, PAYMENT_METHOD_TYPES, STRIPE_SECRET_KEY

stripe.api_key = STRIPE_SECRET_KEY

logger = structlog.get_logger(__name__)

DEFAULT_PRODUCT_NAME = "Support donation"


class WebhookSignatureError(Exception):
    """Raised when a webhook payload cannot be authenticated."""


def create_payment_intent(amount: int, currency: str):
    if not amount or not currency:
        raise ValueError("amount and currency are required")

    intent = stripe.PaymentIntent.create(
        amount=amount,
        currency=currency.lower(),
        payment_method_types=PAYMENT_METHOD_TYPES,
    )
    logger.info("payment_intent_created", payment_intent_id=intent.id, amount=amount)
    return intent


def create_checkout_session(
    payment_id: str,
    amount: int,
    currency: str,
    description: str = None,
    email: str = None,
    name: str = None,
    origin: str = None,
):
    if not payment_id or not amount or not currency:
        raise ValueError("payment_id, amount and currency are required")

    base_url = (origin or FRONTEND_URL).rstrip("/")

    metadata = {"payment_id": payment_id}
    if name:
        metadata["name"] = name

    params = dict(
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {"name": description or DEFAULT_PRODUCT_NAME},
                    "unit_amount": amount,
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=f"{base_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base_url}/payment/cancel",
        metadata=metadata,
    )
    if email:
        params["customer_email"] = email

    session = stripe.checkout.Session.create(**params)
    logger.info("checkout_session_created", session_id=session.id, payment_id=payment_id)
    return session


def retrieve_payment_intent(payment_intent_id: str):
    return stripe.PaymentIntent.retrieve(payment_intent_id)


def retrieve_checkout_session(session_id: str):
    return stripe.checkout.Session.retrieve(session_id)


def retrieve_account():
    return stripe.Account.retrieve()


def construct_webhook_event(payload: bytes, signature: str, secret: str):
    if not signature or not secret:
        raise WebhookSignatureError("Missing signature or webhook secret")

    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}")
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(f"Invalid signature: {e}")
