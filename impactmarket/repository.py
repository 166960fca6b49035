"""
Single-row reads and writes against the ``payments`` table.

Callers own the session; writes commit before returning and roll back
before re-raising a ``SQLAlchemyError``.
"""
from typing import List, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from impactmarket.models import Payment, PaymentStatus

logger = structlog.get_logger(__name__)


class PaymentNotFound(LookupError):
    """No payment row matched the id (and owner, when one was given)."""

    def __init__(self, payment_id: str, creator_id: Optional[str] = None):
        super().__init__(payment_id)
        self.payment_id = payment_id
        self.creator_id = creator_id


def create_payment(
    db: Session,
    creator_id: str,
    amount: int,
    currency: str,
    payer_name: Optional[str] = None,
    payer_email: Optional[str] = None,
    message: Optional[str] = None,
    description: Optional[str] = None,
) -> Payment:
    payment = Payment(
        creator_id=creator_id,
        amount=amount,
        currency=currency.lower(),
        status=PaymentStatus.PENDING.value,
        payer_name=payer_name,
        payer_email=payer_email,
        message=message,
        description=description,
    )
    try:
        db.add(payment)
        db.commit()
        db.refresh(payment)
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("payment_created", payment_id=payment.id, creator_id=creator_id, amount=amount)
    return payment


def fetch_payment(db: Session, payment_id: str, creator_id: Optional[str] = None) -> Payment:
    query = db.query(Payment).filter(Payment.id == payment_id)
    if creator_id is not None:
        query = query.filter(Payment.creator_id == creator_id)

    payment = query.first()
    if payment is None:
        raise PaymentNotFound(payment_id, creator_id)
    return payment


def update_payment_status(db: Session, payment_id: str, creator_id: Optional[str], **fields) -> int:
    """
    Conditionally update one payment row.

    The update matches on ``id`` and, when ``creator_id`` is not None, on
    ``creator_id`` as well. Zero matched rows raise ``PaymentNotFound`` so
    callers can tell an ownership mismatch apart from a database failure.
    """
    stmt = update(Payment).where(Payment.id == payment_id)
    if creator_id is not None:
        stmt = stmt.where(Payment.creator_id == creator_id)
    stmt = stmt.values(**fields).execution_options(synchronize_session=False)

    try:
        result = db.execute(stmt)
        if result.rowcount == 0:
            db.rollback()
            raise PaymentNotFound(payment_id, creator_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("payment_updated", payment_id=payment_id, fields=sorted(fields))
    return result.rowcount


def list_completed_payments(db: Session, creator_id: str) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.creator_id == creator_id, Payment.status == PaymentStatus.COMPLETED.value)
        .order_by(Payment.created_at.desc())
        .all()
    )
