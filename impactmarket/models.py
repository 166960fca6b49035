import enum
import uuid

from sqlalchemy import Column, DateTime, Integer, String, func
from impactmarket.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


def _new_id():
    return str(uuid.uuid4())


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=_new_id)
    creator_id = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)                 # minor unit (grosze, cents)
    currency = Column(String(3), nullable=False, default="pln")
    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    payment_type = Column(String, nullable=True)             # "stripe" once a Stripe flow starts
    external_reference = Column(String, nullable=True)       # Stripe PaymentIntent ID
    payer_name = Column(String, nullable=True)
    payer_email = Column(String, nullable=True)
    message = Column(String, nullable=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
