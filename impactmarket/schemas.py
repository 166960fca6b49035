from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PaymentIntentRequest(_CamelModel):
    amount: Optional[int] = None
    currency: Optional[str] = None


class PaymentIntentOut(_CamelModel):
    client_secret: str = Field(alias="clientSecret")
    payment_intent_id: str = Field(alias="paymentIntentId")


class CheckoutSessionRequest(_CamelModel):
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    amount: Optional[int] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class CheckoutSessionOut(BaseModel):
    id: str
    url: Optional[str] = None


class PaymentInfoRequest(_CamelModel):
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    stripe_payment_id: Optional[str] = Field(default=None, alias="stripePaymentId")
    creator_id: Optional[str] = None


class SessionStatusOut(_CamelModel):
    status: str
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")


class ApiStatusOut(BaseModel):
    message: str
    stripe_status: str
    account_id: str


class PaymentCreateIn(BaseModel):
    creator_id: str = Field(min_length=1)
    amount: int = Field(gt=0)
    currency: str = Field(default="pln", min_length=3, max_length=3)
    payer_name: Optional[str] = None
    payer_email: Optional[str] = None
    message: Optional[str] = None
    description: Optional[str] = None


class PaymentOut(BaseModel):
    id: str
    creator_id: str
    amount: int
    currency: str
    status: str
    payment_type: Optional[str] = None
    external_reference: Optional[str] = None
    payer_name: Optional[str] = None
    payer_email: Optional[str] = None
    message: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentInfoOut(BaseModel):
    success: bool
    message: str
    payment: Optional[PaymentOut] = None
