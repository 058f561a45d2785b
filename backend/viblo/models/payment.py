"""Payment, payout and payout-method models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutMethodType(str, Enum):
    PAYPAL = "paypal"
    WISE = "wise"
    REVOLUT = "revolut"
    BANK_TRANSFER = "bank_transfer"


class Payment(BaseModel):
    """A row of the ``payments`` relation. Read-only from the client."""

    id: str
    brand_id: Optional[str] = None
    campaign_id: Optional[str] = None
    amount: float
    currency: str = "usd"
    status: PaymentStatus
    processor_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    campaign_title: str = "Deleted Campaign"


class PaymentHistory(BaseModel):
    payments: list[Payment] = Field(default_factory=list)
    total_spent: float = 0.0


def payment_intent_id(client_secret: str) -> str:
    # client secrets look like "pi_123_secret_abc"
    return client_secret.split("_secret_")[0]


class PaymentIntent(BaseModel):
    """Response of ``POST /api/payments/create-intent``."""

    payment_intent: str = Field(alias="paymentIntent")
    ephemeral_key: str = Field(alias="ephemeralKey")
    customer_id: str = Field(alias="customerId")
    subtotal: Optional[float] = None
    processing_fee: Optional[float] = Field(default=None, alias="processingFee")
    total: Optional[float] = None

    model_config = {"populate_by_name": True}

    @property
    def payment_intent_id(self) -> str:
        return payment_intent_id(self.payment_intent)


class PaymentSheetParams(BaseModel):
    """Everything the opaque payment-sheet SDK needs to initialise."""

    merchant_display_name: str
    customer_id: str
    customer_ephemeral_key_secret: str
    payment_intent_client_secret: str
    allows_delayed_payment_methods: bool = False
    return_url: str


class PaymentSheetResult(BaseModel):
    """Outcome reported back by the payment sheet callback."""

    completed: bool
    error_message: Optional[str] = None


class Coupon(BaseModel):
    """Response of ``POST /api/payments/validate-coupon``."""

    coupon_id: str = Field(alias="couponId")
    percent_off: Optional[float] = Field(default=None, alias="percentOff")
    amount_off: Optional[int] = Field(default=None, alias="amountOff")  # cents

    model_config = {"populate_by_name": True}


class PaymentSummary(BaseModel):
    subtotal: float
    discount: float = 0.0
    subtotal_after_discount: float
    processing_fee: float
    total: float


class PaymentOutcome(BaseModel):
    campaign_id: str
    succeeded: bool
    cancelled: bool = False
    message: Optional[str] = None
    summary: Optional[PaymentSummary] = None


# ---------------------------------------------------------------------------
# Payout methods
# ---------------------------------------------------------------------------
class PayPalDetails(BaseModel):
    name: str = ""
    email: str = ""


class WiseDetails(BaseModel):
    name: str = ""
    email: str = ""
    wise_id: str = ""


class RevolutDetails(BaseModel):
    name: str = ""
    email: str = ""
    revolut_tag: str = ""


class BankTransferDetails(BaseModel):
    iban: str = ""
    account_owner: str = ""
    swift_bic: str = ""
    bank_name: str = ""
    bank_address: str = ""


PayoutDetails = Union[PayPalDetails, WiseDetails, RevolutDetails, BankTransferDetails]

DETAILS_BY_METHOD: dict[PayoutMethodType, type[BaseModel]] = {
    PayoutMethodType.PAYPAL: PayPalDetails,
    PayoutMethodType.WISE: WiseDetails,
    PayoutMethodType.REVOLUT: RevolutDetails,
    PayoutMethodType.BANK_TRANSFER: BankTransferDetails,
}


class PayoutMethod(BaseModel):
    """A row of the ``payout_methods`` relation. ``details`` shape varies by type."""

    id: str
    user_id: str
    method_type: PayoutMethodType
    details: dict = Field(default_factory=dict)
    is_primary: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def typed_details(self) -> PayoutDetails:
        return DETAILS_BY_METHOD[self.method_type].model_validate(self.details or {})


class PayoutMethodForm(BaseModel):
    method_type: PayoutMethodType
    details: dict = Field(default_factory=dict)
    is_primary: bool = False


class Payout(BaseModel):
    id: str
    influencer_id: str
    payout_method_id: Optional[str] = None
    amount: float
    currency: str = "usd"
    status: PayoutStatus
    processor_payout_id: Optional[str] = None
    initiated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WalletSummary(BaseModel):
    total_earnings: float = 0.0
    has_payout_method: bool = False
    paid_out: float = 0.0
    pending_payouts: float = 0.0
    payouts: list[Payout] = Field(default_factory=list)
