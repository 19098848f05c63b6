"""
models.py — Data Models for the P2P Order Service

This module defines the data structures exchanged with the remote P2P trading API
and with the dashboard. It uses Pydantic models to ensure type safety and automatic
validation (and normalization) of incoming data.

Models:
    - OrderStatus / OrderSide: Enumerations used by the order list query.
    - PaymentTerm: A single payment method attached to an order.
    - OrderDetail: The normalized, fully fetched representation of one order.
    - OrderStub / OrderPage: One page of the order list endpoint.
    - OrderListQuery: Parameters of the order list endpoint.
    - MarkPaidRequest / PaymentConfirmation: Payloads of the "mark paid" flow.
    - TokenRequest: Payload for storing the bearer token.
"""

from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(IntEnum):
    WAITING_FOR_CHAIN = 1
    WAITING_FOR_BUY_PAY = 2
    WAITING_FOR_SELLER_RELEASE = 3
    APPEALING = 4
    CANCEL_ORDER = 5
    FINISH_ORDER = 6
    PAYING = 7
    PAY_FAIL = 8
    EXCEPTION_CANCELED = 9
    WAITING_BUYER_SELECT_TOKEN = 10
    OBJECTING = 11
    WAITING_FOR_OBJECTION = 12


class OrderSide(IntEnum):
    BUY = 0
    SELL = 1


_STATUS_TEXT = {
    OrderStatus.WAITING_FOR_CHAIN: "Waiting for Chain",
    OrderStatus.WAITING_FOR_BUY_PAY: "Waiting for Payment",
    OrderStatus.WAITING_FOR_SELLER_RELEASE: "Waiting for Release",
    OrderStatus.APPEALING: "Appealing",
    OrderStatus.CANCEL_ORDER: "Cancelled",
    OrderStatus.FINISH_ORDER: "Completed",
    OrderStatus.PAYING: "Paying",
    OrderStatus.PAY_FAIL: "Payment Failed",
    OrderStatus.EXCEPTION_CANCELED: "Exception Cancelled",
    OrderStatus.WAITING_BUYER_SELECT_TOKEN: "Waiting Token Selection",
    OrderStatus.OBJECTING: "Objecting",
    OrderStatus.WAITING_FOR_OBJECTION: "Waiting for Objection",
}


def status_text(status) -> str:
    """
    Returns the human readable label of an order status.

    Args:
        status (int | OrderStatus): Raw status code as returned by the P2P API.

    Returns:
        str: The label shown in the dashboard, or "Unknown" for unmapped codes.
    """
    try:
        return _STATUS_TEXT[OrderStatus(status)]
    except (ValueError, KeyError):
        return "Unknown"


class PaymentTerm(BaseModel):
    """
    Represents one payment method of the counterparty (usually a bank account).

    Attributes:
        bankName (str, optional): Name of the bank as entered by the counterparty.
        accountNo (str, optional): Account number to pay into.
        accountName (str, optional): Name of the account holder.
        paymentType (str, optional): Payment method type as used by the "mark paid" endpoint.
        paymentId (str, optional): Identifier of this payment term on the remote side.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    bankName: Optional[str] = None
    accountNo: Optional[str] = None
    accountName: Optional[str] = None
    paymentType: Optional[str] = None
    paymentId: Optional[str] = None


class OrderDetail(BaseModel):
    """
    Normalized detail record of a single P2P order.

    The remote API is not consistent about `paymentTermList`: it may be missing,
    null or not a list at all. Validation coerces every such case to an empty list,
    so a record that passed through this model always carries a list. Fields the
    model does not know about are kept as extra attributes.

    Attributes:
        id (str): Order identifier (the same value used to fetch it).
        amount (float): Trade amount; 0 if the remote omits it.
        paymentTermList (List[PaymentTerm]): Payment terms of the counterparty.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    amount: float = 0
    paymentTermList: List[PaymentTerm] = Field(default_factory=list)

    @field_validator("amount", mode="before")
    @classmethod
    def _default_amount(cls, value):
        return 0 if value in (None, "") else value

    @field_validator("paymentTermList", mode="before")
    @classmethod
    def _normalize_payment_terms(cls, value):
        if not isinstance(value, (list, tuple)):
            return []
        # Einträge, die keine Objekte sind, werden verworfen
        return [term for term in value if isinstance(term, (dict, PaymentTerm))]

    @property
    def primary_payment_term(self) -> Optional[PaymentTerm]:
        """The first payment term, which is the one used for payouts."""
        return self.paymentTermList[0] if self.paymentTermList else None


class OrderStub(BaseModel):
    """Minimal order entry as returned by the order list endpoint."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str


class OrderPage(BaseModel):
    """
    One page of the order list endpoint.

    Attributes:
        items (List[OrderStub]): Orders on this page.
        total (int): Total number of orders matching the query, if reported.
    """
    items: List[OrderStub] = Field(default_factory=list)
    total: int = 0

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]


class OrderListQuery(BaseModel):
    """
    Parameters of the remote order list endpoint.

    Attributes:
        page (int): Zero-based page index.
        size (int): Page size, between 1 and 100.
        status (OrderStatus): Status filter. Defaults to completed orders.
        side (OrderSide): Side filter. Defaults to buy orders.
    """
    page: int = Field(0, ge=0)
    size: int = Field(30, ge=1, le=100)
    status: OrderStatus = OrderStatus.FINISH_ORDER
    side: OrderSide = OrderSide.BUY


class MarkPaidRequest(BaseModel):
    """
    Payload of the remote "mark paid" endpoint.

    Attributes:
        orderId (str): The order being paid.
        paymentType (str): Payment method type of the payment term used.
        paymentId (str): Identifier of the payment term used.
    """
    orderId: str
    paymentType: str
    paymentId: str


class PaymentConfirmation(BaseModel):
    """Dashboard payload for marking a single order as paid."""
    paymentType: str
    paymentId: str


class TokenRequest(BaseModel):
    """Dashboard payload for storing the bearer token."""
    token: str = Field(..., min_length=1)
