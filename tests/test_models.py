"""
Unit tests for the pydantic models and the status labels.
"""

import pytest
from pydantic import ValidationError

from p2p_order_service.models import (OrderDetail, OrderListQuery, OrderSide, OrderStatus, TokenRequest, status_text)


def test_missing_payment_terms_become_empty_list():
    detail = OrderDetail.model_validate({"id": "A", "amount": 100})

    assert detail.paymentTermList == []
    assert detail.primary_payment_term is None


@pytest.mark.parametrize("terms", [None, "n/a", 42, {"bankName": "Zenith"}])
def test_non_list_payment_terms_become_empty_list(terms):
    assert OrderDetail.model_validate({"id": "A", "paymentTermList": terms}).paymentTermList == []


def test_payment_terms_are_parsed():
    detail = OrderDetail.model_validate({
        "id": "A",
        "amount": "2500.50",
        "paymentTermList": [{"bankName": "Zenith Bank", "accountNo": 1234567890}, "junk"],
    })

    assert detail.amount == 2500.5
    assert len(detail.paymentTermList) == 1
    assert detail.paymentTermList[0].accountNo == "1234567890"
    assert detail.primary_payment_term.bankName == "Zenith Bank"


def test_missing_amount_defaults_to_zero():
    assert OrderDetail.model_validate({"id": "A", "amount": None}).amount == 0


def test_unknown_fields_are_kept():
    detail = OrderDetail.model_validate({"id": 17, "status": 6, "coin": "USDT"})

    assert detail.id == "17"
    assert detail.model_dump()["coin"] == "USDT"


def test_status_text():
    assert status_text(OrderStatus.FINISH_ORDER) == "Completed"
    assert status_text(int(OrderStatus.WAITING_FOR_BUY_PAY)) == "Waiting for Payment"
    assert status_text(999) == "Unknown"
    assert status_text(None) == "Unknown"


def test_order_list_query_defaults_and_bounds():
    query = OrderListQuery()

    assert (query.page, query.size, query.status, query.side) == (0, 30, OrderStatus.FINISH_ORDER, OrderSide.BUY)
    with pytest.raises(ValidationError):
        OrderListQuery(size=0)
    with pytest.raises(ValidationError):
        OrderListQuery(page=-1)


def test_token_request_rejects_empty_token():
    with pytest.raises(ValidationError):
        TokenRequest(token="")
