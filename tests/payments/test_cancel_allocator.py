from decimal import Decimal

import pytest

from application.ports.http_adapter import HttpMethod
from domain.common.exceptions import ApiException, TransportException, UsageException
from shared.codes.api_codes import (
    ApiResponseCode,
    DEFAULT_WIRE_CODES,
    TOLERATED_ON_AUTHORIZATION_CANCEL,
    TOLERATED_ON_CHARGE_CANCEL,
)

ALREADY_CANCELLED = DEFAULT_WIRE_CODES[ApiResponseCode.ALREADY_CANCELLED]
ALREADY_CHARGED_BACK = DEFAULT_WIRE_CODES[ApiResponseCode.ALREADY_CHARGED_BACK]
BASKET_ITEM_INVALID = "API.600.410.023"

AUTH_CANCEL_URL = "https://api.heidelpay.com/v1/payments/s-pay-1/authorize/s-aut-1/cancels/"


def charge_cancel_url(index: int) -> str:
    return f"https://api.heidelpay.com/v1/payments/s-pay-1/charges/s-chg-{index}/cancels/"


def test_full_cancel_of_authorization_only_payment(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(auth_total=100)
    adapter.queue(cancel_body("s-cnl-1", 100))

    cancellations = client.cancel_payment(payment)

    assert len(cancellations) == 1
    assert cancellations[0].amount == Decimal("100")
    assert cancellations[0].is_reversal
    assert payment.authorization.amount.remaining == 0
    assert payment.is_cancelled

    call = adapter.calls[0]
    assert call.method is HttpMethod.POST
    assert call.url == AUTH_CANCEL_URL
    # no amount: the remote side cancels whatever is left
    assert "amount" not in call.payload


def test_partial_cancel_is_capped_at_authorization_remaining(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(auth_total=100, charges=[40])
    adapter.queue(cancel_body("s-cnl-1", 60)).queue(cancel_body("s-cnl-2", 40))

    cancellations = client.cancel_payment(payment, 500)

    assert adapter.calls[0].payload["amount"] == 60.0
    assert cancellations[0].amount == Decimal("60")
    # what is left spills over to the charge, which is cancelled in full
    assert adapter.calls[1].url == charge_cancel_url(1)
    assert "amount" not in adapter.calls[1].payload
    assert adapter.calls[1].payload["reasonCode"] == "CANCEL"


def test_authorization_is_cancelled_before_charges(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(auth_total=150, charges=[100])
    assert payment.authorization.amount.remaining == 50
    adapter.queue(cancel_body("s-cnl-1", 50)).queue(cancel_body("s-cnl-2", 30))

    cancellations = client.cancel_payment(payment, 80)

    assert [c.amount for c in cancellations] == [Decimal("50"), Decimal("30")]
    assert cancellations[0].is_reversal and cancellations[1].is_refund
    assert [c.url for c in adapter.calls] == [AUTH_CANCEL_URL, charge_cancel_url(1)]
    assert adapter.calls[1].payload["amount"] == 30.0
    assert payment.authorization.amount.cancelled == 50
    assert payment.get_charge_by_index(0).amount.cancelled == 30


def test_already_cancelled_authorization_falls_through_to_charges(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(auth_total=100, charges=[40])
    adapter.queue(cancel_body("s-cnl-1", 20))
    first = client.cancel_payment(payment, 20)
    assert [c.amount for c in first] == [Decimal("20")]

    adapter.queue_error(ALREADY_CANCELLED).queue(cancel_body("s-cnl-2", 20))
    second = client.cancel_payment(payment, 20)

    assert len(second) == 1
    assert second[0].is_refund
    assert second[0].amount == Decimal("20")
    assert len(adapter.calls) == 3


def test_unrelated_error_aborts_and_keeps_partial_results(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(auth_total=100, charges=[30, 50])
    adapter.queue(cancel_body("s-cnl-1", 20)).queue(cancel_body("s-cnl-2", 30))
    adapter.queue_error(BASKET_ITEM_INVALID, status=400)

    with pytest.raises(ApiException) as exc_info:
        client.cancel_payment(payment)

    exc = exc_info.value
    assert exc.error_code == BASKET_ITEM_INVALID
    assert exc.symbolic_code is None
    assert [c.id for c in exc.partial_cancellations] == ["s-cnl-1", "s-cnl-2"]
    # created cancellations stay booked on their targets
    assert payment.authorization.amount.cancelled == 20
    assert payment.get_charge_by_id("s-chg-1").amount.cancelled == 30
    assert payment.get_charge_by_id("s-chg-2").cancellations == []


def test_transport_failure_in_charge_phase_keeps_partial_results(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(charges=[30, 50])
    adapter.queue(cancel_body("s-cnl-1", 30)).queue("", 200)

    with pytest.raises(TransportException) as exc_info:
        client.cancel_payment(payment)

    assert [c.id for c in exc_info.value.partial_cancellations] == ["s-cnl-1"]


def test_authorization_phase_only_tolerates_its_own_codes(client, adapter, payment_factory):
    payment = payment_factory(auth_total=100, charges=[40])
    adapter.queue_error(ALREADY_CHARGED_BACK)

    with pytest.raises(ApiException) as exc_info:
        client.cancel_payment(payment, 10)

    assert exc_info.value.symbolic_code is ApiResponseCode.ALREADY_CHARGED_BACK
    assert exc_info.value.partial_cancellations == []
    assert len(adapter.calls) == 1


def test_charged_back_charge_is_skipped(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(charges=[10, 20])
    adapter.queue_error(ALREADY_CHARGED_BACK).queue(cancel_body("s-cnl-2", 20))

    cancellations = client.cancel_payment(payment)

    assert [c.id for c in cancellations] == ["s-cnl-2"]
    assert [c.url for c in adapter.calls] == [charge_cancel_url(1), charge_cancel_url(2)]


def by_value(codes):
    return sorted(codes, key=lambda code: code.value)


@pytest.mark.parametrize("code", by_value(TOLERATED_ON_AUTHORIZATION_CANCEL))
def test_tolerated_authorization_codes_fall_through_to_charges(client, adapter, payment_factory, cancel_body, code):
    payment = payment_factory(auth_total=100, charges=[40])
    adapter.queue_error(DEFAULT_WIRE_CODES[code]).queue(cancel_body("s-cnl-2", 20))

    cancellations = client.cancel_payment(payment, 20)

    assert [c.id for c in cancellations] == ["s-cnl-2"]
    assert cancellations[0].is_refund
    assert [c.url for c in adapter.calls] == [AUTH_CANCEL_URL, charge_cancel_url(1)]


@pytest.mark.parametrize("code", by_value(set(ApiResponseCode) - TOLERATED_ON_AUTHORIZATION_CANCEL))
def test_other_codes_abort_the_authorization_phase(client, adapter, payment_factory, code):
    payment = payment_factory(auth_total=100, charges=[40])
    adapter.queue_error(DEFAULT_WIRE_CODES[code])

    with pytest.raises(ApiException) as exc_info:
        client.cancel_payment(payment, 20)

    assert exc_info.value.symbolic_code is code
    assert exc_info.value.partial_cancellations == []
    assert len(adapter.calls) == 1


@pytest.mark.parametrize("code", by_value(TOLERATED_ON_CHARGE_CANCEL))
def test_tolerated_charge_codes_skip_the_charge(client, adapter, payment_factory, cancel_body, code):
    payment = payment_factory(charges=[10, 20])
    adapter.queue_error(DEFAULT_WIRE_CODES[code]).queue(cancel_body("s-cnl-2", 20))

    cancellations = client.cancel_payment(payment)

    assert [c.id for c in cancellations] == ["s-cnl-2"]
    assert [c.url for c in adapter.calls] == [charge_cancel_url(1), charge_cancel_url(2)]


@pytest.mark.parametrize("code", by_value(set(ApiResponseCode) - TOLERATED_ON_CHARGE_CANCEL))
def test_other_codes_abort_the_charge_phase(client, adapter, payment_factory, code):
    payment = payment_factory(charges=[10, 20])
    adapter.queue_error(DEFAULT_WIRE_CODES[code])

    with pytest.raises(ApiException) as exc_info:
        client.cancel_payment(payment)

    assert exc_info.value.symbolic_code is code
    assert exc_info.value.partial_cancellations == []
    assert len(adapter.calls) == 1


def test_cancel_not_allowed_is_only_tolerated_on_the_authorization():
    assert ApiResponseCode.TRANSACTION_CANCEL_NOT_ALLOWED in TOLERATED_ON_AUTHORIZATION_CANCEL
    assert ApiResponseCode.TRANSACTION_CANCEL_NOT_ALLOWED not in TOLERATED_ON_CHARGE_CANCEL
    assert ApiResponseCode.ALREADY_CHARGED_BACK not in TOLERATED_ON_AUTHORIZATION_CANCEL


def test_zero_amount_makes_no_remote_call(client, adapter, payment_factory):
    payment = payment_factory(auth_total=100)

    assert client.cancel_authorization_amount(payment, 0.0) is None
    assert client.cancel_payment(payment, 0) == []
    assert adapter.calls == []


def test_nothing_left_on_authorization_skips_the_call(client, adapter, payment_factory):
    payment = payment_factory(auth_total=100, charges=[100])

    assert client.cancel_authorization_amount(payment, 10) is None
    assert adapter.calls == []


def test_negative_amount_is_rejected_locally(client, adapter, payment_factory):
    payment = payment_factory(auth_total=100)

    with pytest.raises(UsageException):
        client.cancel_payment(payment, -5)
    assert adapter.calls == []


def test_whole_cancel_visits_every_charge(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(charges=[10, 20, 30])
    for index, amount in enumerate((10, 20, 30), start=1):
        adapter.queue(cancel_body(f"s-cnl-{index}", amount))

    cancellations = client.cancel_payment(payment)

    assert len(cancellations) == 3
    assert all("amount" not in call.payload for call in adapter.calls)
    assert payment.is_cancelled


def test_partial_cancel_uses_full_then_exact_amounts(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(charges=[10, 20])
    adapter.queue(cancel_body("s-cnl-1", 10)).queue(cancel_body("s-cnl-2", 5))

    cancellations = client.cancel_payment(payment, 15)

    assert "amount" not in adapter.calls[0].payload
    assert adapter.calls[1].payload["amount"] == 5.0
    assert [c.amount for c in cancellations] == [Decimal("10"), Decimal("5")]


def test_cancel_stops_once_amount_is_used_up(client, adapter, payment_factory, cancel_body):
    payment = payment_factory(charges=[10, 20])
    adapter.queue(cancel_body("s-cnl-1", 10))

    cancellations = client.cancel_payment(payment, 10)

    assert len(cancellations) == 1
    assert len(adapter.calls) == 1
    assert not payment.is_cancelled
