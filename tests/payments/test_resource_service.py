import gc

import pytest

from application.ports.http_adapter import HttpMethod
from domain.common.exceptions import ApiException, IdRequiredException, UsageException
from domain.payment.customer import Customer
from domain.payment.entity import Payment
from domain.payment.payment_types import (
    Card,
    Giropay,
    Ideal,
    Invoice,
    InvoiceGuaranteed,
    Paypal,
    PIS,
    Prepayment,
    Przelewy24,
    SepaDirectDebit,
    SepaDirectDebitGuaranteed,
    Sofort,
)
from domain.payment.resource import FetchState
from shared.codes.api_codes import ApiResponseCode, DEFAULT_WIRE_CODES

BASE = "https://api.heidelpay.com/v1/"


def test_get_resource_fetches_only_once(client, adapter):
    customer = Customer(id="s-cst-1")
    assert customer.fetch_state is FetchState.PERSISTED
    adapter.queue({"id": "s-cst-1", "firstname": "Max"})

    client.get_resource(customer)
    client.get_resource(customer)

    assert len(adapter.calls) == 1
    assert adapter.calls[0].method is HttpMethod.GET
    assert adapter.calls[0].url == BASE + "customers/s-cst-1/"
    assert customer.firstname == "Max"
    assert customer.fetch_state is FetchState.FETCHED
    assert customer.fetched_at is not None


def test_get_resource_skips_unpersisted_resources(client, adapter):
    customer = Customer("Max", "Mustermann")
    client.get_resource(customer)
    assert adapter.calls == []
    assert customer.fetch_state is FetchState.UNPERSISTED


def test_create_posts_without_id_and_applies_response(client, adapter):
    customer = Customer("Max", "Mustermann")
    adapter.queue({"id": "s-cst-1"})

    client.create_customer(customer)

    call = adapter.calls[0]
    assert call.method is HttpMethod.POST
    assert call.url == BASE + "customers/"
    assert call.payload == {"firstname": "Max", "lastname": "Mustermann"}
    assert customer.id == "s-cst-1"
    assert customer.fetch_state is FetchState.PERSISTED


def test_create_ignores_response_flagged_as_error(client, adapter):
    customer = Customer("Max", "Mustermann")
    adapter.queue({"id": "s-cst-9", "isError": True})

    client.create_customer(customer)

    assert customer.id is None


def test_error_response_leaves_resource_untouched(client, adapter):
    customer = Customer("Max", "Mustermann")
    adapter.queue_error("API.410.100.100", status=400)

    with pytest.raises(ApiException):
        client.create_customer(customer)
    assert customer.id is None
    assert customer.firstname == "Max"


def test_update_and_delete_append_the_id(client, adapter):
    customer = Customer("Max", "Mustermann", id="s-cst-1")
    adapter.queue({"id": "s-cst-1", "lastname": "Muster"}).queue({"id": "s-cst-1"})

    client.update_customer(customer)
    client.delete_customer(customer)

    assert [(c.method, c.url) for c in adapter.calls] == [
        (HttpMethod.PUT, BASE + "customers/s-cst-1/"),
        (HttpMethod.DELETE, BASE + "customers/s-cst-1/"),
    ]
    assert customer.lastname == "Muster"
    assert adapter.calls[1].payload is None


def test_delete_customer_by_id_fetches_first(client, adapter):
    adapter.queue({"id": "s-cst-1"}).queue({"id": "s-cst-1"})

    client.delete_customer("s-cst-1")

    assert [c.method for c in adapter.calls] == [HttpMethod.GET, HttpMethod.DELETE]


@pytest.mark.parametrize("action", ["fetch", "update", "delete"])
def test_id_is_required(client, adapter, action):
    customer = Customer("Max")
    call = {
        "fetch": client.fetch_resource,
        "update": client.update_customer,
        "delete": client.delete_customer,
    }[action]
    with pytest.raises(IdRequiredException):
        call(customer)
    assert adapter.calls == []


def test_fetch_payment_by_id_reuses_known_instance(client, adapter):
    adapter.queue({"id": "s-pay-1", "transactions": []}).queue({"id": "s-pay-1", "transactions": []})

    first = client.fetch_payment("s-pay-1")
    second = client.fetch_payment("s-pay-1")

    assert first is second
    assert client.resources.known_payment("s-pay-1") is first


def test_payment_map_releases_unreferenced_payments(client, adapter):
    ids = [f"s-pay-{n}" for n in range(50)]
    for payment_id in ids:
        adapter.queue({"id": payment_id, "transactions": []})
        client.fetch_payment(payment_id)

    gc.collect()

    assert all(client.resources.known_payment(payment_id) is None for payment_id in ids)


def test_transaction_from_helper_keeps_its_payment(client, adapter):
    adapter.queue({
        "id": "s-pay-1",
        "transactions": [{"type": "charge", "url": "https://x/v1/payments/s-pay-1/charges/s-chg-1", "amount": "50"}],
    })
    adapter.queue({"id": "s-chg-1", "amount": "50"})

    charge = client.fetch_charge_by_id("s-pay-1", "s-chg-1")
    gc.collect()

    assert charge.payment.id == "s-pay-1"
    assert client.resources.known_payment("s-pay-1") is charge.payment

    del charge
    gc.collect()
    assert client.resources.known_payment("s-pay-1") is None


def test_fetch_charge_by_unknown_id_is_a_usage_error(client, adapter):
    adapter.queue({"id": "s-pay-1", "transactions": []})

    with pytest.raises(UsageException):
        client.fetch_charge_by_id("s-pay-1", "s-chg-404")
    assert len(adapter.calls) == 1


def test_fetch_refund_by_id(client, adapter):
    adapter.queue({
        "id": "s-pay-1",
        "transactions": [
            {"type": "charge", "url": "https://x/v1/payments/s-pay-1/charges/s-chg-1", "amount": "50"},
            {"type": "cancel-charge", "url": "https://x/v1/payments/s-pay-1/charges/s-chg-1/cancels/s-cnl-1", "amount": "20"},
        ],
    })
    adapter.queue({"id": "s-chg-1", "amount": "50"})
    adapter.queue({"id": "s-cnl-1", "amount": "20", "reasonCode": "RETURN"})

    refund = client.fetch_refund_by_id("s-pay-1", "s-chg-1", "s-cnl-1")

    assert adapter.calls[2].url == BASE + "payments/s-pay-1/charges/s-chg-1/cancels/s-cnl-1/"
    assert refund.reason_code == "RETURN"
    assert refund.is_refund


def test_fetch_reversal_by_authorization(client, adapter):
    adapter.queue({
        "id": "s-pay-1",
        "transactions": [
            {"type": "authorize", "url": "https://x/v1/payments/s-pay-1/authorize/s-aut-1", "amount": "100"},
            {"type": "cancel-authorize", "url": "https://x/v1/payments/s-pay-1/authorize/s-aut-1/cancels/s-cnl-1", "amount": "10"},
        ],
    })
    adapter.queue({"id": "s-aut-1", "amount": "100"})
    adapter.queue({"id": "s-cnl-1", "amount": "10"})

    reversal = client.fetch_reversal_by_authorization("s-pay-1", "s-cnl-1")

    assert reversal.is_reversal
    assert adapter.calls[1].url == BASE + "payments/s-pay-1/authorize/s-aut-1/"


@pytest.mark.parametrize(
    "type_cls,type_id",
    [
        (Card, "s-crd-12345678"),
        (Giropay, "s-gro-12345678"),
        (Ideal, "s-idl-12345678"),
        (Invoice, "s-ivc-12345678"),
        (InvoiceGuaranteed, "s-ivg-12345678"),
        (Paypal, "p-ppl-12345678"),
        (Prepayment, "p-ppy-12345678"),
        (Przelewy24, "p-p24-12345678"),
        (SepaDirectDebit, "p-sdd-12345678"),
        (SepaDirectDebitGuaranteed, "p-ddg-12345678"),
        (Sofort, "p-sft-12345678"),
        (PIS, "p-pis-12345678"),
    ],
)
def test_fetch_payment_type_resolves_class_from_id(client, adapter, type_cls, type_id):
    adapter.queue({"id": type_id})

    payment_type = client.fetch_payment_type(type_id)

    assert type(payment_type) is type_cls
    assert adapter.calls[0].url == BASE + f"types/{type_cls.type_name}/{type_id}/"


@pytest.mark.parametrize(
    "type_id",
    ["z-crd-12345678123", "p-xyz-123456ss78a", "scrd-1234567sfsbc", "p-crd12345678abc", "pcrd12345678abc", "myId", None, ""],
)
def test_fetch_payment_type_rejects_invalid_ids(client, adapter, type_id):
    with pytest.raises(UsageException, match="Invalid payment type!"):
        client.fetch_payment_type(type_id)
    assert adapter.calls == []


def test_create_or_update_customer_merges_with_existing(client, adapter):
    customer = Customer("Max", "Mustermann", customer_id="c-1")
    customer.email = "new@example.com"
    adapter.queue_error(DEFAULT_WIRE_CODES[ApiResponseCode.CUSTOMER_ID_ALREADY_EXISTS])
    adapter.queue({
        "id": "s-cst-1",
        "customerId": "c-1",
        "firstname": "Maximilian",
        "lastname": "Mustermann",
        "email": "old@example.com",
        "phone": "0123",
        "billingAddress": {"city": "Berlin"},
    })
    adapter.queue({"id": "s-cst-1"})

    result = client.create_or_update_customer(customer)

    assert result is customer
    assert [(c.method, c.url) for c in adapter.calls[1:]] == [
        (HttpMethod.GET, BASE + "customers/c-1/"),
        (HttpMethod.PUT, BASE + "customers/s-cst-1/"),
    ]
    sent = adapter.calls[2].payload
    assert sent["firstname"] == "Max"
    assert sent["email"] == "new@example.com"
    assert sent["phone"] == "0123"
    assert sent["billingAddress"] == {"city": "Berlin"}
    assert customer.id == "s-cst-1"


def test_create_or_update_customer_propagates_other_errors(client, adapter):
    adapter.queue_error("API.410.100.100", status=400)

    with pytest.raises(ApiException):
        client.create_or_update_customer(Customer("Max", customer_id="c-1"))
    assert len(adapter.calls) == 1


def test_fetch_keypair(client, adapter):
    adapter.queue({"publicKey": "s-pub-abc", "availablePaymentTypes": ["card", "paypal"]})

    keypair = client.fetch_keypair()

    assert adapter.calls[0].url == BASE + "keypair/"
    assert keypair.public_key == "s-pub-abc"
    assert keypair.available_payment_types == ["card", "paypal"]


@pytest.mark.parametrize(
    "expected,url,id_string",
    [
        ("s-test-1234", "https://myurl.test/s-test-1234", "test"),
        ("p-foo-99988776655", "https://myurl.test/p-foo-99988776655", "foo"),
        ("s-bar-123456787", "https://myurl.test/s-test-1234/s-bar-123456787", "bar"),
    ],
)
def test_get_resource_id_from_url(client, expected, url, id_string):
    assert client.get_resource_id_from_url(url, id_string) == expected


@pytest.mark.parametrize(
    "url,id_string",
    [
        ("https://myurl.test/s-test-1234", "aut"),
        ("https://myurl.test/authorizep-aut-99988776655", "foo"),
        ("https://myurl.test/s-test-1234/z-bar-123456787", "bar"),
    ],
)
def test_get_resource_id_from_url_without_match(client, url, id_string):
    with pytest.raises(UsageException, match="Id not found!"):
        client.get_resource_id_from_url(url, id_string)


def test_payment_without_id_cannot_be_fetched(client, adapter):
    with pytest.raises(IdRequiredException):
        client.fetch_resource(Payment())
    assert adapter.calls == []
