"""Tests for the Stripe connector and its form encoding."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.stripe import forms
from src.resolvers.stripe.config import StripeSettings
from src.resolvers.stripe.resolver import StripeResolver


@pytest.fixture
def resolver(vendor):
    return StripeResolver(StripeSettings(STRIPE_API_KEY="sk_test_123", _env_file=None), transport=vendor.transport)


class TestForms:
    def test_nested_dicts_and_lists_flatten(self):
        encoded = forms.encode(
            {"customer": "cus_1", "items": [{"price": "price_1", "quantity": 2}], "metadata": {"plan": "pro"}}
        )
        assert encoded == {
            "customer": "cus_1",
            "items[0][price]": "price_1",
            "items[0][quantity]": "2",
            "metadata[plan]": "pro",
        }

    def test_booleans_are_lowercase(self):
        assert forms.encode({"active": False, "livemode": True}) == {"active": "false", "livemode": "true"}

    def test_none_and_empty_nested_values_dropped(self):
        assert forms.encode({"email": None, "metadata": {"k": None}, "tags": []}) is None

    def test_datetimes_become_unix_seconds(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert forms.encode({"due_date": moment}) == {"due_date": "1704067200"}


class TestResources:
    @pytest.mark.asyncio
    async def test_create_customer_posts_form(self, resolver, vendor):
        vendor.add("POST", "/v1/customers", {"id": "cus_1", "object": "customer"})
        result = await resolver.create_customer({"email": "a@example.com", "metadata": {"tier": "gold"}})

        assert result.id == "cus_1"
        request = vendor.last("POST")
        assert request.headers["Authorization"] == "Bearer sk_test_123"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert vendor.form(request) == {"email": "a@example.com", "metadata[tier]": "gold"}

    @pytest.mark.asyncio
    async def test_list_passes_records_through(self, resolver, vendor):
        vendor.add("GET", "/v1/products", {"object": "list", "data": [{"id": "prod_1", "name": "Widget"}]})
        result = await resolver.query_product()

        assert result.value[0].attributes == {"id": "prod_1", "name": "Widget"}
        assert vendor.last().url.params["limit"] == "100"

    @pytest.mark.asyncio
    async def test_list_keeps_at_most_limit(self, resolver, vendor):
        vendor.add("GET", "/v1/customers", {"object": "list", "data": [{"id": f"cus_{i}"} for i in range(150)]})
        result = await resolver.query_customer()
        assert len(result.value) == 100

    @pytest.mark.asyncio
    async def test_update_is_a_post(self, resolver, vendor):
        vendor.add("POST", "/v1/customers/cus_1", {"id": "cus_1", "name": "New"})
        result = await resolver.update_customer({"id": "cus_1"}, {"name": "New"})
        assert result.value["name"] == "New"

    @pytest.mark.asyncio
    async def test_card_error_surfaces_status(self, resolver, vendor):
        vendor.add(
            "POST",
            "/v1/charges",
            {"error": {"type": "card_error", "code": "card_declined", "message": "Your card was declined."}},
            status=402,
        )
        result = await resolver.create_charge({"amount": 500, "currency": "usd", "source": "tok_chargeDeclined"})
        assert result.kind is ErrorKind.http_status
        assert result.status == 402
        assert "card_declined" in result.message

    @pytest.mark.asyncio
    async def test_api_version_header(self, vendor):
        vendor.add("GET", "/v1/refunds", {"data": []})
        settings = StripeSettings(STRIPE_API_KEY="sk", STRIPE_API_VERSION="2024-06-20", _env_file=None)
        await StripeResolver(settings, transport=vendor.transport).query_refund()
        assert vendor.last().headers["Stripe-Version"] == "2024-06-20"

    @pytest.mark.asyncio
    async def test_missing_key_is_config_failure(self, vendor):
        result = await StripeResolver(StripeSettings(_env_file=None), transport=vendor.transport).query_invoice()
        assert result.kind is ErrorKind.config
        assert vendor.requests == []


class TestDeleteModes:
    @pytest.mark.asyncio
    async def test_customer_hard_delete(self, resolver, vendor):
        vendor.add("DELETE", "/v1/customers/cus_1", {"id": "cus_1", "deleted": True})
        result = await resolver.delete_customer({"id": "cus_1"})
        assert result.ok and result.message is None

    @pytest.mark.asyncio
    async def test_price_is_deactivated(self, resolver, vendor):
        vendor.add("POST", "/v1/prices/price_1", {"id": "price_1", "active": False})
        result = await resolver.delete_price({"id": "price_1"})

        assert vendor.form(vendor.last("POST")) == {"active": "false"}
        assert result.message == "Price deactivated (Stripe does not support deletion)."

    @pytest.mark.asyncio
    async def test_payment_intent_is_cancelled(self, resolver, vendor):
        vendor.add("POST", "/v1/payment_intents/pi_1/cancel", {"id": "pi_1", "status": "canceled"})
        result = await resolver.delete_payment_intent({"id": "pi_1"})
        assert result.id == "pi_1"
        assert vendor.last("POST").content == b""

    @pytest.mark.asyncio
    async def test_charge_delete_unsupported(self, resolver, vendor):
        result = await resolver.delete_charge({"id": "ch_1"})
        assert result.kind is ErrorKind.validation
        assert "refund" in result.message
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, resolver):
        result = await resolver.delete_payout({})
        assert result.kind is ErrorKind.validation


@pytest.mark.asyncio
async def test_finalize_invoice(resolver, vendor):
    vendor.add("POST", "/v1/invoices/in_1/finalize", {"id": "in_1", "status": "open"})
    result = await resolver.finalize_invoice("in_1")
    assert result.value["status"] == "open"


@pytest.mark.asyncio
async def test_poll_interval_floor(resolver, vendor, sink):
    settings = StripeSettings(STRIPE_API_KEY="sk", STRIPE_POLL_INTERVAL_MINUTES=0, _env_file=None)
    assert settings.poll_interval_minutes == 1

    vendor.add("GET", "/v1/subscriptions", {"data": [{"id": "sub_1"}, "junk"]})
    task = await resolver.subscribe_subscriptions(sink)
    task.stop()
    assert [i["id"] for i in sink.instances] == ["sub_1"]
