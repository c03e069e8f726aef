"""Stripe connector.

Ten resources share one shape: create/list/retrieve/update (update is a
POST) and a resource-specific delete. Records are passed through as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.errors import ConfigError, ErrorKind, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Failure, Result, Success, returns_result
from src.resolvers.stripe import forms
from src.resolvers.stripe.config import StripeSettings, get_stripe_settings

logger = structlog.get_logger(__name__)

LIST_LIMIT = 100


class DeleteMode(str, Enum):
    delete = "delete"
    deactivate = "deactivate"
    cancel = "cancel"
    unsupported = "unsupported"


class Resource(NamedTuple):
    entity_type: str
    path: str
    delete_mode: DeleteMode = DeleteMode.delete
    delete_message: str | None = None


CUSTOMERS = Resource("Customer", "/v1/customers")
PRODUCTS = Resource("Product", "/v1/products")
PRICES = Resource(
    "Price", "/v1/prices", DeleteMode.deactivate, "Price deactivated (Stripe does not support deletion)."
)
SUBSCRIPTIONS = Resource("Subscription", "/v1/subscriptions")
INVOICES = Resource("Invoice", "/v1/invoices")
INVOICE_ITEMS = Resource("InvoiceItem", "/v1/invoiceitems")
PAYMENT_INTENTS = Resource("PaymentIntent", "/v1/payment_intents", DeleteMode.cancel)
CHARGES = Resource(
    "Charge",
    "/v1/charges",
    DeleteMode.unsupported,
    "Charges cannot be deleted via the Stripe API. Consider issuing a refund.",
)
REFUNDS = Resource("Refund", "/v1/refunds", DeleteMode.unsupported, "Refunds cannot be deleted via the Stripe API.")
PAYOUTS = Resource("Payout", "/v1/payouts", DeleteMode.cancel, "Payout cancellation requested.")


class StripeResolver(ResolverBase):
    NAMESPACE = "stripe"

    def __init__(
        self,
        settings: StripeSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_stripe_settings()
        headers = {}
        if self.settings.STRIPE_API_VERSION:
            headers["Stripe-Version"] = self.settings.STRIPE_API_VERSION
        self.http = HttpClient(
            "stripe",
            self.settings.STRIPE_BASE_URL,
            auth=self._auth_headers,
            headers=headers,
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.STRIPE_API_KEY:
            raise ConfigError("Stripe API key is required")
        return {"Authorization": f"Bearer {self.settings.STRIPE_API_KEY}"}

    async def _post(self, path: str, data: Mapping[str, Any] | None = None) -> dict:
        return await self.http.post(path, data=forms.encode(data))

    # ── Generic resource operations ───────────────────────────────────────

    async def _create(self, res: Resource, attrs: Mapping[str, Any]) -> Success:
        result = await self._post(res.path, attrs)
        logger.info("stripe_object_created", resource=res.entity_type, id=result.get("id"))
        return Success(id=result.get("id"))

    async def _list(self, res: Resource) -> list[Instance]:
        body = await self.http.get(res.path, params={"limit": LIST_LIMIT})
        records = body.get("data") if isinstance(body, dict) else body
        if not isinstance(records, list):
            return []
        return [self._instance(res.entity_type, r) for r in records[:LIST_LIMIT] if isinstance(r, dict)]

    async def _query(self, res: Resource, query: Mapping[str, Any] | None) -> list[Instance]:
        record_id = path_id(query)
        if record_id:
            return [self._instance(res.entity_type, await self.http.get(f"{res.path}/{record_id}"))]
        return await self._list(res)

    async def _update(self, res: Resource, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{res.entity_type} ID is required")
        result = await self._post(f"{res.path}/{attrs['id']}", new_attrs)
        return self._instance(res.entity_type, result)

    async def _delete(self, res: Resource, attrs: Mapping[str, Any]) -> Result:
        if res.delete_mode is DeleteMode.unsupported:
            return Failure(kind=ErrorKind.validation, message=res.delete_message)
        if not attrs.get("id"):
            raise RequiredFieldError(f"{res.entity_type} ID is required")
        record_path = f"{res.path}/{attrs['id']}"

        if res.delete_mode is DeleteMode.deactivate:
            await self._post(record_path, {"active": False})
            return Success(message=res.delete_message)
        if res.delete_mode is DeleteMode.cancel:
            result = await self._post(f"{record_path}/cancel")
            return Success(message=res.delete_message, id=result.get("id"))
        await self.http.delete(record_path)
        return Success()

    # ── Customers ─────────────────────────────────────────────────────────

    @returns_result
    async def create_customer(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(CUSTOMERS, attrs)

    @returns_result
    async def query_customer(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(CUSTOMERS, query)

    @returns_result
    async def update_customer(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(CUSTOMERS, attrs, new_attrs)

    @returns_result
    async def delete_customer(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(CUSTOMERS, attrs)

    # ── Products ──────────────────────────────────────────────────────────

    @returns_result
    async def create_product(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(PRODUCTS, attrs)

    @returns_result
    async def query_product(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(PRODUCTS, query)

    @returns_result
    async def update_product(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(PRODUCTS, attrs, new_attrs)

    @returns_result
    async def delete_product(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(PRODUCTS, attrs)

    # ── Prices ────────────────────────────────────────────────────────────

    @returns_result
    async def create_price(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(PRICES, attrs)

    @returns_result
    async def query_price(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(PRICES, query)

    @returns_result
    async def update_price(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(PRICES, attrs, new_attrs)

    @returns_result
    async def delete_price(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(PRICES, attrs)

    # ── Subscriptions ─────────────────────────────────────────────────────

    @returns_result
    async def create_subscription(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(SUBSCRIPTIONS, attrs)

    @returns_result
    async def query_subscription(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(SUBSCRIPTIONS, query)

    @returns_result
    async def update_subscription(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(SUBSCRIPTIONS, attrs, new_attrs)

    @returns_result
    async def delete_subscription(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(SUBSCRIPTIONS, attrs)

    # ── Invoices ──────────────────────────────────────────────────────────

    @returns_result
    async def create_invoice(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(INVOICES, attrs)

    @returns_result
    async def query_invoice(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(INVOICES, query)

    @returns_result
    async def update_invoice(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(INVOICES, attrs, new_attrs)

    @returns_result
    async def delete_invoice(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(INVOICES, attrs)

    async def _invoice_action(self, invoice_id: str | None, action: str) -> Instance:
        if not invoice_id:
            raise RequiredFieldError("Invoice ID is required")
        result = await self._post(f"{INVOICES.path}/{invoice_id}/{action}")
        logger.info("stripe_invoice_action", action=action, id=invoice_id)
        return self._instance(INVOICES.entity_type, result)

    @returns_result
    async def finalize_invoice(self, invoice_id: str | None) -> Instance:
        return await self._invoice_action(invoice_id, "finalize")

    @returns_result
    async def send_invoice(self, invoice_id: str | None) -> Instance:
        return await self._invoice_action(invoice_id, "send")

    # ── Invoice items ─────────────────────────────────────────────────────

    @returns_result
    async def create_invoice_item(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(INVOICE_ITEMS, attrs)

    @returns_result
    async def query_invoice_item(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(INVOICE_ITEMS, query)

    @returns_result
    async def update_invoice_item(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(INVOICE_ITEMS, attrs, new_attrs)

    @returns_result
    async def delete_invoice_item(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(INVOICE_ITEMS, attrs)

    # ── Payment intents ───────────────────────────────────────────────────

    @returns_result
    async def create_payment_intent(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(PAYMENT_INTENTS, attrs)

    @returns_result
    async def query_payment_intent(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(PAYMENT_INTENTS, query)

    @returns_result
    async def update_payment_intent(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(PAYMENT_INTENTS, attrs, new_attrs)

    @returns_result
    async def delete_payment_intent(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(PAYMENT_INTENTS, attrs)

    # ── Charges ───────────────────────────────────────────────────────────

    @returns_result
    async def create_charge(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(CHARGES, attrs)

    @returns_result
    async def query_charge(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(CHARGES, query)

    @returns_result
    async def update_charge(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(CHARGES, attrs, new_attrs)

    @returns_result
    async def delete_charge(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(CHARGES, attrs)

    # ── Refunds ───────────────────────────────────────────────────────────

    @returns_result
    async def create_refund(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(REFUNDS, attrs)

    @returns_result
    async def query_refund(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(REFUNDS, query)

    @returns_result
    async def update_refund(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(REFUNDS, attrs, new_attrs)

    @returns_result
    async def delete_refund(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(REFUNDS, attrs)

    # ── Payouts ───────────────────────────────────────────────────────────

    @returns_result
    async def create_payout(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(PAYOUTS, attrs)

    @returns_result
    async def query_payout(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(PAYOUTS, query)

    @returns_result
    async def update_payout(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(PAYOUTS, attrs, new_attrs)

    @returns_result
    async def delete_payout(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(PAYOUTS, attrs)

    # ── Polling ───────────────────────────────────────────────────────────

    def _poll(self, entity: str, res: Resource, sink: SubscriptionSink) -> Awaitable[PollingTask]:
        return self._subscribe(entity, lambda: self._list(res), sink, self.settings.poll_interval_minutes)

    async def subscribe_customers(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("customers", CUSTOMERS, sink)

    async def subscribe_products(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("products", PRODUCTS, sink)

    async def subscribe_prices(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("prices", PRICES, sink)

    async def subscribe_subscriptions(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("subscriptions", SUBSCRIPTIONS, sink)

    async def subscribe_invoices(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("invoices", INVOICES, sink)

    async def subscribe_invoice_items(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("invoice_items", INVOICE_ITEMS, sink)

    async def subscribe_payment_intents(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("payment_intents", PAYMENT_INTENTS, sink)

    async def subscribe_charges(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("charges", CHARGES, sink)

    async def subscribe_refunds(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("refunds", REFUNDS, sink)

    async def subscribe_payouts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("payouts", PAYOUTS, sink)
