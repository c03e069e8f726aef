"""Salesforce connector: contacts, leads, accounts, opportunities, cases and articles.

Auth uses SALESFORCE_ACCESS_TOKEN when set, otherwise an OAuth2
client-credentials token from ``{instance}/services/oauth2/token``.
Lists run a fixed SOQL query per sObject; single fetches hit
``sobjects/{Type}/{id}``.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import Fetcher, PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result
from src.resolvers.salesforce import mappers
from src.resolvers.salesforce.config import SalesforceSettings, get_salesforce_settings

logger = structlog.get_logger(__name__)


class SObject(NamedTuple):
    entity_type: str
    name: str
    soql_fields: str
    fields: Mapping[str, str]
    mapper: Callable[[dict], dict]

    @property
    def soql(self) -> str:
        return f"SELECT {self.soql_fields} FROM {self.name}"


CONTACTS = SObject(
    "Contact",
    "Contact",
    "Id,FirstName,LastName,Account.Name,Email,AccountId,OwnerId,Owner.Name,MobilePhone,Phone,Title,"
    "Salutation,LastModifiedDate",
    mappers.CONTACT_FIELDS,
    mappers.to_contact,
)
LEADS = SObject(
    "Lead",
    "Lead",
    "Id,FirstName,LastName,Company,Email,OwnerId,Owner.Name,Phone,Salutation,Title,Website,Industry,"
    "LastModifiedDate",
    mappers.LEAD_FIELDS,
    mappers.to_lead,
)
ACCOUNTS = SObject(
    "Account",
    "Account",
    "Id,Name,Description,Website,Industry,BillingCity,BillingCountry,OwnerId,Owner.Name,LastModifiedDate",
    mappers.ACCOUNT_FIELDS,
    mappers.to_account,
)
OPPORTUNITIES = SObject(
    "Opportunity",
    "Opportunity",
    "Id,Name,Account.Name,AccountId,Amount,Description,CloseDate,CreatedById,CreatedBy.Name,OwnerId,"
    "Owner.Name,StageName,Probability,Type,LastModifiedDate",
    mappers.OPPORTUNITY_FIELDS,
    mappers.to_opportunity,
)
# Case comments ride along as a child relationship query.
TICKETS = SObject(
    "Ticket",
    "Case",
    "Id,CaseNumber,Subject,AccountId,Account.Name,ContactId,Contact.Name,OwnerId,Owner.Name,Priority,"
    "Status,Description,Type,CreatedDate,ClosedDate,Origin,IsClosed,IsEscalated,LastModifiedDate,"
    "(SELECT Id,CommentBody,CreatedDate,CreatedBy.Name FROM CaseComments)",
    mappers.CASE_FIELDS,
    mappers.to_ticket,
)
ARTICLES = SObject(
    "Article",
    "Knowledge__kav",
    "Id,Title,Body,LastModifiedDate",
    mappers.ARTICLE_FIELDS,
    mappers.to_article,
)


class SalesforceResolver(ResolverBase):
    NAMESPACE = "salesforce"

    def __init__(
        self,
        settings: SalesforceSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_salesforce_settings()
        self._tokens = TokenCache()
        self.http = HttpClient(
            "salesforce",
            self.settings.instance_url,
            auth=self._auth_headers,
            transport=transport,
        )

    @property
    def _data_path(self) -> str:
        return f"/services/data/{self.settings.SALESFORCE_API_VERSION}"

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.SALESFORCE_ACCESS_TOKEN:
            return self._tokens.set(s.SALESFORCE_ACCESS_TOKEN)
        if not (s.SALESFORCE_CLIENT_ID and s.SALESFORCE_CLIENT_SECRET and s.instance_url):
            raise ConfigError(
                "Salesforce OAuth2 configuration is required: SALESFORCE_CLIENT_ID, "
                "SALESFORCE_CLIENT_SECRET, and SALESFORCE_INSTANCE_URL"
            )
        body = await exchange_token(
            self.http,
            f"{s.instance_url}/services/oauth2/token",
            {
                "grant_type": "client_credentials",
                "client_id": s.SALESFORCE_CLIENT_ID,
                "client_secret": s.SALESFORCE_CLIENT_SECRET,
            },
        )
        return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token()}"}

    # ── Generic sObject operations ────────────────────────────────────────

    def _sobject_path(self, obj: SObject, record_id: str | None = None) -> str:
        path = f"{self._data_path}/sobjects/{obj.name}"
        return f"{path}/{record_id}" if record_id else path

    async def _create(self, obj: SObject, attrs: Mapping[str, Any]) -> Success:
        result = await self.http.post(self._sobject_path(obj), json=mappers.to_sobject(attrs, obj.fields))
        logger.info("salesforce_record_created", sobject=obj.name, id=result.get("id"))
        return Success(id=result.get("id"))

    async def _list(self, obj: SObject) -> list[Instance]:
        body = await self.http.get(f"{self._data_path}/query/", params={"q": obj.soql})
        return self._instances(obj.entity_type, body.get("records") or [], obj.mapper)

    async def _query(self, obj: SObject, query: Mapping[str, Any] | None) -> list[Instance]:
        record_id = path_id(query)
        if record_id:
            record = await self.http.get(self._sobject_path(obj, record_id))
            return [self._instance(obj.entity_type, obj.mapper(record))]
        return await self._list(obj)

    async def _update(self, obj: SObject, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{obj.entity_type} ID is required for update")
        await self.http.patch(self._sobject_path(obj, attrs["id"]), json=mappers.to_sobject(new_attrs, obj.fields))
        # PATCH answers 204; echo the caller's record back.
        return self._instance(obj.entity_type, attrs)

    async def _delete(self, obj: SObject, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{obj.entity_type} ID is required for deletion")
        await self.http.delete(self._sobject_path(obj, attrs["id"]))

    # ── Contacts ──────────────────────────────────────────────────────────

    @returns_result
    async def create_contact(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(CONTACTS, attrs)

    @returns_result
    async def query_contact(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(CONTACTS, query)

    @returns_result
    async def update_contact(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(CONTACTS, attrs, new_attrs)

    @returns_result
    async def delete_contact(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(CONTACTS, attrs)

    # ── Leads ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_lead(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(LEADS, attrs)

    @returns_result
    async def query_lead(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(LEADS, query)

    @returns_result
    async def update_lead(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(LEADS, attrs, new_attrs)

    @returns_result
    async def delete_lead(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(LEADS, attrs)

    # ── Accounts ──────────────────────────────────────────────────────────

    @returns_result
    async def create_account(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(ACCOUNTS, attrs)

    @returns_result
    async def query_account(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(ACCOUNTS, query)

    @returns_result
    async def update_account(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(ACCOUNTS, attrs, new_attrs)

    @returns_result
    async def delete_account(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(ACCOUNTS, attrs)

    # ── Opportunities ─────────────────────────────────────────────────────

    @returns_result
    async def create_opportunity(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(OPPORTUNITIES, attrs)

    @returns_result
    async def query_opportunity(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(OPPORTUNITIES, query)

    @returns_result
    async def update_opportunity(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(OPPORTUNITIES, attrs, new_attrs)

    @returns_result
    async def delete_opportunity(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(OPPORTUNITIES, attrs)

    # ── Tickets (Case) ────────────────────────────────────────────────────

    @returns_result
    async def create_ticket(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(TICKETS, attrs)

    @returns_result
    async def query_ticket(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(TICKETS, query)

    @returns_result
    async def update_ticket(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(TICKETS, attrs, new_attrs)

    @returns_result
    async def delete_ticket(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(TICKETS, attrs)

    # ── Knowledge articles ────────────────────────────────────────────────

    @returns_result
    async def create_article(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(ARTICLES, attrs)

    @returns_result
    async def query_article(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(ARTICLES, query)

    @returns_result
    async def update_article(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(ARTICLES, attrs, new_attrs)

    @returns_result
    async def delete_article(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(ARTICLES, attrs)

    # ── Subscriptions ─────────────────────────────────────────────────────

    def _poll(self, entity: str, fetch: Fetcher, sink: SubscriptionSink) -> Awaitable[PollingTask]:
        return self._subscribe(entity, fetch, sink, self.settings.SALESFORCE_POLL_INTERVAL_MINUTES)

    async def subscribe_contacts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("contacts", lambda: self._list(CONTACTS), sink)

    async def subscribe_leads(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("leads", lambda: self._list(LEADS), sink)

    async def subscribe_accounts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("accounts", lambda: self._list(ACCOUNTS), sink)

    async def subscribe_opportunities(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("opportunities", lambda: self._list(OPPORTUNITIES), sink)

    async def subscribe_tickets(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("tickets", lambda: self._list(TICKETS), sink)

    async def subscribe_articles(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("articles", lambda: self._list(ARTICLES), sink)
