"""Salesforce sObjects to canonical attributes and back.

``*_FIELDS`` maps are ``canonical name -> sObject field`` and drive the
create/update payloads.
"""

from __future__ import annotations

from typing import Any, Mapping


def _name(related: Any, default: Any = "") -> Any:
    return (related or {}).get("Name") or default


CONTACT_FIELDS = {
    "first_name": "FirstName",
    "last_name": "LastName",
    "account_id": "AccountId",
    "email": "Email",
    "owner_id": "OwnerId",
    "mobile": "MobilePhone",
    "phone": "Phone",
    "salutation": "Salutation",
    "title": "Title",
}

LEAD_FIELDS = {
    "first_name": "FirstName",
    "last_name": "LastName",
    "company_name": "Company",
    "email": "Email",
    "owner_id": "OwnerId",
    "phone": "Phone",
    "salutation": "Salutation",
    "title": "Title",
    "website": "Website",
    "industry": "Industry",
}

ACCOUNT_FIELDS = {
    "name": "Name",
    "description": "Description",
    "website": "Website",
    "industry": "Industry",
    "billing_city": "BillingCity",
    "billing_country": "BillingCountry",
    "owner_id": "OwnerId",
}

OPPORTUNITY_FIELDS = {
    "opportunity_name": "Name",
    "account_id": "AccountId",
    "amount": "Amount",
    "description": "Description",
    "close_date": "CloseDate",
    "created_by_id": "CreatedById",
    "owner_id": "OwnerId",
    "stage": "StageName",
    "probability": "Probability",
    "type": "Type",
}

CASE_FIELDS = {
    "subject": "Subject",
    "account_id": "AccountId",
    "contact_id": "ContactId",
    "owner_id": "OwnerId",
    "priority": "Priority",
    "status": "Status",
    "description": "Description",
    "type": "Type",
    "origin": "Origin",
}

ARTICLE_FIELDS = {"title": "Title", "content": "Body"}


def to_sobject(attrs: Mapping[str, Any], field_map: Mapping[str, str]) -> dict[str, Any]:
    return {sf: attrs[name] for name, sf in field_map.items() if attrs.get(name) is not None}


def to_contact(c: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": c.get("Id"),
        "first_name": c.get("FirstName"),
        "last_name": c.get("LastName"),
        "account_name": _name(c.get("Account"), None),
        "account_id": c.get("AccountId"),
        "email": c.get("Email"),
        "owner_id": c.get("OwnerId"),
        "owner_name": _name(c.get("Owner")),
        "mobile": c.get("MobilePhone"),
        "phone": c.get("Phone"),
        "salutation": c.get("Salutation"),
        "title": c.get("Title"),
        "last_modified_date": c.get("LastModifiedDate"),
    }


def to_lead(lead: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": lead.get("Id"),
        "first_name": lead.get("FirstName"),
        "last_name": lead.get("LastName"),
        "company_name": lead.get("Company"),
        "email": lead.get("Email"),
        "owner_id": lead.get("OwnerId"),
        "owner_name": _name(lead.get("Owner")),
        "phone": lead.get("Phone"),
        "salutation": lead.get("Salutation"),
        "title": lead.get("Title"),
        "website": lead.get("Website"),
        "industry": lead.get("Industry"),
        "last_modified_date": lead.get("LastModifiedDate"),
    }


def to_account(a: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": a.get("Id"),
        "name": a.get("Name"),
        "description": a.get("Description"),
        "website": a.get("Website"),
        "industry": a.get("Industry"),
        "billing_city": a.get("BillingCity"),
        "billing_country": a.get("BillingCountry"),
        "owner_id": a.get("OwnerId"),
        "owner_name": _name(a.get("Owner")),
        "last_modified_date": a.get("LastModifiedDate"),
    }


def to_opportunity(o: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": o.get("Id"),
        "opportunity_name": o.get("Name"),
        "account_name": _name(o.get("Account"), None),
        "account_id": o.get("AccountId"),
        "amount": o.get("Amount"),
        "description": o.get("Description"),
        "close_date": o.get("CloseDate"),
        "created_by_id": o.get("CreatedById"),
        "created_by": _name(o.get("CreatedBy")),
        "owner_id": o.get("OwnerId"),
        "owner_name": _name(o.get("Owner")),
        "stage": o.get("StageName"),
        "probability": o.get("Probability"),
        "type": o.get("Type"),
        "last_modified_date": o.get("LastModifiedDate"),
    }


def to_ticket(t: dict[str, Any]) -> dict[str, Any]:
    comments = (t.get("CaseComments") or {}).get("records") or []
    return {
        "id": t.get("Id"),
        "case_number": t.get("CaseNumber"),
        "subject": t.get("Subject"),
        "account_id": t.get("AccountId"),
        "account_name": _name(t.get("Account"), None),
        "contact_id": t.get("ContactId"),
        "contact_name": _name(t.get("Contact"), None),
        "owner_id": t.get("OwnerId"),
        "owner_name": _name(t.get("Owner"), None),
        "priority": t.get("Priority"),
        "status": t.get("Status"),
        "description": t.get("Description"),
        "type": t.get("Type"),
        "created_date": t.get("CreatedDate"),
        "closed_date": t.get("ClosedDate"),
        "origin": t.get("Origin"),
        "is_closed": t.get("IsClosed"),
        "is_escalated": t.get("IsEscalated"),
        "conversation": [
            {
                "id": c.get("Id"),
                "body": c.get("CommentBody"),
                "created_date": c.get("CreatedDate"),
                "created_by": _name(c.get("CreatedBy")),
            }
            for c in comments
        ],
        "last_modified_date": t.get("LastModifiedDate"),
    }


def to_article(a: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": a.get("Id"),
        "title": a.get("Title"),
        "content": a.get("Body") or "",
        "last_modified_date": a.get("LastModifiedDate"),
    }
