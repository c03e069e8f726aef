"""Field maps between canonical attributes and Zoho CRM module fields.

Outbound maps are ``canonical name -> Zoho field`` or
``canonical name -> (Zoho field, converter)`` for lookups, which Zoho
expects as ``{"id": ...}``. Inbound mappers flatten lookups back to ids.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Union


def lookup_id(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("id")
    return value


def lookup_field(value: Any) -> dict[str, Any] | None:
    if not value:
        return None
    if isinstance(value, Mapping) and value.get("id"):
        return {"id": value["id"]}
    return {"id": value}


FieldDef = Union[str, tuple[str, Callable[[Any], Any]]]

OWNER: FieldDef = ("Owner", lookup_field)

LEAD_FIELDS: dict[str, FieldDef] = {
    "first_name": "First_Name",
    "last_name": "Last_Name",
    "email": "Email",
    "company": "Company",
    "phone": "Phone",
    "mobile": "Mobile",
    "lead_source": "Lead_Source",
    "lead_status": "Lead_Status",
    "owner": OWNER,
    "description": "Description",
}

CONTACT_FIELDS: dict[str, FieldDef] = {
    "first_name": "First_Name",
    "last_name": "Last_Name",
    "email": "Email",
    "phone": "Phone",
    "mobile": "Mobile",
    "account_id": ("Account_Name", lookup_field),
    "title": "Title",
    "department": "Department",
    "owner": OWNER,
}

ACCOUNT_FIELDS: dict[str, FieldDef] = {
    "account_name": "Account_Name",
    "website": "Website",
    "phone": "Phone",
    "industry": "Industry",
    "billing_city": "Billing_City",
    "billing_state": "Billing_State",
    "billing_country": "Billing_Country",
    "owner": OWNER,
    "description": "Description",
}

DEAL_FIELDS: dict[str, FieldDef] = {
    "deal_name": "Deal_Name",
    "stage": "Stage",
    "amount": "Amount",
    "closing_date": "Closing_Date",
    "pipeline": "Pipeline",
    "account_id": ("Account_Name", lookup_field),
    "contact_id": ("Contact_Name", lookup_field),
    "probability": "Probability",
    "description": "Description",
    "owner": OWNER,
}

TASK_FIELDS: dict[str, FieldDef] = {
    "subject": "Subject",
    "status": "Status",
    "priority": "Priority",
    "due_date": "Due_Date",
    "what_id": ("What_Id", lookup_field),
    "who_id": ("Who_Id", lookup_field),
    "owner": OWNER,
    "description": "Description",
}

NOTE_FIELDS: dict[str, FieldDef] = {
    "note_title": "Note_Title",
    "note_content": "Note_Content",
    "parent_id": ("Parent_Id", lookup_field),
    "owner": OWNER,
}


def build_record(attrs: Mapping[str, Any], fields: Mapping[str, FieldDef]) -> dict[str, Any]:
    """Translate canonical attributes present in ``attrs`` to Zoho fields."""
    record: dict[str, Any] = {}
    for name, field in fields.items():
        if name not in attrs or attrs[name] is None:
            continue
        if isinstance(field, str):
            record[field] = attrs[name]
        else:
            zoho_name, convert = field
            record[zoho_name] = convert(attrs[name])
    return record


def _timestamps(record: Mapping[str, Any]) -> dict[str, Any]:
    return {"created_time": record.get("Created_Time"), "modified_time": record.get("Modified_Time")}


def to_lead(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "first_name": record.get("First_Name"),
        "last_name": record.get("Last_Name"),
        "email": record.get("Email"),
        "company": record.get("Company"),
        "phone": record.get("Phone"),
        "mobile": record.get("Mobile"),
        "lead_source": record.get("Lead_Source"),
        "lead_status": record.get("Lead_Status"),
        "owner": lookup_id(record.get("Owner")),
        "description": record.get("Description"),
        **_timestamps(record),
    }


def to_contact(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "first_name": record.get("First_Name"),
        "last_name": record.get("Last_Name"),
        "email": record.get("Email"),
        "phone": record.get("Phone"),
        "mobile": record.get("Mobile"),
        "account_id": lookup_id(record.get("Account_Name")),
        "title": record.get("Title"),
        "department": record.get("Department"),
        "owner": lookup_id(record.get("Owner")),
        **_timestamps(record),
    }


def to_account(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "account_name": record.get("Account_Name"),
        "website": record.get("Website"),
        "phone": record.get("Phone"),
        "industry": record.get("Industry"),
        "billing_city": record.get("Billing_City"),
        "billing_state": record.get("Billing_State"),
        "billing_country": record.get("Billing_Country"),
        "owner": lookup_id(record.get("Owner")),
        "description": record.get("Description"),
        **_timestamps(record),
    }


def to_deal(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "deal_name": record.get("Deal_Name"),
        "stage": record.get("Stage"),
        "amount": record.get("Amount"),
        "closing_date": record.get("Closing_Date"),
        "pipeline": record.get("Pipeline"),
        "account_id": lookup_id(record.get("Account_Name")),
        "contact_id": lookup_id(record.get("Contact_Name")),
        "probability": record.get("Probability"),
        "description": record.get("Description"),
        "owner": lookup_id(record.get("Owner")),
        **_timestamps(record),
    }


def to_task(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "subject": record.get("Subject"),
        "status": record.get("Status"),
        "priority": record.get("Priority"),
        "due_date": record.get("Due_Date"),
        "what_id": lookup_id(record.get("What_Id")),
        "who_id": lookup_id(record.get("Who_Id")),
        "owner": lookup_id(record.get("Owner")),
        "description": record.get("Description"),
        **_timestamps(record),
    }


def to_note(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "note_title": record.get("Note_Title"),
        "note_content": record.get("Note_Content"),
        "parent_id": lookup_id(record.get("Parent_Id")),
        "owner": lookup_id(record.get("Owner")),
        **_timestamps(record),
    }
