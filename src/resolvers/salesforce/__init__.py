"""Salesforce REST connector (sObjects and SOQL)."""

from src.resolvers.salesforce.config import SalesforceSettings, get_salesforce_settings
from src.resolvers.salesforce.resolver import SalesforceResolver

__all__ = ["SalesforceResolver", "SalesforceSettings", "get_salesforce_settings"]
