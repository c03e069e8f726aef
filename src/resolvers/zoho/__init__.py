"""Zoho CRM connector and the Zoho accounts OAuth helper shared with Zoho Expense."""

from src.resolvers.zoho.config import ZohoCRMSettings, get_zoho_crm_settings
from src.resolvers.zoho.oauth import ZohoCredentials, ZohoOAuth
from src.resolvers.zoho.resolver import ZohoCRMResolver

__all__ = ["ZohoCRMResolver", "ZohoCRMSettings", "get_zoho_crm_settings", "ZohoCredentials", "ZohoOAuth"]
