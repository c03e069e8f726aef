"""ServiceNow Table API connector (incidents and catalog tasks)."""

from src.resolvers.servicenow.config import ServiceNowSettings, get_servicenow_settings
from src.resolvers.servicenow.resolver import INCIDENT, TASK, ServiceNowResolver

__all__ = ["ServiceNowResolver", "ServiceNowSettings", "get_servicenow_settings", "INCIDENT", "TASK"]
