"""Salesforce connection management"""
from simple_salesforce import Salesforce
import threading
import logging

from sf_apex_mcp.config import get_config

logger = logging.getLogger(__name__)

# Thread-local storage
local = threading.local()


class SalesforceConnectionError(Exception):
    """No usable credentials in configuration"""


def get_salesforce_connection() -> Salesforce:
    """
    Get a Salesforce connection built from configuration.

    Uses an existing session (SFAPEX_SALESFORCE_INSTANCE_URL +
    SFAPEX_SALESFORCE_ACCESS_TOKEN) when present, otherwise logs in with
    username, password and security token.

    Returns:
        Salesforce connection instance (cached per thread)
    """
    if not hasattr(local, 'sf_connection') or local.sf_connection is None:
        logger.info("🔗 Creating Salesforce connection...")
        config = get_config()

        if config.salesforce_instance_url and config.salesforce_access_token:
            local.sf_connection = Salesforce(
                instance_url=config.salesforce_instance_url,
                session_id=config.salesforce_access_token,
                version=config.salesforce_api_version,
            )
        elif config.salesforce_username and config.salesforce_password:
            local.sf_connection = Salesforce(
                username=config.salesforce_username,
                password=config.salesforce_password,
                security_token=config.salesforce_security_token or "",
                domain=config.salesforce_domain,
                version=config.salesforce_api_version,
            )
        else:
            raise SalesforceConnectionError(
                "❌ No Salesforce credentials configured.\n"
                "Set one of:\n"
                "- SFAPEX_SALESFORCE_INSTANCE_URL and SFAPEX_SALESFORCE_ACCESS_TOKEN\n"
                "- SFAPEX_SALESFORCE_USERNAME, SFAPEX_SALESFORCE_PASSWORD and SFAPEX_SALESFORCE_SECURITY_TOKEN"
            )

        logger.info(f"✅ Connected to {local.sf_connection.sf_instance}")

    return local.sf_connection


def clear_connection_cache():
    """Clear connection cache to force new connection"""
    if hasattr(local, 'sf_connection'):
        local.sf_connection = None
