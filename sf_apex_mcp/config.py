"""
Configuration management for the Salesforce Apex MCP server
Supports environment variables and .env files
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class SalesforceConfig(BaseSettings):
    """Salesforce Apex MCP server configuration"""

    # Server Configuration
    mcp_server_name: str = Field(default="salesforce-apex-mcp", description="MCP server name")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(default=False, description="Emit JSON log lines instead of plain text")

    # Connection (session reuse or username/password login)
    salesforce_instance_url: Optional[str] = Field(default=None, description="Org instance URL")
    salesforce_access_token: Optional[str] = Field(default=None, description="Session ID / OAuth access token")
    salesforce_username: Optional[str] = Field(default=None, description="Login username")
    salesforce_password: Optional[str] = Field(default=None, description="Login password")
    salesforce_security_token: Optional[str] = Field(default=None, description="Login security token")
    salesforce_domain: str = Field(default="login", description="Login domain ('login' or 'test')")
    salesforce_api_version: str = Field(default="62.0", description="Salesforce REST API version")

    # Apex defaults applied when a request leaves them out
    apex_default_status: str = Field(default="Active", description="Status for newly created classes")
    apex_default_api_version: str = Field(default="62.0", description="ApiVersion for newly created classes")

    # Deployment polling
    deploy_poll_interval_seconds: float = Field(default=1.0, description="Wait before each status check")
    deploy_poll_backoff: float = Field(default=1.0, description="Interval multiplier per check (1.0 = fixed)")
    deploy_poll_max_interval_seconds: float = Field(default=30.0, description="Upper bound for the poll interval")
    deploy_timeout_seconds: float = Field(default=300, description="Give up waiting on a deployment after this")
    deploy_max_poll_attempts: Optional[int] = Field(default=None, description="Optional cap on status checks")
    cleanup_staged_metadata: bool = Field(
        default=True, description="Abort/delete the MetadataContainer once an update finishes"
    )

    # HTTP/SSE Server Configuration
    http_host: str = Field(default="127.0.0.1", description="HTTP server host")
    http_port: int = Field(default=8000, description="HTTP server port")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "SFAPEX_"


# Global configuration instance
_config: Optional[SalesforceConfig] = None


def get_config() -> SalesforceConfig:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = SalesforceConfig()
    return _config


def reload_config() -> SalesforceConfig:
    """Reload configuration from environment/file"""
    global _config
    _config = SalesforceConfig()
    return _config
