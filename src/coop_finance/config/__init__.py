"""Configuration module."""

from coop_finance.config.logging import configure_logging, redact_secrets, tenant_context
from coop_finance.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging", "redact_secrets", "tenant_context"]
