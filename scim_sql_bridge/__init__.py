"""
SCIM SQL Bridge

SCIM 2.0 user provisioning into a SQL ``User`` table.
"""

from .config import SQLBridgeSettings, load_settings
from .services import SQLPlugin

__all__ = ["SQLBridgeSettings", "SQLPlugin", "load_settings"]
