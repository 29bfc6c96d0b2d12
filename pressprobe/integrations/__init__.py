"""Integrations module - external version directories."""

from pressprobe.integrations.wporg import WordPressOrgClient

__all__ = ["WordPressOrgClient"]
