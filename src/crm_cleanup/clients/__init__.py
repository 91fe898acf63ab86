"""
External service clients for the CRM cleanup.
"""

from .postgres_client import PostgresClient

__all__ = [
    'PostgresClient',
]
