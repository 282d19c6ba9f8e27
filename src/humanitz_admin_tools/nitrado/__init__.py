"""
Nitrado-specific tools for HumanitZ.

File server access for Nitrado-hosted HumanitZ servers.
"""

from .api_client import NitradoAPIClient

__all__ = [
    'NitradoAPIClient',
]
