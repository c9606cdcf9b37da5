"""
rbacd - role-based access control in front of document-backed CRUD resources.

Provides JWT authentication, permission resolution from roles and a
request-time authorization gate, served over aiohttp.
"""

__version__ = "0.1.0"
