"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Includes common reusable models such as the paged response and the standard
error envelope, and the request/read models of the sample school domain.
"""

from .common import ErrorResponse, MessageResponse, PagedResponse  # noqa: F401
