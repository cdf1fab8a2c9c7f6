"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Storage records themselves live in copilot_chat.models; this package holds
request/response bodies, the error envelope and relay frames.
"""

from .common import MessageResponse  # noqa: F401
