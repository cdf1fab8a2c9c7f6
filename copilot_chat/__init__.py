"""
Copilot Chat web API: chat history storage and HTTP surface.

Run with:
    uvicorn copilot_chat.api.main:create_app --factory
"""

__version__ = "0.1.0"
