"""
API route modules.

This package contains:
- chat_history: chat session CRUD, message listing and imported sources
- message_relay: WebSocket relay for chat edits, messages and typing state

Routers are included from copilot_chat.api.main.
"""
