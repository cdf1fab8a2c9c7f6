"""
Core application utilities for settings, logging, security and FastAPI dependencies.

This package provides:
- Application settings (chat store, OCR, authentication, prompts, CORS)
- Structured logging with correlation/user context
- The exception taxonomy shared across layers
- Dependency helpers (services container, current user, chat participant check)
"""
