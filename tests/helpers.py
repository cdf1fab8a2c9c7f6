import asyncio

from copilot_chat.core.settings import AppSettings


def make_settings(**overrides) -> AppSettings:
    """Build settings that ignore any local .env file."""
    return AppSettings(_env_file=None, **overrides)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)
