"""
OTP Guard Adapters
==================
CookieStore, identity and CodeSender implementations.
"""

from .memory import InMemoryCookieStore, InMemoryIdentity
from .starlette_cookies import StarletteCookieStore
from .webhook_sender import CodeDeliveryRequest, WebhookCodeSender

__all__ = [
    "InMemoryCookieStore",
    "InMemoryIdentity",
    "StarletteCookieStore",
    "CodeDeliveryRequest",
    "WebhookCodeSender",
]
