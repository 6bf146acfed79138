"""OAuth client and CSRF state management."""

from .client import SesameSSO
from .models import ExchangeResult, LoginUrl, TokenResponse
from .state import InMemoryTTLStore, StateStore
from .utils import generate_random_hex

__all__ = [
    "SesameSSO",
    "ExchangeResult",
    "LoginUrl",
    "TokenResponse",
    "InMemoryTTLStore",
    "StateStore",
    "generate_random_hex",
]
