"""Client modules for external API communication."""
from .http_adapter import HttpAdapter

__all__ = [
    'HttpAdapter',
]
