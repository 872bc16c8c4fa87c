"""HTTP request/response types and underlying client adapters."""

from .client import AsyncClient, AsyncHttpxClient, Client, HttpxClient
from .models import Headers, Request, Response

__all__ = [
    "Headers",
    "Request",
    "Response",
    "Client",
    "AsyncClient",
    "HttpxClient",
    "AsyncHttpxClient",
]
