from .credentials import CredentialStore, StaticCredentialStore
from .http import (
    HttpRequestDescriptor,
    HttpResponse,
    HttpTransport,
    HttpxTransport,
    SimulatedTransport,
    get_transport,
)

__all__ = [
    "CredentialStore",
    "StaticCredentialStore",
    "HttpRequestDescriptor",
    "HttpResponse",
    "HttpTransport",
    "HttpxTransport",
    "SimulatedTransport",
    "get_transport",
]
