import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def get(self, credential_type: str) -> Dict[str, Any]:
        ...


class StaticCredentialStore:
    """Credentials held in memory, keyed by credential type."""

    def __init__(self, credentials: Optional[Dict[str, Dict[str, Any]]] = None):
        self._credentials = dict(credentials or {})

    async def get(self, credential_type: str) -> Dict[str, Any]:
        data = self._credentials.get(credential_type)
        if data is None:
            logger.debug(f"No credential stored for type '{credential_type}'")
            return {}
        return dict(data)

    def set(self, credential_type: str, data: Dict[str, Any]) -> None:
        self._credentials[credential_type] = dict(data)
