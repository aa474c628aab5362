import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from nodeflow.config import Settings
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.graph import NodeInstance
from nodeflow.workflows.engine.nodes.schema import NodeTypeDescriptor
from nodeflow.workflows.engine.parameters import NodeParameters
from nodeflow.workflows.engine.runtime.credentials import CredentialStore, StaticCredentialStore
from nodeflow.workflows.engine.runtime.http import (
    HttpRequestDescriptor,
    HttpResponse,
    HttpTransport,
    SimulatedTransport,
)

SleepFn = Callable[[float], Awaitable[Any]]
ClockFn = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NodeContext:
    """
    Execution context for one invocation of a node.

    Behaviors read their input items and resolved parameters through it and
    reach the outside world (HTTP, credentials, timers, clock) only through the
    collaborators it carries, so tests can swap every one of them.
    """

    def __init__(
        self,
        node: NodeInstance,
        descriptor: NodeTypeDescriptor,
        items: List[WorkflowItem],
        settings: Settings,
        http: Optional[HttpTransport] = None,
        credentials: Optional[CredentialStore] = None,
        sleep: Optional[SleepFn] = None,
        clock: Optional[ClockFn] = None,
    ):
        self.node = node
        self.descriptor = descriptor
        self.items = list(items)
        self.settings = settings
        self.parameters = NodeParameters(descriptor, node.data, self.items)

        self._http = http or SimulatedTransport(clock=clock)
        self._credentials = credentials or StaticCredentialStore()
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or utc_now

    @property
    def node_id(self) -> str:
        return self.node.id

    @property
    def label(self) -> str:
        return self.node.label

    def get_input_data(self) -> List[WorkflowItem]:
        return list(self.items)

    def get_node_parameter(self, name: str, item_index: int = 0, fallback: Any = None) -> Any:
        return self.parameters.get(name, item_index, fallback)

    async def get_credentials(self, credential_type: str) -> Dict[str, Any]:
        return await self._credentials.get(credential_type)

    async def http_request(self, descriptor: HttpRequestDescriptor) -> HttpResponse:
        return await self._http.request(descriptor)

    async def sleep(self, seconds: float) -> None:
        await self._sleep(seconds)

    def now(self) -> datetime:
        return self._clock()
