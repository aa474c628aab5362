import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Union

from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.schema import NodeTypeDescriptor

if TYPE_CHECKING:
    from nodeflow.workflows.engine.context import NodeContext

# One item list for single-output nodes, one list per output for branching nodes
NodeOutput = Union[List[WorkflowItem], List[List[WorkflowItem]]]


class BaseNode(ABC):
    """Base class for all workflow node types."""

    @property
    @abstractmethod
    def description(self) -> NodeTypeDescriptor:
        pass

    @abstractmethod
    async def execute(self, context: "NodeContext") -> NodeOutput:
        pass

    @property
    def name(self) -> str:
        return self.description.name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class FunctionNode(BaseNode):
    """Adapts a plain (sync or async) callable `behavior(context)` to BaseNode."""

    def __init__(self, descriptor: NodeTypeDescriptor, behavior: Callable[..., Any]):
        self._descriptor = descriptor
        self._behavior = behavior

    @property
    def description(self) -> NodeTypeDescriptor:
        return self._descriptor

    async def execute(self, context: "NodeContext") -> NodeOutput:
        result = self._behavior(context)
        if inspect.isawaitable(result):
            result = await result
        return result
