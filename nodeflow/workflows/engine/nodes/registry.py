"""
Node Registry

Maps node type names to their implementation. Built-in nodes register
themselves with the `@NodeRegistry.register` class decorator when their module
is imported; plain callables go through `register_type`.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, Union

from nodeflow.workflows.engine.errors import UnknownNodeTypeError
from nodeflow.workflows.engine.nodes.base import BaseNode, FunctionNode
from nodeflow.workflows.engine.nodes.schema import NodeTypeDescriptor

logger = logging.getLogger(__name__)


class NodeRegistry:
    """
    Central registry of workflow node types.

    Classes decorated with `@NodeRegistry.register` are collected at import time
    and copied into every registry created afterwards with
    `include_builtin=True`. Instances are independent, so tests can build a
    registry with exactly the types they need.
    """

    _node_classes: Dict[str, Type[BaseNode]] = {}

    def __init__(self, include_builtin: bool = False):
        self._nodes: Dict[str, BaseNode] = {}
        if include_builtin:
            for node_cls in NodeRegistry._node_classes.values():
                self.add(node_cls())

    @classmethod
    def register(cls, node_cls: Type[BaseNode]) -> Type[BaseNode]:
        """Class decorator collecting a built-in node type."""
        name = node_cls().description.name
        existing = cls._node_classes.get(name)
        if existing is not None and existing is not node_cls:
            raise ValueError(f"Node type '{name}' is already registered by {existing.__name__}")
        cls._node_classes[name] = node_cls
        return node_cls

    def add(self, node: BaseNode) -> BaseNode:
        name = node.description.name
        if name in self._nodes:
            raise ValueError(f"Node type '{name}' is already registered")
        self._nodes[name] = node
        logger.debug(f"Registered node type: {name}")
        return node

    def register_type(
        self,
        descriptor: Union[NodeTypeDescriptor, Dict[str, Any]],
        behavior: Callable[..., Any],
    ) -> BaseNode:
        """Registers a descriptor plus a plain `behavior(context)` callable."""
        if not isinstance(descriptor, NodeTypeDescriptor):
            descriptor = NodeTypeDescriptor.model_validate(descriptor)
        return self.add(FunctionNode(descriptor, behavior))

    def get(self, node_type: str) -> Optional[BaseNode]:
        return self._nodes.get(node_type)

    def lookup(self, node_type: str, node_id: Optional[str] = None) -> BaseNode:
        """
        Raises:
            UnknownNodeTypeError: if nothing is registered under `node_type`
        """
        node = self._nodes.get(node_type)
        if node is None:
            raise UnknownNodeTypeError(node_type, node_id)
        return node

    def list_types(self) -> List[NodeTypeDescriptor]:
        return [node.description for node in self._nodes.values()]

    def get_all_schemas(self) -> List[Dict[str, Any]]:
        return [d.to_schema() for d in self.list_types()]

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)


_default_registry: Optional[NodeRegistry] = None


def get_default_registry() -> NodeRegistry:
    """The process-wide registry with every built-in node type loaded."""
    global _default_registry
    if _default_registry is None:
        from nodeflow.workflows.engine.nodes.loader import load_builtin_nodes

        load_builtin_nodes()
        _default_registry = NodeRegistry(include_builtin=True)
        logger.info(f"NodeRegistry initialized with {len(_default_registry)} nodes")
    return _default_registry


def register_node_type(
    descriptor: Union[NodeTypeDescriptor, Dict[str, Any]],
    behavior: Callable[..., Any],
) -> BaseNode:
    """Registers a custom node type on the default registry."""
    return get_default_registry().register_type(descriptor, behavior)
