"""
Workflow Nodes Package

Node types are BaseNode subclasses that describe their parameters with a
NodeTypeDescriptor and register themselves on import. The built-in library is
grouped into triggers, actions, transform and logic packages.
"""

from .base import BaseNode, FunctionNode
from .registry import NodeRegistry, get_default_registry, register_node_type
from .schema import NodeProperty, NodeTypeDescriptor, PropertyCollection, SelectOption

__all__ = [
    "BaseNode",
    "FunctionNode",
    "NodeRegistry",
    "NodeProperty",
    "NodeTypeDescriptor",
    "PropertyCollection",
    "SelectOption",
    "get_default_registry",
    "register_node_type",
]
