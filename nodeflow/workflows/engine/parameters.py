from typing import Any, Dict, List, Optional, Sequence

from nodeflow.workflows.engine.constants import PropertyType
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.errors import MissingRequiredParameterError
from nodeflow.workflows.engine.expressions.resolver import ExpressionResolver
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor

_MISSING = object()

TRUE_STRINGS = {"true", "1", "yes", "on"}


def coerce_number(value: Any) -> Any:
    """Numbers pass through, numeric strings are parsed, anything else is 0."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return 0
    return 0


def coerce_boolean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _coerce(prop: Optional[NodeProperty], value: Any) -> Any:
    if prop is None:
        return value
    if prop.type == PropertyType.NUMBER:
        return coerce_number(value)
    if prop.type == PropertyType.BOOLEAN:
        return coerce_boolean(value)
    return value


class NodeParameters:
    """
    Resolves a node's stored configuration into concrete values per item.

    Expressions inside the stored data are compiled once, here; get() evaluates
    them against the json of the requested item.
    """

    def __init__(
        self,
        descriptor: NodeTypeDescriptor,
        node_data: Optional[Dict[str, Any]],
        items: Optional[Sequence[WorkflowItem]] = None,
    ):
        self.descriptor = descriptor
        self.raw: Dict[str, Any] = dict(node_data or {})
        self.items: List[WorkflowItem] = list(items or [])
        self._compiled: Dict[str, Any] = ExpressionResolver.compile(self.raw)

    def get(self, path: str, item_index: int = 0, fallback: Any = None) -> Any:
        """
        Value of the parameter at `path` for the item at `item_index`.

        The first path segment names a property; further segments walk into its
        resolved value ("options.timeout").
        """
        name, *rest = path.split(".")
        prop = self.descriptor.get_property(name)

        stored = self._compiled.get(name, _MISSING)
        if stored is _MISSING:
            if prop is None or prop.default is None:
                return fallback
            stored = ExpressionResolver.compile(prop.default)

        json_data = self._item_json(item_index)
        if prop is not None and prop.type == PropertyType.FIXED_COLLECTION:
            value = self._resolve_collection(prop, stored, json_data, item_index)
        else:
            value = _coerce(prop, ExpressionResolver.evaluate(stored, json_data, item_index))

        for segment in rest:
            if not isinstance(value, dict) or segment not in value:
                return fallback
            value = value[segment]
        return value

    def has(self, name: str) -> bool:
        return name in self.raw

    def current_value(self, name: str) -> Any:
        """Stored value (or default) without evaluating expressions."""
        if name in self.raw:
            return self.raw[name]
        prop = self.descriptor.get_property(name)
        return prop.default if prop else None

    def missing_required(self) -> List[str]:
        missing = []
        for prop in self.descriptor.properties:
            if not prop.required or not prop.is_visible(self.current_value):
                continue
            value = self.current_value(prop.name)
            if value is None or value == "" or value == [] or value == {}:
                missing.append(prop.name)
        return missing

    def ensure_required(self) -> None:
        """
        Raises:
            MissingRequiredParameterError: if a visible required property is empty
        """
        missing = self.missing_required()
        if missing:
            raise MissingRequiredParameterError(missing, self.descriptor.name)

    def _item_json(self, item_index: int) -> Dict[str, Any]:
        if 0 <= item_index < len(self.items):
            return self.items[item_index].json_data
        return {}

    def _resolve_collection(
        self, prop: NodeProperty, stored: Any, json_data: Dict[str, Any], index: int
    ) -> Dict[str, Any]:
        if not isinstance(stored, dict):
            return {}

        resolved = {}
        for group_name, entries in stored.items():
            group = prop.get_collection(group_name)
            if group is None:
                resolved[group_name] = ExpressionResolver.evaluate(entries, json_data, index)
                continue

            if isinstance(entries, list):
                resolved[group_name] = [
                    self._resolve_group_entry(group.values, entry, json_data, index)
                    for entry in entries
                ]
            else:
                resolved[group_name] = self._resolve_group_entry(
                    group.values, entries, json_data, index
                )
        return resolved

    def _resolve_group_entry(
        self,
        sub_properties: List[NodeProperty],
        entry: Any,
        json_data: Dict[str, Any],
        index: int,
    ) -> Dict[str, Any]:
        entry = entry if isinstance(entry, dict) else {}
        result = {}
        for sub in sub_properties:
            if sub.name in entry:
                raw = entry[sub.name]
            elif sub.default is not None:
                raw = ExpressionResolver.compile(sub.default)
            else:
                continue
            if sub.type == PropertyType.FIXED_COLLECTION:
                result[sub.name] = self._resolve_collection(sub, raw, json_data, index)
            else:
                result[sub.name] = _coerce(sub, ExpressionResolver.evaluate(raw, json_data, index))

        # Keys the schema doesn't declare are kept as they are
        for key, raw in entry.items():
            if key not in result:
                result[key] = ExpressionResolver.evaluate(raw, json_data, index)
        return result
