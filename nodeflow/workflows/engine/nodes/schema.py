from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nodeflow.workflows.engine.constants import DEFAULT_HANDLE, NodeGroup, indexed_handles

PropertyTypeName = Literal[
    "string", "number", "boolean", "options", "multiOptions", "color", "fixedCollection"
]


# --- Models ---
class DisplayConfiguration(BaseModel):
    """
    Conditions a property's relevance on the current values of other properties.

    show: every listed property must currently hold one of the allowed values.
    hide: the property is suppressed if any listed property holds a listed value.
    """
    show: Optional[Dict[str, List[Any]]] = None
    hide: Optional[Dict[str, List[Any]]] = None


class TypeOptions(BaseModel):
    """
    Advanced options for specific property types.
    """
    multipleValues: bool = False
    rows: Optional[int] = None
    password: bool = False


class SelectOption(BaseModel):
    name: str
    value: Any
    description: Optional[str] = None


class NodeProperty(BaseModel):
    """
    Definition of a single configurable field of a node type.
    """
    model_config = ConfigDict(extra="allow")

    name: str
    displayName: str = ""
    type: PropertyTypeName
    default: Any = None
    required: bool = False
    description: Optional[str] = None
    placeholder: Optional[str] = None

    # Select choices for options/multiOptions, named groups for fixedCollection
    options: Optional[List[Union["PropertyCollection", SelectOption]]] = None

    displayOptions: Optional[DisplayConfiguration] = None
    typeOptions: Optional[TypeOptions] = None

    @model_validator(mode="after")
    def _fill_display_name(self):
        if not self.displayName:
            self.displayName = self.name
        return self

    @property
    def multiple_values(self) -> bool:
        return bool(self.typeOptions and self.typeOptions.multipleValues)

    def collections(self) -> List["PropertyCollection"]:
        return [o for o in (self.options or []) if isinstance(o, PropertyCollection)]

    def get_collection(self, name: str) -> Optional["PropertyCollection"]:
        return next((c for c in self.collections() if c.name == name), None)

    def allowed_values(self) -> List[Any]:
        return [o.value for o in (self.options or []) if isinstance(o, SelectOption)]

    def is_visible(self, current_value: Callable[[str], Any]) -> bool:
        """
        Evaluates displayOptions. `current_value(name)` returns the value the
        sibling property currently holds (stored or default).
        """
        if not self.displayOptions:
            return True

        show = self.displayOptions.show or {}
        for other, allowed in show.items():
            if current_value(other) not in allowed:
                return False

        hide = self.displayOptions.hide or {}
        for other, blocked in hide.items():
            if current_value(other) in blocked:
                return False

        return True


class PropertyCollection(BaseModel):
    """A named, repeatable group of sub-properties inside a fixedCollection."""
    name: str
    displayName: str = ""
    values: List[NodeProperty]

    def get_property(self, name: str) -> Optional[NodeProperty]:
        return next((p for p in self.values if p.name == name), None)


NodeProperty.model_rebuild()
PropertyCollection.model_rebuild()


class NodeTypeDescriptor(BaseModel):
    """
    Declarative description of a node type: identity, arity and parameters.

    inputCount == 0 marks a trigger. outputCount > 1 marks a branching node whose
    behavior returns one item list per output, in handle order.
    """
    name: str
    displayName: str = ""
    description: str = ""
    group: List[str] = []
    version: int = 1
    icon: Optional[str] = None
    color: Optional[str] = None

    inputCount: int = Field(1, ge=0, le=1)
    outputCount: int = Field(1, ge=1)
    outputs: List[str] = []

    properties: List[NodeProperty] = []
    credentials: List[str] = []

    @model_validator(mode="after")
    def _fill_handles(self):
        if not self.displayName:
            self.displayName = self.name
        if not self.outputs:
            self.outputs = (
                [DEFAULT_HANDLE] if self.outputCount == 1 else indexed_handles(self.outputCount)
            )
        if len(self.outputs) != self.outputCount:
            raise ValueError(
                f"Node type '{self.name}' declares {self.outputCount} outputs "
                f"but names {len(self.outputs)} handles"
            )
        if self.inputCount == 0 and NodeGroup.TRIGGER.value not in self.group:
            self.group = [NodeGroup.TRIGGER.value, *self.group]
        return self

    @property
    def is_trigger(self) -> bool:
        return self.inputCount == 0

    @property
    def is_branching(self) -> bool:
        return self.outputCount > 1

    def get_property(self, name: str) -> Optional[NodeProperty]:
        return next((p for p in self.properties if p.name == name), None)

    def handle_index(self, handle: Optional[str]) -> int:
        """
        Output index an edge's sourceHandle refers to. No handle means output 0.

        Raises:
            ValueError: if the handle is not one of this type's outputs
        """
        if handle is None or handle == "":
            return 0
        try:
            return self.outputs.index(handle)
        except ValueError:
            raise ValueError(
                f"Node type '{self.name}' has no output handle '{handle}' "
                f"(expected one of {self.outputs})"
            ) from None

    def visible_properties(self, data: Dict[str, Any]) -> List[NodeProperty]:
        def current(name: str) -> Any:
            if name in data:
                return data[name]
            prop = self.get_property(name)
            return prop.default if prop else None

        return [p for p in self.properties if p.is_visible(current)]

    def to_schema(self) -> Dict[str, Any]:
        """Schema dict as served to editors."""
        return self.model_dump(exclude_none=True)
