from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nodeflow.workflows.types import ItemDict


class PairedItem(BaseModel):
    """Index of the source item in the producing node's input set."""
    model_config = ConfigDict(frozen=True)

    item: int = Field(0, ge=0)


class WorkflowItem(BaseModel):
    """
    Standard unit of data passed between nodes.

    Equivalent to n8n's item structure: a JSON object plus the index of the item
    it was derived from. Items are immutable value objects; behaviors build new
    ones instead of editing what they receive.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    json_data: Dict[str, Any] = Field(default_factory=dict, alias="json")
    paired_item: PairedItem = Field(default_factory=PairedItem, alias="pairedItem")

    @classmethod
    def create(cls, data: Optional[Dict[str, Any]] = None, index: int = 0) -> "WorkflowItem":
        return cls(json=data if data is not None else {}, pairedItem=PairedItem(item=index))

    @classmethod
    def coerce(cls, value: Any, index: int = 0) -> "WorkflowItem":
        """
        Accepts what a behavior may return for one item: a WorkflowItem, an
        item-shaped dict ({"json": ..., "pairedItem": ...}) or a bare JSON object.
        """
        if isinstance(value, WorkflowItem):
            return value
        if isinstance(value, dict) and "json" in value:
            paired = value.get("pairedItem") or {"item": index}
            return cls.model_validate({"json": value["json"], "pairedItem": paired})
        return cls.model_validate({"json": value, "pairedItem": {"item": index}})

    def to_dict(self) -> ItemDict:
        return self.model_dump(by_alias=True)


def seed_items(data: Optional[List[Dict[str, Any]]] = None) -> List[WorkflowItem]:
    """Input for a root node: the supplied trigger data or a single empty item."""
    if not data:
        return [WorkflowItem.create()]
    return [WorkflowItem.coerce(d, i) for i, d in enumerate(data)]
