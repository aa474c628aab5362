import json
import uuid
from typing import Any, Dict, List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
    SelectOption,
)

HTTP_METHODS = ["DELETE", "GET", "HEAD", "PATCH", "POST", "PUT"]

DEFAULT_HEADERS = {
    "content-type": "application/json",
    "user-agent": "Webhook-Client/1.0",
    "x-webhook-signature": "sha256=example",
}


@NodeRegistry.register
class WebhookNode(BaseNode):
    """
    Starts the workflow from an incoming HTTP request.

    Requests handed over as trigger data ({"headers", "body", "query"}) are used
    as they are; otherwise the `testPayload` body, or a sample body, is used.
    """

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="webhook",
            displayName="Webhook",
            description="Starts the workflow when a webhook is called",
            group=[NodeGroup.TRIGGER.value],
            icon="fa:bolt",
            color="#885577",
            inputCount=0,
            properties=[
                NodeProperty(
                    name="httpMethod",
                    displayName="HTTP Method",
                    type="options",
                    default="POST",
                    options=[SelectOption(name=m, value=m) for m in HTTP_METHODS],
                ),
                NodeProperty(
                    name="path", displayName="Path", type="string", default="", required=True,
                    placeholder="webhook-path", description="The path for the webhook URL",
                ),
                NodeProperty(
                    name="authentication",
                    displayName="Authentication",
                    type="options",
                    default="none",
                    options=[
                        SelectOption(name="None", value="none"),
                        SelectOption(name="Basic Auth", value="basicAuth"),
                        SelectOption(name="Header Auth", value="headerAuth"),
                    ],
                ),
                NodeProperty(
                    name="basicAuthUser", displayName="Username", type="string", default="",
                    displayOptions={"show": {"authentication": ["basicAuth"]}},
                ),
                NodeProperty(
                    name="basicAuthPassword", displayName="Password", type="string", default="",
                    typeOptions={"password": True},
                    displayOptions={"show": {"authentication": ["basicAuth"]}},
                ),
                NodeProperty(
                    name="headerAuthName", displayName="Header Name", type="string", default="",
                    placeholder="X-API-Key",
                    displayOptions={"show": {"authentication": ["headerAuth"]}},
                ),
                NodeProperty(
                    name="headerAuthValue", displayName="Header Value", type="string", default="",
                    displayOptions={"show": {"authentication": ["headerAuth"]}},
                ),
                NodeProperty(
                    name="responseMode",
                    displayName="Response Mode",
                    type="options",
                    default="onReceived",
                    options=[
                        SelectOption(name="On Received", value="onReceived",
                                     description="Returns response when webhook is received"),
                        SelectOption(name="Last Node", value="lastNode",
                                     description="Returns response from the last executed node"),
                    ],
                ),
                NodeProperty(
                    name="responseCode", displayName="Response Code", type="number", default=200,
                    displayOptions={"show": {"responseMode": ["onReceived"]}},
                ),
                NodeProperty(
                    name="responseData", displayName="Response Data", type="string", default="success",
                    displayOptions={"show": {"responseMode": ["onReceived"]}},
                ),
                NodeProperty(
                    name="testPayload",
                    displayName="Test Payload",
                    type="string",
                    default="",
                    typeOptions={"rows": 4},
                    placeholder='{"event": "order.created"}',
                    description="JSON body used when the workflow runs without a real request",
                ),
                NodeProperty(
                    name="options",
                    displayName="Options",
                    type="fixedCollection",
                    default={},
                    placeholder="Add Option",
                    options=[
                        PropertyCollection(
                            name="rawBody",
                            displayName="Raw Body",
                            values=[NodeProperty(
                                name="rawBody", displayName="Raw Body", type="boolean", default=False,
                            )],
                        ),
                        PropertyCollection(
                            name="allowedOrigins",
                            displayName="Allowed Origins (CORS)",
                            values=[NodeProperty(
                                name="allowedOrigins", displayName="Allowed Origins", type="string",
                                default="*",
                            )],
                        ),
                    ],
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        results = []

        for i, item in enumerate(context.get_input_data()):
            request = self._request(context, item.json_data)
            body = request["body"]
            if isinstance(body, dict):
                body = dict(body)
                self._annotate(context, body)
            request["body"] = body
            request["params"] = {"path": context.get_node_parameter("path", 0, "")}
            results.append(WorkflowItem.create(request, i))

        return results

    def _request(self, context: NodeContext, supplied: Dict[str, Any]) -> Dict[str, Any]:
        if supplied and any(k in supplied for k in ("headers", "body", "query")):
            return {
                "headers": dict(supplied.get("headers") or {}),
                "body": supplied.get("body", {}),
                "query": dict(supplied.get("query") or {}),
            }
        if supplied:
            return {"headers": dict(DEFAULT_HEADERS), "body": dict(supplied), "query": {}}

        return {
            "headers": dict(DEFAULT_HEADERS),
            "body": self._test_body(context),
            "query": {},
        }

    @staticmethod
    def _test_body(context: NodeContext) -> Any:
        raw = context.get_node_parameter("testPayload", 0, "")
        if isinstance(raw, dict):
            return dict(raw)
        if raw:
            try:
                return json.loads(raw)
            except ValueError:
                pass
        return {
            "event": "webhook.received",
            "timestamp": context.now().isoformat(),
            "data": {
                "id": uuid.uuid4().hex[:9],
                "message": "Webhook triggered successfully",
            },
        }

    @staticmethod
    def _annotate(context: NodeContext, body: Dict[str, Any]) -> None:
        authentication = context.get_node_parameter("authentication", 0, "none")
        if authentication == "basicAuth":
            body["auth"] = {"type": "basic", "username": context.get_node_parameter("basicAuthUser", 0, "")}
        elif authentication == "headerAuth":
            body["auth"] = {"type": "header", "headerName": context.get_node_parameter("headerAuthName", 0, "")}

        response_mode = context.get_node_parameter("responseMode", 0, "onReceived")
        body["method"] = context.get_node_parameter("httpMethod", 0, "POST")
        body["responseMode"] = response_mode
        if response_mode == "onReceived":
            body["response"] = {
                "code": context.get_node_parameter("responseCode", 0, 200),
                "data": context.get_node_parameter("responseData", 0, "success"),
            }
