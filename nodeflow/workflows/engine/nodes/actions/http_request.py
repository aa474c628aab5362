import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import collection_entries
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
    SelectOption,
)
from nodeflow.workflows.engine.runtime.http import HttpRequestDescriptor

logger = logging.getLogger(__name__)

HTTP_METHODS = ["DELETE", "GET", "HEAD", "PATCH", "POST", "PUT"]
BODY_METHODS = ["PATCH", "POST", "PUT"]

# Credential types looked up when the node itself holds no secret
BASIC_AUTH_CREDENTIAL = "httpBasicAuth"
HEADER_AUTH_CREDENTIAL = "httpHeaderAuth"
OAUTH2_CREDENTIAL = "oAuth2Api"


def _name_value_collection(name: str, display_name: str, placeholder: str) -> NodeProperty:
    return NodeProperty(
        name=name,
        displayName=display_name,
        type="fixedCollection",
        typeOptions={"multipleValues": True},
        default={},
        placeholder=placeholder,
        options=[
            PropertyCollection(
                name="parameter",
                displayName="Parameter",
                values=[
                    NodeProperty(name="name", displayName="Name", type="string", default=""),
                    NodeProperty(name="value", displayName="Value", type="string", default=""),
                ],
            )
        ],
    )


def pairs_to_dict(collection: Any) -> Dict[str, str]:
    """{"parameter": [{"name", "value"}, ...]} -> {name: value}, skipping blanks."""
    result = {}
    for entry in collection_entries(collection, "parameter"):
        name, value = entry.get("name"), entry.get("value")
        if name and value not in (None, ""):
            result[str(name)] = value if isinstance(value, str) else json.dumps(value)
    return result


@NodeRegistry.register
class HttpRequestNode(BaseNode):
    """Calls an HTTP endpoint once per input item"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="httpRequest",
            displayName="HTTP Request",
            description="Makes an HTTP request and returns the response data",
            group=[NodeGroup.INPUT.value],
            icon="fa:at",
            color="#2196F3",
            credentials=[BASIC_AUTH_CREDENTIAL, HEADER_AUTH_CREDENTIAL, OAUTH2_CREDENTIAL],
            properties=[
                NodeProperty(
                    name="method",
                    displayName="Method",
                    type="options",
                    default="GET",
                    options=[SelectOption(name=m, value=m) for m in HTTP_METHODS],
                    description="The request method to use",
                ),
                NodeProperty(
                    name="url", displayName="URL", type="string", default="", required=True,
                    placeholder="https://httpbin.org/get",
                    description="The URL to make the request to",
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
                        SelectOption(name="OAuth2", value="oauth2"),
                    ],
                ),
                NodeProperty(
                    name="username", displayName="Username", type="string", default="",
                    displayOptions={"show": {"authentication": ["basicAuth"]}},
                ),
                NodeProperty(
                    name="password", displayName="Password", type="string", default="",
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
                    typeOptions={"password": True},
                    displayOptions={"show": {"authentication": ["headerAuth"]}},
                ),
                NodeProperty(
                    name="sendBody", displayName="Send Body", type="boolean", default=False,
                    displayOptions={"show": {"method": BODY_METHODS}},
                ),
                NodeProperty(
                    name="contentType",
                    displayName="Body Content Type",
                    type="options",
                    default="json",
                    displayOptions={"show": {"sendBody": [True]}},
                    options=[
                        SelectOption(name="JSON", value="json"),
                        SelectOption(name="Form-Data Multipart", value="multipart-form-data"),
                        SelectOption(name="Form Encoded", value="form-urlencoded"),
                        SelectOption(name="Raw/Custom", value="raw"),
                    ],
                ),
                NodeProperty(
                    name="body", displayName="Body", type="string", default="",
                    placeholder="Raw body content",
                    displayOptions={"show": {"sendBody": [True], "contentType": ["raw"]}},
                ),
                NodeProperty(
                    name="jsonBody", displayName="JSON Body", type="string", default="{}",
                    typeOptions={"rows": 5},
                    displayOptions={"show": {"sendBody": [True], "contentType": ["json"]}},
                ),
                _name_value_collection("bodyParameters", "Body Parameters", "Add Parameter"),
                _name_value_collection("headers", "Headers", "Add Header"),
                _name_value_collection("queryParameters", "Query Parameters", "Add Parameter"),
                NodeProperty(
                    name="timeout", displayName="Timeout", type="number", default=0,
                    description="Seconds to wait for a response (0 uses the default)",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        results = []

        for i, item in enumerate(context.get_input_data()):
            descriptor = await self._build_request(context, i)
            logger.debug(f"HTTP {descriptor.method} {descriptor.full_url} (node {context.node_id})")
            response = await context.http_request(descriptor)

            results.append(
                WorkflowItem.create(
                    {
                        "status": response.status,
                        "statusText": response.status_text,
                        "headers": dict(response.headers),
                        "data": response.body,
                        "request": {"method": descriptor.method, "url": descriptor.full_url},
                    },
                    i,
                )
            )

        return results

    async def _build_request(self, context: NodeContext, i: int) -> HttpRequestDescriptor:
        method = str(context.get_node_parameter("method", i, "GET")).upper()
        headers = pairs_to_dict(context.get_node_parameter("headers", i, {}))
        query = pairs_to_dict(context.get_node_parameter("queryParameters", i, {}))

        auth, auth_headers = await self._authentication(context, i)
        headers.update(auth_headers)

        content_type = context.get_node_parameter("contentType", i, "json")
        body = None
        if method in BODY_METHODS and context.get_node_parameter("sendBody", i, False):
            body = self._body(context, i, content_type)

        timeout = context.get_node_parameter("timeout", i, 0) or None

        return HttpRequestDescriptor(
            method=method,
            url=context.get_node_parameter("url", i, ""),
            headers=headers,
            query=query,
            body=body,
            content_type=content_type,
            timeout=timeout,
            auth=auth,
        )

    @staticmethod
    def _body(context: NodeContext, i: int, content_type: str) -> Any:
        if content_type == "json":
            raw = context.get_node_parameter("jsonBody", i, "{}")
            if not isinstance(raw, str):
                return raw
            try:
                return json.loads(raw)
            except ValueError:
                return raw
        if content_type == "raw":
            return context.get_node_parameter("body", i, "")
        return pairs_to_dict(context.get_node_parameter("bodyParameters", i, {}))

    @staticmethod
    async def _authentication(
        context: NodeContext, i: int
    ) -> Tuple[Optional[Tuple[str, str]], Dict[str, str]]:
        authentication = context.get_node_parameter("authentication", i, "none")

        if authentication == "basicAuth":
            username = context.get_node_parameter("username", i, "")
            password = context.get_node_parameter("password", i, "")
            if not username:
                credential = await context.get_credentials(BASIC_AUTH_CREDENTIAL)
                username = credential.get("user") or credential.get("username", "")
                password = credential.get("password", "")
            return (str(username), str(password or "")), {}

        if authentication == "headerAuth":
            name = context.get_node_parameter("headerAuthName", i, "")
            value = context.get_node_parameter("headerAuthValue", i, "")
            if not name:
                credential = await context.get_credentials(HEADER_AUTH_CREDENTIAL)
                name, value = credential.get("name", ""), credential.get("value", "")
            return None, ({str(name): str(value)} if name else {})

        if authentication == "oauth2":
            credential = await context.get_credentials(OAUTH2_CREDENTIAL)
            token = credential.get("accessToken") or credential.get("access_token")
            if not token:
                raise ValueError("Invalid credential: no OAuth2 access token available")
            return None, {"Authorization": f"Bearer {token}"}

        return None, {}
