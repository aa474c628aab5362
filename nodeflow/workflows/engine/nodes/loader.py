"""
Built-in node loader

Imports the modules of every built-in node type so their `@NodeRegistry.register`
decorators run.
"""

import importlib
import logging
from typing import List

logger = logging.getLogger(__name__)

BUILTIN_NODE_MODULES = [
    "nodeflow.workflows.engine.nodes.triggers.manual",
    "nodeflow.workflows.engine.nodes.triggers.schedule",
    "nodeflow.workflows.engine.nodes.triggers.webhook",
    "nodeflow.workflows.engine.nodes.triggers.workflow",
    "nodeflow.workflows.engine.nodes.triggers.start",
    "nodeflow.workflows.engine.nodes.actions.http_request",
    "nodeflow.workflows.engine.nodes.transform.set_node",
    "nodeflow.workflows.engine.nodes.transform.split_out",
    "nodeflow.workflows.engine.nodes.transform.remove_duplicates",
    "nodeflow.workflows.engine.nodes.transform.date_time",
    "nodeflow.workflows.engine.nodes.logic.if_node",
    "nodeflow.workflows.engine.nodes.logic.switch",
    "nodeflow.workflows.engine.nodes.logic.filter",
    "nodeflow.workflows.engine.nodes.logic.wait",
]


def load_builtin_nodes(modules: List[str] = None) -> List[str]:
    """
    Imports the built-in node modules. Importing twice is a no-op.

    Returns:
        The module names that were loaded
    """
    loaded = []
    for module_name in modules or BUILTIN_NODE_MODULES:
        importlib.import_module(module_name)
        loaded.append(module_name)
        logger.debug(f"Loaded node module: {module_name}")

    logger.info(f"Loaded {len(loaded)} built-in node modules")
    return loaded
