"""
nodeflow - workflow execution engine.

Runs graphs of typed nodes (triggers, HTTP calls, transforms, branching logic)
against live or simulated data.
"""

__version__ = "0.1.0"
