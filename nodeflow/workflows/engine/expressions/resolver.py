import logging
import re
from functools import lru_cache
from collections.abc import Mapping
from typing import Any, Dict, Optional

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

logger = logging.getLogger(__name__)

EXPRESSION_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.S)
# $json / $index are exposed to Jinja as plain names
VARIABLE_PATTERN = re.compile(r"\$(json|index)\b")


class ItemEnvironment(SandboxedEnvironment):
    """
    Sandboxed Jinja2 environment where `a.b` on a mapping is a key lookup.

    Plain Jinja tries attributes first, so `$json.items` would return the dict
    method instead of the "items" field. Missing keys become a chainable
    undefined, so `$json.a.b.c` with no "a" evaluates to None instead of raising.
    """

    def getattr(self, obj, attribute):
        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)


_env = ItemEnvironment(undefined=ChainableUndefined, autoescape=False)


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and "{{" in value and "}}" in value


def _rewrite(source: str) -> str:
    return VARIABLE_PATTERN.sub(r"\1", source)


class Expression:
    """
    A parameter value holding `{{ ... }}` references, compiled once.

    A value that is exactly one `{{ path }}` evaluates to the referenced value
    with its type preserved. Anything else ("Hello {{ $json.name }}") renders to
    a string.
    """

    __slots__ = ("source", "_expression", "_template")

    def __init__(self, source: str):
        self.source = source
        self._expression = None
        self._template = None

        stripped = source.strip()
        if stripped.startswith("{{") and stripped.endswith("}}") and stripped.count("{{") == 1:
            self._expression = _env.compile_expression(
                _rewrite(stripped[2:-2].strip()), undefined_to_none=True
            )
        else:
            rewritten = EXPRESSION_PATTERN.sub(
                lambda m: "{{" + _rewrite(m.group(1)) + "}}", source
            )
            self._template = _env.from_string(rewritten)

    def evaluate(self, json_data: Dict[str, Any], index: int = 0) -> Any:
        context = {"json": json_data, "index": index}
        try:
            if self._expression is not None:
                return self._expression(**context)
            return self._template.render(**context)
        except Exception as e:
            # Keep the raw text so the node still runs on a broken expression
            logger.warning(f"Expression evaluation failed for '{self.source}': {e}")
            return self.source

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"


class ExpressionResolver:
    """
    Compiles expressions embedded in node configuration and evaluates them
    against the current item.

    compile() walks a configuration value once (strings, dicts, lists) and
    swaps every expression string for an Expression. evaluate() walks the
    compiled value per item.
    """

    @classmethod
    def compile(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls._compile_string(value)
        elif isinstance(value, dict):
            return {k: cls.compile(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [cls.compile(v) for v in value]
        return value

    @classmethod
    def evaluate(cls, value: Any, json_data: Optional[Dict[str, Any]], index: int = 0) -> Any:
        if isinstance(value, Expression):
            return value.evaluate(json_data if json_data is not None else {}, index)
        elif isinstance(value, dict):
            return {k: cls.evaluate(v, json_data, index) for k, v in value.items()}
        elif isinstance(value, list):
            return [cls.evaluate(v, json_data, index) for v in value]
        return value

    @staticmethod
    @lru_cache(maxsize=1024)
    def _compile_string(value: str) -> Any:
        # Compiled expressions are shared across invocations
        if not is_expression(value):
            return value
        try:
            return Expression(value)
        except TemplateError as e:
            # Invalid syntax: treat the value as a literal
            logger.warning(f"Expression compilation failed for '{value}': {e}")
            return value
