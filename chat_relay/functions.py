"""
Function declarations - the named, schema-typed callables offered to the model.

A declaration's `parameters` is a Pydantic model class. It does double duty:
its JSON schema is what the endpoint sees, and model_validate() turns the
model's raw arguments into typed values (applying defaults on the way).
"""

import json
import logging
from typing import Any, Callable, Iterable, Optional, Union

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, ValidationError

from chat_relay.errors import MalformedFunctionCall, UnknownFunction

logger = logging.getLogger(__name__)


class FunctionDeclaration(BaseModel):
    """A function the model may ask us to invoke instead of replying in text."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: type[BaseModel]
    # Only used by the agent tool wrapper
    func: Optional[Callable[..., Any]] = None

    def json_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    def parse_arguments(self, raw: Union[str, dict, None]) -> BaseModel:
        """
        Validate raw call arguments against the parameter schema.

        Args:
            raw: JSON text as streamed by the endpoint, or an already
                decoded dict

        Returns:
            Instance of `parameters` with defaults applied

        Raises:
            MalformedFunctionCall: If the JSON is broken or fails validation
        """
        if raw is None or raw == "":
            data: Any = {}
        elif isinstance(raw, str):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedFunctionCall(self.name, f"arguments are not JSON ({e})") from e
        else:
            data = raw

        try:
            return self.parameters.model_validate(data)
        except ValidationError as e:
            raise MalformedFunctionCall(self.name, str(e)) from e


FunctionRegistry = dict[str, FunctionDeclaration]


def build_function_registry(declarations: Iterable[FunctionDeclaration]) -> FunctionRegistry:
    """
    Index declarations by name.

    Duplicate names are not rejected: the later declaration replaces the
    earlier one.
    """
    registry: FunctionRegistry = {}
    for decl in declarations:
        if decl.name in registry:
            logger.debug(f"Function '{decl.name}' declared twice; later declaration wins")
        registry[decl.name] = decl
    return registry


def lookup_function(registry: FunctionRegistry, name: str) -> FunctionDeclaration:
    """Return the declaration for `name` or raise UnknownFunction."""
    try:
        return registry[name]
    except KeyError:
        raise UnknownFunction(name) from None


# ─────────────────────────────────────────────────────────────────────
# ENCODERS
# ─────────────────────────────────────────────────────────────────────

def to_openai_functions(declarations: Iterable[FunctionDeclaration]) -> list[dict]:
    """
    Encode declarations in the OpenAI `functions` request format.

        {"name": "...", "description": "...", "parameters": {<JSON schema>}}
    """
    return [
        {
            "name": decl.name,
            "description": decl.description,
            "parameters": decl.json_schema(),
        }
        for decl in declarations
    ]


def _unimplemented(**kwargs: Any) -> str:
    return ""


def to_langchain_tools(declarations: Iterable[FunctionDeclaration]) -> list[StructuredTool]:
    """Wrap declarations as LangChain structured tools for the agent path."""
    return [
        StructuredTool(
            name=decl.name,
            description=decl.description or "",
            args_schema=decl.parameters,
            func=decl.func or _unimplemented,
        )
        for decl in declarations
    ]
