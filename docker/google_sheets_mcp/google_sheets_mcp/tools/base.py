"""Shared plumbing for Sheets tools: schemas, registration record, result shape."""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp import types
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..sheets_api import SheetsApiClient


class ToolInput(BaseModel):
    """Tool arguments: camelCase on the wire, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class ToolOutput(BaseModel):
    """Tool results: unknown API fields are dropped."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


ToolHandler = Callable[[SheetsApiClient, Any], Awaitable[Any]]


@dataclass(frozen=True)
class SheetsTool:
    name: str
    title: str
    description: str
    input_model: type[ToolInput]
    output_model: type[ToolOutput]
    handler: ToolHandler
    read_only: bool = False

    def definition(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
            outputSchema=self.output_model.model_json_schema(mode="serialization"),
            annotations=types.ToolAnnotations(readOnlyHint=True)
            if self.read_only
            else None,
        )

    async def run(self, api: SheetsApiClient, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate arguments, call the API and filter the result.

        Raises:
            pydantic.ValidationError: if arguments or the API result do not fit
                the tool's schemas.
            SheetsApiError: if the Sheets API call fails.
        """
        args = self.input_model.model_validate(arguments)
        raw = await self.handler(api, args)
        output = self.output_model.model_validate(raw)
        return output.model_dump(by_alias=True, exclude_none=True)


def json_result(data: dict[str, Any]) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(data, indent=2))],
        structuredContent=data,
    )


def error_result(message: str) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=message)],
        isError=True,
    )
