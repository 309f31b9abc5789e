"""Spreadsheet-level tools."""

from typing import Any

from pydantic import Field

from ..sheets_api import SheetsApiClient
from .base import SheetsTool, ToolInput, ToolOutput


class SpreadsheetProperties(ToolOutput):
    title: str
    locale: str | None = None
    auto_recalc: str | None = None
    time_zone: str | None = None


class GridProperties(ToolOutput):
    row_count: int | None = None
    column_count: int | None = None
    frozen_row_count: int | None = None
    frozen_column_count: int | None = None


class SheetProperties(ToolOutput):
    sheet_id: int
    title: str
    index: int
    sheet_type: str | None = None
    grid_properties: GridProperties | None = None


class Sheet(ToolOutput):
    properties: SheetProperties


class SpreadsheetGetInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet to retrieve")
    include_grid_data: bool = Field(
        default=False,
        description="Whether to include grid data (cell values). Default false for metadata only.",
    )
    ranges: list[str] | None = Field(
        default=None,
        description='Ranges to return grid data for (e.g., "Sheet1!A1:B10"). Only used if includeGridData is true.',
    )


class SpreadsheetGetOutput(ToolOutput):
    spreadsheet_id: str
    properties: SpreadsheetProperties
    sheets: list[Sheet] | None = None
    spreadsheet_url: str | None = None


async def spreadsheet_get(api: SheetsApiClient, args: SpreadsheetGetInput) -> Any:
    params: list[tuple[str, str]] = []
    if args.include_grid_data:
        params.append(("includeGridData", "true"))
    for a1_range in args.ranges or []:
        params.append(("ranges", a1_range))
    return await api.request("GET", f"/spreadsheets/{args.spreadsheet_id}", params=params)


class NewSheet(ToolInput):
    title: str = Field(description="Title of the sheet")


class SpreadsheetCreateInput(ToolInput):
    title: str = Field(description="Title of the new spreadsheet")
    sheets: list[NewSheet] | None = Field(
        default=None,
        description='Initial sheets to create. If not provided, a default "Sheet1" is created.',
    )


class SpreadsheetCreateOutput(ToolOutput):
    spreadsheet_id: str
    properties: SpreadsheetProperties
    spreadsheet_url: str | None = None


async def spreadsheet_create(api: SheetsApiClient, args: SpreadsheetCreateInput) -> Any:
    body: dict[str, Any] = {"properties": {"title": args.title}}
    if args.sheets:
        body["sheets"] = [{"properties": {"title": s.title}} for s in args.sheets]
    return await api.request("POST", "/spreadsheets", body)


TOOLS = [
    SheetsTool(
        name="spreadsheet_get",
        title="Get spreadsheet",
        description="Get spreadsheet metadata including title, sheets list, and optionally cell data",
        input_model=SpreadsheetGetInput,
        output_model=SpreadsheetGetOutput,
        handler=spreadsheet_get,
        read_only=True,
    ),
    SheetsTool(
        name="spreadsheet_create",
        title="Create spreadsheet",
        description="Create a new Google Sheets spreadsheet",
        input_model=SpreadsheetCreateInput,
        output_model=SpreadsheetCreateOutput,
        handler=spreadsheet_create,
    ),
]
