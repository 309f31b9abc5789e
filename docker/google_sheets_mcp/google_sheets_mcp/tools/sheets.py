"""Sheet (tab) tools and raw batchUpdate access."""

from typing import Any

from pydantic import Field

from ..sheets_api import SheetsApiClient
from .base import SheetsTool, ToolInput, ToolOutput


class SheetsListInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")


class SheetSummary(ToolOutput):
    sheet_id: int
    title: str
    index: int
    sheet_type: str | None = None
    row_count: int | None = None
    column_count: int | None = None


class SheetsListOutput(ToolOutput):
    spreadsheet_id: str
    title: str
    sheets: list[SheetSummary]


async def sheets_list(api: SheetsApiClient, args: SheetsListInput) -> Any:
    result = await api.request(
        "GET",
        f"/spreadsheets/{args.spreadsheet_id}",
        params=[("fields", "spreadsheetId,properties.title,sheets.properties")],
    )

    sheets = []
    for sheet in result.get("sheets") or []:
        properties = sheet["properties"]
        grid = properties.get("gridProperties") or {}
        sheets.append(
            {
                "sheetId": properties["sheetId"],
                "title": properties["title"],
                "index": properties["index"],
                "sheetType": properties.get("sheetType"),
                "rowCount": grid.get("rowCount"),
                "columnCount": grid.get("columnCount"),
            }
        )

    return {
        "spreadsheetId": result["spreadsheetId"],
        "title": result["properties"]["title"],
        "sheets": sheets,
    }


class SheetAddInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    title: str = Field(description="Title of the new sheet")
    index: int | None = Field(
        default=None,
        description="The index to insert the sheet at. If not specified, appended to the end.",
    )
    row_count: int | None = Field(default=None, description="Number of rows (default 1000)")
    column_count: int | None = Field(
        default=None, description="Number of columns (default 26)"
    )


class SheetAddOutput(ToolOutput):
    sheet_id: int
    title: str
    index: int


async def sheet_add(api: SheetsApiClient, args: SheetAddInput) -> Any:
    sheet_properties: dict[str, Any] = {"title": args.title}
    if args.index is not None:
        sheet_properties["index"] = args.index

    # Zero counts are treated as "use the API default"
    grid_properties = {}
    if args.row_count:
        grid_properties["rowCount"] = args.row_count
    if args.column_count:
        grid_properties["columnCount"] = args.column_count
    if grid_properties:
        sheet_properties["gridProperties"] = grid_properties

    result = await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}:batchUpdate",
        {"requests": [{"addSheet": {"properties": sheet_properties}}]},
    )

    added = result["replies"][0]["addSheet"]["properties"]
    return {"sheetId": added["sheetId"], "title": added["title"], "index": added["index"]}


class SheetDeleteInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    sheet_id: int = Field(
        description="The ID of the sheet to delete (not the title - use sheets_list to get sheet IDs)"
    )


class SheetDeleteOutput(ToolOutput):
    success: bool
    deleted_sheet_id: int


async def sheet_delete(api: SheetsApiClient, args: SheetDeleteInput) -> Any:
    await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}:batchUpdate",
        {"requests": [{"deleteSheet": {"sheetId": args.sheet_id}}]},
    )
    return {"success": True, "deletedSheetId": args.sheet_id}


class BatchUpdateInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    requests: list[dict[str, Any]] = Field(
        description=(
            "Array of Sheets API request objects. See "
            "https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets/request "
            "for available request types. Common requests include: updateCells, repeatCell, "
            "autoFill, cutPaste, copyPaste, mergeCells, unmergeCells, updateBorders, "
            "addFilterView, addConditionalFormatRule, sortRange, etc."
        )
    )
    include_spreadsheet_in_response: bool = Field(
        default=False,
        description="Whether to include the updated spreadsheet in the response",
    )


class BatchUpdateOutput(ToolOutput):
    spreadsheet_id: str
    replies: list[dict[str, Any]] | None = None
    updated_spreadsheet: dict[str, Any] | None = None


async def batch_update(api: SheetsApiClient, args: BatchUpdateInput) -> Any:
    return await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}:batchUpdate",
        {
            "requests": args.requests,
            "includeSpreadsheetInResponse": args.include_spreadsheet_in_response,
        },
    )


TOOLS = [
    SheetsTool(
        name="sheets_list",
        title="List sheets",
        description="List all sheets (tabs) in a spreadsheet with their properties",
        input_model=SheetsListInput,
        output_model=SheetsListOutput,
        handler=sheets_list,
        read_only=True,
    ),
    SheetsTool(
        name="sheet_add",
        title="Add sheet",
        description="Add a new sheet (tab) to a spreadsheet",
        input_model=SheetAddInput,
        output_model=SheetAddOutput,
        handler=sheet_add,
    ),
    SheetsTool(
        name="sheet_delete",
        title="Delete sheet",
        description="Delete a sheet (tab) from a spreadsheet",
        input_model=SheetDeleteInput,
        output_model=SheetDeleteOutput,
        handler=sheet_delete,
    ),
    SheetsTool(
        name="sheets_batch_update",
        title="Batch update",
        description=(
            "Execute multiple spreadsheet operations in a single request. Use for "
            "advanced operations like formatting, merging cells, creating filters, "
            "conditional formatting, sorting, etc."
        ),
        input_model=BatchUpdateInput,
        output_model=BatchUpdateOutput,
        handler=batch_update,
    ),
]
