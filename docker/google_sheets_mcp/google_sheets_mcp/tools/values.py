"""Cell value tools: read, write, append and clear ranges."""

from typing import Any, Literal

from pydantic import Field

from ..sheets_api import SheetsApiClient, encode_range
from .base import SheetsTool, ToolInput, ToolOutput

MajorDimension = Literal["ROWS", "COLUMNS"]
ValueRenderOption = Literal["FORMATTED_VALUE", "UNFORMATTED_VALUE", "FORMULA"]
DateTimeRenderOption = Literal["SERIAL_NUMBER", "FORMATTED_STRING"]
ValueInputOption = Literal["RAW", "USER_ENTERED"]
InsertDataOption = Literal["OVERWRITE", "INSERT_ROWS"]


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class ValueRange(ToolOutput):
    range: str
    major_dimension: str | None = None
    values: list[list[Any]] | None = None


class ValuesGetInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    range: str = Field(
        description='The A1 notation of the range to read (e.g., "Sheet1!A1:D10", "Sheet1", "A1:D10")'
    )
    major_dimension: MajorDimension = Field(
        default="ROWS", description="Whether to return data as rows or columns"
    )
    value_render_option: ValueRenderOption = Field(
        default="FORMATTED_VALUE",
        description="How values should be rendered: FORMATTED_VALUE (display values), UNFORMATTED_VALUE (raw), or FORMULA (formulas)",
    )
    date_time_render_option: DateTimeRenderOption = Field(
        default="FORMATTED_STRING", description="How dates should be rendered"
    )


async def values_get(api: SheetsApiClient, args: ValuesGetInput) -> Any:
    params = [
        ("majorDimension", args.major_dimension),
        ("valueRenderOption", args.value_render_option),
        ("dateTimeRenderOption", args.date_time_render_option),
    ]
    return await api.request(
        "GET",
        f"/spreadsheets/{args.spreadsheet_id}/values/{encode_range(args.range)}",
        params=params,
    )


class ValuesBatchGetInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    ranges: list[str] = Field(
        description='Array of A1 notation ranges to read (e.g., ["Sheet1!A1:D10", "Sheet2!A:A"])'
    )
    major_dimension: MajorDimension = Field(
        default="ROWS", description="Whether to return data as rows or columns"
    )
    value_render_option: ValueRenderOption = Field(
        default="FORMATTED_VALUE", description="How values should be rendered"
    )
    date_time_render_option: DateTimeRenderOption = Field(
        default="FORMATTED_STRING", description="How dates should be rendered"
    )


class ValuesBatchGetOutput(ToolOutput):
    spreadsheet_id: str
    value_ranges: list[ValueRange] | None = None


async def values_batch_get(api: SheetsApiClient, args: ValuesBatchGetInput) -> Any:
    params = [
        ("majorDimension", args.major_dimension),
        ("valueRenderOption", args.value_render_option),
        ("dateTimeRenderOption", args.date_time_render_option),
    ]
    params.extend(("ranges", a1_range) for a1_range in args.ranges)
    return await api.request(
        "GET", f"/spreadsheets/{args.spreadsheet_id}/values:batchGet", params=params
    )


class ValuesUpdateInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    range: str = Field(
        description='The A1 notation of the range to update (e.g., "Sheet1!A1:D10")'
    )
    values: list[list[Any]] = Field(
        description="The data to write, as a 2D array of values (rows of columns)"
    )
    value_input_option: ValueInputOption = Field(
        default="USER_ENTERED",
        description='How input data should be interpreted: RAW (as-is) or USER_ENTERED (parsed like typed in UI, e.g., "=A1+B1" becomes formula)',
    )
    include_values_in_response: bool = Field(
        default=False,
        description="Whether to include the updated values in the response",
    )


class UpdateValuesResponse(ToolOutput):
    spreadsheet_id: str | None = None
    updated_range: str | None = None
    updated_rows: int | None = None
    updated_columns: int | None = None
    updated_cells: int | None = None
    updated_data: ValueRange | None = None


class ValuesUpdateOutput(UpdateValuesResponse):
    spreadsheet_id: str


async def values_update(api: SheetsApiClient, args: ValuesUpdateInput) -> Any:
    params = [
        ("valueInputOption", args.value_input_option),
        ("includeValuesInResponse", _bool_param(args.include_values_in_response)),
    ]
    return await api.request(
        "PUT",
        f"/spreadsheets/{args.spreadsheet_id}/values/{encode_range(args.range)}",
        {"values": args.values},
        params=params,
    )


class RangeData(ToolInput):
    range: str = Field(description="The A1 notation of the range to update")
    values: list[list[Any]] = Field(description="The data to write")


class ValuesBatchUpdateInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    data: list[RangeData] = Field(description="Array of range/values pairs to update")
    value_input_option: ValueInputOption = Field(
        default="USER_ENTERED", description="How input data should be interpreted"
    )
    include_values_in_response: bool = Field(
        default=False,
        description="Whether to include the updated values in the response",
    )


class ValuesBatchUpdateOutput(ToolOutput):
    spreadsheet_id: str
    total_updated_rows: int | None = None
    total_updated_columns: int | None = None
    total_updated_cells: int | None = None
    total_updated_sheets: int | None = None
    responses: list[UpdateValuesResponse] | None = None


async def values_batch_update(api: SheetsApiClient, args: ValuesBatchUpdateInput) -> Any:
    return await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}/values:batchUpdate",
        {
            "valueInputOption": args.value_input_option,
            "includeValuesInResponse": args.include_values_in_response,
            "data": [d.model_dump() for d in args.data],
        },
    )


class ValuesAppendInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    range: str = Field(
        description='The A1 notation of a range to search for data. Data will be appended after the last row with data in this range (e.g., "Sheet1!A:A" to append to column A, or "Sheet1" to append to the sheet)'
    )
    values: list[list[Any]] = Field(
        description="The data to append, as a 2D array of values (rows of columns)"
    )
    value_input_option: ValueInputOption = Field(
        default="USER_ENTERED",
        description="How input data should be interpreted: RAW (as-is) or USER_ENTERED (parsed like typed in UI)",
    )
    insert_data_option: InsertDataOption = Field(
        default="INSERT_ROWS",
        description="How to handle existing data: OVERWRITE writes over existing, INSERT_ROWS inserts new rows",
    )
    include_values_in_response: bool = Field(
        default=False,
        description="Whether to include the appended values in the response",
    )


class ValuesAppendOutput(ToolOutput):
    spreadsheet_id: str
    table_range: str | None = None
    updates: UpdateValuesResponse | None = None


async def values_append(api: SheetsApiClient, args: ValuesAppendInput) -> Any:
    params = [
        ("valueInputOption", args.value_input_option),
        ("insertDataOption", args.insert_data_option),
        ("includeValuesInResponse", _bool_param(args.include_values_in_response)),
    ]
    return await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}/values/{encode_range(args.range)}:append",
        {"values": args.values},
        params=params,
    )


class ValuesClearInput(ToolInput):
    spreadsheet_id: str = Field(description="The ID of the spreadsheet")
    range: str = Field(
        description='The A1 notation of the range to clear (e.g., "Sheet1!A1:D10")'
    )


class ValuesClearOutput(ToolOutput):
    spreadsheet_id: str
    cleared_range: str | None = None


async def values_clear(api: SheetsApiClient, args: ValuesClearInput) -> Any:
    return await api.request(
        "POST",
        f"/spreadsheets/{args.spreadsheet_id}/values/{encode_range(args.range)}:clear",
        {},
    )


TOOLS = [
    SheetsTool(
        name="sheets_values_get",
        title="Get values",
        description="Read cell values from a spreadsheet range",
        input_model=ValuesGetInput,
        output_model=ValueRange,
        handler=values_get,
        read_only=True,
    ),
    SheetsTool(
        name="values_batch_get",
        title="Batch get values",
        description="Read cell values from multiple ranges in a single request",
        input_model=ValuesBatchGetInput,
        output_model=ValuesBatchGetOutput,
        handler=values_batch_get,
        read_only=True,
    ),
    SheetsTool(
        name="values_update",
        title="Update values",
        description="Write cell values to a spreadsheet range (overwrites existing data)",
        input_model=ValuesUpdateInput,
        output_model=ValuesUpdateOutput,
        handler=values_update,
    ),
    SheetsTool(
        name="values_batch_update",
        title="Batch update values",
        description="Write cell values to multiple ranges in a single request",
        input_model=ValuesBatchUpdateInput,
        output_model=ValuesBatchUpdateOutput,
        handler=values_batch_update,
    ),
    SheetsTool(
        name="values_append",
        title="Append values",
        description="Append rows of data after the last row with data in a range",
        input_model=ValuesAppendInput,
        output_model=ValuesAppendOutput,
        handler=values_append,
    ),
    SheetsTool(
        name="values_clear",
        title="Clear values",
        description="Clear cell values from a range (keeps formatting)",
        input_model=ValuesClearInput,
        output_model=ValuesClearOutput,
        handler=values_clear,
    ),
]
