"""Simulated database record lookup."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_harness.tools.base import ToolDefinition

RECORDS: dict[tuple[str, str], dict[str, str]] = {
    ("employees", "EMP-001"): {
        "Name": "Alice Johnson",
        "Department": "Engineering",
        "Role": "Senior Developer",
        "StartDate": "2021-03-15",
    },
    ("orders", "ORD-555"): {
        "Product": "SmartWidget Pro (x10)",
        "Total": "$2,990.00",
        "Status": "Shipped",
        "Date": "2025-12-01",
    },
}


class DatabaseRecordInput(BaseModel):
    """Input schema for the database lookup tool."""

    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(..., alias="recordId", description="The record ID to look up")
    table: str = Field(..., description="The database table name")


def get_database_record(params: DatabaseRecordInput) -> dict[str, Any]:
    """Look up a record; misses come back as a not-found payload the agent can reason about."""
    data = RECORDS.get((params.table.lower(), params.record_id.upper()))
    if data is None:
        return {
            "recordId": params.record_id,
            "table": params.table,
            "error": f"Record '{params.record_id}' not found in table '{params.table}'",
            "suggestion": "Check the record ID and table name",
        }

    return {"recordId": params.record_id, "table": params.table, "data": data}


def create_database_record_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_database_record",
        description="Retrieve a record from the database by ID.",
        input_schema_class=DatabaseRecordInput,
        handler=get_database_record,
    )
