from pathlib import Path

import pytest

from openapi_adapter.models import (
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
    RequestBodyDescriptor,
)

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def post_item_operation() -> OperationDescriptor:
    return OperationDescriptor(
        operation_id="updateItem",
        method="POST",
        path="/items/{id}",
        parameters=[
            ParameterDescriptor("id", ParameterLocation.PATH, required=True, schema={"type": "integer"}),
            ParameterDescriptor("verbose", ParameterLocation.QUERY, schema={"type": "boolean"}),
            ParameterDescriptor("X-Trace", ParameterLocation.HEADER, schema={"type": "string"}),
        ],
        request_body=RequestBodyDescriptor(
            content={
                "application/json": {
                    "type": "object",
                    "properties": {"name": {"type": "string"}},
                }
            }
        ),
    )


@pytest.fixture
def get_item_operation() -> OperationDescriptor:
    return OperationDescriptor(
        operation_id="getItem",
        method="GET",
        path="/items/{id}",
        parameters=[
            ParameterDescriptor("id", ParameterLocation.PATH, required=True, schema={"type": "integer"}),
            ParameterDescriptor("verbose", ParameterLocation.QUERY, schema={"type": "boolean"}),
        ],
    )
