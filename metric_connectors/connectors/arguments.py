"""
Positional argument schemas and shared argument parsing.

Connector arguments arrive as an untyped positional list of strings and
numbers. Each connector declares an ordered schema of ArgumentSpec entries;
the list is checked against it once, at entry, before any backend call.
"""

import math
from typing import Optional
from urllib.parse import unquote

from pydantic import BaseModel

from metric_connectors.errors import ValidationError
from metric_connectors.models.enums import ArgumentKind
from metric_connectors.models.invocation import ArgumentValue
from metric_connectors.models.timeseries import Dimension, Metric


class ArgumentSpec(BaseModel):
    """
    Expected kind of one positional argument.

    Attributes:
        name: Name used in error messages
        kind: STRING or NUMBER
        required: Optional arguments may only follow required ones
        numeric_string: NUMBER arguments also accept a string holding a number
    """

    name: str
    kind: ArgumentKind
    required: bool = True
    numeric_string: bool = False


def _describe_schema(schema: list[ArgumentSpec]) -> str:
    rendered = ""
    for index, spec in enumerate(schema):
        token = f"<{spec.kind.value}>"
        separator = ", " if index else ""
        rendered += f"[{separator}{token}]" if not spec.required else f"{separator}{token}"
    return f"({rendered})"


def _describe_count(schema: list[ArgumentSpec]) -> str:
    required = sum(1 for spec in schema if spec.required)
    if required == len(schema):
        return str(required)
    if len(schema) - required == 1:
        return f"{required} or {len(schema)}"
    return f"{required} to {len(schema)}"


def _matches(value: ArgumentValue, spec: ArgumentSpec) -> bool:
    if spec.kind == ArgumentKind.STRING:
        return isinstance(value, str)
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if spec.numeric_string and isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def validate_arguments(
    arguments: list[ArgumentValue],
    schema: list[ArgumentSpec],
) -> list[Optional[ArgumentValue]]:
    """
    Check argument count and kinds against a schema.

    Returns:
        Arguments padded with None for omitted optional entries

    Raises:
        ValidationError: On a wrong count or kind
    """
    required = sum(1 for spec in schema if spec.required)
    if not required <= len(arguments) <= len(schema):
        raise ValidationError(
            f"Expected {_describe_count(schema)} arguments, received {len(arguments)}"
        )
    for value, spec in zip(arguments, schema):
        if not _matches(value, spec):
            raise ValidationError(
                f"Unexpected argument type, expected {_describe_schema(schema)}"
            )
    return list(arguments) + [None] * (len(schema) - len(arguments))


def as_integer(value: ArgumentValue, name: str) -> int:
    """
    Read a whole number from a NUMBER argument.

    Raises:
        ValidationError: If the value is not a finite whole number
    """
    number = float(value)
    if not math.isfinite(number) or number != int(number):
        raise ValidationError(f"{name}, {value}, must be a whole number")
    return int(number)


def parse_full_metric(full_metric: str) -> Metric:
    """
    Parse ``<Namespace>,<MetricName>[,<DimName>,<DimValue>...]``.

    Fields are whitespace-trimmed and percent-decoded individually, so a comma
    inside a name is written as %2C.

    Raises:
        ValidationError: With fewer than 2 fields or an odd field count
    """
    fields = [field.strip() for field in full_metric.split(",")]
    if len(fields) < 2 or len(fields) % 2 != 0:
        raise ValidationError(
            "Malformed full metric name, expected "
            "<Namespace>,<MetricName>,<DimPair Name 1>,<DimPair Value 1>,... etc"
        )
    decoded = [unquote(field) for field in fields]
    return Metric(
        namespace=decoded[0],
        metric_name=decoded[1],
        dimensions=[
            Dimension(name=decoded[index], value=decoded[index + 1])
            for index in range(2, len(decoded), 2)
        ],
    )
