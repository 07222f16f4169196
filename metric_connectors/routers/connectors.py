"""
Connector invocation router.

Exposes the invocation protocol over HTTP. The body of a POST is the event
exactly as the console sends it; the response is the connector's describe,
compute or error envelope. Connector failures are part of the protocol and are
returned with status 200; only an unknown connector name is an HTTP error.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from metric_connectors.backends import MetricBackend, get_backend
from metric_connectors.connectors import CONNECTORS, get_connector
from metric_connectors.utils.logging import bind_invocation_context, get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_connectors():
    """List every connector with its describe metadata."""
    connectors = []
    for name, connector_class in CONNECTORS.items():
        connectors.append({"name": name, **connector_class().describe().to_wire()})
    return {"connectors": connectors, "count": len(connectors)}


@router.post("/{connector_name}")
async def invoke_connector(
    connector_name: str,
    event: dict[str, Any] = Body(...),
    backend: MetricBackend = Depends(get_backend),
):
    """
    Invoke a connector with a DescribeGetMetricData or GetMetricData event.
    """
    connector = get_connector(connector_name, backend=backend)
    if connector is None:
        raise HTTPException(status_code=404, detail=f"Connector {connector_name} not found")

    bind_invocation_context(connector_name, event.get("EventType"), event.get("region"))
    logger.info("connector_invoked")
    result = await connector.invoke(event)
    return result.to_wire()
