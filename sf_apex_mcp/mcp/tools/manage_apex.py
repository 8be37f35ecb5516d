"""Apex class management tool"""
import json
import logging
import threading
import time
from typing import Literal, Optional

import anyio

from sf_apex_mcp.config import get_config
from sf_apex_mcp.mcp.server import register_tool
from sf_apex_mcp.mcp.tools.utils import format_error_response
from sf_apex_mcp.models import ManageApexRequest
from sf_apex_mcp.services.apex_manager import handle_manage_apex
from sf_apex_mcp.services.salesforce import get_salesforce_connection
from sf_apex_mcp.services.tooling import ToolingClient
from sf_apex_mcp.utils.logging import log_tool_execution, new_correlation_id

logger = logging.getLogger(__name__)


def _run_manage_apex(request: ManageApexRequest, cancel_event: threading.Event) -> str:
    """Blocking part of the tool; runs in a worker thread."""
    started = time.time()

    try:
        client = ToolingClient(get_salesforce_connection())
    except Exception as e:
        envelope = format_error_response(e, context="salesforce_manage_apex connection")
    else:
        envelope = handle_manage_apex(client, request, cancel_event=cancel_event, config=get_config())

    log_tool_execution(
        logger,
        "salesforce_manage_apex",
        (time.time() - started) * 1000,
        not envelope.is_error,
        operation=request.operation,
        class_name=request.class_name,
        error_kind=envelope.error_kind,
    )
    return json.dumps(envelope.to_payload(), indent=2)


@register_tool
async def salesforce_manage_apex(
    operation: Literal["create", "update", "delete"],
    className: str,
    body: Optional[str] = None,
    status: Optional[Literal["Active", "Inactive"]] = None,
    apiVersion: Optional[str] = None,
) -> str:
    """Manage Apex classes in Salesforce (create, update, or delete)

    - create: inserts a new ApexClass (Status defaults to Active, ApiVersion to 62.0).
    - update: stages the new body in a MetadataContainer and deploys it, waiting
      for the ContainerAsyncRequest to finish.
    - delete: removes the class found by exact name.

    Args:
        operation: The operation to perform on the Apex class
        className: The name of the Apex class
        body: The Apex class code (required for create and update operations)
        status: The status of the Apex class
        apiVersion: The API version for the Apex class

    Returns:
        JSON result envelope: {"content": [{"type": "text", "text": ...}], "isError": bool, "errorKind": str|null}
    """
    new_correlation_id()

    request = ManageApexRequest(
        operation=operation,
        class_name=className,
        body=body,
        status=status,
        api_version=apiVersion,
    )

    cancel_event = threading.Event()
    finished = threading.Event()

    def run() -> str:
        try:
            return _run_manage_apex(request, cancel_event)
        finally:
            finished.set()

    try:
        return await anyio.to_thread.run_sync(run, abandon_on_cancel=True)
    except anyio.get_cancelled_exc_class():
        # Wake the poll so the worker aborts the deployment and deletes the container
        cancel_event.set()
        with anyio.CancelScope(shield=True):
            await anyio.to_thread.run_sync(finished.wait)
        raise
