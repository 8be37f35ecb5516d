"""Utility functions for MCP tools - result envelopes and error reporting"""
import logging

from sf_apex_mcp.models import ResultEnvelope, TextContent
from sf_apex_mcp.utils.errors import ApexManagerError, error_kind

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error managing Apex class: "


def format_success_response(text: str) -> ResultEnvelope:
    """Wrap a success message in a result envelope"""
    return ResultEnvelope(content=[TextContent(text=text)], is_error=False)


def format_error_response(error: BaseException, context: str = "") -> ResultEnvelope:
    """Convert any exception into an error envelope

    Known error kinds are logged as plain errors; anything else is logged with
    its traceback since it did not come from a handled failure path.

    Args:
        error: Exception raised while handling the request
        context: Operation name used in the log line

    Returns:
        ResultEnvelope with isError set and the error kind attached
    """
    kind = error_kind(error)
    extra = {"error_kind": kind}
    if isinstance(error, ApexManagerError):
        extra.update(error.log_fields())
        logger.error("%s failed (%s): %s", context or "request", kind, error, extra=extra)
    else:
        logger.error(
            "%s failed unexpectedly: %s", context or "request", error, exc_info=error, extra=extra
        )

    return ResultEnvelope(
        content=[TextContent(text=f"{ERROR_PREFIX}{error}")],
        is_error=True,
        error_kind=kind,
    )
