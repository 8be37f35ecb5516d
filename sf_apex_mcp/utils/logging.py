"""Structured logging with correlation IDs for request tracking"""
import logging
import json
import uuid
import contextvars
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Context variable for correlation ID
correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)

# Extra record attributes copied into JSON output when present
_EXTRA_FIELDS = (
    'tool_name', 'operation', 'class_name', 'duration_ms', 'success', 'error_kind',
    'remote_errors', 'deploy_state',
)


class CorrelationIDFilter(logging.Filter):
    """Add correlation ID to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or 'no-correlation-id'
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', 'unknown'),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data)


def get_correlation_id() -> str:
    """Get current correlation ID or generate new one"""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())
        correlation_id_var.set(cid)
    return cid


def new_correlation_id() -> str:
    """Generate and set new correlation ID"""
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def setup_structured_logging(level: str = "INFO", use_json: bool = False) -> None:
    """
    Setup logging for the server.

    Logs go to stderr; stdout belongs to the stdio MCP transport.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Use JSON formatter for structured logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if use_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - [%(correlation_id)s] - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIDFilter())
    root_logger.addHandler(handler)


def log_tool_execution(
    logger: logging.Logger,
    tool_name: str,
    duration_ms: float,
    success: bool,
    operation: Optional[str] = None,
    class_name: Optional[str] = None,
    error_kind: Optional[str] = None
) -> None:
    """
    Log one tool invocation with structured data.

    Args:
        logger: Logger instance
        tool_name: Name of the tool
        duration_ms: Execution duration in milliseconds
        success: Whether execution succeeded
        operation: create / update / delete
        class_name: Target Apex class
        error_kind: Error kind if failed
    """
    extra: Dict[str, Any] = {
        'tool_name': tool_name,
        'duration_ms': round(duration_ms, 2),
        'success': success,
    }

    if operation:
        extra['operation'] = operation
    if class_name:
        extra['class_name'] = class_name
    if error_kind:
        extra['error_kind'] = error_kind

    message = f"Tool '{tool_name}' {'succeeded' if success else 'failed'} in {duration_ms:.2f}ms"

    if success:
        logger.info(message, extra=extra)
    else:
        logger.error(message, extra=extra)
