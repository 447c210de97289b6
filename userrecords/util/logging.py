"""
Structured operation logging for the records service.
Record payloads are sanitized before they reach the log: emails are masked and
long strings truncated.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['email']


class StructuredLogger:
    """Structured logger for request routing and record store operations."""

    def __init__(self, name: str = "userrecords"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status == "failed":
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_record_operation(self, operation: str, record_id: str = None, details: Dict[str, Any] = None,
                             status: str = "success"):
        """Log a record store operation."""
        log_details = {}
        if record_id is not None:
            log_details["record_id"] = record_id
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"record.{operation}", status, log_details)

    def log_batch_write(self, batch_index: int, batch_size: int, total_batches: int, status: str = "success"):
        """Log a single chunk of a bulk write."""
        log_details = {
            "batch": f"{batch_index + 1}/{total_batches}",
            "batch_size": batch_size
        }
        self.log_operation("record.batch_write", status, log_details)

    def log_request(self, method: str, path: str, status_code: int, operation: str = None):
        """Log a routed request and the status it produced."""
        log_details = {"method": method, "path": path, "status_code": status_code}
        if operation:
            log_details["operation"] = operation

        self.log_operation("router.request", "handled", log_details)

    def log_request_failure(self, method: str, path: str, error: BaseException):
        """Log a request that failed inside an operation."""
        log_details = {
            "method": method,
            "path": path,
            "error_type": type(error).__name__,
            "error": str(error)[:200]
        }
        self.log_operation("router.request", "failed", log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def exception(self, message: str) -> None:
        """Log an error message with the active traceback."""
        self.logger.exception(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def _mask_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep:
        return "[REDACTED]"
    return f"{local[:1]}***@{domain}"


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for operation logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            elif isinstance(v, str):
                sanitized[k] = _mask_email(v)
            else:
                sanitized[k] = v
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()
