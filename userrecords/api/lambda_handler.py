"""
AWS Lambda entry point for API Gateway HTTP API (payload format 2.0) events.
"""

import base64
import os

from ..core.router import RecordRouter
from ..util.logging import logger

router = RecordRouter()


def _event_body(event):
    body = event.get("body")
    if body is None:
        return None
    if event.get("isBase64Encoded"):
        return base64.b64decode(body).decode("utf-8")
    return body


def _event_path(event):
    http = event.get("requestContext", {}).get("http", {})
    return http.get("path") or event.get("rawPath") or "/"


def lambda_handler(event, context):
    """Translate an API Gateway v2 event into a router call."""
    method = event.get("requestContext", {}).get("http", {}).get("method", "GET")
    path = _event_path(event)

    stage = event.get("requestContext", {}).get("stage")
    if stage and stage != "$default" and path.startswith(f"/{stage}/"):
        path = path[len(stage) + 1:]

    logger.debug(f"Lambda request {method} {path} ({os.environ.get('AWS_LAMBDA_FUNCTION_NAME', 'local')})")

    result = router.dispatch(
        method=method,
        path=path,
        query=event.get("queryStringParameters") or {},
        body=_event_body(event)
    )

    return {
        "statusCode": result.status_code,
        "headers": result.headers,
        "body": result.body,
    }


handler = lambda_handler
