"""
Request router for the records API.
Maps (method, path) to one of the record operations through an ordered route
table; the first matching route wins, so exact sub-paths such as
``/records/search`` are tried before the ``/records/{id}`` prefix.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from . import dao
from .config import EXPORT_FILENAME, get_cors_allow_origin
from .store import RecordStore, get_store
from ..api.schemas import (
    RecordCreateRequest,
    RecordUpdateRequest,
    BulkCreateRequest,
    RecordResponse,
    BulkCreateResponse,
    SearchResponse,
    StatsResponse,
    MessageResponse
)
from ..util.logging import logger

COLLECTION_PATH = "/records"
ITEM_PREFIX = "/records/"


@dataclass
class RouterRequest:
    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


@dataclass
class RouterResponse:
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body)


def _base_headers() -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": get_cors_allow_origin(),
    }


def json_response(status_code: int, payload: Any, headers: Dict[str, str] = None, indent: int = None) -> RouterResponse:
    response_headers = _base_headers()
    if headers:
        response_headers.update(headers)
    return RouterResponse(status_code=status_code, body=json.dumps(payload, indent=indent), headers=response_headers)


def error_response(status_code: int, message: str) -> RouterResponse:
    return json_response(status_code, MessageResponse(message=message).model_dump())


def _record_payload(record) -> Dict[str, Any]:
    return RecordResponse.model_validate(record.to_item()).model_dump(exclude_unset=True)


# Operation handlers

def handle_list(request: RouterRequest, store: RecordStore) -> RouterResponse:
    records = dao.list_records(store)
    return json_response(200, [_record_payload(r) for r in records])


def handle_create(request: RouterRequest, store: RecordStore) -> RouterResponse:
    # A missing or malformed body raises and becomes a 500
    payload = RecordCreateRequest.model_validate_json(request.body or "")
    record = dao.create_record(store, payload.name, payload.email)
    return json_response(201, _record_payload(record))


def handle_bulk_create(request: RouterRequest, store: RecordStore) -> RouterResponse:
    payload = BulkCreateRequest.model_validate_json(request.body) if request.body else BulkCreateRequest()
    records = dao.bulk_create_records(store, payload.count)
    response = BulkCreateResponse(
        message=f"Created {len(records)} records",
        records=[_record_payload(r) for r in records]
    )
    return json_response(201, response.model_dump(exclude_unset=True))


def handle_search(request: RouterRequest, store: RecordStore) -> RouterResponse:
    results = dao.search_records(store, request.query.get("q", ""))
    response = SearchResponse(results=[_record_payload(r) for r in results], count=len(results))
    return json_response(200, response.model_dump(exclude_unset=True))


def handle_stats(request: RouterRequest, store: RecordStore) -> RouterResponse:
    stats = dao.record_stats(store)
    stats["recentRecords"] = [_record_payload(r) for r in stats["recentRecords"]]
    return json_response(200, StatsResponse(**stats).model_dump(exclude_unset=True))


def handle_export(request: RouterRequest, store: RecordStore) -> RouterResponse:
    records = dao.export_records(store)
    return json_response(
        200,
        [_record_payload(r) for r in records],
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        indent=2
    )


def handle_get(request: RouterRequest, store: RecordStore, record_id: str) -> RouterResponse:
    record = dao.get_record(store, record_id)
    if record is None:
        return error_response(404, "Record not found")
    return json_response(200, _record_payload(record))


def handle_update(request: RouterRequest, store: RecordStore, record_id: str) -> RouterResponse:
    payload = RecordUpdateRequest.model_validate_json(request.body or "")
    record = dao.update_record(store, record_id, payload.name, payload.email)
    return json_response(200, _record_payload(record))


def handle_delete(request: RouterRequest, store: RecordStore, record_id: str) -> RouterResponse:
    dao.delete_record(store, record_id)
    return json_response(200, MessageResponse(message=f"Record deleted: {record_id}").model_dump())


COLLECTION_METHODS = {"GET": handle_list, "POST": handle_create}
ITEM_METHODS = {"GET": handle_get, "PUT": handle_update, "DELETE": handle_delete}


def handle_collection(request: RouterRequest, store: RecordStore) -> RouterResponse:
    handler = COLLECTION_METHODS.get(request.method)
    if handler is None:
        return error_response(400, "Unsupported method")
    return handler(request, store)


def handle_item(request: RouterRequest, store: RecordStore) -> RouterResponse:
    record_id = request.path[len(ITEM_PREFIX):]
    if not record_id:
        return error_response(400, "Record ID required")

    handler = ITEM_METHODS.get(request.method)
    if handler is None:
        return error_response(400, "Unsupported method")
    return handler(request, store, record_id)


# Route table

def exact(path: str, method: str = None) -> Callable[[RouterRequest], bool]:
    def matches(request: RouterRequest) -> bool:
        return request.path == path and (method is None or request.method == method)
    return matches


def prefix(path_prefix: str) -> Callable[[RouterRequest], bool]:
    def matches(request: RouterRequest) -> bool:
        return request.path.startswith(path_prefix)
    return matches


@dataclass
class Route:
    name: str
    matcher: Callable[[RouterRequest], bool]
    handler: Callable[[RouterRequest, RecordStore], RouterResponse]


ROUTES = [
    Route("collection", exact(COLLECTION_PATH), handle_collection),
    Route("bulk_create", exact("/records/bulk", "POST"), handle_bulk_create),
    Route("search", exact("/records/search", "GET"), handle_search),
    Route("stats", exact("/records/stats", "GET"), handle_stats),
    Route("export", exact("/records/export", "GET"), handle_export),
    Route("item", prefix(ITEM_PREFIX), handle_item),
]


class RecordRouter:
    """Dispatches requests to record operations against one store."""

    def __init__(self, store: RecordStore = None, routes: List[Route] = None):
        self._store = store
        self.routes = routes if routes is not None else ROUTES

    @property
    def store(self) -> RecordStore:
        return self._store if self._store is not None else get_store()

    def match(self, request: RouterRequest) -> Optional[Route]:
        for route in self.routes:
            if route.matcher(request):
                return route
        return None

    def dispatch(self, method: str, path: str, query: Dict[str, str] = None, body: Optional[str] = None) -> RouterResponse:
        """Route one request; operation failures become a generic 500."""
        request = RouterRequest(method=method.upper(), path=path, query=query or {}, body=body)
        route = self.match(request)

        if route is None:
            response = error_response(404, "Not Found")
        else:
            try:
                response = route.handler(request, self.store)
            except Exception as e:
                logger.log_request_failure(request.method, request.path, e)
                logger.exception(f"Unhandled error in route '{route.name}'")
                response = error_response(500, "Internal Server Error")

        logger.log_request(request.method, request.path, response.status_code, route.name if route else None)
        return response


def dispatch(method: str, path: str, query: Dict[str, str] = None, body: Optional[str] = None) -> RouterResponse:
    """Dispatch through a router bound to the process-wide store."""
    return RecordRouter().dispatch(method, path, query, body)
