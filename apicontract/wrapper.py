"""
@api_contract decorator - applies an operation's contract to a Flask view.

Usage:
    @app.route("/heroes/<id>", methods=["PATCH"])
    @api_contract(registry, "/heroes", "update")
    def update_hero(id):
        params = g.params  # validated, normalized params
        ...
        return hero        # serialized through the operation's response schema

The decorator:
1. Validates query/view/body params against the operation's effective params
2. Rejects invalid params (STRICT) or logs them and continues (WARN)
3. Serializes the handler's return value through the response schema
4. Tags every response with X-Request-ID

Routing stays with the caller; this only wraps the handler.
"""

import functools
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

from flask import Response, g, jsonify, request

from .attributes import AttributeNode
from .config import SchemaMode, get_default_mode
from .endpoints import effective_params
from .serialize import serialize
from .validate import Result, count_errors, validate

logger = logging.getLogger('apicontract.wrapper')


def api_contract(registry, endpoint_path: str, operation_name: str, mode: Optional[SchemaMode] = None):
    """
    Decorator that enforces an operation's contract on a route handler.

    Args:
        registry: Registry holding the endpoint
        endpoint_path: Endpoint prefix the operation belongs to (e.g. "/heroes")
        operation_name: Operation name within the endpoint (e.g. "update")
        mode: STRICT rejects invalid params with 400; WARN logs and continues.
              Defaults to the CONTRACT_MODE environment setting.

    Returns:
        Decorated function with contract enforcement
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
            g.request_id = request_id
            enforcement = mode or get_default_mode()

            endpoint = registry.resolve_endpoint(endpoint_path)
            operation = endpoint.operation(operation_name)

            # 1. Validate params
            params_node = effective_params(registry, endpoint_path, operation_name)
            result = validate(registry, params_node, _collect_raw_params(params_node))
            g.params = result.value if isinstance(result.value, dict) else {}
            g.operation = operation

            if not result.valid:
                if enforcement == SchemaMode.STRICT:
                    return _make_error_response(
                        code="INVALID_PARAMS",
                        message=f"{count_errors(result.errors)} param validation error(s)",
                        details=_stringify_keys(result.errors),
                        request_id=request_id,
                        status_code=400,
                    )
                _log_violation(endpoint_path, operation_name, result, request_id)

            # 2. Call the handler
            try:
                outcome = fn(*args, **kwargs)
            except Exception:
                logger.exception(f"Handler error for {endpoint_path}#{operation_name}")
                return _make_error_response(
                    code="INTERNAL_ERROR",
                    message="An unexpected error occurred",
                    request_id=request_id,
                    status_code=500,
                )

            # 3. Serialize through the response schema
            if isinstance(outcome, tuple):
                body, status_code = outcome[0], outcome[1]
            else:
                body, status_code = outcome, 200

            if isinstance(body, Response):
                body.headers['X-Request-ID'] = request_id
                return body, status_code

            if operation.schema is not None:
                body = {"data": serialize(registry, operation.schema, body, many=operation.many)}

            response = jsonify(body)
            response.headers['X-Request-ID'] = request_id
            return response, status_code

        return wrapper
    return decorator


def _collect_raw_params(params_node: AttributeNode) -> Dict[str, Any]:
    """Collect all params from request (query string + view args + JSON body)."""
    params: Dict[str, Any] = dict(request.args)

    # Repeated query keys (?tags=a&tags=b) feed array params
    for child in params_node.children:
        if child.structure == "array" and child.accessor in request.args:
            params[child.accessor] = request.args.getlist(child.accessor)
    params.update(request.view_args or {})

    # Merge JSON body for write requests
    if request.method in ('POST', 'PUT', 'PATCH') and request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            params.update(body)

    return params


def _stringify_keys(errors: Any) -> Any:
    """Error trees key array items by int; JSON objects need str keys."""
    if isinstance(errors, dict):
        return {str(key): _stringify_keys(sub) for key, sub in errors.items()}
    return errors


def _make_error_response(
    code: str,
    message: str,
    details: Optional[Any] = None,
    request_id: Optional[str] = None,
    status_code: int = 400,
) -> Tuple[Response, int]:
    """Build standardized error response."""
    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if details:
        error["error"]["details"] = details

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id
    return response, status_code


def _log_violation(endpoint: str, operation: str, result: Result, request_id: str) -> None:
    """Log a tolerated contract violation for observability."""
    logger.warning(
        f"Contract violation: endpoint={endpoint} operation={operation} "
        f"request_id={request_id} errors={count_errors(result.errors)}",
        extra={
            "event": "contract_violation",
            "endpoint": endpoint,
            "operation": operation,
            "stage": "params",
            "request_id": request_id,
            "details": _stringify_keys(result.errors),
        }
    )
