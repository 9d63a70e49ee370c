from functools import wraps

from .services import record_action


def audited(action, entity):
    """
    Record an audit row when the wrapped view method returns a 2xx response.

    `action` is an AuditAction value or a callable (request, response) -> action
    for endpoints whose action depends on the outcome (activate/deactivate).
    """

    def decorator(view_method):
        @wraps(view_method)
        def wrapper(self, request, *args, **kwargs):
            response = view_method(self, request, *args, **kwargs)
            if 200 <= response.status_code < 300 and request.auth is not None:
                entity_id = kwargs.get("pk")
                if entity_id is None and isinstance(response.data, dict):
                    entity_id = response.data.get("id")
                record_action(
                    request.auth,
                    action(request, response) if callable(action) else action,
                    entity,
                    entity_id=entity_id,
                    details={
                        "method": request.method,
                        "path": request.get_full_path(),
                        "body": request.data if isinstance(request.data, dict) else {},
                        "params": kwargs,
                    },
                    request=request,
                )
            return response

        return wrapper

    return decorator
