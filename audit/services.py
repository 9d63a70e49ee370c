import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from common.utils import client_ip, user_agent
from .models import AuditLog

logger = logging.getLogger(__name__)

REDACTED_KEYS = {"password", "old_password", "new_password", "refresh", "token"}


def _clean(value):
    if isinstance(value, dict):
        return {
            str(k): ("***" if str(k) in REDACTED_KEYS else _clean(v)) for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_clean(v) for v in value]
    return value


def _jsonable(details):
    try:
        return json.loads(json.dumps(_clean(details or {}), cls=DjangoJSONEncoder))
    except (TypeError, ValueError):
        return {"repr": repr(details)[:2000]}


def record_action(ctx, action, entity, entity_id=None, details=None, request=None):
    """
    Append one audit row after the surrounding transaction commits.
    A failure to write is logged and never reaches the caller.
    """
    fields = {
        "shop_id": ctx.shop_id,
        "user_id": ctx.user_id,
        "action": action,
        "entity": entity,
        "entity_id": "" if entity_id is None else str(entity_id),
        "details": _jsonable(details),
        "ip_address": client_ip(request),
        "user_agent": user_agent(request),
    }

    def write():
        try:
            AuditLog.objects.create(**fields)
        except Exception:
            logger.exception("Failed to write audit log %s %s:%s", action, entity, entity_id)

    transaction.on_commit(write)


def list_logs(ctx, action=None, entity=None):
    qs = ctx.scope.query(AuditLog).select_related("user")
    if action:
        qs = qs.filter(action=action)
    if entity:
        qs = qs.filter(entity=entity)
    return qs
