"""
Fire-and-forget order notifications.

Each helper queues a Celery task once the surrounding transaction commits.
Queueing failures are logged and dropped; callers never see them.
"""
import logging
from functools import partial

from django.db import transaction

from . import tasks

logger = logging.getLogger(__name__)


def _submit(task, order):
    try:
        task.delay(order.shop_id, order.pk)
    except Exception:
        logger.exception("Could not queue %s for order %s", task.name, order.pk)


def _on_commit(*task_list, order):
    for task in task_list:
        transaction.on_commit(partial(_submit, task, order))


def order_placed(order):
    _on_commit(tasks.send_order_placed_email, tasks.send_admin_order_alert, order=order)


def status_changed(order):
    _on_commit(tasks.send_status_update_email, order=order)


def order_cancelled(order):
    _on_commit(tasks.send_order_cancelled_email, order=order)


def invoice_ready(order):
    _on_commit(tasks.send_invoice_email, order=order)
