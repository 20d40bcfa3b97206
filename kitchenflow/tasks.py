"""
Celery Tasks
Background delivery of order events to the cashier settlement ledger.
"""

import logging
import time
from datetime import datetime

from kitchenflow.celery_worker import celery_app
from kitchenflow.services.events.handlers import handle_order_event
from kitchenflow.services.settlement_ledger import get_settlement_ledger

logger = logging.getLogger(__name__)


class SettlementFailed(Exception):
    """The ledger could not record the settlement (retried by Celery)."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(SettlementFailed,),
    retry_backoff=True
)
def record_cashier_settlement(self, event: dict) -> dict:
    """
    Append an order.completed event to the settlement ledger.

    Args:
        event: OrderEvent.to_dict() of an order.completed event

    Returns:
        dict: Result of the ledger write
    """
    task_id = self.request.id
    order_number = event.get('order_number', 'unknown')

    logger.info(f"Task {task_id}: Settling order #{order_number}")
    start_time = time.time()

    result = handle_order_event(event, get_settlement_ledger())
    elapsed = round(time.time() - start_time, 3)

    if result is None:
        return {'success': False, 'message': f"Unexpected event {event.get('name')}", 'task_id': task_id}

    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if not result['success']:
        logger.warning(f"Task {task_id}: Order #{order_number} failed - {result['message']}")
        raise SettlementFailed(result['message'])

    logger.info(f"Task {task_id}: Order #{order_number} settled in {elapsed}s")
    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
