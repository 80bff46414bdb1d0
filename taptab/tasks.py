"""
Celery Tasks
Background menu exports so large spreadsheets never block a request.
"""

import asyncio
import logging
import time
from datetime import datetime

from taptab.celery_worker import celery_app
from taptab.services.backend import get_menu_backend
from taptab.services.backend.base import BackendError
from taptab.services.spreadsheet import export_menu_file

logger = logging.getLogger(__name__)


async def _load_full_menu(restaurant_id: str):
    return await get_menu_backend().get_restaurant_full_menu(restaurant_id)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(BackendError,),
    retry_backoff=True
)
def export_menu_to_excel(self, restaurant_id: str) -> dict:
    """
    Export a restaurant's full menu to ``data/menu_<slug>.xlsx``.

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting menu of {restaurant_id}")
    start_time = time.time()

    full_menu = asyncio.run(_load_full_menu(restaurant_id))
    if full_menu is None:
        return {
            'success': False,
            'message': f'Restaurant {restaurant_id} not found',
            'task_id': task_id,
        }

    result = export_menu_file(full_menu)
    result['task_id'] = task_id
    result['processing_time_seconds'] = round(time.time() - start_time, 3)

    if result['success']:
        logger.info(f"Task {task_id}: {result['message']} in {result['processing_time_seconds']}s")
    else:
        logger.warning(f"Task {task_id}: export failed - {result['message']}")
    return result


@celery_app.task
def health_check() -> dict:
    """Verify the worker is consuming tasks."""
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
