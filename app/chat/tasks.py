"""
Celery tasks for the chat app.

- remove_expired_pins: periodic sweep of pins whose pinned_until has passed

Scheduling:
    The PeriodicTask "Chat: Remove Expired Pins" is created by migration
    0002_add_pin_sweep_schedule (every PIN_SWEEP_INTERVAL_SECONDS) and
    read by the django_celery_beat DatabaseScheduler. The sweep also runs
    once when beat starts.

Active pins are filtered on pinned_until at read time, so the sweep only
reclaims rows. Running it late, twice, or not at all never shows a user an
expired pin.

Usage:
    from chat.tasks import remove_expired_pins

    remove_expired_pins.delay()
"""

import logging

from celery import shared_task
from celery.signals import beat_init

from chat.services import PinService

logger = logging.getLogger(__name__)


@shared_task(name="chat.tasks.remove_expired_pins")
def remove_expired_pins() -> int:
    """
    Delete expired pins.

    Store failures are logged and reported as zero removed; the next run
    retries naturally.

    Returns:
        Number of pins removed
    """
    result = PinService.remove_expired_pins()
    if not result:
        logger.error(f"Expired pin sweep failed: {result.error}")
        return 0

    removed = result.data
    if removed:
        logger.info(f"Auto-unpinned {removed} expired message(s)")
    return removed


@beat_init.connect
def sweep_expired_pins_on_beat_start(sender=None, **kwargs):
    """Queue one sweep as soon as the beat scheduler starts."""
    try:
        remove_expired_pins.delay()
    except Exception:
        logger.exception("Could not queue the startup expired pin sweep")
