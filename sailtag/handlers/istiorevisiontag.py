import asyncio
import time
import kopf
import logging
from logging import Logger
from collections import defaultdict
from typing import Dict, Tuple
from sailtag.resources import IstioRevisionTag
from sailtag.types.settings import RECONCILE_INTERVAL_SECONDS, Settings
from sailtag.utils.errors import is_permanent_error

TAG_GROUP = IstioRevisionTag.GROUP
TAG_VERSION = IstioRevisionTag.VERSION
TAG_PLURAL = IstioRevisionTag.PLURAL

# Tags seen by this operator; watch events for other names are ignored
known_tags = set()
# Use a set to track which names are already queued
names_in_queue = set()
# The actual queue for ordered processing; items are (trigger_source, enqueued_at)
reconciliation_queue: Dict[str, asyncio.Queue] = defaultdict(asyncio.Queue)
# Locks to prevent race conditions when enqueueing reconciliation requests
reconciliation_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
# Failed reconciliations: name -> (consecutive failures, monotonic time of next attempt)
retry_backoff: Dict[str, Tuple[int, float]] = {}


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def get_sensor(memo):
    return getattr(memo, "sensor", None) if memo is not None else None


async def request_reconciliation(name: str, trigger_source: str = "event", sensor=None):
    """Request reconciliation for the IstioRevisionTag.

    Enqueues the request only if it's not already in the queue, so bursts
    of events for one tag collapse into a single reconciliation.
    """
    async with reconciliation_locks[name]:
        if name not in names_in_queue:
            names_in_queue.add(name)
            await reconciliation_queue[name].put((trigger_source, time.time()))

            if sensor:
                sensor.on_reconcile_queued(name, reconciliation_queue[name].qsize())


def schedule_retry(name: str, conf: Settings) -> float:
    """Record a failure and return the delay before the next attempt."""
    attempts, _ = retry_backoff.get(name, (0, 0.0))
    delay = conf.retry_delay(attempts)
    retry_backoff[name] = (attempts + 1, time.monotonic() + delay)
    return delay


def retry_pending(name: str) -> bool:
    backoff = retry_backoff.get(name)
    return backoff is not None and time.monotonic() < backoff[1]


def forget(name: str) -> None:
    """Clean up all global state for a tag."""
    known_tags.discard(name)
    reconciliation_queue.pop(name, None)
    reconciliation_locks.pop(name, None)
    retry_backoff.pop(name, None)
    names_in_queue.discard(name)


@kopf.on.resume(TAG_GROUP, TAG_VERSION, TAG_PLURAL)
@kopf.on.create(TAG_GROUP, TAG_VERSION, TAG_PLURAL)
@kopf.on.update(TAG_GROUP, TAG_VERSION, TAG_PLURAL)
async def on_change(name, memo: kopf.Memo, logger: Logger, **kwargs):
    """Reconcile on any change of the tag itself."""
    known_tags.add(name)
    # a new spec is worth trying right away
    retry_backoff.pop(name, None)
    logger.debug(f"Change of {name} requested reconciliation")
    await request_reconciliation(name, "change", get_sensor(memo))


@kopf.on.delete(TAG_GROUP, TAG_VERSION, TAG_PLURAL)
async def on_delete(name, body, memo: kopf.Memo, logger: Logger, **kwargs):
    """Uninstall the tag's release. kopf keeps the finalizer until this succeeds."""
    tag = IstioRevisionTag.from_body(body)
    reconciler = memo.reconciler.with_logger(logger)
    try:
        await reconciler.finalize(tag)
    except Exception as e:
        logger.error(f"Failed to finalize {name}: {e}")
        raise kopf.TemporaryError(
            f"Failed to finalize {name}: {e}",
            delay=memo.conf.reconcile_retry_delay_seconds,
        ) from e
    forget(name)


@kopf.timer(TAG_GROUP, TAG_VERSION, TAG_PLURAL, initial_delay=3.0, interval=1.5)
async def process_reconciliation_requests(
    name, body, memo: kopf.Memo, logger: Logger, stopped, **kwargs
):
    """Process reconciliation requests from the queue.

    Only this timer reconciles a tag, so reconciliations of one tag never
    overlap. Requests arriving while a reconciliation runs are collapsed
    into one follow-up pass.
    """
    if stopped:
        return
    known_tags.add(name)
    if retry_pending(name):
        return
    queue = reconciliation_queue[name]
    try:
        trigger_source, enqueued_at = queue.get_nowait()
    except asyncio.QueueEmpty:
        return

    sensor = get_sensor(memo)
    if sensor:
        sensor.on_reconcile_dequeued(name, time.time() - enqueued_at)
    # Allow requests arriving from now on to queue a follow-up pass
    names_in_queue.discard(name)

    tag = IstioRevisionTag.from_body(body)
    reconciler = memo.reconciler.with_logger(logger)
    try:
        await reconciler.reconcile(tag, trigger_source=trigger_source)
    except Exception as e:
        if is_permanent_error(e):
            retry_backoff.pop(name, None)
            logger.warning(f"Reconciliation of {name} needs a change to proceed: {e}")
        else:
            delay = schedule_retry(name, memo.conf)
            logger.info(f"Retrying reconciliation of {name} in {delay:.1f} seconds")
            await request_reconciliation(name, "retry", sensor)
    else:
        retry_backoff.pop(name, None)
    finally:
        queue.task_done()


@kopf.timer(
    TAG_GROUP,
    TAG_VERSION,
    TAG_PLURAL,
    initial_delay=RECONCILE_INTERVAL_SECONDS,
    interval=RECONCILE_INTERVAL_SECONDS,
)
async def periodic_reconciliation(name, memo: kopf.Memo, **kwargs):
    """Resync every tag so missed events converge eventually."""
    await request_reconciliation(name, "periodic", get_sensor(memo))
