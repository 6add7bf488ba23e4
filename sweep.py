"""Background finalization of attempts whose deadline has passed."""
import logging
import threading
from dataclasses import dataclass

from clock import Clock, system_clock
from config import SWEEP_INTERVAL_SECONDS
from db import SessionLocal
from lifecycle import LifecycleController
from models import SubmissionStatus
from store import list_overdue_attempts

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    auto_submitted: int = 0
    expired: int = 0
    purged: int = 0

    def as_dict(self) -> dict:
        return {"auto_submitted": self.auto_submitted, "expired": self.expired, "purged": self.purged}


def sweep_expired_attempts(db, controller: LifecycleController, clock: Clock) -> SweepReport:
    """
    Finalize every attempt past deadline + grace through the same
    create-once path a client submit uses, so a late client submit and
    the sweep cannot both produce a submission.
    """
    now = clock.now()
    report = SweepReport()
    for attempt in list_overdue_attempts(db, now - controller.grace):
        status = controller.finalize_overdue(db, attempt, now)
        if status == SubmissionStatus.AUTO_SUBMITTED.value:
            report.auto_submitted += 1
        elif status == SubmissionStatus.EXPIRED.value:
            report.expired += 1
        else:
            report.purged += 1

    if report.auto_submitted or report.expired or report.purged:
        logger.info("sweep finished %s", report.as_dict())
    return report


def schedule_sweep(controller: LifecycleController, clock: Clock = system_clock) -> threading.Event | None:
    """Start the periodic sweep thread. Returns an Event that stops it."""
    interval = SWEEP_INTERVAL_SECONDS
    if interval <= 0:
        logger.info("attempt sweep disabled")
        return None

    stop = threading.Event()

    def _worker() -> None:
        while not stop.wait(interval):
            try:
                with SessionLocal() as db:
                    sweep_expired_attempts(db, controller, clock)
            except Exception:
                # keep the thread alive; the next tick retries
                logger.exception("attempt sweep failed")

    thread = threading.Thread(target=_worker, name="attempt_sweep", daemon=True)
    thread.start()
    return stop
