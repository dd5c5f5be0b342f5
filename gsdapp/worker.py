"""
Worker loop that categorizes tasks queued with ``analyze=true``.

Each job makes one categorize call. Failed calls are retried with
exponential backoff; once the attempts run out the job is FAILED and the
task stays in q4.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from gsdapp.analysis import AnalysisError, TaskAnalyzer
from gsdapp.config import get_settings
from gsdapp.db import DbClient, NotFoundError
from gsdapp.dependencies import get_analyzer, get_db_client, get_queue_client
from gsdapp.preferences import load_preferences
from gsdapp.queue import JobQueue
from gsdapp.tasks import apply_categorization
from shared.types import AnalysisJob, JobStatus

logger = logging.getLogger(__name__)

MAX_ANALYSIS_ATTEMPTS = 4
BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 10000


def backoff_ms(attempts: int) -> int:
    return min(BASE_BACKOFF_MS * 2 ** (attempts - 1), MAX_BACKOFF_MS)


def _analyzer_for(job: AnalysisJob, db: DbClient, analyzer: TaskAnalyzer) -> TaskAnalyzer:
    prefs = db.get_preferences(job.user_id)
    if prefs and prefs.sync_api_key and prefs.api_key:
        return TaskAnalyzer(api_key=prefs.api_key, model=analyzer.model)
    return analyzer


def _fail(job: AnalysisJob, db: DbClient, attempts: int, message: str) -> None:
    logger.error(
        "Analysis job %s failed after %d attempts: %s", job.job_id, attempts, message
    )
    db.update_analysis_job(job.job_id, status=JobStatus.FAILED, error=message)


def _fail_or_retry(
    job: AnalysisJob, db: DbClient, queue: JobQueue, attempts: int, message: str
) -> None:
    if attempts >= MAX_ANALYSIS_ATTEMPTS:
        _fail(job, db, attempts, message)
        return
    delay = backoff_ms(attempts)
    logger.warning(
        "Analysis job %s attempt %d failed (%s); retrying in %dms",
        job.job_id,
        attempts,
        message,
        delay,
    )
    db.update_analysis_job(job.job_id, status=JobStatus.WAITING, error=message)
    queue.enqueue(job.job_id, delay_seconds=delay / 1000)


def process_job(
    job: AnalysisJob, db: DbClient, queue: JobQueue, analyzer: TaskAnalyzer
) -> None:
    task = db.get_task(job.user_id, job.task_id)
    if task is None:
        logger.warning("Task %s for job %s no longer exists", job.task_id, job.job_id)
        db.update_analysis_job(
            job.job_id, status=JobStatus.FAILED, error="Task not found"
        )
        return

    attempts = job.attempts + 1
    db.update_analysis_job(job.job_id, status=JobStatus.RUNNING, attempts=attempts)
    prefs = load_preferences(db, job.user_id)
    try:
        result = _analyzer_for(job, db, analyzer).categorize(
            task.text, prefs.goal, prefs.priority
        )
        apply_categorization(db, job.user_id, task, result)
    except NotFoundError as e:
        _fail(job, db, attempts, str(e))
        return
    except AnalysisError as e:
        _fail_or_retry(job, db, queue, attempts, e.message)
        return
    except Exception as e:
        logger.exception("Unexpected error in analysis job %s", job.job_id)
        _fail_or_retry(job, db, queue, attempts, str(e) or type(e).__name__)
        return

    db.update_analysis_job(job.job_id, status=JobStatus.SUCCESS)
    logger.info(
        "Task %s categorized as %s (job %s)", task.id, result.category, job.job_id
    )


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    analyzer: Optional[TaskAnalyzer] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue. Returns True if a job was handled.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()
    analyzer = analyzer or get_analyzer()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if not job_id:
        return False
    job = db.get_analysis_job(job_id)
    if not job:
        logger.warning("Received job_id %s from queue but no DB record found", job_id)
        return False
    if job.status in (JobStatus.SUCCESS, JobStatus.FAILED):
        logger.info("Skipping finished job %s (%s)", job_id, job.status)
        return False

    process_job(job, db, queue, analyzer)
    return True


def run_worker(poll_interval_seconds: float = 2.0) -> None:
    """
    Blocking loop over the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db_client()
    queue = get_queue_client()
    analyzer = get_analyzer()
    while True:
        try:
            processed = process_next(
                db=db,
                queue=queue,
                analyzer=analyzer,
                block=True,
                timeout=int(poll_interval_seconds),
            )
        except Exception:
            logger.exception("Worker iteration failed")
            processed = False
        if not processed:
            time.sleep(poll_interval_seconds)


def main() -> None:
    logging.basicConfig(level=get_settings().log_level.upper())
    run_worker()


if __name__ == "__main__":
    main()
