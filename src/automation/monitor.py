"""
Inbox Monitor

Per-owner polling jobs. Each job is an asyncio task that ticks immediately
and then once per interval:

    connect -> fetch unseen (marks them seen) -> process each message in order

A job stops through its cancellation token: `stop` marks the job not running
and sets its stop event in one step, which wakes the pending sleep. A tick
already in flight runs to completion, so its messages are still recorded,
and no further tick is scheduled.

The durable `automation_enabled` flag on the user row is the source of
truth across restarts; `rehydrate` restarts a job for every flagged user.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.email_processing.processor import EmailProcessor
from src.integrations.mail.config import MailboxConfig, load_mailbox_config
from src.integrations.mail.inbox import InboxClient
from src.storage.automation_repository import KnowledgeRepository
from src.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class MonitoringJob:
    owner: str
    interval_minutes: float
    running: bool = True
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None
    in_tick: bool = False
    ticks: int = 0
    last_tick: Optional[datetime] = None
    last_error: Optional[str] = None

    def cancel(self) -> None:
        # No await between the two steps
        self.running = False
        self.stop_event.set()


class InboxMonitor:
    """
    Registry of per-owner monitoring jobs.

    At most one job exists per owner; starting a job first stops the
    previous one and waits for its in-flight tick, so one owner never has
    two ticks running at once.
    """

    def __init__(self,
                 processor: EmailProcessor,
                 inbox: Optional[InboxClient] = None,
                 cache: Optional[KnowledgeBaseCache] = None,
                 config_loader: Optional[Callable[[str], Awaitable[MailboxConfig]]] = None):
        self.processor = processor
        self.inbox = inbox or InboxClient()
        self.cache = cache
        self.config_loader = config_loader or load_mailbox_config
        self._jobs: Dict[str, MonitoringJob] = {}
        # Tasks of stopped jobs whose last tick may still be running
        self._draining: Dict[str, asyncio.Task] = {}
        # One start() at a time per owner
        self._start_locks: Dict[str, asyncio.Lock] = {}

    async def start(self, owner: str, interval_minutes: Optional[float] = None) -> Dict[str, Any]:
        """Start (or restart) monitoring for an owner."""
        interval = interval_minutes or AUTOMATION_CONFIG["monitor"]["default_interval_minutes"]
        if interval <= 0:
            raise ValueError("Interval must be positive")

        async with self._start_locks.setdefault(owner, asyncio.Lock()):
            previous = self._jobs.get(owner)
            job = MonitoringJob(owner=owner, interval_minutes=interval)
            self._jobs[owner] = job

            if previous:
                previous.cancel()
                if previous.task:
                    self._draining[owner] = previous.task
            draining = self._draining.pop(owner, None)
            if draining and not draining.done():
                await asyncio.gather(draining, return_exceptions=True)

            # stop() may have been called while waiting for the previous job
            if job.running:
                job.task = asyncio.create_task(self._run(job))
                logger.info(f"Started inbox monitoring for user {owner} every {interval} minutes")
        return self.status(owner)

    async def stop(self, owner: str) -> bool:
        """
        Stop monitoring for an owner.

        Returns:
            True if a job was stopped
        """
        job = self._jobs.pop(owner, None)
        if not job:
            return False
        job.cancel()
        if job.task and not job.task.done():
            self._draining[owner] = job.task
        logger.info(f"Stopped inbox monitoring for user {owner}")
        return True

    def status(self, owner: str) -> Dict[str, Any]:
        job = self._jobs.get(owner)
        if not job:
            return {"owner": owner, "running": False}
        return {
            "owner": owner,
            "running": job.running,
            "interval_minutes": job.interval_minutes,
            "in_tick": job.in_tick,
            "ticks": job.ticks,
            "last_tick": job.last_tick.isoformat() if job.last_tick else None,
            "last_error": job.last_error,
        }

    def active_owners(self) -> List[str]:
        return [owner for owner, job in self._jobs.items() if job.running]

    async def rehydrate(self) -> int:
        """Start jobs for every user with automation enabled. Returns the number started."""
        started = 0
        for user in await UserRepository.list_automation_enabled():
            try:
                await self.start(user["id"], user.get("automation_interval"))
                started += 1
            except Exception as e:
                logger.error(f"Failed to resume monitoring for user {user['id']}: {e}")
        logger.info(f"Resumed inbox monitoring for {started} users")
        return started

    async def shutdown(self, timeout: float = 30) -> None:
        """Stop every job, waiting up to `timeout` seconds for in-flight ticks."""
        jobs = list(self._jobs.values())
        self._jobs.clear()
        for job in jobs:
            job.cancel()

        tasks = [job.task for job in jobs if job.task] + list(self._draining.values())
        self._draining.clear()
        tasks = [task for task in tasks if not task.done()]
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info(f"Inbox monitor shut down ({len(pending)} ticks cancelled)")

    async def _run(self, job: MonitoringJob) -> None:
        while job.running:
            job.in_tick = True
            try:
                await self.run_once(job.owner)
                job.last_error = None
            except Exception as e:
                job.last_error = str(e)
                logger.error(f"Inbox check failed for user {job.owner}: {e}")
            finally:
                job.in_tick = False
                job.ticks += 1
                job.last_tick = datetime.utcnow()

            if not job.running:
                break
            try:
                await asyncio.wait_for(job.stop_event.wait(), timeout=job.interval_minutes * 60)
            except asyncio.TimeoutError:
                pass
        logger.debug(f"Monitoring loop for user {job.owner} exited")

    async def run_once(self, owner: str) -> int:
        """
        Run one inbox check.

        Per-message failures are logged and do not stop the rest of the
        batch; connection and fetch failures propagate.

        Returns:
            Number of messages handed to the pipeline
        """
        if self.cache is not None:
            await self.cache.get_or_load(owner, KnowledgeRepository.list_for_owner)

        config = await self.config_loader(owner)
        session = await self.inbox.connect(config)
        try:
            messages = await self.inbox.fetch_unseen(session)
        finally:
            await self.inbox.close(session)

        if not messages:
            logger.debug(f"No unseen messages for user {owner}")
            return 0

        logger.info(f"Processing {len(messages)} new messages for user {owner}")
        for message in messages:
            try:
                await self.processor.process(message, owner)
            except Exception as e:
                logger.error(f"Failed to process message {message.message_id} for user {owner}: {e}",
                             exc_info=True)
        return len(messages)
