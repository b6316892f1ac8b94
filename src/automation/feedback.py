"""
FeedbackIngestor: human review -> training examples.

Feedback is queued and converted one item at a time by a single worker
task, so dataset appends never interleave and land in submission order.

- edit: comparison example (original vs improved response)
- approve / reject: preference example with rating and `is_positive`

After every append the example count across both files is recomputed.
Whenever it reaches a multiple of the retrain batch size a retraining cycle
is started as its own task. At most one cycle runs at a time; a trigger that
arrives while one is running is dropped, not queued.

Retraining is simulated: the cycle waits, then records its completion time
and the number of examples it used.
"""

import asyncio
import logging
import os
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from dotenv import load_dotenv

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.automation.dataset import DatasetSink
from src.email_processing.models import FeedbackType

logger = logging.getLogger(__name__)


def build_example(feedback: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a feedback dict (with its `automated_email` embedded) into a training example.

    Raises:
        ValueError: For an unknown feedback type
    """
    email = feedback.get("automated_email") or {}
    feedback_type = FeedbackType(feedback["feedback_type"])

    if feedback_type == FeedbackType.EDIT:
        return {
            "query": email.get("body"),
            "original_response": feedback.get("original_response"),
            "improved_response": feedback.get("improved_response"),
            "category": email.get("category"),
            "improvement_areas": list(feedback.get("improvements") or []),
        }

    example = {
        "query": email.get("body"),
        "response": feedback.get("original_response"),
        "category": email.get("category"),
        "rating": feedback.get("rating"),
        "is_positive": feedback_type == FeedbackType.APPROVE,
    }
    if feedback_type == FeedbackType.REJECT:
        example["issues"] = list(feedback.get("improvements") or [])
        example["feedback_notes"] = feedback.get("feedback_notes")
    return example


class FeedbackIngestor:
    """
    Serial feedback queue with coalesced retraining.

    Attributes:
        sink: Dataset files examples are appended to
        batch_size: Retrain every time the example count reaches a multiple of this
        current_model: Fine-tuned model name used by the response generator, if any
    """

    def __init__(self,
                 sink: Optional[DatasetSink] = None,
                 batch_size: Optional[int] = None,
                 trainer: Optional[Callable[[int], Awaitable[None]]] = None):
        load_dotenv(override=True)
        config = AUTOMATION_CONFIG["feedback"]
        self.sink = sink or DatasetSink()
        self.batch_size = batch_size or config["retrain_batch_size"]
        self.trainer = trainer or self._simulate_training
        self.simulated_training_seconds = config["simulated_training_seconds"]

        self.current_model: Optional[str] = os.getenv("CUSTOM_MODEL_NAME")
        self.is_training = False
        self.last_training_time: Optional[datetime] = None
        self.total_examples_used = 0
        self.training_runs = 0

        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._training_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the worker task if it is not already running."""
        if self._worker and not self._worker.done():
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run_worker())
        logger.info("Feedback ingestor started")

    async def ingest(self, feedback: Dict[str, Any]) -> None:
        """Queue feedback for conversion. Starts the worker on first use."""
        if self._worker is None or self._worker.done():
            await self.start()
        await self._queue.put(feedback)

    async def join(self) -> None:
        """Wait until every queued item has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        for task in (self._worker, self._training_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._worker = None
        logger.info("Feedback ingestor stopped")

    async def _run_worker(self) -> None:
        while True:
            feedback = await self._queue.get()
            try:
                self._handle(feedback)
            except Exception as e:
                logger.error(f"Failed to convert feedback {feedback.get('id')}: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    def _handle(self, feedback: Dict[str, Any]) -> None:
        example = build_example(feedback)
        if feedback["feedback_type"] == FeedbackType.EDIT.value:
            self.sink.append_comparison(example)
        else:
            self.sink.append_preference(example)

        count = self.sink.count()
        logger.info(f"Stored training example from feedback {feedback.get('id')} ({count} total)")
        if count > 0 and count % self.batch_size == 0:
            self.trigger_retraining(count)

    def trigger_retraining(self, count: int) -> bool:
        """
        Start a retraining cycle unless one is already running.

        Returns:
            True if a cycle was started
        """
        if self.is_training:
            logger.info(f"Retraining already in progress, ignoring trigger at {count} examples")
            return False
        # Set before the task runs so a second trigger in the same tick is dropped
        self.is_training = True
        self._training_task = asyncio.create_task(self._retrain(count))
        return True

    async def _retrain(self, count: int) -> None:
        logger.info(f"Starting retraining with {count} examples")
        try:
            await self.trainer(count)
            self.last_training_time = datetime.utcnow()
            self.total_examples_used = self.sink.count()
            self.training_runs += 1
            logger.info("Retraining completed")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Retraining failed: {e}", exc_info=True)
        finally:
            self.is_training = False

    async def _simulate_training(self, count: int) -> None:
        await asyncio.sleep(self.simulated_training_seconds)

    async def wait_for_training(self) -> None:
        if self._training_task is not None:
            await self._training_task

    def metrics(self) -> Dict[str, Any]:
        return {
            "training_status": "in_progress" if self.is_training else "idle",
            "last_training_time": self.last_training_time.isoformat() if self.last_training_time else None,
            "total_examples_used": self.total_examples_used,
            "current_model": self.current_model,
            "queue_size": self._queue.qsize() if self._queue is not None else 0,
        }
