"""
Task submission and completion polling.

The wait loop is an explicit state machine with one timeout check at the top
of every iteration:

    check elapsed > timeout  -> TaskTimeoutError
    read status              -> TransportError aborts immediately
    forward progress, if any
    completed                -> result (progress forced to 100)
    failed / error           -> TaskFailureError
    any other state          -> sleep(polling_interval), repeat

Because the check happens before each read rather than on a separate timer,
the last interval can overshoot the timeout by up to one polling interval.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from oomol_fusion import telemetry
from oomol_fusion.api import FusionAPI, json_body, response_text
from oomol_fusion.exceptions import (
    SubmissionError,
    TaskFailureError,
    TaskTimeoutError,
    TransportError,
)
from oomol_fusion.models import (
    ProgressCallback,
    SubmitResponse,
    TaskResult,
    TaskState,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def _is_empty(data: Any) -> bool:
    if data is None:
        return True
    if isinstance(data, (str, bytes, list, dict, tuple)):
        return len(data) == 0
    return False


_FAILURE_STATES = (TaskState.FAILED.value, TaskState.ERROR.value)
_RUNNING_STATES = (TaskState.PENDING.value, TaskState.PROCESSING.value)


def _failure_message(status: TaskStatus) -> str:
    # The remote error may be any JSON value, not only a string.
    if status.error:
        return str(status.error)
    return f"Task failed: {status.state}"


class TaskPoller:
    """
    Submits tasks and waits for them to reach a terminal state.

    Args:
        api: Authenticated request helper.
        polling_interval: Seconds between status reads.
        timeout: Seconds since the wait started before giving up.
        clock: Monotonic time source.
        sleep: Coroutine used between status reads.
    """

    def __init__(
        self,
        api: FusionAPI,
        *,
        polling_interval: float,
        timeout: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self.polling_interval = polling_interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    async def submit(self, service: str, inputs: Dict[str, Any]) -> SubmitResponse:
        """
        Submit a task without waiting for it.

        Raises:
            SubmissionError: the service rejected the submission.
            TransportError: the request could not be completed.
        """
        response = await self._api.request("POST", f"{service}/submit", json=inputs)
        if not response.is_success:
            body = response_text(response)
            raise SubmissionError(
                f"Task submission failed: {body}",
                service=service,
                status_code=response.status_code,
                body=body,
            )
        try:
            submitted = SubmitResponse.model_validate(json_body(response))
        except ValidationError as e:
            raise SubmissionError(
                f"Invalid submit response: {e}",
                service=service,
                status_code=response.status_code,
                body=response_text(response),
            ) from e
        logger.debug("Submitted %s task %s", service, submitted.session_id)
        return submitted

    async def status(self, service: str, session_id: str) -> TaskStatus:
        """Read the task status once."""
        response = await self._api.request("GET", f"{service}/result/{session_id}")
        if not response.is_success:
            body = response_text(response)
            raise TransportError(
                f"Failed to get task status: {body}",
                url=str(response.request.url),
                status_code=response.status_code,
                body=body,
            )
        try:
            return TaskStatus.model_validate(json_body(response))
        except ValidationError as e:
            raise TransportError(
                f"Invalid task status response: {e}",
                url=str(response.request.url),
                status_code=response.status_code,
                body=response_text(response),
            ) from e

    async def wait(
        self,
        service: str,
        session_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TaskResult:
        """
        Poll until the task completes, fails or the timeout elapses.

        Raises:
            TaskTimeoutError: elapsed time exceeded ``timeout``.
            TaskFailureError: the task failed, errored or completed without data.
            TransportError: a status read failed; not retried.
        """
        with telemetry.span("fusion.wait", service=service, session_id=session_id):
            start = self._clock()
            reads = 0
            while True:
                if self._clock() - start > self.timeout:
                    logger.warning(
                        "Task %s timed out after %d status reads", session_id, reads
                    )
                    raise TaskTimeoutError(session_id, service, self.timeout)

                status = await self.status(service, session_id)
                reads += 1

                if on_progress is not None and status.progress is not None:
                    on_progress(status.progress)

                if status.state == TaskState.COMPLETED.value:
                    if _is_empty(status.data):
                        raise TaskFailureError(
                            "Task completed but no data returned",
                            session_id=session_id,
                            service=service,
                            state=status.state,
                        )
                    if on_progress is not None:
                        on_progress(100)
                    logger.debug("Task %s completed after %d reads", session_id, reads)
                    return TaskResult(
                        data=status.data, session_id=session_id, service=service
                    )

                if status.state in _FAILURE_STATES:
                    raise TaskFailureError(
                        _failure_message(status),
                        session_id=session_id,
                        service=service,
                        state=status.state,
                    )

                if status.state not in _RUNNING_STATES:
                    logger.debug(
                        "Task %s reported unrecognized state %r, still waiting",
                        session_id,
                        status.state,
                    )

                await self._sleep(self.polling_interval)
