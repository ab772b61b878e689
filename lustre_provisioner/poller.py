"""Long-running operation poller.

A submitted create/delete returns a LongRunningOperation. The operation is a
small state machine::

    SUBMITTED -> POLLING -> SUCCEEDED
    SUBMITTED -> POLLING -> FAILED

``poll_once`` is supplied by the transport (live HTTP or in-memory fake) and
reports whether the remote operation reached a terminal state.
"""

from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from oslo_log import log as logging

from .context import RequestContext

LOG = logging.getLogger(__name__)


class OperationState(str, Enum):
    """Long-running operation states."""

    SUBMITTED = "Submitted"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class PollOutcome(NamedTuple):
    """Result of a single poll request."""

    done: bool
    result: Any = None


class LongRunningOperation:
    """Handle for a submitted remote mutation."""

    def __init__(
        self,
        poll_once: Callable[[RequestContext], PollOutcome],
        description: str = "operation",
    ):
        self._poll_once = poll_once
        self.description = description
        self.state = OperationState.SUBMITTED
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.poll_count = 0

    @property
    def done(self) -> bool:
        return self.state in (OperationState.SUCCEEDED, OperationState.FAILED)

    def poll_until_done(self, ctx: RequestContext, frequency: float) -> Any:
        """Poll until the operation is terminal.

        Args:
            ctx: Request context; cancelling it interrupts the wait between polls
            frequency: Seconds between polls

        Returns:
            Operation result on success

        Raises:
            ValueError: frequency is not positive
            DeadlineExceeded: ctx was cancelled or its deadline expired
            Exception: Whatever the transport raised for a failed operation
        """
        if frequency <= 0:
            raise ValueError("poll frequency must be positive, was: %s" % frequency)

        if self.state == OperationState.SUCCEEDED:
            return self.result
        if self.state == OperationState.FAILED:
            raise self.error

        self.state = OperationState.POLLING
        while True:
            try:
                self.poll_count += 1
                outcome = self._poll_once(ctx)
                if outcome.done:
                    self.state = OperationState.SUCCEEDED
                    self.result = outcome.result
                    LOG.debug(
                        "%s finished after %d poll(s)", self.description, self.poll_count
                    )
                    return self.result
                ctx.wait(frequency)
            except Exception as e:
                self.state = OperationState.FAILED
                self.error = e
                LOG.warning("failed to poll the result of %s: %s", self.description, e)
                raise
