"""Exceptions raised by a discussion run.

Budget exhaustion is not an error; every failure below is terminal for the run
and no summary is produced.
"""

from __future__ import annotations

from models.discussion import DiscussionStatus, Transcript


class DiscussionError(Exception):
    """Base class for discussion failures.

    ``transcript`` holds the turns completed before the failure, when the
    scheduler got far enough to have one.
    """

    status = DiscussionStatus.FAILED

    def __init__(self, message: str, transcript: Transcript | None = None) -> None:
        super().__init__(message)
        self.transcript = transcript


class OracleContractError(DiscussionError):
    """The oracle returned a decision outside its contract (unknown speaker, non-bool, empty summary)."""


class OracleUnavailableError(DiscussionError):
    """The oracle could not be reached after retrying."""


class ParticipantError(DiscussionError):
    """A participant failed while taking its turn."""

    def __init__(self, participant: str, message: str, transcript: Transcript | None = None) -> None:
        super().__init__(f"Participant '{participant}' failed: {message}", transcript)
        self.participant = participant


class DiscussionCancelledError(DiscussionError):
    """The run's cancel event was set before it finished."""

    status = DiscussionStatus.CANCELLED


class DiscussionTimeoutError(DiscussionError):
    """The run, including its summary, exceeded its time limit."""

    status = DiscussionStatus.TIMED_OUT
