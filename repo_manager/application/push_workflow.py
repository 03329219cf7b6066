"""Push workflow gating pushes to the master repository behind three confirmations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from repo_manager.application.registry_service import RepositoryRegistry
from repo_manager.domain.errors import PushValidationError, PushWorkflowError
from repo_manager.domain.repository import PushType, RepositoryRecord

logger = logging.getLogger(__name__)


class PushState(Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"


CONFIRMATION_MESSAGES = (
    "This is a master repository. Are you sure you want to proceed with the push operation?",
    "Please confirm again. This action will modify the master repository.",
    "Final confirmation required. This action cannot be undone.",
)
FINAL_CONFIRMATION_STEP = len(CONFIRMATION_MESSAGES) - 1


@dataclass(frozen=True)
class PushResult:
    """Outcome of a completed local push."""

    summary: str
    push_type: PushType
    pushed_at: datetime
    source: RepositoryRecord
    target: RepositoryRecord


class PushWorkflow:
    """
    Selection and confirmation state for pushing one registry record into another.

    Pushes to a non-master target run as soon as they are requested. Pushes to
    the master record open a confirmation dialog that must be confirmed three
    times; cancelling at any step drops back to idle without side effects.
    """

    def __init__(self, registry: RepositoryRegistry):
        self.registry = registry
        self.source_id: Optional[str] = None
        self.target_id: Optional[str] = None
        self.push_type = PushType.REGULAR
        self.state = PushState.IDLE
        self.confirmation_step = 0
        self.last_action: Optional[str] = None

    def select_source(self, repo_id: Optional[str]):
        self.source_id = repo_id

    def select_target(self, repo_id: Optional[str]):
        self.target_id = repo_id

    def set_push_type(self, push_type: Union[PushType, str]):
        try:
            self.push_type = PushType(push_type)
        except ValueError:
            raise PushWorkflowError(f"Unknown push type: {push_type}")

    @property
    def awaiting_confirmation(self) -> bool:
        return self.state is PushState.AWAITING_CONFIRMATION

    @property
    def warning_message(self) -> Optional[str]:
        """Dialog message for the current confirmation step, None when no dialog is open."""
        if not self.awaiting_confirmation:
            return None
        return CONFIRMATION_MESSAGES[self.confirmation_step]

    def _selected_records(self):
        source = self.registry.get(self.source_id) if self.source_id else None
        target = self.registry.get(self.target_id) if self.target_id else None
        if source is None or target is None:
            logger.error("Source and target repositories must be selected")
            raise PushValidationError("Please select both source and target repositories")
        return source, target

    def request_push(self) -> Optional[PushResult]:
        """
        Start a push with the current selection.

        Returns:
            The push result, or None while the master confirmation dialog is open

        Raises:
            PushValidationError: If source or target is not selected
        """
        _, target = self._selected_records()

        if self.awaiting_confirmation:
            return None

        if target.is_master:
            logger.warning("Attempting to push to master repository - requiring confirmation")
            self.state = PushState.AWAITING_CONFIRMATION
            return None

        return self._execute()

    def confirm(self) -> Optional[PushResult]:
        """
        Accept the current confirmation step.

        Returns:
            The push result after the final step, otherwise None
        """
        if not self.awaiting_confirmation:
            raise PushWorkflowError("No push is awaiting confirmation")

        if self.confirmation_step < FINAL_CONFIRMATION_STEP:
            self.confirmation_step += 1
            logger.warning(
                f"Master push confirmation step {self.confirmation_step} of {len(CONFIRMATION_MESSAGES)}"
            )
            return None

        return self._execute()

    def cancel(self):
        """Close the confirmation dialog without pushing."""
        if self.awaiting_confirmation:
            logger.info("Master push cancelled")
        self._reset()

    def _reset(self):
        self.confirmation_step = 0
        self.state = PushState.IDLE

    def _execute(self) -> PushResult:
        try:
            source, target = self._selected_records()
        except PushValidationError:
            self._reset()
            raise

        self.state = PushState.EXECUTING
        logger.info("Push operation started")
        logger.info(f"From: {source.display_name}")
        logger.info(f"To: {target.display_name}")
        logger.info(f"Type: {self.push_type.value}")

        try:
            target = self.registry.record_push(target.id)
        except Exception as e:
            logger.error(f"Push operation failed: {e}")
            raise
        finally:
            # A new push always starts from the first confirmation
            self._reset()

        pushed_at = target.last_pushed
        summary = (
            f"Pushed from {source.display_name} to {target.display_name} "
            f"at {pushed_at.astimezone().strftime('%H:%M:%S')}"
        )
        self.last_action = summary
        logger.info(f"Push operation completed: {summary}")

        return PushResult(
            summary=summary,
            push_type=self.push_type,
            pushed_at=pushed_at,
            source=source,
            target=target,
        )
