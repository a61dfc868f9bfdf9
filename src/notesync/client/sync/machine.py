"""Runs a story of steps until one terminates.

The machine owns everything the steps have in common:
- checking each transition against VALID_TRANSITIONS
- turning exceptions into one translated error message
- showing toasts and messages as far as the story mode allows
- the busy indicator
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping

from notesync.client.sync.collaborators import SyncCollaborators
from notesync.client.sync.messages import render, translate_exception
from notesync.client.sync.session import SynchronizationSession
from notesync.client.sync.steps import SYNC_STEPS, StepFunction
from notesync.client.sync.types import (
    VALID_TRANSITIONS,
    Continue,
    InvalidTransitionError,
    StepId,
    StepResult,
    StoryMode,
    SyncError,
    SyncOutcome,
    Terminate,
)

logger = logging.getLogger(__name__)

# Guard against step functions that loop
MAX_STEPS = 64


class SyncStepMachine:
    """Executes step functions, following their Continue results.

    Args:
        collaborators: Services passed to every step.
        steps: Step functions by id (defaults to the synchronization story).
        transitions: Allowed transitions (defaults to VALID_TRANSITIONS).
    """

    def __init__(
        self,
        collaborators: SyncCollaborators,
        steps: Mapping[StepId, StepFunction] | None = None,
        transitions: Mapping[StepId, Collection[StepId]] | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.steps = dict(steps) if steps is not None else dict(SYNC_STEPS)
        self.transitions = transitions if transitions is not None else VALID_TRANSITIONS

    async def run(
        self,
        start: StepId,
        session: SynchronizationSession,
        mode: StoryMode,
        allowed_steps: Collection[StepId] | None = None,
    ) -> SyncOutcome:
        """Run the story from `start` until a step terminates.

        Args:
            start: First step.
            session: Scratch data shared by the steps.
            mode: Which UI the steps may use.
            allowed_steps: If given, the run stops silently before any other step.

        Returns:
            What happened. A step leading to a step it may not lead to, or a
            story not ending within MAX_STEPS steps, ends the run with an error.
        """
        feedback = self.collaborators.feedback
        outcome = SyncOutcome(success=False, final_step=start)
        if StoryMode.BUSY_INDICATOR in mode:
            feedback.set_busy_indicator_visible(True)

        step = start
        for _ in range(MAX_STEPS):
            outcome.visited.append(step)
            outcome.final_step = step
            logger.debug(f"Running step {step.name}")
            result = await self._run_step(step, session, mode)

            if isinstance(result, Continue):
                if result.next_step not in self.transitions.get(step, ()):
                    error = InvalidTransitionError(
                        f"Invalid transition: {step.name} -> {result.next_step.name}"
                    )
                    logger.error(str(error))
                    return await self._finish(Terminate(success=False, error=error), mode, outcome)
                await self._show_feedback(result, mode, outcome)
                if allowed_steps is not None and result.next_step not in allowed_steps:
                    logger.debug(f"Step {result.next_step.name} not allowed, stopping")
                    outcome.aborted = True
                    self._hide_busy_indicator(mode)
                    return outcome
                step = result.next_step
                continue

            return await self._finish(result, mode, outcome)

        error = SyncError(f"Story did not end within {MAX_STEPS} steps")
        logger.error(str(error))
        return await self._finish(Terminate(success=False, error=error), mode, outcome)

    async def _run_step(
        self, step: StepId, session: SynchronizationSession, mode: StoryMode
    ) -> StepResult:
        function = self.steps.get(step)
        if function is None:
            return Terminate(success=False, error=SyncError(f"No function for step {step.name}"))
        try:
            return await function(session, self.collaborators, mode)
        except Exception as e:
            logger.warning(f"Step {step.name} failed: {type(e).__name__}: {e}")
            return Terminate(success=False, error=e)

    async def _finish(
        self, result: Terminate, mode: StoryMode, outcome: SyncOutcome
    ) -> SyncOutcome:
        outcome.success = result.success
        outcome.error = result.error
        outcome.awaiting = result.awaiting

        if result.error is not None:
            # Errors replace any other feedback of the step
            self._hide_busy_indicator(mode)
            key = translate_exception(result.error)
            outcome.message_keys.append(key)
            if StoryMode.TOASTS in mode:
                self.collaborators.feedback.show_toast(render(key))
            return outcome

        if not result.success:
            self._hide_busy_indicator(mode)
        await self._show_feedback(result, mode, outcome)
        if result.success:
            self._hide_busy_indicator(mode)
        return outcome

    async def _show_feedback(
        self, result: StepResult, mode: StoryMode, outcome: SyncOutcome
    ) -> None:
        feedback = self.collaborators.feedback
        if result.message is not None:
            outcome.message_keys.append(result.message)
            if StoryMode.MESSAGES in mode:
                await feedback.show_message(render(result.message, **result.message_args))
        if result.toast is not None:
            outcome.message_keys.append(result.toast)
            if StoryMode.TOASTS in mode:
                feedback.show_toast(render(result.toast, **result.message_args))

    def _hide_busy_indicator(self, mode: StoryMode) -> None:
        if StoryMode.BUSY_INDICATOR in mode:
            self.collaborators.feedback.set_busy_indicator_visible(False)

