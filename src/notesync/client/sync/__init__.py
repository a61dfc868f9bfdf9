"""Synchronization story - steps, machine and service."""

from notesync.client.sync.collaborators import (
    FeedbackService,
    NavigationService,
    NullFeedback,
    NullNavigation,
    Route,
    SyncCollaborators,
)
from notesync.client.sync.machine import MAX_STEPS, SyncStepMachine
from notesync.client.sync.messages import TEXTS, render, translate_exception
from notesync.client.sync.pull_push import (
    PullPushDirection,
    PullPushSession,
    PullPushStory,
)
from notesync.client.sync.service import SynchronizationService, should_synchronize
from notesync.client.sync.session import SynchronizationSession
from notesync.client.sync.state import SynchronizationState
from notesync.client.sync.steps import (
    SYNC_STEPS,
    StepFunction,
    encrypt_for_cloud,
    encrypt_repository,
)
from notesync.client.sync.types import (
    DIALOG_STEPS,
    SILENT_STEPS,
    VALID_TRANSITIONS,
    Continue,
    InvalidTransitionError,
    MessageKey,
    StepId,
    StepResult,
    StoryMode,
    SyncError,
    SyncOutcome,
    Terminate,
    UnsupportedRepositoryRevisionError,
)

__all__ = [
    # Collaborators
    "FeedbackService",
    "NavigationService",
    "NullFeedback",
    "NullNavigation",
    "Route",
    "SyncCollaborators",
    # Machine
    "MAX_STEPS",
    "SYNC_STEPS",
    "StepFunction",
    "SyncStepMachine",
    "encrypt_for_cloud",
    "encrypt_repository",
    # Messages
    "TEXTS",
    "render",
    "translate_exception",
    # Stories
    "PullPushDirection",
    "PullPushSession",
    "PullPushStory",
    "SynchronizationService",
    "SynchronizationSession",
    "SynchronizationState",
    "should_synchronize",
    # Types
    "Continue",
    "DIALOG_STEPS",
    "InvalidTransitionError",
    "MessageKey",
    "SILENT_STEPS",
    "StepId",
    "StepResult",
    "StoryMode",
    "SyncError",
    "SyncOutcome",
    "Terminate",
    "UnsupportedRepositoryRevisionError",
    "VALID_TRANSITIONS",
]
