"""Types of the synchronization state machine.

Steps:
    IS_CLOUD_SERVICE_SET -> EXISTS_CLOUD_REPOSITORY | SHOW_FIRST_TIME_DIALOG
    EXISTS_CLOUD_REPOSITORY -> DOWNLOAD_CLOUD_REPOSITORY
                            -> STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT  (first sync)
                            -> SHOW_CLOUD_STORAGE_ACCOUNT  (OAuth login expired)
    DOWNLOAD_CLOUD_REPOSITORY -> EXISTS_TRANSFER_CODE
    EXISTS_TRANSFER_CODE -> DECRYPT_CLOUD_REPOSITORY | SHOW_TRANSFER_CODE
    DECRYPT_CLOUD_REPOSITORY -> IS_SAME_REPOSITORY | SHOW_TRANSFER_CODE
    IS_SAME_REPOSITORY -> STORE_MERGED_REPOSITORY_AND_QUIT | SHOW_MERGE_CHOICE
    STORE_*_AND_QUIT -> STOP_AND_SHOW_REPOSITORY

SHOW_* steps are dialogs: they end the run and the dialog resumes the story
at another step once the user answered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag, auto
from typing import Any


class StepId(Enum):
    """Identifier of a step of the synchronization story."""

    IS_CLOUD_SERVICE_SET = auto()
    SHOW_FIRST_TIME_DIALOG = auto()
    SHOW_CLOUD_STORAGE_CHOICE = auto()
    SHOW_CLOUD_STORAGE_ACCOUNT = auto()
    HANDLE_OAUTH_REDIRECT = auto()
    EXISTS_CLOUD_REPOSITORY = auto()
    DOWNLOAD_CLOUD_REPOSITORY = auto()
    EXISTS_TRANSFER_CODE = auto()
    SHOW_TRANSFER_CODE = auto()
    DECRYPT_CLOUD_REPOSITORY = auto()
    IS_SAME_REPOSITORY = auto()
    SHOW_MERGE_CHOICE = auto()
    STORE_MERGED_REPOSITORY_AND_QUIT = auto()
    STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT = auto()
    STORE_CLOUD_REPOSITORY_TO_DEVICE_AND_QUIT = auto()
    STOP_AND_SHOW_REPOSITORY = auto()

    # Single note pull/push story
    PULL_PUSH_EXISTS_CLOUD_REPOSITORY = auto()
    PULL_PUSH_DOWNLOAD = auto()
    PULL_PUSH_DECRYPT = auto()
    PULL_PUSH_STORE = auto()


# Steps which only show UI and end the run
DIALOG_STEPS: frozenset[StepId] = frozenset(
    {
        StepId.SHOW_FIRST_TIME_DIALOG,
        StepId.SHOW_CLOUD_STORAGE_CHOICE,
        StepId.SHOW_CLOUD_STORAGE_ACCOUNT,
        StepId.SHOW_TRANSFER_CODE,
        StepId.SHOW_MERGE_CHOICE,
    }
)

# Valid step transitions
VALID_TRANSITIONS: dict[StepId, set[StepId]] = {
    StepId.IS_CLOUD_SERVICE_SET: {
        StepId.EXISTS_CLOUD_REPOSITORY,
        StepId.SHOW_FIRST_TIME_DIALOG,
    },
    StepId.SHOW_FIRST_TIME_DIALOG: set(),  # Dialog
    StepId.SHOW_CLOUD_STORAGE_CHOICE: set(),  # Dialog
    StepId.SHOW_CLOUD_STORAGE_ACCOUNT: set(),  # Dialog
    StepId.HANDLE_OAUTH_REDIRECT: {
        StepId.EXISTS_CLOUD_REPOSITORY,
        StepId.STOP_AND_SHOW_REPOSITORY,
    },
    StepId.EXISTS_CLOUD_REPOSITORY: {
        StepId.DOWNLOAD_CLOUD_REPOSITORY,
        StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT,
        StepId.SHOW_CLOUD_STORAGE_ACCOUNT,
    },
    StepId.DOWNLOAD_CLOUD_REPOSITORY: {StepId.EXISTS_TRANSFER_CODE},
    StepId.EXISTS_TRANSFER_CODE: {
        StepId.DECRYPT_CLOUD_REPOSITORY,
        StepId.SHOW_TRANSFER_CODE,
    },
    StepId.SHOW_TRANSFER_CODE: set(),  # Dialog
    StepId.DECRYPT_CLOUD_REPOSITORY: {
        StepId.IS_SAME_REPOSITORY,
        StepId.SHOW_TRANSFER_CODE,
    },
    StepId.IS_SAME_REPOSITORY: {
        StepId.STORE_MERGED_REPOSITORY_AND_QUIT,
        StepId.SHOW_MERGE_CHOICE,
    },
    StepId.SHOW_MERGE_CHOICE: set(),  # Dialog
    StepId.STORE_MERGED_REPOSITORY_AND_QUIT: {StepId.STOP_AND_SHOW_REPOSITORY},
    StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT: {StepId.STOP_AND_SHOW_REPOSITORY},
    StepId.STORE_CLOUD_REPOSITORY_TO_DEVICE_AND_QUIT: {StepId.STOP_AND_SHOW_REPOSITORY},
    StepId.STOP_AND_SHOW_REPOSITORY: set(),  # Terminal
    StepId.PULL_PUSH_EXISTS_CLOUD_REPOSITORY: {StepId.PULL_PUSH_DOWNLOAD},
    StepId.PULL_PUSH_DOWNLOAD: {StepId.PULL_PUSH_DECRYPT},
    StepId.PULL_PUSH_DECRYPT: {StepId.PULL_PUSH_STORE},
    StepId.PULL_PUSH_STORE: set(),  # Terminal
}

# Steps a headless run may pass through: merging, or the first upload to an
# empty cloud storage
SILENT_STEPS: frozenset[StepId] = frozenset(
    {
        StepId.IS_CLOUD_SERVICE_SET,
        StepId.EXISTS_CLOUD_REPOSITORY,
        StepId.DOWNLOAD_CLOUD_REPOSITORY,
        StepId.EXISTS_TRANSFER_CODE,
        StepId.DECRYPT_CLOUD_REPOSITORY,
        StepId.IS_SAME_REPOSITORY,
        StepId.STORE_MERGED_REPOSITORY_AND_QUIT,
        StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT,
        StepId.STOP_AND_SHOW_REPOSITORY,
    }
)


class StoryMode(IntFlag):
    """What kind of UI a run may use.

    Steps check single flags, since some need only part of the UI.
    """

    SILENT = 0
    DIALOGS = auto()
    BUSY_INDICATOR = auto()
    TOASTS = auto()
    MESSAGES = auto()
    GUI = DIALOGS | BUSY_INDICATOR | TOASTS | MESSAGES


class MessageKey(str, Enum):
    """Keys of user visible texts."""

    SYNC_SUCCESS = "sync_success"
    SYNC_REJECT = "sync_reject"
    SYNC_ERROR_CONNECTION = "sync_error_connection"
    SYNC_ERROR_PRIVILEGES = "sync_error_privileges"
    SYNC_ERROR_REPOSITORY = "sync_error_repository"
    SYNC_ERROR_REVISION = "sync_error_revision"
    SYNC_ERROR_TRANSFERCODE = "sync_error_transfercode"
    SYNC_ERROR_GENERIC = "sync_error_generic"
    TRANSFER_CODE_CREATED = "transfer_code_created"
    PUSHPULL_SUCCESS = "pushpull_success"
    PUSHPULL_ERROR_NEED_SYNC_FIRST = "pushpull_error_need_sync_first"
    PUSHPULL_ERROR_NO_CLOUD_NOTE = "pushpull_error_no_cloud_note"


@dataclass(frozen=True)
class Continue:
    """Go on with another step, optionally telling the user something first."""

    next_step: StepId
    toast: MessageKey | None = None
    message: MessageKey | None = None
    message_args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Terminate:
    """End the run.

    Attributes:
        success: Whether the run reached its goal (or is waiting in a dialog).
        toast: Short notification to show.
        message: Message the user must acknowledge.
        message_args: Values to format into the texts.
        error: The exception which ended the run.
        awaiting: The dialog step which waits for user input.
    """

    success: bool
    toast: MessageKey | None = None
    message: MessageKey | None = None
    message_args: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    awaiting: StepId | None = None


StepResult = Continue | Terminate


@dataclass
class SyncOutcome:
    """What happened during a run.

    Attributes:
        success: True if the run finished without error.
        final_step: The last step which ran.
        visited: All steps in the order they ran.
        error: The exception which ended the run, if any.
        message_keys: Every text shown (or suppressed by the mode), in order.
        awaiting: Dialog step waiting for the user, if the run stopped there.
        aborted: True if a headless run stopped at a step it may not enter.
    """

    success: bool
    final_step: StepId
    visited: list[StepId] = field(default_factory=list)
    error: BaseException | None = None
    message_keys: list[MessageKey] = field(default_factory=list)
    awaiting: StepId | None = None
    aborted: bool = False


class SyncError(Exception):
    """Base exception for synchronization errors."""


class UnsupportedRepositoryRevisionError(SyncError):
    """The cloud repository was written by a newer version of the app."""

    def __init__(self, revision: int, newest_supported: int) -> None:
        super().__init__(
            f"Repository revision {revision} is newer than the supported "
            f"revision {newest_supported}"
        )
        self.revision = revision
        self.newest_supported = newest_supported


class InvalidTransitionError(SyncError):
    """Raised when a step continues with a step it may not lead to."""
