"""
Note composer state machine.

IDLE -> EXISTING_SELECTED | NEW_ISSUE_MODE -> SAVING -> IDLE on success,
or back to the state before SAVING on failure with the draft untouched.
"""

from enum import Enum
from typing import List, Optional
from quicknotes.client.credentials import AuthSession
from quicknotes.client.gateway_client import GatewayClient, GatewayUnauthorizedError
from quicknotes.client.notifications import Notifier
from quicknotes.client.search_controller import SearchController
from quicknotes.github.models import Issue, Label
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)

NO_DESTINATION_MESSAGE = "Please select an issue or create a new one"
SAVE_FAILED_MESSAGE = "Failed to save note. Please try again."


class ComposerState(str, Enum):
    IDLE = "idle"
    EXISTING_SELECTED = "existing_selected"
    NEW_ISSUE_MODE = "new_issue_mode"
    SAVING = "saving"


class NoteComposer:
    """Holds the note draft and its destination, and drives Save."""

    def __init__(
        self,
        gateway: GatewayClient,
        session: AuthSession,
        search: SearchController,
        notifier: Notifier,
    ):
        self.gateway = gateway
        self.session = session
        self.search = search
        self.notifier = notifier

        self.note = ""
        self.selected_issue: Optional[Issue] = None
        self.new_issue_mode = False
        self.new_issue_title = ""
        self.selected_labels: List[str] = []
        self.label_filter = ""
        self.available_labels: List[Label] = []
        self.is_saving = False

        session.on_logout(self.reset)

    @property
    def state(self) -> ComposerState:
        if self.is_saving:
            return ComposerState.SAVING
        if self.new_issue_mode:
            return ComposerState.NEW_ISSUE_MODE
        if self.selected_issue is not None:
            return ComposerState.EXISTING_SELECTED
        return ComposerState.IDLE

    # ---------- draft editing ----------

    def set_note(self, text: str):
        self.note = text

    def set_title(self, text: str):
        self.new_issue_title = text

    def select_issue(self, issue: Issue):
        """Choose an existing issue; leaves new-issue mode."""
        self.selected_issue = issue
        self.new_issue_mode = False
        self.new_issue_title = ""
        self.search.show_selection(f"#{issue.number} {issue.title}")

    def clear_selection(self):
        self.selected_issue = None

    def toggle_new_issue(self):
        """Open new-issue mode, or collapse it back to IDLE discarding the title."""
        if self.new_issue_mode:
            self.new_issue_mode = False
            self.new_issue_title = ""
            return
        self.new_issue_mode = True
        self.selected_issue = None
        self.search.set_query("")

    @property
    def can_save(self) -> bool:
        if self.is_saving or not self.note.strip():
            return False
        if self.new_issue_mode:
            return bool(self.new_issue_title.strip())
        return self.selected_issue is not None

    # ---------- labels ----------

    async def load_labels(self) -> List[Label]:
        """Fetch labels for the active repository; failures leave an empty list."""
        token = self.session.current_token()
        if not token:
            self.available_labels = []
            return self.available_labels
        try:
            self.available_labels = await self.gateway.list_labels(token, self.session.repository)
        except GatewayUnauthorizedError:
            self.available_labels = []
            self.session.handle_unauthorized()
        except Exception as e:
            logger.debug(f"Label fetch failed: {e}")
            self.available_labels = []
        return self.available_labels

    def set_label_filter(self, text: str):
        self.label_filter = text

    @property
    def label_candidates(self) -> List[Label]:
        needle = self.label_filter.strip().lower()
        return [
            label
            for label in self.available_labels
            if label.name not in self.selected_labels and needle in label.name.lower()
        ]

    def pick_label(self, name: str) -> bool:
        """Add a label to the selection and clear the filter box.

        Only labels fetched for the active repository can be picked; a blank
        or unknown name is ignored and False is returned.
        """
        name = name.strip()
        if not name or name not in {label.name for label in self.available_labels}:
            return False
        if name not in self.selected_labels:
            self.selected_labels.append(name)
        self.label_filter = ""
        return True

    def remove_label(self, name: str):
        if name in self.selected_labels:
            self.selected_labels.remove(name)

    def toggle_label(self, name: str):
        if name in self.selected_labels:
            self.remove_label(name)
        else:
            self.pick_label(name)

    # ---------- save ----------

    async def save(self) -> bool:
        """Create an issue or add a comment; returns True when the note was saved."""
        if self.is_saving or not self.note.strip():
            return False
        if self.new_issue_mode and not self.new_issue_title.strip():
            return False
        if not self.new_issue_mode and self.selected_issue is None:
            self.notifier.error(NO_DESTINATION_MESSAGE)
            return False

        token = self.session.current_token()
        if not token:
            self.notifier.error(SAVE_FAILED_MESSAGE)
            return False

        repo = self.session.repository
        self.is_saving = True
        try:
            if self.new_issue_mode:
                created = await self.gateway.create_issue(
                    token, self.new_issue_title, self.note, list(self.selected_labels), repo
                )
                message = f"New issue #{created.number} created successfully!"
                url = created.url
            else:
                number = self.selected_issue.number
                comment = await self.gateway.add_comment(token, number, self.note, repo)
                message = f"Comment added to issue #{number} successfully!"
                url = comment.url
        except GatewayUnauthorizedError:
            self.is_saving = False
            self.notifier.error(SAVE_FAILED_MESSAGE)
            self.session.handle_unauthorized()
            return False
        except Exception as e:
            logger.error(f"Save failed: {e}")
            self.is_saving = False
            self.notifier.error(SAVE_FAILED_MESSAGE)
            return False

        self.is_saving = False
        self.reset()
        self.notifier.success(message, url)
        logger.info(f"{message} ({url})")
        return True

    async def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """Ctrl/Cmd+Enter saves; returns True when the key was consumed."""
        if key == "Enter" and (ctrl or meta):
            await self.save()
            return True
        return False

    def reset(self):
        """Back to an empty IDLE draft."""
        self.note = ""
        self.selected_issue = None
        self.new_issue_mode = False
        self.new_issue_title = ""
        self.selected_labels = []
        self.label_filter = ""
        self.search.show_selection("")
