import asyncio
from typing import Optional
from quicknotes.client.composer import NoteComposer
from quicknotes.client.credential_store import CredentialStore
from quicknotes.client.credentials import AuthSession
from quicknotes.client.gateway_client import GatewayClient
from quicknotes.client.notifications import Notification, Notifier
from quicknotes.client.search_controller import SearchController
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)

PROMPT = "notes> "
MASK = "********"


def _mask(token: Optional[str]) -> str:
    if not token:
        return "(not set)"
    return token[:4] + MASK + token[-4:] if len(token) > 8 else MASK


def _print_help():
    print("Quick Notes commands:")
    print("  login <token>        validate and store a GitHub token")
    print("  logout               forget the stored token and draft")
    print("  whoami               show the signed-in user")
    print("  repo [owner/name]    show or set the target repository")
    print("  theme [light|dark]   show or set the display theme")
    print("  note <text>          replace the note text")
    print("  note+ <text>         append a line to the note")
    print("  search <text>        search issues (debounced)")
    print("  pick <n>             choose suggestion n (1-based)")
    print("  new                  toggle 'create new issue'")
    print("  title <text>         set the new issue title")
    print("  labels [filter]      list label candidates")
    print("  label <name>         add a label")
    print("  unlabel <name>       remove a label")
    print("  save                 save the note (same as Ctrl/Cmd+Enter)")
    print("  status               show the current draft")
    print("  exit                 quit")


class NotesShell:
    """対話型フロントエンド（コンポーザーの状態を操作する）"""

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        gateway: Optional[GatewayClient] = None,
    ):
        self.store = store or CredentialStore()
        self.gateway = gateway or GatewayClient()
        self.notifier = Notifier()
        self.session = AuthSession(self.store, self.gateway, self.notifier)
        self.search = SearchController(
            self.gateway, self.session, lambda: self.session.repository
        )
        self.composer = NoteComposer(self.gateway, self.session, self.search, self.notifier)

        self.notifier.subscribe(self._print_notification)
        self.search.subscribe(self._print_suggestions)

    @staticmethod
    def _print_notification(notification: Notification):
        mark = "✓" if notification.kind == "success" else "✗"
        line = f"{mark} {notification.message}"
        if notification.url:
            line += f"\n  {notification.url}"
        print(line)

    def _print_suggestions(self, search: SearchController):
        if search.is_searching:
            print("Searching...")
            return
        for i, issue in enumerate(search.results, 1):
            state = f" [{issue.state}]" if issue.state else ""
            print(f"  {i}. #{issue.number} {issue.title}{state}")

    async def start(self):
        """ストア読み込み → 保存済みトークン再検証 → ラベル取得"""
        self.store.load()
        if await self.session.restore():
            print(f"Signed in as {self.session.user.display_name}")
            await self.composer.load_labels()
        else:
            print("Not signed in. Use 'login <token>'.")

    def _status(self) -> str:
        c = self.composer
        lines = [
            f"Repository: {self.session.repository.full_name}",
            f"State: {c.state.value}",
            f"Note: {c.note!r}",
        ]
        if c.selected_issue:
            lines.append(f"Issue: #{c.selected_issue.number} {c.selected_issue.title}")
        if c.new_issue_mode:
            lines.append(f"Title: {c.new_issue_title!r}")
            lines.append(f"Labels: {', '.join(c.selected_labels) or '(none)'}")
        lines.append(f"Save enabled: {'yes' if c.can_save else 'no'}")
        return "\n".join(lines)

    async def handle_line(self, line: str) -> Optional[str]:
        if not line:
            return None

        command, _, arg = line.partition(" ")
        arg = arg.strip()

        if command == "help":
            _print_help()
            return None

        if command == "login":
            if not arg:
                return f"Current token: {_mask(self.session.current_token())}"
            if await self.session.sign_in(arg):
                await self.composer.load_labels()
                return f"Signed in as {self.session.user.display_name}"
            return None

        if command == "logout":
            self.session.logout()
            return "Signed out."

        if command == "whoami":
            user = self.session.user
            return f"{user.display_name} (@{user.login})" if user else "Not signed in."

        if command == "repo":
            if not arg:
                return f"Current repository: {self.session.repository.full_name}"
            owner, sep, name = arg.partition("/")
            try:
                if not sep:
                    raise ValueError("use owner/name")
                repo = self.session.set_repository(owner, name)
            except ValueError as e:
                return f"Invalid repository: {e}"
            await self.composer.load_labels()
            return f"Repository set to {repo.full_name}"

        if command == "theme":
            if not arg:
                return f"Current theme: {self.session.theme}"
            try:
                return f"Theme set to {self.session.set_theme(arg)}"
            except ValueError as e:
                return str(e)

        if command == "note":
            self.composer.set_note(arg)
            return None

        if command == "note+":
            current = self.composer.note
            self.composer.set_note(f"{current}\n{arg}" if current else arg)
            return None

        if command == "search":
            self.search.set_query(arg)
            return None

        if command == "pick":
            if not arg.isdigit():
                return "Usage: pick <n>"
            index = int(arg) - 1
            if not 0 <= index < len(self.search.results):
                return "No such suggestion."
            issue = self.search.results[index]
            self.composer.select_issue(issue)
            return f"Selected #{issue.number} {issue.title}"

        if command == "new":
            self.composer.toggle_new_issue()
            return "New issue mode on." if self.composer.new_issue_mode else "New issue mode off."

        if command == "title":
            self.composer.set_title(arg)
            return None

        if command == "labels":
            self.composer.set_label_filter(arg)
            names = [label.name for label in self.composer.label_candidates]
            return ", ".join(names) if names else "(no matching labels)"

        if command == "label":
            if not self.composer.pick_label(arg):
                return f"No such label: {arg}" if arg else "Usage: label <name>"
            return f"Labels: {', '.join(self.composer.selected_labels)}"

        if command == "unlabel":
            self.composer.remove_label(arg)
            return f"Labels: {', '.join(self.composer.selected_labels) or '(none)'}"

        if command == "save":
            if not self.composer.note.strip():
                return "Nothing to save yet."
            if self.composer.new_issue_mode and not self.composer.new_issue_title.strip():
                return "Enter a title for the new issue first."
            await self.composer.handle_key("Enter", ctrl=True)
            return None

        if command == "status":
            return self._status()

        return "unrecognized command (try 'help')"


async def run(shell: Optional[NotesShell] = None):
    shell = shell or NotesShell()
    _print_help()
    await shell.start()

    loop = asyncio.get_running_loop()
    try:
        while True:
            try:
                # 入力待ちの間もデバウンスタイマーと検索は動き続ける
                line = await loop.run_in_executor(None, input, PROMPT)
            except EOFError:
                print("\nExiting.")
                return
            line = line.strip()
            if line in ("exit", "quit"):
                print("Exiting.")
                return
            msg = await shell.handle_line(line)
            if msg:
                print(msg)
    finally:
        shell.search.close()
