from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static


class ConfirmPrompt(ModalScreen[bool]):
    """Yes/No dialog used for the permission and location-settings requests."""

    DEFAULT_CSS = """
    ConfirmPrompt { align: center middle; }
    ConfirmPrompt > Vertical { width: 60; height: auto; border: thick $primary; padding: 1 2; background: $surface; }
    ConfirmPrompt Horizontal { height: auto; margin-top: 1; }
    """
    BINDINGS = [("y", "answer(True)", "Allow"), ("n", "answer(False)", "Deny")]

    def __init__(self, question: str):
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(f"[b]{self.question}[/b]")
            with Horizontal():
                yield Button("Deny", id="cp_deny")
                yield Button("Allow", id="cp_allow", variant="primary")

    def on_mount(self):
        try:
            self.query_one("#cp_allow", Button).focus()
        except Exception:
            pass

    def action_answer(self, allowed: bool) -> None:
        self.dismiss(allowed)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "cp_allow")
