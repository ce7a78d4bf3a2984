from rich.text import Text
from textual.widgets import Static

FINANCIAL_MARKER = "(Financial)"


class AppsView(Static):
    """Installed-apps report; the financial marker is drawn in bold red."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_text = ""

    def update_report(self, report: str) -> None:
        self.current_text = report or ""
        body = Text(self.current_text)
        # header line in bold
        if self.current_text:
            body.stylize("bold", 0, len(self.current_text.split("\n", 1)[0]))
        body.highlight_words([FINANCIAL_MARKER], style="bold red")
        self.update(body)
