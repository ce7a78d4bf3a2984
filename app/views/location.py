from rich.text import Text
from textual.widgets import Static


class LocationView(Static):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_text = ""

    def update_location(self, text: str) -> None:
        self.current_text = text or ""
        style = "green" if self.current_text.startswith("Location:") else "yellow"
        self.update(Text(self.current_text, style=style))
