# app/views/log.py
import logging

from rich.text import Text
from textual.widgets import Static


class LogView(Static):
    """Tiny append-only log widget, independent of Static internals."""

    MAX_LINES = 200

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Internal line buffer we control
        self.buffer_lines: list[str] = []

    def _refresh_buffer(self) -> None:
        self.update(Text("\n".join(self.buffer_lines)))

    def log(self, text: str) -> None:
        """Append a line to the log."""
        self.buffer_lines.append(text)
        del self.buffer_lines[: -self.MAX_LINES]
        self._refresh_buffer()


class LogViewHandler(logging.Handler):
    """Route log records onto a LogView; the terminal itself belongs to Textual."""

    def __init__(self, view: LogView, level: int = logging.NOTSET):
        super().__init__(level)
        self.view = view
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.view.log(self.format(record))
        except Exception:
            self.handleError(record)
