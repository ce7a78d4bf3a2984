from rich.text import Text
from textual.widgets import Static


class DeviceInfoView(Static):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.model_text = "Device Model: -"
        self.os_text = "OS Version: -"

    @property
    def current_text(self) -> str:
        return f"{self.model_text}\n{self.os_text}"

    def set_model(self, text: str) -> None:
        self.model_text = text
        self.update(Text(self.current_text))

    def set_os_version(self, text: str) -> None:
        self.os_text = text
        self.update(Text(self.current_text))
