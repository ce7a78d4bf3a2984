from dataclasses import dataclass
from typing import Optional
from .models import DeviceInfo


@dataclass
class AppState:
    device: Optional[DeviceInfo] = None
    app_report: str = ""
    location_text: str = ""
    paused: bool = True
