from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Tuple

from .models import (
    DeviceInfo,
    LocationRequestSpec,
    PermissionState,
    Position,
    SettingsState,
)

AppPair = Tuple[str, str]
ErrorCallback = Callable[[BaseException], None]
# schedule(delay_s, callback) -> handle, cancel(handle)
ScheduleFn = Callable[[float, Callable[[], None]], Any]
CancelFn = Callable[[Any], None]


class LocationProvider(Protocol):
    """Location platform: permissions, settings, cached fix and live updates.

    Asynchronous calls take one success and one failure continuation and
    deliver them on the UI thread.
    """

    def check_permission(self) -> PermissionState: ...
    def request_permission(self, on_result: Callable[[PermissionState], None]) -> None: ...
    def check_settings(
        self,
        spec: LocationRequestSpec,
        on_result: Callable[[SettingsState], None],
        on_error: ErrorCallback,
    ) -> None: ...
    def request_resolution(self, on_result: Callable[[bool], None], on_error: ErrorCallback) -> None: ...
    def get_last_known_position(
        self,
        on_success: Callable[[Optional[Position]], None],
        on_error: ErrorCallback,
    ) -> None: ...
    def subscribe(self, spec: LocationRequestSpec, on_update: Callable[[Position], None]) -> Any: ...
    def unsubscribe(self, handle: Any) -> None: ...


class InstalledAppsProvider(Protocol):
    def list_launchable_apps(self) -> List[AppPair]: ...


class DisplaySurface(Protocol):
    """Render-only screen: four text fields and a yes/no prompt hook."""

    def show_device_model(self, text: str) -> None: ...
    def show_os_version(self, text: str) -> None: ...
    def show_app_report(self, text: str) -> None: ...
    def show_location(self, text: str) -> None: ...
    def prompt(self, question: str, on_answer: Callable[[bool], None]) -> None: ...


DeviceReader = Callable[[], DeviceInfo]
