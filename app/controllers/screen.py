import logging
from typing import Any, Dict, Optional

from phone_data_core.models import LOCATION_REQUEST
from phone_data_core.ports import CancelFn, DeviceReader, DisplaySurface, InstalledAppsProvider, LocationProvider, ScheduleFn
from phone_data_core.state import AppState
from app.controllers.location import LocationAcquisitionController
from app.services import classifier
from app.services.device import read_device_info

log = logging.getLogger(__name__)


class ScreenController:
    """Wires device info, the app report and location acquisition to one screen."""

    def __init__(
        self,
        settings: Dict[str, Any],
        display: DisplaySurface,
        location_provider: LocationProvider,
        apps_provider: InstalledAppsProvider,
        device_reader: DeviceReader = read_device_info,
        schedule: Optional[ScheduleFn] = None,
        cancel: Optional[CancelFn] = None,
    ):
        self.settings = settings
        self.display = display
        self.apps_provider = apps_provider
        self.device_reader = device_reader
        self.state = AppState()
        loc_cfg = settings.get("location", {}) or {}
        self.location = LocationAcquisitionController(
            location_provider,
            report=self._show_location,
            request=LOCATION_REQUEST,
            schedule=schedule,
            cancel=cancel,
            call_timeout_s=loc_cfg.get("call_timeout_s"),
        )

    @property
    def keywords(self):
        extra = (self.settings.get("classifier", {}) or {}).get("extra_keywords") or []
        return tuple(classifier.FINANCIAL_KEYWORDS) + tuple(str(k) for k in extra)

    # ─────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────
    def create(self) -> None:
        info = self.device_reader()
        self.state.device = info
        self.display.show_device_model(f"Device Model: {info.model}")
        self.display.show_os_version(f"OS Version: {info.os_version}")
        log.debug("Fetching installed apps...")
        self.refresh_apps()

    def resume(self) -> None:
        if not self.state.paused:
            return
        self.state.paused = False
        self.location.start()

    def pause(self) -> None:
        self.state.paused = True
        self.location.pause()

    def destroy(self) -> None:
        self.state.paused = True
        self.location.close()

    # ─────────────────────────────────────
    # Forwarded results
    # ─────────────────────────────────────
    def on_permission_result(self, granted: bool) -> None:
        self.location.on_permission_result(granted)

    def on_resolution_result(self, resolved: bool) -> None:
        self.location.on_resolution_result(resolved)

    # ─────────────────────────────────────
    # Apps
    # ─────────────────────────────────────
    def refresh_apps(self) -> str:
        try:
            entries = self.apps_provider.list_launchable_apps()
        except OSError as e:
            log.error("Listing launchable apps failed: %s", e)
            report = f"{classifier.REPORT_HEADER}\nCould not list apps: {e}"
        else:
            if not entries:
                log.debug("No launchable apps found.")
            report = classifier.classify(entries, self.keywords)
        self.state.app_report = report
        self.display.show_app_report(report)
        return report

    def _show_location(self, text: str) -> None:
        self.state.location_text = text
        self.display.show_location(text)
