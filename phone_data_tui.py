import logging
from typing import Any, Callable, List, Optional

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Footer, Header

from app.controllers.screen import ScreenController
from app.services.apps import build_apps_provider
from app.services.device import read_device_info
from app.services.location import TrackLocationProvider
from app.services.settings import load_settings
from app.utils.logging import configure_root, release_handlers
from app.views.apps import AppsView
from app.views.device_info import DeviceInfoView
from app.views.location import LocationView
from app.views.log import LogView, LogViewHandler
from app.views.prompt import ConfirmPrompt

log = logging.getLogger("phone_data_tui")


# ─────────────────────────────────────────
# App
# ─────────────────────────────────────────
class PhoneDataTUI(App):
    CSS = """
    Screen { layout: vertical; }
    #toolbar { height: 3; }
    #main { height: 1fr; }
    #left { width: 48; }
    #right { width: 1fr; }
    #device { height: 3; padding: 0 1; }
    #location { height: 3; padding: 0 1; border-top: solid $surface; }
    #apps { height: 1fr; padding: 0 1; }
    #log { height: 6; border-top: solid $surface; }
    """
    TITLE = "Phone Data"
    BINDINGS = [
        ("l", "locate", "Locate"),
        ("p", "toggle_pause", "Pause/Resume"),
        ("a", "refresh_apps", "Refresh Apps"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        settings: Optional[dict] = None,
        settings_path: str = "settings.yaml",
        apps_provider: Any = None,
        device_reader: Callable = read_device_info,
        location_provider: Any = None,
    ):
        super().__init__()
        self.settings = settings if settings is not None else load_settings(settings_path)
        self._apps_provider = apps_provider
        self._device_reader = device_reader
        self._location_provider = location_provider
        self._log_handlers: List[logging.Handler] = []
        self.controller: Optional[ScreenController] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="toolbar"):
            yield Button("Locate", id="btn_locate")
            yield Button("Pause", id="btn_pause")
            yield Button("Refresh Apps", id="btn_apps")
        with Horizontal(id="main"):
            with Vertical(id="left"):
                self.device_view = DeviceInfoView(id="device")
                yield self.device_view
                self.location_view = LocationView(id="location")
                yield self.location_view
            with VerticalScroll(id="right"):
                self.apps_view = AppsView(id="apps")
                yield self.apps_view
        self.log_panel = LogView(id="log")
        yield self.log_panel
        yield Footer()

    @property
    def _toolbar_ids(self):
        return ["btn_locate", "btn_pause", "btn_apps"]

    def _focus_toolbar_index(self, idx: int):
        ids = self._toolbar_ids
        idx = max(0, min(len(ids) - 1, idx))
        try:
            self.query_one(f"#{ids[idx]}").focus()
        except Exception:
            pass
        self._focused_idx = idx

    def on_mount(self):
        self._focused_idx = 0
        self._focus_toolbar_index(0)

        self._log_handlers = configure_root(
            self.settings.get("log_level", "INFO"),
            handlers=[LogViewHandler(self.log_panel)],
            log_path=self.settings.get("log_path"),
        )

        provider = self._location_provider or TrackLocationProvider(
            self.settings,
            schedule=self._schedule_once,
            repeat=self._schedule_repeat,
            cancel=self._stop_timer,
            prompt=self.prompt,
        )
        apps = self._apps_provider or build_apps_provider(self.settings)
        self.controller = ScreenController(
            self.settings,
            display=self,
            location_provider=provider,
            apps_provider=apps,
            device_reader=self._device_reader,
            schedule=self._schedule_once,
            cancel=self._stop_timer,
        )
        self.controller.create()
        log.info("Screen ready (location permission mode: %s)", self.settings.get("location", {}).get("permission"))
        self.controller.resume()

    def on_unmount(self):
        if self.controller is not None:
            self.controller.destroy()
        release_handlers(self._log_handlers)
        self._log_handlers = []

    # ─────────────────────────────────────
    # Lifecycle forwarding
    # ─────────────────────────────────────
    def on_app_blur(self, event: events.AppBlur) -> None:
        if self.controller is not None:
            self.controller.pause()

    def on_app_focus(self, event: events.AppFocus) -> None:
        if self.controller is not None:
            self.controller.resume()

    async def on_key(self, event: events.Key):
        focused = self.focused
        ids = self._toolbar_ids
        if not focused or getattr(focused, "id", None) not in ids:
            return
        if event.key in ("left", "right"):
            step = -1 if event.key == "left" else 1
            self._focus_toolbar_index((self._focused_idx + step) % len(ids))
            event.stop()

    def on_button_pressed(self, event: Button.Pressed):
        actions = {
            "btn_locate": self.action_locate,
            "btn_pause": self.action_toggle_pause,
            "btn_apps": self.action_refresh_apps,
        }
        action = actions.get(event.button.id)
        if action is not None:
            action()

    # ─────────────────────────────────────
    # Toolbar actions
    # ─────────────────────────────────────
    def action_locate(self):
        if self.controller is None:
            return
        self.controller.state.paused = False
        self._set_pause_label()
        self.controller.location.start()

    def action_toggle_pause(self):
        if self.controller is None:
            return
        if self.controller.state.paused:
            self.controller.resume()
            log.info("Resumed.")
        else:
            self.controller.pause()
            log.info("Paused; live updates released.")
        self._set_pause_label()

    def action_refresh_apps(self):
        if self.controller is not None:
            self.controller.refresh_apps()

    def _set_pause_label(self):
        try:
            label = "Resume" if self.controller.state.paused else "Pause"
            self.query_one("#btn_pause", Button).label = label
        except Exception:
            pass

    # ─────────────────────────────────────
    # DisplaySurface
    # ─────────────────────────────────────
    def show_device_model(self, text: str) -> None:
        self.device_view.set_model(text)

    def show_os_version(self, text: str) -> None:
        self.device_view.set_os_version(text)

    def show_app_report(self, text: str) -> None:
        self.apps_view.update_report(text)

    def show_location(self, text: str) -> None:
        if not self.location_view.is_attached:
            raise RuntimeError("location view is not mounted")
        self.location_view.update_location(text)

    def prompt(self, question: str, on_answer: Callable[[bool], None]) -> None:
        self.push_screen(ConfirmPrompt(question), callback=lambda answer: on_answer(bool(answer)))

    # ─────────────────────────────────────
    # Timers (everything runs on the app's event loop)
    # ─────────────────────────────────────
    def _schedule_once(self, delay: float, callback: Callable[[], None]):
        if delay <= 0:
            self.call_later(callback)
            return None
        return self.set_timer(delay, callback)

    def _schedule_repeat(self, interval: float, callback: Callable[[], None]):
        return self.set_interval(interval, callback)

    def _stop_timer(self, timer) -> None:
        if timer is not None:
            timer.stop()


def main():
    PhoneDataTUI().run()


if __name__ == "__main__":
    main()
