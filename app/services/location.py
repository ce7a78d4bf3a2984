"""Configurable location platform used by the TUI.

It plays the part a phone's location service plays: it holds the runtime
permission, knows whether location services are switched on, serves a cached
fix and streams live fixes along a configured track. Dialogs go through the
display's prompt hook; all completions are delivered through the injected
``schedule`` callable so they land on the UI thread like real platform
callbacks do.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml

from phone_data_core.errors import ProviderError, ResolutionLaunchError
from phone_data_core.models import LocationRequestSpec, PermissionState, Position, SettingsState
from phone_data_core.ports import CancelFn, ErrorCallback, ScheduleFn

log = logging.getLogger(__name__)

PromptFn = Callable[[str, Callable[[bool], None]], None]

PERMISSION_QUESTION = "Allow this app to access the device location?"
RESOLUTION_QUESTION = "Location services are off. Turn them on?"


def parse_position(raw: Any) -> Position:
    """Accept {latitude, longitude} / {lat, lon} mappings or [lat, lon] pairs."""
    if isinstance(raw, dict):
        lat = raw.get("latitude", raw.get("lat"))
        lon = raw.get("longitude", raw.get("lon"))
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        lat, lon = raw[0], raw[1]
    else:
        raise ValueError(f"not a position: {raw!r}")
    if lat is None or lon is None:
        raise ValueError(f"position is missing a coordinate: {raw!r}")
    return Position(latitude=float(lat), longitude=float(lon))


@dataclass
class Subscription:
    token: int
    spec: LocationRequestSpec
    on_update: Callable[[Position], None]
    timer: Any = None
    active: bool = True


class TrackLocationProvider:
    def __init__(
        self,
        settings: Dict[str, Any],
        schedule: ScheduleFn,
        repeat: ScheduleFn,
        cancel: CancelFn,
        prompt: Optional[PromptFn] = None,
    ):
        cfg = settings.get("location", {}) or {}
        self._schedule = schedule
        self._repeat = repeat
        self._cancel = cancel
        self._prompt = prompt
        self._permission_mode = str(cfg.get("permission", "prompt")).lower()
        self.permission = PermissionState.GRANTED if self._permission_mode == "granted" else PermissionState.UNKNOWN
        if self._permission_mode == "denied":
            self.permission = PermissionState.DENIED
        self.services_enabled = bool(cfg.get("services_enabled", True))
        self.resolvable = bool(cfg.get("resolvable", True))
        fix_path = cfg.get("last_fix_path")
        self.last_fix_path = Path(fix_path) if fix_path else None
        self.track: List[Position] = [parse_position(p) for p in cfg.get("track") or []]
        self._track_idx = 0
        self._next_token = 0
        self._subscriptions: Dict[int, Subscription] = {}

    # ─────────────────────────────────────
    # Permission
    # ─────────────────────────────────────
    def check_permission(self) -> PermissionState:
        return self.permission

    def request_permission(self, on_result: Callable[[PermissionState], None]) -> None:
        if self.permission == PermissionState.GRANTED or self._permission_mode == "denied" or self._prompt is None:
            # no dialog: answer from the stored state
            state = self.permission if self.permission != PermissionState.UNKNOWN else PermissionState.DENIED
            self._schedule(0, lambda: on_result(state))
            return

        def _answered(granted: bool) -> None:
            self.permission = PermissionState.GRANTED if granted else PermissionState.DENIED
            on_result(self.permission)

        self._prompt(PERMISSION_QUESTION, _answered)

    def _require_permission(self, operation: str) -> None:
        if self.permission != PermissionState.GRANTED:
            raise ProviderError(f"{operation}: location permission not granted")

    # ─────────────────────────────────────
    # Settings
    # ─────────────────────────────────────
    def check_settings(
        self,
        spec: LocationRequestSpec,
        on_result: Callable[[SettingsState], None],
        on_error: ErrorCallback,
    ) -> None:
        try:
            self._require_permission("check_settings")
        except ProviderError as e:
            self._schedule(0, lambda err=e: on_error(err))
            return
        if self.services_enabled:
            state = SettingsState.SATISFIED
        elif self.resolvable:
            state = SettingsState.NEEDS_RESOLUTION
        else:
            state = SettingsState.UNRESOLVABLE
        log.debug("Settings check for %s -> %s", spec.priority.value, state.value)
        self._schedule(0, lambda: on_result(state))

    def request_resolution(self, on_result: Callable[[bool], None], on_error: ErrorCallback) -> None:
        if self._prompt is None:
            err = ResolutionLaunchError()
            self._schedule(0, lambda: on_error(err))
            return

        def _answered(accepted: bool) -> None:
            if accepted:
                self.services_enabled = True
            on_result(accepted)

        self._prompt(RESOLUTION_QUESTION, _answered)

    # ─────────────────────────────────────
    # Cached fix
    # ─────────────────────────────────────
    def read_last_fix(self) -> Optional[Position]:
        """
        Read the cached fix. No file or an empty file means no cached fix;
        anything unreadable is a ProviderError.
        """
        if self.last_fix_path is None or not self.last_fix_path.exists():
            return None
        try:
            raw = yaml.safe_load(self.last_fix_path.read_text(encoding="utf-8"))
            if raw is None:
                return None
            return parse_position(raw)
        except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
            raise ProviderError(f"cannot read cached fix {self.last_fix_path}", cause=e) from e

    def get_last_known_position(
        self,
        on_success: Callable[[Optional[Position]], None],
        on_error: ErrorCallback,
    ) -> None:
        try:
            self._require_permission("get_last_known_position")
            position = self.read_last_fix()
        except ProviderError as e:
            self._schedule(0, lambda err=e: on_error(err))
            return
        self._schedule(0, lambda: on_success(position))

    # ─────────────────────────────────────
    # Live updates
    # ─────────────────────────────────────
    def _next_fix(self) -> Optional[Position]:
        if not self.track:
            return None
        fix = self.track[self._track_idx % len(self.track)]
        self._track_idx += 1
        return Position(latitude=fix.latitude, longitude=fix.longitude)

    def _deliver(self, sub: Subscription) -> None:
        if not sub.active:
            return
        fix = self._next_fix()
        if fix is not None:
            sub.on_update(fix)

    def subscribe(self, spec: LocationRequestSpec, on_update: Callable[[Position], None]) -> Subscription:
        self._require_permission("subscribe")
        if not self.track:
            raise ProviderError("no position source configured")
        self._next_token += 1
        sub = Subscription(token=self._next_token, spec=spec, on_update=on_update)
        # never faster than the floor, even when the nominal interval is lower
        period_ms = max(spec.interval_ms, spec.fastest_interval_ms)
        self._schedule(spec.fastest_interval_ms / 1000.0, lambda: self._deliver(sub))
        sub.timer = self._repeat(period_ms / 1000.0, lambda: self._deliver(sub))
        self._subscriptions[sub.token] = sub
        log.debug("Subscription %s opened (every %s ms)", sub.token, period_ms)
        return sub

    def unsubscribe(self, handle: Subscription) -> None:
        sub = self._subscriptions.pop(getattr(handle, "token", None), None)
        if sub is None:
            return
        sub.active = False
        if sub.timer is not None:
            self._cancel(sub.timer)
        log.debug("Subscription %s closed", sub.token)

    @property
    def active_subscriptions(self) -> Sequence[Subscription]:
        return list(self._subscriptions.values())
