import logging
from typing import Any, Callable, Optional

from phone_data_core.errors import (
    CallTimeout,
    PermissionDenied,
    PhoneDataError,
    ProviderError,
    SettingsUnresolvable,
)
from phone_data_core.models import (
    LOCATION_REQUEST,
    AcquisitionPhase,
    AcquisitionSession,
    LocationRequestSpec,
    PermissionState,
    Position,
    SettingsState,
)
from phone_data_core.ports import CancelFn, LocationProvider, ScheduleFn

log = logging.getLogger(__name__)

MSG_PERMISSION_DENIED = PermissionDenied().message
MSG_NOT_GRANTED = "Location permissions not granted"
MSG_SERVICES_REQUIRED = "Location services are required"
MSG_SETTINGS_ERROR = "Error opening location settings"
MSG_NO_CACHED = "Location not available, requesting updates..."
MSG_FAILED = "Failed to get location"
MSG_TIMEOUT = "Location request timed out"


class LocationAcquisitionController:
    """
    Permission -> settings -> cached fix -> live updates, one session at a time.

    Every provider continuation is bound to the session and call that issued
    it, so completions arriving after a newer start() or after a timeout are
    dropped. The controller holds at most one subscription.
    """

    def __init__(
        self,
        provider: LocationProvider,
        report: Callable[[str], None],
        request: LocationRequestSpec = LOCATION_REQUEST,
        schedule: Optional[ScheduleFn] = None,
        cancel: Optional[CancelFn] = None,
        call_timeout_s: Optional[float] = None,
    ):
        if call_timeout_s is not None and (schedule is None or cancel is None):
            raise ValueError("call_timeout_s needs schedule and cancel callables")
        if call_timeout_s is not None and call_timeout_s <= 0:
            raise ValueError(f"call_timeout_s must be positive, got {call_timeout_s!r}")
        self.provider = provider
        self.request = request
        self._report_fn = report
        self._schedule = schedule
        self._cancel = cancel
        self.call_timeout_s = call_timeout_s
        self.session: Optional[AcquisitionSession] = None
        self.paused = False
        self._session_seq = 0
        self._call_seq = 0
        self._timeout_handle: Any = None

    @property
    def phase(self) -> AcquisitionPhase:
        return self.session.phase if self.session else AcquisitionPhase.INIT

    @property
    def active_subscription(self) -> Any:
        return self.session.subscription if self.session else None

    # ─────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────
    def start(self) -> None:
        self.paused = False
        current = self.session
        if current is not None and current.phase.in_flight:
            log.warning(
                "Location acquisition already in progress (session %s, %s); ignoring start()",
                current.session_id,
                current.phase.value,
            )
            return
        if current is not None and current.subscription is not None:
            self._release(current)

        self._session_seq += 1
        session = AcquisitionSession(session_id=self._session_seq)
        self.session = session
        session.permission = self.provider.check_permission()
        log.info("Location session %s started, permission %s", session.session_id, session.permission.value)

        if session.permission == PermissionState.GRANTED:
            self.check_settings()
            return

        session.phase = AcquisitionPhase.AWAITING_PERMISSION
        self._issue(
            session,
            "request_permission",
            lambda call_id: self.provider.request_permission(
                self._bind(session, call_id, lambda state: self.on_permission_result(state == PermissionState.GRANTED))
            ),
        )

    def on_permission_result(self, granted: bool) -> None:
        session = self.session
        if session is None or session.phase != AcquisitionPhase.AWAITING_PERMISSION:
            log.warning("Permission result %s arrived outside a permission request; ignoring", granted)
            return
        self._finish_call(session)
        if granted:
            session.permission = PermissionState.GRANTED
            self.check_settings()
            return
        session.permission = PermissionState.DENIED
        session.phase = AcquisitionPhase.DENIED
        log.info("Location permission denied (session %s)", session.session_id)
        self._report(MSG_PERMISSION_DENIED)

    def check_settings(self) -> None:
        session = self.session
        if not self._permission_confirmed(session, "check_settings"):
            return
        session.phase = AcquisitionPhase.CHECKING_SETTINGS
        self._issue(
            session,
            "check_settings",
            lambda call_id: self.provider.check_settings(
                self.request,
                self._bind(session, call_id, lambda state: self._settings_checked(session, state)),
                self._bind(session, call_id, lambda exc: self._settings_failed(session, exc)),
            ),
        )

    def on_resolution_result(self, resolved: bool) -> None:
        session = self.session
        if session is None or session.phase != AcquisitionPhase.AWAITING_SETTINGS_RESOLUTION:
            log.warning("Settings resolution result %s arrived unexpectedly; ignoring", resolved)
            return
        self._finish_call(session)
        if resolved:
            session.settings = SettingsState.SATISFIED
            self.fetch_last_known()
            return
        log.info("User declined to enable location services")
        self._fail(session, MSG_SERVICES_REQUIRED)

    def fetch_last_known(self) -> None:
        session = self.session
        if not self._permission_confirmed(session, "fetch_last_known"):
            return
        session.phase = AcquisitionPhase.FETCHING_LAST
        self._issue(
            session,
            "get_last_known_position",
            lambda call_id: self.provider.get_last_known_position(
                self._bind(session, call_id, lambda pos: self._last_known_received(session, pos)),
                self._bind(session, call_id, lambda exc: self._last_known_failed(session, exc)),
            ),
        )

    def subscribe_to_updates(self) -> None:
        session = self.session
        if not self._permission_confirmed(session, "subscribe_to_updates"):
            return
        if session.subscription is not None:
            self._release(session)

        def on_update(position: Position) -> None:
            if self.session is not session or session.phase != AcquisitionPhase.SUBSCRIBED:
                log.debug("Dropping update for inactive session %s", session.session_id)
                return
            session.position = position
            self._report(position.describe())

        session.phase = AcquisitionPhase.SUBSCRIBED
        try:
            session.subscription = self.provider.subscribe(self.request, on_update)
        except PhoneDataError as e:
            log.error("Failed to request location updates: %s", e, exc_info=e)
            self._fail(session, MSG_FAILED)
            return
        log.info(
            "Subscribed to location updates (every %s ms, fastest %s ms)",
            self.request.interval_ms,
            self.request.fastest_interval_ms,
        )

    def pause(self) -> None:
        self.paused = True
        session = self.session
        if session is None or session.subscription is None:
            return
        self._release(session)
        if session.phase == AcquisitionPhase.SUBSCRIBED:
            session.phase = AcquisitionPhase.INIT
        log.info("Location updates stopped (session %s)", session.session_id)

    def close(self) -> None:
        """Release everything; late completions for the old session are dropped."""
        self.pause()
        self._cancel_timeout()
        self.session = None

    # ─────────────────────────────────────
    # Continuations
    # ─────────────────────────────────────
    def _settings_checked(self, session: AcquisitionSession, state: SettingsState) -> None:
        session.settings = state
        if state == SettingsState.SATISFIED:
            self.fetch_last_known()
        elif state == SettingsState.NEEDS_RESOLUTION:
            session.phase = AcquisitionPhase.AWAITING_SETTINGS_RESOLUTION
            log.info("Location services disabled; asking the user to enable them")
            self._issue(
                session,
                "request_resolution",
                lambda call_id: self.provider.request_resolution(
                    self._bind(session, call_id, self.on_resolution_result),
                    self._bind(session, call_id, lambda exc: self._resolution_failed(session, exc)),
                ),
            )
        else:
            err = SettingsUnresolvable()
            log.warning("Location settings cannot be satisfied on this device (%s)", err.code)
            self._fail(session, err.message)

    def _settings_failed(self, session: AcquisitionSession, exc: BaseException) -> None:
        log.error("Location settings check failed: %s", exc, exc_info=exc)
        self._fail(session, SettingsUnresolvable().message)

    def _resolution_failed(self, session: AcquisitionSession, exc: BaseException) -> None:
        log.error("%s: %s", MSG_SETTINGS_ERROR, exc, exc_info=exc)
        self._fail(session, MSG_SETTINGS_ERROR)

    def _last_known_received(self, session: AcquisitionSession, position: Optional[Position]) -> None:
        if position is not None:
            session.position = position
            session.phase = AcquisitionPhase.INIT
            log.info("Using cached position (session %s)", session.session_id)
            self._report(position.describe())
            return
        self._report(MSG_NO_CACHED)
        if self.paused:
            session.phase = AcquisitionPhase.INIT
            log.info("No cached position but the screen is paused; not subscribing")
            return
        self.subscribe_to_updates()

    def _last_known_failed(self, session: AcquisitionSession, exc: BaseException) -> None:
        cause = getattr(exc, "cause", None) or exc
        log.error("Failed to get last known location: %s", exc, exc_info=cause)
        self._fail(session, MSG_FAILED)

    # ─────────────────────────────────────
    # Bookkeeping
    # ─────────────────────────────────────
    def _issue(self, session: AcquisitionSession, operation: str, invoke: Callable[[int], None]) -> None:
        self._call_seq += 1
        call_id = self._call_seq
        session.pending_call = call_id
        if self.call_timeout_s is not None:
            self._cancel_timeout()
            self._timeout_handle = self._schedule(
                self.call_timeout_s,
                lambda: self._timed_out(session.session_id, call_id, operation),
            )
        try:
            invoke(call_id)
        except ProviderError as e:
            if session.pending_call != call_id:
                raise
            self._finish_call(session)
            log.error("%s failed: %s", operation, e, exc_info=e)
            self._fail(session, MSG_FAILED)

    def _bind(self, session: AcquisitionSession, call_id: int, fn: Callable[..., None]) -> Callable[..., None]:
        def continuation(*args) -> None:
            if self.session is not session or session.pending_call != call_id:
                log.debug("Ignoring stale completion (session %s, call %s)", session.session_id, call_id)
                return
            self._finish_call(session)
            fn(*args)

        return continuation

    def _finish_call(self, session: AcquisitionSession) -> None:
        session.pending_call = None
        self._cancel_timeout()

    def _cancel_timeout(self) -> None:
        handle, self._timeout_handle = self._timeout_handle, None
        if handle is not None and self._cancel is not None:
            self._cancel(handle)

    def _timed_out(self, session_id: int, call_id: int, operation: str) -> None:
        session = self.session
        if session is None or session.session_id != session_id or session.pending_call != call_id:
            return
        self._timeout_handle = None
        session.pending_call = None
        err = CallTimeout(operation, self.call_timeout_s)
        log.warning("%s (session %s)", err.message, session_id)
        self._fail(session, MSG_TIMEOUT)

    def _permission_confirmed(self, session: Optional[AcquisitionSession], operation: str) -> bool:
        if session is not None and session.permission == PermissionState.GRANTED:
            return True
        log.warning("%s skipped: location permission not granted", operation)
        self._report(MSG_NOT_GRANTED)
        return False

    def _release(self, session: AcquisitionSession) -> None:
        handle, session.subscription = session.subscription, None
        if handle is not None:
            self.provider.unsubscribe(handle)

    def _fail(self, session: AcquisitionSession, message: str) -> None:
        session.phase = AcquisitionPhase.FAILED
        self._report(message)

    def _report(self, text: str) -> None:
        try:
            self._report_fn(text)
        except Exception as e:
            # the screen may already be gone when a late completion lands
            log.warning("Could not display location message %r: %s", text, e)
