from __future__ import annotations

import pytest

from app.controllers.location import (
    MSG_FAILED,
    MSG_NO_CACHED,
    MSG_NOT_GRANTED,
    MSG_PERMISSION_DENIED,
    MSG_SERVICES_REQUIRED,
    MSG_SETTINGS_ERROR,
    MSG_TIMEOUT,
    LocationAcquisitionController,
)
from phone_data_core.errors import ProviderError, ResolutionLaunchError
from phone_data_core.models import (
    LOCATION_REQUEST,
    AcquisitionPhase,
    PermissionState,
    Position,
    Priority,
    SettingsState,
)

from fakes import ManualScheduler, RecordingLocationProvider

GATED = {"check_settings", "get_last_known_position", "subscribe"}


def _controller(provider, **kwargs):
    reports: list[str] = []
    ctrl = LocationAcquisitionController(provider, report=reports.append, **kwargs)
    return ctrl, reports


def _run_to_fetch(provider, ctrl):
    ctrl.start()
    provider.complete("check_settings", SettingsState.SATISFIED)


def test_request_spec_is_fixed():
    assert LOCATION_REQUEST.priority is Priority.HIGH_ACCURACY
    assert LOCATION_REQUEST.interval_ms == 10_000
    assert LOCATION_REQUEST.fastest_interval_ms == 5_000


def test_granted_permission_goes_straight_to_settings_check():
    provider = RecordingLocationProvider(PermissionState.GRANTED)
    ctrl, _ = _controller(provider)

    ctrl.start()

    assert provider.names() == ["check_permission", "check_settings"]
    assert provider.calls[1][1] == (LOCATION_REQUEST,)
    assert ctrl.phase is AcquisitionPhase.CHECKING_SETTINGS


@pytest.mark.parametrize("initial", [PermissionState.UNKNOWN, PermissionState.DENIED])
def test_missing_permission_is_requested_before_anything_else(initial):
    provider = RecordingLocationProvider(initial)
    ctrl, _ = _controller(provider)

    ctrl.start()

    assert provider.names() == ["check_permission", "request_permission"]
    assert ctrl.phase is AcquisitionPhase.AWAITING_PERMISSION
    assert not GATED & set(provider.names())


def test_denied_permission_is_terminal_for_the_cycle():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, reports = _controller(provider)
    ctrl.start()

    provider.complete("request_permission", PermissionState.DENIED)

    assert ctrl.phase is AcquisitionPhase.DENIED
    assert ctrl.session.permission is PermissionState.DENIED
    assert reports == [MSG_PERMISSION_DENIED]
    assert provider.names() == ["check_permission", "request_permission"]


def test_denied_then_new_start_reattempts_from_permission():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, _ = _controller(provider)
    ctrl.start()
    provider.complete("request_permission", PermissionState.DENIED)
    first_session = ctrl.session.session_id

    ctrl.start()

    assert ctrl.session.session_id == first_session + 1
    assert provider.count("request_permission") == 2


def test_granted_after_prompt_checks_settings():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, _ = _controller(provider)
    ctrl.start()

    provider.complete("request_permission", PermissionState.GRANTED)

    assert ctrl.session.permission is PermissionState.GRANTED
    assert provider.names()[-1] == "check_settings"


def test_forwarded_permission_result_drives_the_cycle():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, _ = _controller(provider)
    ctrl.start()

    ctrl.on_permission_result(True)

    assert provider.names()[-1] == "check_settings"
    # the provider's own completion now arrives late and is dropped
    provider.complete("request_permission", PermissionState.DENIED)
    assert ctrl.phase is AcquisitionPhase.CHECKING_SETTINGS


def test_permission_result_outside_request_is_ignored():
    provider = RecordingLocationProvider(PermissionState.GRANTED)
    ctrl, reports = _controller(provider)
    ctrl.start()

    ctrl.on_permission_result(False)

    assert ctrl.phase is AcquisitionPhase.CHECKING_SETTINGS
    assert reports == []


def test_gated_operations_refuse_without_permission():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, reports = _controller(provider)
    ctrl.start()

    ctrl.check_settings()
    ctrl.fetch_last_known()
    ctrl.subscribe_to_updates()

    assert not GATED & set(provider.names())
    assert reports == [MSG_NOT_GRANTED] * 3


def test_gated_operations_refuse_before_any_session():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)

    ctrl.fetch_last_known()

    assert provider.calls == []
    assert reports == [MSG_NOT_GRANTED]


def test_cached_position_is_reported_without_subscribing():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)
    assert ctrl.phase is AcquisitionPhase.FETCHING_LAST

    provider.complete("get_last_known_position", Position(59.33, 18.06))

    assert provider.count("subscribe") == 0
    assert reports == ["Location: 59.33, 18.06"]
    assert ctrl.phase is AcquisitionPhase.INIT
    assert ctrl.session.position == Position(59.33, 18.06)


def test_no_cached_position_subscribes_once_with_fixed_request():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)

    provider.complete("get_last_known_position", None)

    assert provider.count("subscribe") == 1
    assert provider.calls[-1] == ("subscribe", (LOCATION_REQUEST,))
    assert ctrl.phase is AcquisitionPhase.SUBSCRIBED
    assert reports == [MSG_NO_CACHED]


def test_updates_overwrite_previous_position():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)
    provider.complete("get_last_known_position", None)
    handle = ctrl.active_subscription

    provider.emit(handle, Position(1.0, 2.0))
    provider.emit(handle, Position(3.0, 4.0))

    assert ctrl.session.position == Position(3.0, 4.0)
    assert reports[-2:] == ["Location: 1.0, 2.0", "Location: 3.0, 4.0"]


def test_fetch_failure_is_terminal_and_generic():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)

    provider.fail("get_last_known_position", ProviderError("gps offline", cause=OSError("io")))

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert reports == [MSG_FAILED]
    assert provider.count("subscribe") == 0


def test_subscribe_failure_is_terminal():
    provider = RecordingLocationProvider()
    provider.subscribe_error = ProviderError("no fix source")
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)

    provider.complete("get_last_known_position", None)

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert ctrl.active_subscription is None
    assert reports == [MSG_NO_CACHED, MSG_FAILED]


def test_resolvable_settings_request_resolution():
    provider = RecordingLocationProvider()
    ctrl, _ = _controller(provider)
    ctrl.start()

    provider.complete("check_settings", SettingsState.NEEDS_RESOLUTION)

    assert ctrl.phase is AcquisitionPhase.AWAITING_SETTINGS_RESOLUTION
    assert provider.names()[-1] == "request_resolution"
    assert "get_last_known_position" not in provider.names()


def test_resolved_settings_fetch_last_known():
    provider = RecordingLocationProvider()
    ctrl, _ = _controller(provider)
    ctrl.start()
    provider.complete("check_settings", SettingsState.NEEDS_RESOLUTION)

    provider.complete("request_resolution", True)

    assert ctrl.session.settings is SettingsState.SATISFIED
    assert ctrl.phase is AcquisitionPhase.FETCHING_LAST


def test_declined_resolution_fails_cycle():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    ctrl.start()
    provider.complete("check_settings", SettingsState.NEEDS_RESOLUTION)

    provider.complete("request_resolution", False)

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert reports == [MSG_SERVICES_REQUIRED]
    assert "get_last_known_position" not in provider.names()


def test_resolution_dialog_that_cannot_open_is_reported():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    ctrl.start()
    provider.complete("check_settings", SettingsState.NEEDS_RESOLUTION)

    provider.fail("request_resolution", ResolutionLaunchError())

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert reports == [MSG_SETTINGS_ERROR]
    assert provider.count("request_resolution") == 1


def test_unresolvable_settings_stop_the_cycle():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    ctrl.start()

    provider.complete("check_settings", SettingsState.UNRESOLVABLE)

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert reports == ["Location services unavailable"]
    assert provider.names() == ["check_permission", "check_settings"]


def test_pause_releases_subscription_once():
    provider = RecordingLocationProvider()
    ctrl, _ = _controller(provider)
    _run_to_fetch(provider, ctrl)
    provider.complete("get_last_known_position", None)
    handle = ctrl.active_subscription

    ctrl.pause()
    ctrl.pause()

    assert provider.calls.count(("unsubscribe", (handle,))) == 1
    assert ctrl.active_subscription is None
    assert ctrl.phase is AcquisitionPhase.INIT


def test_pause_without_subscription_is_noop():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)

    ctrl.pause()
    ctrl.pause()

    assert provider.calls == []
    assert reports == []


def test_updates_after_pause_are_dropped():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)
    provider.complete("get_last_known_position", None)
    on_update = provider.subscribers[ctrl.active_subscription]

    ctrl.pause()
    on_update(Position(10.0, 10.0))

    assert "Location: 10.0, 10.0" not in reports


def test_start_while_subscribed_cancels_old_subscription_first():
    provider = RecordingLocationProvider()
    ctrl, _ = _controller(provider)
    _run_to_fetch(provider, ctrl)
    provider.complete("get_last_known_position", None)
    old = ctrl.active_subscription

    ctrl.start()
    provider.complete("check_settings", SettingsState.SATISFIED)
    provider.complete("get_last_known_position", None)

    names = provider.names()
    assert names.index("unsubscribe") < len(names) - 1
    assert ("unsubscribe", (old,)) in provider.calls
    assert list(provider.subscribers) == [ctrl.active_subscription]


def test_start_while_request_in_flight_is_ignored():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    ctrl, _ = _controller(provider)
    ctrl.start()
    session = ctrl.session

    ctrl.start()

    assert ctrl.session is session
    assert provider.count("request_permission") == 1


def test_fetch_completing_while_paused_does_not_subscribe():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)

    ctrl.pause()
    provider.complete("get_last_known_position", None)

    assert provider.count("subscribe") == 0
    assert ctrl.phase is AcquisitionPhase.INIT
    assert reports == [MSG_NO_CACHED]


def test_resume_during_in_flight_fetch_lets_it_subscribe():
    provider = RecordingLocationProvider()
    ctrl, _ = _controller(provider)
    _run_to_fetch(provider, ctrl)
    ctrl.pause()

    ctrl.start()
    provider.complete("get_last_known_position", None)

    assert provider.count("subscribe") == 1
    assert provider.count("check_permission") == 1


def test_completion_after_close_is_ignored():
    provider = RecordingLocationProvider()
    ctrl, reports = _controller(provider)
    _run_to_fetch(provider, ctrl)

    ctrl.close()
    provider.complete("get_last_known_position", Position(1.0, 1.0))

    assert ctrl.session is None
    assert reports == []


def test_display_failure_does_not_escape():
    provider = RecordingLocationProvider()

    def broken(_text):
        raise RuntimeError("screen gone")

    ctrl = LocationAcquisitionController(provider, report=broken)
    _run_to_fetch(provider, ctrl)

    provider.complete("get_last_known_position", Position(1.0, 1.0))

    assert ctrl.phase is AcquisitionPhase.INIT


def test_timeout_requires_scheduler():
    with pytest.raises(ValueError):
        LocationAcquisitionController(RecordingLocationProvider(), report=print, call_timeout_s=5)



@pytest.mark.parametrize("timeout", [0, -1.5])
def test_non_positive_timeout_rejected(timeout):
    clock = ManualScheduler()
    with pytest.raises(ValueError):
        LocationAcquisitionController(
            RecordingLocationProvider(), report=print, schedule=clock.schedule, cancel=clock.cancel, call_timeout_s=timeout
        )


def test_hung_request_times_out_and_late_answer_is_dropped():
    provider = RecordingLocationProvider(PermissionState.UNKNOWN)
    clock = ManualScheduler()
    ctrl, reports = _controller(provider, schedule=clock.schedule, cancel=clock.cancel, call_timeout_s=30)
    ctrl.start()
    assert clock.delays() == [30]

    clock.fire_once_pending()
    provider.complete("request_permission", PermissionState.GRANTED)

    assert ctrl.phase is AcquisitionPhase.FAILED
    assert reports == [MSG_TIMEOUT]
    assert "check_settings" not in provider.names()


def test_timeout_is_cancelled_when_call_completes():
    provider = RecordingLocationProvider()
    clock = ManualScheduler()
    ctrl, reports = _controller(provider, schedule=clock.schedule, cancel=clock.cancel, call_timeout_s=30)
    ctrl.start()
    first = list(clock.scheduled)

    provider.complete("check_settings", SettingsState.SATISFIED)

    assert first[0] in clock.cancelled
    # the fetch is now guarded by its own timer
    assert len(clock.scheduled) == 1
    provider.complete("get_last_known_position", Position(0.0, 0.0))
    assert clock.scheduled == {}
    assert reports == ["Location: 0.0, 0.0"]
