import errno
import threading
import time

import pytest

from logitech_dpi import exceptions
from logitech_dpi.base import ReportKind
from logitech_dpi.correlator import PendingRequest
from logitech_dpi.session import MAX_IN_FLIGHT
from logitech_dpi.session import Session
from logitech_dpi.session import SessionState

from . import fake_hidpp
from .fake_hidpp import Response

r_answer_all = [Response("000320", 0x0A10)]


@pytest.fixture
def open_session():
    sessions = []

    def _open(low_level):
        session = Session(fake_hidpp.device_info(), low_level)
        session.open()
        sessions.append(session)
        return session

    yield _open

    for session in sessions:
        session.close()


def _attempts(low_level):
    return [(w.kind, w.report_id, w.devnumber) for w in low_level.writes]


def test_open_is_idempotent(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)

    session.open()

    assert session.state == SessionState.OPEN
    assert low_level.opened == 1
    assert low_level.probed == 1


@pytest.mark.parametrize(
    "error_number, expected",
    [
        (errno.EACCES, exceptions.PermissionDenied),
        (errno.EBUSY, exceptions.ExclusiveAccessDenied),
        (errno.EIO, exceptions.TransportError),
    ],
)
def test_open_failure_leaves_session_closed(error_number, expected):
    low_level = fake_hidpp.FakeLowLevel(open_error=error_number)
    session = Session(fake_hidpp.device_info(), low_level)

    with pytest.raises(expected):
        session.open()

    assert session.state == SessionState.CLOSED
    assert low_level.probed == 0


def test_close_is_idempotent(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)

    session.close()
    session.close()

    assert session.state == SessionState.CLOSED
    assert low_level.closed == 1


def test_close_on_never_opened_session():
    low_level = fake_hidpp.FakeLowLevel()
    session = Session(fake_hidpp.device_info(), low_level)

    session.close()

    assert low_level.closed == 0


def test_reopen_probes_again(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)
    session.close()

    session.open()

    assert low_level.opened == 2
    assert low_level.probed == 2


def test_unparseable_descriptor_assumes_output_reports(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all, report_info=None)
    session = open_session(low_level)

    assert session.request(0x0A10) == b"\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x10, 0x00)]


def test_request_when_closed():
    session = Session(fake_hidpp.device_info(), fake_hidpp.FakeLowLevel(r_answer_all))

    with pytest.raises(exceptions.RequestCancelled):
        session.request(0x0A10)


def test_software_id_cycles(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)

    for _ in range(16):
        session.request(0x0A10)

    sw_ids = [w.request_id & 0x0F for w in low_level.writes]
    assert sw_ids == [2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 2, 3]


def test_software_id_restarts_per_session(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)
    session.request(0x0A10)
    session.close()

    session.open()
    session.request(0x0A10)

    assert [w.request_id for w in low_level.writes] == [0x0A12, 0x0A12]


def test_pending_software_id_is_skipped(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)
    session._correlator.register(0x0A12, PendingRequest(0x0A12))

    session.request(0x0A10)

    assert low_level.writes[0].request_id == 0x0A13


def test_feature_only_device_skips_output_attempts(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all, report_info=fake_hidpp.FEATURE_ONLY)
    session = open_session(low_level)

    assert session.request(0x0A10) == b"\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.FEATURE, 0x10, 0x00)]


def test_fallback_device_number(open_session):
    low_level = fake_hidpp.FakeLowLevel([Response("000320", 0x0A10, devnumber=0xFF)])
    session = open_session(low_level)

    assert session.request(0x0A10, timeout=0.1) == b"\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x10, 0x00), (ReportKind.OUTPUT, 0x10, 0xFF)]


def test_feature_reports_after_output_reports(open_session):
    report_info = fake_hidpp.ReportInfo(output_ids=frozenset((0x10,)), feature_ids=frozenset((0x10,)))
    low_level = fake_hidpp.FakeLowLevel([Response("01", 0x0A10, kind=ReportKind.FEATURE)], report_info=report_info)
    session = open_session(low_level)

    assert session.request(0x0A10, timeout=0.1) == b"\x01"
    assert _attempts(low_level) == [
        (ReportKind.OUTPUT, 0x10, 0x00),
        (ReportKind.OUTPUT, 0x10, 0xFF),
        (ReportKind.FEATURE, 0x10, 0x00),
    ]


def test_long_only_device(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all, report_info=fake_hidpp.LONG_ONLY)
    session = open_session(low_level)

    assert session.request(0x0A10, 0x00) == b"\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x11, 0x00)]
    assert len(low_level.writes[0].params) == 16


def test_long_parameters_use_long_report(open_session):
    low_level = fake_hidpp.FakeLowLevel([Response("00000320", 0x0B60, "00000320")])
    session = open_session(low_level)

    assert session.feature_request(0x0B, 0x60, 0x00, 0x00, 0x03, 0x20) == b"\x00\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x11, 0x00)]


def test_long_parameters_on_short_only_device(open_session):
    report_info = fake_hidpp.ReportInfo(output_ids=frozenset((0x10,)), feature_ids=frozenset())
    low_level = fake_hidpp.FakeLowLevel([], report_info=report_info)
    session = open_session(low_level)

    with pytest.raises(exceptions.Unsupported):
        session.request(0x0B60, b"\x00\x00\x03\x20")
    assert low_level.writes == []


def test_unsupported_device(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all, report_info=fake_hidpp.NOTHING)
    session = open_session(low_level)

    with pytest.raises(exceptions.Unsupported):
        session.request(0x0A10)
    assert low_level.writes == []


def test_device_error_stops_attempts(open_session):
    low_level = fake_hidpp.FakeLowLevel([Response(None, 0x0A10, error=0x07)])
    session = open_session(low_level)

    with pytest.raises(exceptions.FeatureCallError) as e:
        session.request(0x0A10)

    assert e.value.error == 0x07
    assert len(low_level.writes) == 1


def test_write_failure_tries_next(open_session):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all, write_errors={(ReportKind.OUTPUT, 0x00)})
    session = open_session(low_level)

    assert session.request(0x0A10) == b"\x00\x03\x20"
    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x10, 0x00), (ReportKind.OUTPUT, 0x10, 0xFF)]


def test_all_writes_fail(open_session):
    low_level = fake_hidpp.FakeLowLevel(
        r_answer_all, write_errors={(ReportKind.OUTPUT, 0x00), (ReportKind.OUTPUT, 0xFF)}
    )
    session = open_session(low_level)

    with pytest.raises(exceptions.TransportError) as e:
        session.request(0x0A10)
    assert e.value.code == errno.EPIPE
    assert len(session._correlator) == 0


def test_timeout_frees_entry_and_drops_late_reply(open_session):
    low_level = fake_hidpp.FakeLowLevel([])
    session = open_session(low_level)

    with pytest.raises(exceptions.RequestTimeout):
        session.request(0x0A10, timeout=0.05)

    assert _attempts(low_level) == [(ReportKind.OUTPUT, 0x10, 0x00), (ReportKind.OUTPUT, 0x10, 0xFF)]
    assert len(session._correlator) == 0
    late_id = low_level.writes[0].request_id
    assert not session._correlator.dispatch(bytes((0x11, 0x00)) + late_id.to_bytes(2, "big") + b"\xde\xad")


def test_late_reply_not_delivered_to_newer_request(open_session):
    low_level = fake_hidpp.FakeLowLevel([Response("01", 0x0B50)])
    session = open_session(low_level)
    with pytest.raises(exceptions.RequestTimeout):
        session.request(0x0A10, timeout=0.05)
    late_id = low_level.writes[-1].request_id
    low_level.responses.append(Response("000640", 0x0A10))
    low_level.inject(bytes((0x11, 0xFF)) + late_id.to_bytes(2, "big") + b"\xde\xad")

    # replies are read in order, so the late one is gone once these are answered
    for _ in range(MAX_IN_FLIGHT - 1):
        assert session.request(0x0B50) == b"\x01"
    # the software id has come round to the one that timed out
    assert session.request(0x0A10) == b"\x00\x06\x40"
    assert low_level.writes[-1].request_id == late_id


def test_concurrent_requests(open_session):
    low_level = fake_hidpp.FakeLowLevel([Response("01", 0x0A10), Response("02", 0x0B50)])
    session = open_session(low_level)
    results = {}

    def _request(name, request_id):
        results[name] = [session.request(request_id) for _ in range(20)]

    threads = [threading.Thread(target=_request, args=(n, r)) for n, r in (("a", 0x0A10), ("b", 0x0B50))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == {"a": [b"\x01"] * 20, "b": [b"\x02"] * 20}


def test_close_cancels_pending_requests(open_session):
    low_level = fake_hidpp.FakeLowLevel([])
    session = open_session(low_level)
    errors = []

    def _request():
        try:
            session.request(0x0A10, timeout=5.0)
        except exceptions.HIDPPError as e:
            errors.append(e)

    t = threading.Thread(target=_request)
    t.start()
    while not low_level.writes:
        time.sleep(0.01)
    session.close()
    t.join()

    assert len(errors) == 1
    assert isinstance(errors[0], exceptions.RequestCancelled)


def test_read_failure_closes_session(open_session, mocker):
    low_level = fake_hidpp.FakeLowLevel(r_answer_all)
    session = open_session(low_level)

    mocker.patch.object(low_level, "read", side_effect=exceptions.TransportError(code=errno.ENODEV, reason="gone"))
    for _ in range(100):
        if session.state == SessionState.CLOSED:
            break
        time.sleep(0.02)

    assert session.state == SessionState.CLOSED
    assert low_level.closed == 1
