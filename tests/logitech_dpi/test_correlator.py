import threading

import pytest

from logitech_dpi import exceptions
from logitech_dpi.correlator import Outcome
from logitech_dpi.correlator import PendingRequest
from logitech_dpi.correlator import RequestCorrelator
from logitech_dpi.hidpp20_constants import ErrorCode


@pytest.fixture
def correlator():
    yield RequestCorrelator()


def _pending(correlator, request_id):
    slot = PendingRequest(request_id)
    assert correlator.register(request_id, slot)
    return slot


def test_register_refuses_duplicate(correlator):
    _pending(correlator, 0x0A12)

    assert not correlator.register(0x0A12, PendingRequest(0x0A12))
    assert correlator.register(0x0A13, PendingRequest(0x0A13))
    assert len(correlator) == 2


def test_resolve_success(correlator):
    slot = _pending(correlator, 0x0A12)

    assert correlator.resolve_success(0x0A12, b"\x01\x02")

    assert slot.wait(0)
    assert slot.outcome == Outcome.SUCCESS
    assert slot.result() == b"\x01\x02"
    assert not correlator.is_pending(0x0A12)


def test_resolve_device_error(correlator):
    slot = _pending(correlator, 0x0A12)

    assert correlator.resolve_device_error(0x0A12, 0x02)

    with pytest.raises(exceptions.FeatureCallError) as e:
        slot.result()
    assert e.value.error == ErrorCode.INVALID_ARGUMENT
    assert e.value.request == 0x0A12


def test_resolve_device_error_unknown_code(correlator):
    slot = _pending(correlator, 0x0A12)
    correlator.resolve_device_error(0x0A12, 0x42)

    with pytest.raises(exceptions.FeatureCallError) as e:
        slot.result()
    assert e.value.error == 0x42


def test_resolve_transmit_failure(correlator):
    slot = _pending(correlator, 0x0A12)

    assert correlator.resolve_transmit_failure(0x0A12, 5, "fake")

    with pytest.raises(exceptions.TransportError) as e:
        slot.result()
    assert e.value.code == 5


def test_resolve_timeout(correlator):
    slot = _pending(correlator, 0x0A12)

    assert correlator.resolve_timeout(0x0A12)

    with pytest.raises(exceptions.RequestTimeout):
        slot.result(1.5)


def test_first_resolution_wins(correlator):
    slot = _pending(correlator, 0x0A12)

    assert correlator.resolve_timeout(0x0A12)
    assert not correlator.resolve_success(0x0A12, b"\x01")
    assert not correlator.resolve_device_error(0x0A12, 0x01)

    assert slot.outcome == Outcome.TIMEOUT


def test_resolve_without_entry_is_noop(correlator):
    assert not correlator.resolve_success(0x0A12, b"")
    assert not correlator.resolve_timeout(0x0A12)
    assert not correlator.resolve_transmit_failure(0x0A12, 5)
    assert len(correlator) == 0


def test_cancel_all(correlator):
    slots = [_pending(correlator, request_id) for request_id in (0x0A12, 0x0A13, 0x0B54)]

    correlator.cancel_all()

    assert len(correlator) == 0
    for slot in slots:
        with pytest.raises(exceptions.RequestCancelled):
            slot.result()


@pytest.mark.parametrize(
    "report, resolved, outcome",
    [
        ("11000A12000320", True, Outcome.SUCCESS),
        ("1000FF0A1201", True, Outcome.DEVICE_ERROR),
        ("11000A13000320", False, None),
        ("1000FF0A1301", False, None),
        ("20000A12000320", False, None),
        ("1000", False, None),
    ],
)
def test_dispatch(correlator, report, resolved, outcome):
    slot = _pending(correlator, 0x0A12)

    assert correlator.dispatch(bytes.fromhex(report)) == resolved

    assert slot.outcome == outcome
    assert correlator.is_pending(0x0A12) != resolved


def test_unmatched_reply_does_not_resolve_other_entries(correlator):
    slot_a = _pending(correlator, 0x0A12)
    slot_b = _pending(correlator, 0x0A1F)

    assert not correlator.dispatch(bytes.fromhex("11000A15000320"))

    assert slot_a.outcome is None
    assert slot_b.outcome is None
    assert len(correlator) == 2


def test_waiter_wakes_on_reply(correlator):
    slot = _pending(correlator, 0x0A12)
    timer = threading.Timer(0.05, correlator.dispatch, (bytes.fromhex("11000A12ABCD"),))
    timer.start()

    assert slot.wait(2.0)
    assert slot.result() == b"\xab\xcd"
    timer.join()
