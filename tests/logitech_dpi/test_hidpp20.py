import pytest

from logitech_dpi import exceptions
from logitech_dpi import hidpp20
from logitech_dpi.hidpp20 import DpiFeature
from logitech_dpi.hidpp20 import DpiFeatureKind
from logitech_dpi.hidpp20_constants import SupportedFeature
from logitech_dpi.session import Session

from . import fake_hidpp
from .fake_hidpp import Response

ADJUSTABLE = DpiFeature(DpiFeatureKind.ADJUSTABLE, 0x0A)
EXTENDED = DpiFeature(DpiFeatureKind.EXTENDED, 0x0B, has_y=True, has_lod=True)


@pytest.fixture
def session_with():
    sessions = []

    def _session(responses, **kwargs):
        low_level = fake_hidpp.FakeLowLevel(responses, **kwargs)
        session = Session(fake_hidpp.device_info(), low_level)
        session.open()
        sessions.append(session)
        return session

    yield _session

    for session in sessions:
        session.close()


@pytest.mark.parametrize(
    "responses, feature, expected",
    [
        (fake_hidpp.r_root_adjustable, SupportedFeature.ADJUSTABLE_DPI, 0x0A),
        (fake_hidpp.r_root_adjustable, SupportedFeature.EXTENDED_ADJUSTABLE_DPI, None),
        (fake_hidpp.r_root_extended, SupportedFeature.EXTENDED_ADJUSTABLE_DPI, 0x0B),
        ([Response("", 0x0000, "2201")], SupportedFeature.ADJUSTABLE_DPI, None),
        ([Response(None, 0x0000, "2201", error=0x06)], SupportedFeature.ADJUSTABLE_DPI, None),
    ],
)
def test_resolve_feature_index(session_with, responses, feature, expected):
    session = session_with(responses)

    assert hidpp20.resolve_feature_index(session, feature) == expected


def test_resolve_feature_index_request(session_with):
    session = session_with(fake_hidpp.r_root_adjustable)

    hidpp20.resolve_feature_index(session, SupportedFeature.ADJUSTABLE_DPI)

    write = session.low_level.writes[0]
    assert write.request_id & 0xFFF0 == 0x0000
    assert write.params == b"\x22\x01\x00"


def test_resolve_feature_index_timeout(session_with):
    session = session_with([Response(None, 0x0000, "2201")])

    with pytest.raises(exceptions.RequestTimeout):
        hidpp20.resolve_feature_index(session, SupportedFeature.ADJUSTABLE_DPI)


@pytest.mark.parametrize(
    "responses, expected",
    [
        (fake_hidpp.r_mouse_adjustable, ADJUSTABLE),
        (fake_hidpp.r_mouse_extended, EXTENDED),
        (fake_hidpp.r_root_none, None),
        (fake_hidpp.r_root_extended + [Response("000001", 0x0B10, "00")], DpiFeature(DpiFeatureKind.EXTENDED, 0x0B, True, False)),
        (fake_hidpp.r_root_extended + [Response("000002", 0x0B10, "00")], DpiFeature(DpiFeatureKind.EXTENDED, 0x0B, False, True)),
        (fake_hidpp.r_root_extended + [Response("0000", 0x0B10, "00")], DpiFeature(DpiFeatureKind.EXTENDED, 0x0B)),
        (fake_hidpp.r_root_extended + [Response(None, 0x0B10, "00", error=0x07)], DpiFeature(DpiFeatureKind.EXTENDED, 0x0B)),
        (fake_hidpp.r_root_extended + [Response(None, 0x0B10, "00")], DpiFeature(DpiFeatureKind.EXTENDED, 0x0B)),
    ],
)
def test_detect_dpi_feature(session_with, responses, expected):
    session = session_with(responses)

    assert hidpp20.detect_dpi_feature(session) == expected


def test_detect_prefers_extended(session_with):
    responses = [Response("0B0000", 0x0000, "2202"), Response("0A0000", 0x0000, "2201"), Response("000000", 0x0B10, "00")]
    session = session_with(responses)

    feature = hidpp20.detect_dpi_feature(session)

    assert feature.kind == DpiFeatureKind.EXTENDED
    assert feature.feature == SupportedFeature.EXTENDED_ADJUSTABLE_DPI
    assert all(w.params[:2] != b"\x22\x01" for w in session.low_level.writes)


@pytest.mark.parametrize(
    "responses, feature, direction, expected",
    [
        (fake_hidpp.r_mouse_adjustable, ADJUSTABLE, 0, [100, 200, 300]),
        (fake_hidpp.r_mouse_extended, EXTENDED, 0, [100, 200, 300, 400, 800]),
        (fake_hidpp.r_mouse_extended, EXTENDED, 1, [400, 600, 800, 1000, 1200, 1400, 1600]),
    ],
)
def test_fetch_dpi_list(session_with, responses, feature, direction, expected):
    session = session_with(responses)

    assert hidpp20.fetch_dpi_list(session, feature, direction) == expected


def test_fetch_dpi_list_page_requests(session_with):
    session = session_with(fake_hidpp.r_mouse_extended)

    hidpp20.fetch_dpi_list(session, EXTENDED)

    pages = [w.params[:3] for w in session.low_level.writes]
    assert pages == [b"\x00\x00\x00", b"\x00\x00\x01"]
    assert all(w.request_id & 0xFFF0 == 0x0B20 for w in session.low_level.writes)


def test_fetch_dpi_list_stops_on_failed_later_page(session_with):
    responses = [
        Response("0001900320", 0x0A10, "000000"),
        Response(None, 0x0A10, "000001", error=0x02),
    ]
    session = session_with(responses)

    assert hidpp20.fetch_dpi_list(session, ADJUSTABLE) == [400, 800]


def test_fetch_dpi_list_first_page_failure_propagates(session_with):
    session = session_with([Response(None, 0x0A10, "000000", error=0x02)])

    with pytest.raises(exceptions.FeatureCallError):
        hidpp20.fetch_dpi_list(session, ADJUSTABLE)


def test_fetch_dpi_list_empty(session_with):
    session = session_with([Response("000000", 0x0A10, "000000")])

    with pytest.raises(exceptions.EmptyDpiList):
        hidpp20.fetch_dpi_list(session, ADJUSTABLE)


def test_collect_dpi_bytes_gives_up_after_all_pages(session_with):
    session = session_with([Response("000190", 0x0A10, "0000")])

    data = hidpp20.collect_dpi_bytes(session, ADJUSTABLE)

    assert data == b"\x01\x90" * 256
    assert len(session.low_level.writes) == 256


@pytest.mark.parametrize(
    "responses, feature, expected",
    [
        (fake_hidpp.r_mouse_adjustable, ADJUSTABLE, 800),
        (fake_hidpp.r_mouse_extended, EXTENDED, 1600),
        ([Response("000320", 0x0A20)], ADJUSTABLE, None),
        ([Response("", 0x0A20)], ADJUSTABLE, None),
        ([Response("0000000000", 0x0A20)], ADJUSTABLE, 0),
    ],
)
def test_read_dpi(session_with, responses, feature, expected):
    session = session_with(responses)

    assert hidpp20.read_dpi(session, feature) == expected


def test_read_dpi_error(session_with):
    session = session_with([Response(None, 0x0B50, error=0x05)])

    with pytest.raises(exceptions.FeatureCallError):
        hidpp20.read_dpi(session, EXTENDED)


@pytest.mark.parametrize(
    "responses, feature, dpi, params",
    [
        (fake_hidpp.r_mouse_adjustable, ADJUSTABLE, 800, b"\x00\x03\x20"),
        (fake_hidpp.r_mouse_extended, EXTENDED, 800, b"\x00\x00\x03\x20"),
    ],
)
def test_set_dpi(session_with, responses, feature, dpi, params):
    session = session_with(responses)

    assert hidpp20.set_dpi(session, feature, dpi)

    write = session.low_level.writes[-1]
    assert write.params.startswith(params)
    assert write.request_id & 0xFFF0 == (feature.index << 8) + (0x30 if feature.kind == DpiFeatureKind.ADJUSTABLE else 0x60)


def test_set_dpi_empty_reply_counts(session_with):
    session = session_with([Response("", 0x0A30)])

    assert hidpp20.set_dpi(session, ADJUSTABLE, 1600)


def test_set_dpi_rejected(session_with):
    session = session_with([Response(None, 0x0A30, error=0x03)])

    with pytest.raises(exceptions.FeatureCallError) as e:
        hidpp20.set_dpi(session, ADJUSTABLE, 25600)
    assert e.value.error == 0x03
