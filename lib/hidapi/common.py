from __future__ import annotations

import dataclasses
import logging
import warnings

from hid_parser import ReportDescriptor

logger = logging.getLogger(__name__)

USB = 0x03
BLUETOOTH = 0x05

_TRANSPORT_NAMES = {USB: "USB", BLUETOOTH: "Bluetooth"}


@dataclasses.dataclass
class DeviceInfo:
    path: str
    device_id: str
    bus_id: int | None
    vendor_id: int
    product_id: int
    manufacturer: str | None = None
    product: str | None = None
    serial: str | None = None
    usage_page: int | None = None
    usage: int | None = None
    max_input_report_size: int = 0
    max_output_report_size: int = 0

    @property
    def display_name(self) -> str:
        name = self.product or "Logitech Mouse"
        if self.serial:
            return f"{name} ({self.serial})"
        return name

    @property
    def transport(self) -> str:
        return _TRANSPORT_NAMES.get(self.bus_id, "")


@dataclasses.dataclass(frozen=True)
class ReportInfo:
    """What a report descriptor declares, as far as HID++ cares."""

    output_ids: frozenset
    feature_ids: frozenset
    max_input_report_size: int = 0
    max_output_report_size: int = 0


def parse_report_descriptor(data: bytes) -> ReportInfo:
    """Classify the report ids declared by a report descriptor.

    :raises: whatever hid_parser raises for a descriptor it cannot process.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        rd = ReportDescriptor(data)
        output_ids = frozenset(rd.output_report_ids)
        feature_ids = frozenset(rd.feature_report_ids)
        max_input = max((_report_bytes(rd.get_input_report_size(rid), rid) for rid in rd.input_report_ids), default=0)
        max_output = max((_report_bytes(rd.get_output_report_size(rid), rid) for rid in output_ids), default=0)
    return ReportInfo(output_ids, feature_ids, max_input, max_output)


def _report_bytes(bits, report_id) -> int:
    # the report id byte travels in front of numbered reports
    return (int(bits) + 7) // 8 + (1 if report_id else 0)


def application_usages(data: bytes) -> list[tuple[int, int]]:
    """Return the (usage page, usage) pairs of the top level application
    collections in a report descriptor, in declaration order."""
    usages = []
    usage_page = 0
    local_usages = []
    depth = 0
    i = 0
    while i < len(data):
        prefix = data[i]
        if prefix == 0xFE:  # long item, never used for collections
            size = data[i + 1] if i + 1 < len(data) else 0
            i += 3 + size
            continue
        size = (0, 1, 2, 4)[prefix & 0x03]
        value = int.from_bytes(data[i + 1 : i + 1 + size], byteorder="little")
        item = prefix & 0xFC
        if item == 0x04:  # Usage Page
            usage_page = value
        elif item == 0x08:  # Usage
            local_usages.append((value >> 16, value & 0xFFFF) if size == 4 else (usage_page, value))
        elif item == 0xA0:  # Collection
            if depth == 0 and value == 0x01 and local_usages:
                usages.append(local_usages[0])
            depth += 1
            local_usages = []
        elif item == 0xC0:  # End Collection
            depth = max(depth - 1, 0)
            local_usages = []
        elif (prefix & 0x0C) == 0x00:  # any other main item clears the locals
            local_usages = []
        i += 1 + size
    return usages
