"""Tests for the HID transport, with hidapi and pyusb replaced by mocks."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from high_flow_next.transport.hid_connection import (
    HID_INTERFACE,
    PRODUCT_ID,
    VENDOR_ID,
    HIDConnection,
)


def _hidapi_connection():
    """Open a connection through a fake ``hid`` module."""
    device = MagicMock()
    device.get_manufacturer_string.return_value = "Aquacomputer"
    device.get_product_string.return_value = "HIGH FLOW NEXT"
    device.get_serial_number_string.return_value = "12345-00678"
    fake_hid = MagicMock()
    fake_hid.device.return_value = device

    conn = HIDConnection()
    with patch.dict(sys.modules, {"hid": fake_hid}):
        info = conn.open()
    return conn, device, info


def test_open_with_hidapi():
    conn, device, info = _hidapi_connection()
    device.open.assert_called_once_with(VENDOR_ID, PRODUCT_ID)
    assert conn.connected
    assert conn.backend == "hidapi"
    assert info.product == "HIGH FLOW NEXT"
    assert info.serial_number == "12345-00678"


def test_get_feature_report_hidapi():
    conn, device, _ = _hidapi_connection()
    device.get_feature_report.return_value = [0x03, 0x00, 0x01]
    assert conn.get_feature_report(0x03, 682) == b"\x03\x00\x01"
    device.get_feature_report.assert_called_once_with(0x03, 682)


def test_send_feature_report_hidapi():
    conn, device, _ = _hidapi_connection()
    device.send_feature_report.return_value = 682
    assert conn.send_feature_report(b"\x03" + bytes(681)) == 682


def test_send_feature_report_failure():
    conn, device, _ = _hidapi_connection()
    device.send_feature_report.return_value = -1
    with pytest.raises(IOError):
        conn.send_feature_report(b"\x03")


def test_read_timeout_returns_none():
    conn, device, _ = _hidapi_connection()
    device.read.return_value = []
    assert conn.read(103) is None


def test_close():
    conn, device, _ = _hidapi_connection()
    conn.close()
    device.close.assert_called_once()
    assert not conn.connected
    with pytest.raises(ConnectionError):
        conn.read(103)


def test_requires_connection():
    conn = HIDConnection()
    with pytest.raises(ConnectionError):
        conn.get_feature_report(0x03, 682)
    with pytest.raises(ConnectionError):
        conn.send_feature_report(b"\x03")
    with pytest.raises(ConnectionError):
        conn.write(b"\x05")


def test_pyusb_feature_reports_use_hid_class_requests():
    conn = HIDConnection()
    dev = MagicMock()
    conn._device = dev
    conn._backend = "pyusb"
    conn._connected = True

    dev.ctrl_transfer.return_value = bytes([0x03, 0x00])
    conn.get_feature_report(0x03, 682)
    args = dev.ctrl_transfer.call_args[0]
    assert args == (0xA1, 0x01, 0x0303, HID_INTERFACE, 682)

    dev.ctrl_transfer.return_value = 5
    conn.send_feature_report(b"\x04\x00\x00\xff\xff")
    args = dev.ctrl_transfer.call_args[0]
    assert args[:4] == (0x21, 0x09, 0x0304, HID_INTERFACE)


def test_open_fails_without_device():
    conn = HIDConnection()
    fake_hid = MagicMock()
    fake_hid.device.return_value.open.side_effect = OSError("open failed")
    fake_usb_core = MagicMock()
    fake_usb_core.find.return_value = None
    fake_usb = MagicMock(core=fake_usb_core)
    modules = {"hid": fake_hid, "usb": fake_usb, "usb.core": fake_usb_core, "usb.util": fake_usb.util}
    with patch.dict(sys.modules, modules):
        with pytest.raises(ConnectionError):
            conn.open()
    assert not conn.connected
