"""USB HID connection to the Aqua Computer high flow NEXT.

Supports both ``hidapi`` (preferred) and ``pyusb`` backends. Settings
are exchanged as feature reports; telemetry arrives as input reports on
the interrupt endpoint. Every exchange is serialized by a lock. The
connection only moves raw bytes; decoding is left to the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VENDOR_ID = 0x0C70
PRODUCT_ID = 0xF012
HID_INTERFACE = 0
EP_IN = 0x81
EP_OUT = 0x01
READ_TIMEOUT_MS = 1000
CONTROL_TIMEOUT_MS = 1000

# HID class requests used by the pyusb backend
HID_GET_REPORT = 0x01
HID_SET_REPORT = 0x09
REPORT_TYPE_FEATURE = 0x03
REQUEST_TYPE_IN = 0xA1   # device-to-host | class | interface
REQUEST_TYPE_OUT = 0x21  # host-to-device | class | interface


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""
    serial_number: str = ""


class HIDConnection:
    """Manages the USB HID connection to the flow sensor.

    Usage::

        conn = HIDConnection()
        conn.open()
        raw = conn.get_feature_report(0x03, 682)
        conn.close()
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._device = None
        self._backend: str = ""
        self._connected = False
        self._lock = threading.Lock()
        self._device_info = DeviceInfo(vendor_id=vendor_id, product_id=product_id)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def open(self) -> DeviceInfo:
        """Open a connection to the device, trying hidapi first, then pyusb.

        Returns:
            DeviceInfo with USB descriptor information.

        Raises:
            ConnectionError: If the device cannot be found or opened.
        """
        try:
            return self._open_hidapi()
        except Exception as e:
            logger.debug("hidapi backend failed: %s, trying pyusb", e)

        try:
            return self._open_pyusb()
        except Exception as e:
            raise ConnectionError(
                f"Could not connect to high flow NEXT "
                f"({self._vendor_id:#06x}:{self._product_id:#06x}). "
                f"Ensure the device is connected and you have permissions. "
                f"Last error: {e}"
            ) from e

    def _open_hidapi(self) -> DeviceInfo:
        """Open using the hidapi library."""
        import hid

        device = hid.device()
        device.open(self._vendor_id, self._product_id)
        device.set_nonblocking(False)

        self._device = device
        self._backend = "hidapi"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=device.get_manufacturer_string() or "",
            product=device.get_product_string() or "",
            serial_number=device.get_serial_number_string() or "",
        )

        logger.info(
            "Connected via hidapi: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def _open_pyusb(self) -> DeviceInfo:
        """Open using pyusb + libusb."""
        import usb.core
        import usb.util

        dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if dev is None:
            raise ConnectionError("Device not found via pyusb")

        if dev.is_kernel_driver_active(HID_INTERFACE):
            dev.detach_kernel_driver(HID_INTERFACE)

        usb.util.claim_interface(dev, HID_INTERFACE)

        self._device = dev
        self._backend = "pyusb"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=usb.util.get_string(dev, dev.iManufacturer) or "",
            product=usb.util.get_string(dev, dev.iProduct) or "",
            serial_number=usb.util.get_string(dev, dev.iSerialNumber) or "",
        )

        logger.info(
            "Connected via pyusb: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def close(self) -> None:
        """Close the USB connection."""
        if not self._connected:
            return

        with self._lock:
            try:
                if self._backend == "hidapi":
                    self._device.close()
                elif self._backend == "pyusb":
                    import usb.util
                    usb.util.release_interface(self._device, HID_INTERFACE)
            except Exception as e:
                logger.warning("Error closing device: %s", e)
            finally:
                self._device = None
                self._connected = False
                logger.info("Disconnected")

    def _require_connection(self) -> None:
        if not self._connected:
            raise ConnectionError("Not connected to device")

    def get_feature_report(self, report_id: int, size: int) -> bytes:
        """Read a feature report.

        Args:
            report_id: Report ID (frame kind).
            size: Report size in bytes, including the report ID.

        Returns:
            The report bytes starting with the report ID.

        Raises:
            ConnectionError: If not connected.
            IOError: If the transfer fails.
        """
        self._require_connection()
        with self._lock:
            if self._backend == "hidapi":
                data = self._device.get_feature_report(report_id, size)
            elif self._backend == "pyusb":
                data = self._device.ctrl_transfer(
                    REQUEST_TYPE_IN,
                    HID_GET_REPORT,
                    (REPORT_TYPE_FEATURE << 8) | report_id,
                    HID_INTERFACE,
                    size,
                    timeout=CONTROL_TIMEOUT_MS,
                )
            else:
                raise RuntimeError(f"Unknown backend: {self._backend}")

        logger.debug("Feature report 0x%02X: %d bytes", report_id, len(data))
        return bytes(data)

    def send_feature_report(self, data: bytes) -> int:
        """Write a feature report whose first byte is the report ID.

        Returns:
            Number of bytes written.

        Raises:
            ConnectionError: If not connected.
            ValueError: If ``data`` is empty.
        """
        self._require_connection()
        if not data:
            raise ValueError("Feature report must contain at least the report ID")

        with self._lock:
            if self._backend == "hidapi":
                written = self._device.send_feature_report(data)
            elif self._backend == "pyusb":
                written = self._device.ctrl_transfer(
                    REQUEST_TYPE_OUT,
                    HID_SET_REPORT,
                    (REPORT_TYPE_FEATURE << 8) | data[0],
                    HID_INTERFACE,
                    data,
                    timeout=CONTROL_TIMEOUT_MS,
                )
            else:
                raise RuntimeError(f"Unknown backend: {self._backend}")

        if written < 0:
            raise IOError(f"Failed to send feature report 0x{data[0]:02X}")
        logger.debug("Sent feature report 0x%02X: %d bytes", data[0], written)
        return written

    def write(self, data: bytes) -> int:
        """Write an output report whose first byte is the report ID.

        Raises:
            ConnectionError: If not connected.
        """
        self._require_connection()
        with self._lock:
            if self._backend == "hidapi":
                return self._device.write(data)
            elif self._backend == "pyusb":
                return self._device.write(EP_OUT, data, timeout=READ_TIMEOUT_MS)
            else:
                raise RuntimeError(f"Unknown backend: {self._backend}")

    def read(self, size: int, timeout_ms: int = READ_TIMEOUT_MS) -> bytes | None:
        """Read an input report.

        Returns:
            The report bytes, or None if the read timed out.

        Raises:
            ConnectionError: If not connected.
        """
        self._require_connection()
        with self._lock:
            try:
                if self._backend == "hidapi":
                    data = self._device.read(size, timeout_ms)
                    if data:
                        return bytes(data)
                    return None
                elif self._backend == "pyusb":
                    data = self._device.read(EP_IN, size, timeout=timeout_ms)
                    return bytes(data)
            except Exception as e:
                logger.debug("Read error: %s", e)
                return None
        return None
