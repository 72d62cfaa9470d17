"""USB HID transport for the high flow NEXT."""
