"""Formato canónico de seriales (`XXXX-XXXX-XXXX`)."""

from __future__ import annotations

import re

from core.errors import SameSerialError, ValidationFormatError

SERIAL_PATTERN = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$", re.IGNORECASE)


def is_valid_serial(value: str) -> bool:
    return bool(SERIAL_PATTERN.match(value.strip()))


def normalize_serial(value: str, *, field: str = "device") -> str:
    """Recorta, valida y pasa a mayúsculas. Lanza `ValidationFormatError`."""

    if not isinstance(value, str) or not is_valid_serial(value):
        raise ValidationFormatError(field, str(value))
    return value.strip().upper()


def normalize_serial_pair(failed_serial: str, replacement_serial: str) -> tuple[str, str]:
    failed = normalize_serial(failed_serial, field="failed device")
    replacement = normalize_serial(replacement_serial, field="replacement device")
    if failed == replacement:
        raise SameSerialError(failed)
    return failed, replacement
