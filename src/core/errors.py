"""Taxonomía de errores del dominio y traducción a mensajes de usuario.

Cada excepción lleva un `code` estable que viaja en las respuestas JSON
(`errorCode`) y permite a los tests distinguir causas sin comparar textos.
"""

from __future__ import annotations

from typing import Iterable, Sequence

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
FORBIDDEN_MESSAGE = "Access forbidden. Please check API key permissions for this organization."
NOT_FOUND_MESSAGE = "Resource not found. Please check the serial numbers and organization access."


class RmaError(Exception):
    """Raíz de todos los errores propios."""

    code = "rma_error"


class ConfigurationError(RmaError):
    code = "configuration_error"


class UnknownOrganizationError(RmaError):
    code = "unknown_organization"

    def __init__(self, organization_id: str) -> None:
        super().__init__(f"No API client configured for organization {organization_id}")
        self.organization_id = organization_id


class ValidationFormatError(RmaError):
    code = "invalid_serial_format"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Invalid {field} serial format (should be XXXX-XXXX-XXXX)")
        self.field = field
        self.value = value


class SameSerialError(RmaError):
    code = "same_serial"

    def __init__(self, serial: str) -> None:
        super().__init__(f"Failed and replacement serials must differ (got {serial} twice)")
        self.serial = serial


class DeviceNotFoundError(RmaError):
    code = "device_not_found"

    def __init__(self, serial: str, organization_ids: Sequence[str]) -> None:
        super().__init__(
            f"Failed device {serial} not found in any of the configured organizations: "
            f"{', '.join(organization_ids)}"
        )
        self.serial = serial
        self.organization_ids = list(organization_ids)


class ReplacementNotFoundError(RmaError):
    code = "replacement_not_found"

    def __init__(self, serial: str, organization_name: str) -> None:
        super().__init__(
            f"Replacement device {serial} not found in organization {organization_name} inventory. "
            "Device must be in the same organization as the failed device."
        )
        self.serial = serial
        self.organization_name = organization_name


class ClaimConflictError(RmaError):
    code = "claim_conflict"

    def __init__(self, serial: str, network_id: str, network_name: str) -> None:
        super().__init__(f"Replacement device is already claimed by network: {network_name}")
        self.serial = serial
        self.network_id = network_id
        self.network_name = network_name


class OrganizationUnreachableError(RmaError):
    code = "organization_unreachable"

    def __init__(self, organization_id: str, reason: str) -> None:
        super().__init__(f"Could not access organization {organization_id}: {reason}")
        self.organization_id = organization_id
        self.reason = reason


class StepExecutionError(RmaError):
    """Error que aborta el pipeline; queda adjunto al paso fallido."""

    code = "step_failed"

    def __init__(self, step: int, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.step = step
        self.cause = cause


class RemoteError(RmaError):
    """Fallo devuelto (o provocado) por la plataforma remota."""

    code = "remote_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: Iterable[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = [e for e in (errors or []) if isinstance(e, str)]

    def mentions(self, fragment: str) -> bool:
        needle = fragment.lower()
        return any(needle in e.lower() for e in self.errors) or needle in str(self).lower()


class RemoteNotFoundError(RemoteError):
    code = "remote_not_found"


class RemoteForbiddenError(RemoteError):
    code = "remote_forbidden"


class RemoteRateLimitError(RemoteError):
    code = "remote_rate_limited"

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class RemoteTransportError(RemoteError):
    """Timeout, DNS, conexión rechazada... no hubo respuesta HTTP."""

    code = "remote_transport"


class RemoteRequestError(RemoteError):
    """Cualquier otra respuesta 4xx/5xx."""

    code = "remote_request_failed"


def format_error_message(exc: BaseException) -> str:
    """Traduce una excepción a un mensaje apto para el usuario final."""

    if isinstance(exc, StepExecutionError) and exc.cause is not None:
        return format_error_message(exc.cause)
    if isinstance(exc, RemoteRateLimitError):
        return RATE_LIMIT_MESSAGE
    if isinstance(exc, RemoteForbiddenError):
        return FORBIDDEN_MESSAGE
    if isinstance(exc, RemoteNotFoundError):
        return NOT_FOUND_MESSAGE
    if isinstance(exc, RemoteError) and exc.errors:
        return exc.errors[0]
    return str(exc)


def error_code(exc: BaseException) -> str:
    if isinstance(exc, StepExecutionError) and exc.cause is not None:
        return error_code(exc.cause)
    return getattr(exc, "code", "internal_error")
