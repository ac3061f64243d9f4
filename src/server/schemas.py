from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.domain.serial import normalize_serial
from core.errors import ValidationFormatError


class SerialPairRequest(BaseModel):
    """Body of `/validate-devices` and `/replace-device`."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "failedSerial": "Q2XX-AAAA-1111",
                "replacementSerial": "Q2XX-BBBB-2222",
            }
        },
    )

    failed_serial: str = Field(..., alias="failedSerial", description="Serial of the failed device")
    replacement_serial: str = Field(..., alias="replacementSerial", description="Serial of the new device")

    @field_validator("failed_serial")
    @classmethod
    def _failed_format(cls, value: str) -> str:
        try:
            return normalize_serial(value, field="failed device")
        except ValidationFormatError as exc:
            raise ValueError(str(exc)) from None

    @field_validator("replacement_serial")
    @classmethod
    def _replacement_format(cls, value: str) -> str:
        try:
            return normalize_serial(value, field="replacement device")
        except ValidationFormatError as exc:
            raise ValueError(str(exc)) from None
