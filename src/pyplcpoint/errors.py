"""Build and decode errors for pyplcpoint; each names the offending identifier."""


class PyPLCPointError(Exception):
    """Base exception for pyplcpoint."""

    pass


class ConfigError(PyPLCPointError):
    """Raised when the point configuration cannot be compiled. Aborts the whole build."""

    pass


class SchemaError(ConfigError):
    """Raised when a required table (the device table) is missing."""

    def __init__(self, table: str, message: str | None = None) -> None:
        self.table = table
        super().__init__(message or f"Missing required table: {table!r}")


class DuplicateIPError(ConfigError):
    """Raised when two device rows share an IP address."""

    def __init__(self, ip: str, message: str | None = None) -> None:
        self.ip = ip
        super().__init__(message or f"IP address {ip!r} is defined more than once in the device table")


class DuplicatePropertyNameError(ConfigError):
    """Raised when a property name appears twice across all sheets."""

    def __init__(self, property_name: str, sheet: str, message: str | None = None) -> None:
        self.property_name = property_name
        self.sheet = sheet
        super().__init__(message or f"Duplicate property name {property_name!r} in sheet {sheet!r}")


class TriggerPeriodConflictError(ConfigError):
    """Raised when points sharing a trigger address disagree on their period."""

    def __init__(self, trigger_address: str, sheet: str, message: str | None = None) -> None:
        self.trigger_address = trigger_address
        self.sheet = sheet
        super().__init__(
            message or f"Trigger {trigger_address!r} in sheet {sheet!r} is used with more than one period"
        )


class MissingDeviceMappingError(ConfigError):
    """Raised when no device row exists for a required (sheet, module) pair."""

    def __init__(
        self,
        device_name: str,
        *,
        sheet: str | None = None,
        module: int | None = None,
        message: str | None = None,
    ) -> None:
        self.device_name = device_name
        self.sheet = sheet
        self.module = module
        super().__init__(message or f"No device named {device_name!r} in the device table")


class InvalidPointError(ConfigError):
    """Raised when a point row has an unusable type, address, length or period."""

    def __init__(self, property_name: str, sheet: str, message: str | None = None) -> None:
        self.property_name = property_name
        self.sheet = sheet
        super().__init__(message or f"Invalid point {property_name!r} in sheet {sheet!r}")


class DecodeError(PyPLCPointError):
    """Raised when a decode reads past the end of the supplied register data."""

    def __init__(
        self,
        message: str,
        *,
        offset: int | None = None,
        needed: int | None = None,
        available: int | None = None,
    ) -> None:
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(message)
