"""Core data model: devices, points, tags, request blocks, task descriptors and build options."""

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_PORT = 502

BASE_TYPES = ("bool", "short", "int", "float", "string")


class ModbusTable(str, Enum):
    """Modbus tables a tag is read from; coils and registers are never batched together."""

    COIL = "coil"
    HOLDING_REGISTER = "holding_register"


class ByteOrder(str, Enum):
    """Layout of a 32-bit value across two registers (A = most significant byte)."""

    ABCD = "ABCD"
    CDAB = "CDAB"
    BADC = "BADC"
    DCBA = "DCBA"

    @property
    def swaps_bytes(self) -> bool:
        return self in (ByteOrder.BADC, ByteOrder.DCBA)

    @property
    def swaps_words(self) -> bool:
        return self in (ByteOrder.CDAB, ByteOrder.DCBA)


class StringByteOrder(str, Enum):
    """Which byte of each register carries the first character."""

    ABCD = "ABCD"  # high byte first
    BADC = "BADC"  # low byte first


class TaskKind(str, Enum):
    MONITOR = "monitor"
    PERIODIC = "periodic"
    CHANGE = "change"
    HANDSHAKE = "handshake"


@dataclass(frozen=True)
class PointType:
    """Scalar type name plus an array flag; ``str()`` gives the table spelling (e.g. ``int[]``)."""

    base: str
    is_array: bool = False

    def __post_init__(self) -> None:
        if self.base not in BASE_TYPES:
            raise ValueError(f"base type must be one of {', '.join(BASE_TYPES)}, got {self.base!r}")

    def __str__(self) -> str:
        return f"{self.base}[]" if self.is_array else self.base

    @property
    def table(self) -> ModbusTable:
        return ModbusTable.COIL if self.base == "bool" else ModbusTable.HOLDING_REGISTER


@dataclass(frozen=True)
class DeviceEndpoint:
    name: str
    ip: str
    port: int = DEFAULT_PORT


@dataclass(frozen=True)
class PointDefinition:
    """One validated row of a point sheet. Addresses are kept as written; see normalize_address."""

    property_name: str
    display_name: str
    address: str
    point_type: PointType
    length: int | None = None
    trigger_address: str | None = None
    return_address: str | None = None
    period: float = 0.0


@dataclass(frozen=True)
class SheetGroup:
    name: str
    points: tuple[PointDefinition, ...] = ()


@dataclass(frozen=True)
class Tag:
    """A point instantiated for one module, reduced to its address footprint."""

    name: str
    property_name: str
    address: int
    register_length: int
    point_type: PointType
    array_length: int = 1

    def __post_init__(self) -> None:
        if self.address < 0:
            raise ValueError(f"address must be >= 0, got {self.address}")
        if self.register_length < 1:
            raise ValueError(f"register_length must be >= 1, got {self.register_length}")

    @property
    def table(self) -> ModbusTable:
        return self.point_type.table

    @property
    def end(self) -> int:
        return self.address + self.register_length


@dataclass(frozen=True)
class TagBinding:
    """Where a tag's value sits inside a block's raw data and how to decode it."""

    name: str
    offset: int
    type_name: str
    register_length: int
    array_length: int


@dataclass(frozen=True)
class RequestBlock:
    """One batched read: ``length`` registers (or coils) from ``start_address``."""

    table: ModbusTable
    start_address: int
    length: int
    tags: tuple[Tag, ...] = ()

    @property
    def end(self) -> int:
        return self.start_address + self.length

    def offset_of(self, tag: Tag) -> int:
        return tag.address - self.start_address

    def bindings(self) -> list[TagBinding]:
        return [
            TagBinding(
                name=t.name,
                offset=self.offset_of(t),
                type_name=str(t.point_type),
                register_length=t.register_length,
                array_length=t.array_length,
            )
            for t in self.tags
        ]


@dataclass(frozen=True)
class PeriodGroup:
    """Points of one sheet and module that share a period (and, for period < 0, a trigger)."""

    sheet: str
    module: int
    period: float
    tags: tuple[Tag, ...]
    trigger_address: str | None = None
    return_address: str | None = None

    @property
    def group_key(self) -> str:
        if self.trigger_address is not None:
            return f"{format_period(self.period)}@{self.trigger_address}"
        return format_period(self.period)


@dataclass(frozen=True)
class ModuleSheet:
    """Everything the IR knows about one sheet instantiated for one module."""

    sheet: str
    module: int
    device: DeviceEndpoint
    tags: tuple[Tag, ...]
    period_groups: tuple[PeriodGroup, ...]

    @property
    def device_name(self) -> str:
        return self.device.name

    def tags_for(self, table: ModbusTable) -> tuple[Tag, ...]:
        return tuple(t for t in self.tags if t.table == table)


@dataclass(frozen=True)
class ValidatedConfig:
    devices: tuple[DeviceEndpoint, ...]
    sheets: tuple[SheetGroup, ...]
    max_modules: int

    def device(self, name: str) -> DeviceEndpoint | None:
        for d in self.devices:
            if d.name == name:
                return d
        return None


@dataclass(frozen=True)
class ProgramIR:
    config: ValidatedConfig
    units: tuple[ModuleSheet, ...]

    def unit(self, sheet: str, module: int) -> ModuleSheet:
        for u in self.units:
            if u.sheet == sheet and u.module == module:
                return u
        raise KeyError(f"No unit for sheet {sheet!r} module {module}")


@dataclass(frozen=True)
class HandshakeProtocol:
    """Trigger/acknowledge exchange run once per handshake tick."""

    trigger_address: str
    return_address: str
    trigger_value: int = 11
    ack_value: int = 11
    reset_value: int = 0
    timeout_ms: int = 5000
    poll_ms: int = 100

    @property
    def steps(self) -> tuple[str, ...]:
        return (
            f"wait {self.trigger_address} == {self.trigger_value}",
            "capture and persist group",
            f"write {self.return_address} = {self.ack_value}",
            f"poll {self.return_address} == {self.reset_value} (timeout {self.timeout_ms} ms)",
            f"poll {self.trigger_address} == {self.reset_value} (timeout {self.timeout_ms} ms)",
        )


@dataclass(frozen=True)
class TaskDescriptor:
    kind: TaskKind
    name: str
    sheet: str
    module: int
    group_key: str
    timing_ms: int
    tags: tuple[Tag, ...]
    storage_name: str | None = None
    trigger_address: str | None = None
    return_address: str | None = None
    handshake: HandshakeProtocol | None = None


@dataclass(frozen=True)
class StorageColumn:
    property_name: str
    display_name: str
    type_name: str
    is_json: bool = False


@dataclass(frozen=True)
class StorageTable:
    """Persistence schema for one period group; every row also carries ModuleNum."""

    name: str
    sheet: str
    period: float
    columns: tuple[StorageColumn, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ServiceBinding:
    """Network service a generated application opens for one (module, sheet)."""

    service_name: str
    device_name: str
    sheet: str
    module: int
    ip: str
    port: int


@dataclass(frozen=True)
class BuildOptions:
    """Build tunables. Changing any of them means a full rebuild."""

    max_modules: int = 1
    max_gap: int = 20
    max_batch_size: int = 100
    byte_order: ByteOrder = ByteOrder.ABCD
    string_byte_order: StringByteOrder = StringByteOrder.BADC
    monitor_interval_ms: int = 1000
    handshake_timeout_ms: int = 5000
    handshake_poll_ms: int = 100

    def __post_init__(self) -> None:
        if self.max_modules < 1:
            raise ValueError(f"max_modules must be >= 1, got {self.max_modules}")
        if self.max_gap < 0:
            raise ValueError(f"max_gap must be >= 0, got {self.max_gap}")
        if self.max_batch_size < 1:
            raise ValueError(f"max_batch_size must be >= 1, got {self.max_batch_size}")
        if self.monitor_interval_ms < 0:
            raise ValueError(f"monitor_interval_ms must be >= 0, got {self.monitor_interval_ms}")
        if self.handshake_timeout_ms < 0 or self.handshake_poll_ms < 1:
            raise ValueError("handshake timeout must be >= 0 and poll interval >= 1")
        # Accept plain strings ("CDAB") from config files and CLI options.
        object.__setattr__(self, "byte_order", ByteOrder(self.byte_order))
        object.__setattr__(self, "string_byte_order", StringByteOrder(self.string_byte_order))


def format_period(period: float) -> str:
    """Render a period the way it is spelled in tables: 1000, -5, 0.2 (no trailing .0)."""
    value = float(period)
    if value.is_integer():
        return str(int(value))
    return repr(value)
