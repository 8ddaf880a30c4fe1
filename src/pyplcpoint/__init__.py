"""pyplcpoint: compile PLC point tables into request blocks, task descriptors and storage schema."""

__version__ = "0.1.0"

from .builder import build_ir
from .codec import decode_block, decode_value, encode_float, encode_int, encode_short, encode_string
from .compiler import CompileResult, compile_config, to_dict
from .errors import (
    ConfigError,
    DecodeError,
    DuplicateIPError,
    DuplicatePropertyNameError,
    InvalidPointError,
    MissingDeviceMappingError,
    PyPLCPointError,
    SchemaError,
    TriggerPeriodConflictError,
)
from .loader import load_workbook
from .normalize import normalize_address
from .optimizer import optimize_requests, plan_requests
from .tasks import classify_tasks, has_changed, storage_name
from .types import (
    BuildOptions,
    ByteOrder,
    DeviceEndpoint,
    ModbusTable,
    PointDefinition,
    PointType,
    RequestBlock,
    StringByteOrder,
    Tag,
    TaskDescriptor,
    TaskKind,
)
from .validate import validate_config

__all__ = [
    "__version__",
    "build_ir",
    "decode_block",
    "decode_value",
    "encode_float",
    "encode_int",
    "encode_short",
    "encode_string",
    "CompileResult",
    "compile_config",
    "to_dict",
    "ConfigError",
    "DecodeError",
    "DuplicateIPError",
    "DuplicatePropertyNameError",
    "InvalidPointError",
    "MissingDeviceMappingError",
    "PyPLCPointError",
    "SchemaError",
    "TriggerPeriodConflictError",
    "load_workbook",
    "normalize_address",
    "optimize_requests",
    "plan_requests",
    "classify_tasks",
    "has_changed",
    "storage_name",
    "BuildOptions",
    "ByteOrder",
    "DeviceEndpoint",
    "ModbusTable",
    "PointDefinition",
    "PointType",
    "RequestBlock",
    "StringByteOrder",
    "Tag",
    "TaskDescriptor",
    "TaskKind",
    "validate_config",
]
