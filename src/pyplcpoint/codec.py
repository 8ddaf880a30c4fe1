"""
Register codec: raw 16-bit words -> typed values under a byte-order mode, and back.

Words are reordered here into canonical big-endian order (high word first,
high byte first); pymodbus' register converters then do the int/float
reinterpretation. Strings are two ASCII characters per register.
"""

from collections.abc import Sequence
from typing import Any

from pymodbus.client.mixin import ModbusClientMixin

from .errors import DecodeError
from .normalize import element_width
from .types import ByteOrder, ModbusTable, PointType, RequestBlock, StringByteOrder, Tag

DATATYPE = ModbusClientMixin.DATATYPE


def swap_bytes(word: int) -> int:
    """Exchange the high and low byte of a 16-bit word."""
    word &= 0xFFFF
    return ((word & 0xFF) << 8) | (word >> 8)


def _require(data: Sequence[Any], offset: int, count: int) -> None:
    if offset < 0 or offset + count > len(data):
        raise DecodeError(
            f"Need {count} value(s) at offset {offset}, only {len(data)} available",
            offset=offset,
            needed=count,
            available=len(data),
        )


def _canonical_pair(data: Sequence[int], offset: int, order: ByteOrder) -> list[int]:
    """Return [high word, low word] in ABCD layout for the two words at offset."""
    _require(data, offset, 2)
    first, second = data[offset] & 0xFFFF, data[offset + 1] & 0xFFFF
    if order.swaps_bytes:
        first, second = swap_bytes(first), swap_bytes(second)
    if order.swaps_words:
        return [second, first]
    return [first, second]


def _from_canonical(pair: Sequence[int], order: ByteOrder) -> list[int]:
    """Inverse of _canonical_pair: lay an ABCD [high, low] pair out under order."""
    high, low = pair
    if order.swaps_words:
        high, low = low, high
    if order.swaps_bytes:
        high, low = swap_bytes(high), swap_bytes(low)
    return [high, low]


def decode_short(data: Sequence[int], offset: int, order: ByteOrder = ByteOrder.ABCD) -> int:
    """Signed 16-bit value of one word; byte-swapped modes swap the word first."""
    _require(data, offset, 1)
    word = data[offset] & 0xFFFF
    if order.swaps_bytes:
        word = swap_bytes(word)
    return int(ModbusClientMixin.convert_from_registers([word], DATATYPE.INT16))


def decode_int(data: Sequence[int], offset: int, order: ByteOrder = ByteOrder.ABCD) -> int:
    """Signed 32-bit value from the words at offset and offset + 1."""
    pair = _canonical_pair(data, offset, order)
    return int(ModbusClientMixin.convert_from_registers(pair, DATATYPE.INT32))


def decode_float(data: Sequence[int], offset: int, order: ByteOrder = ByteOrder.ABCD) -> float:
    """IEEE-754 single precision from the same 4-byte assembly as decode_int."""
    pair = _canonical_pair(data, offset, order)
    return float(ModbusClientMixin.convert_from_registers(pair, DATATYPE.FLOAT32))


def decode_string(
    data: Sequence[int],
    offset: int,
    length: int,
    order: StringByteOrder = StringByteOrder.BADC,
) -> str:
    """ASCII text packed two characters per register; trailing NULs are dropped."""
    _require(data, offset, length)
    raw = bytearray()
    for word in data[offset : offset + length]:
        high, low = (word >> 8) & 0xFF, word & 0xFF
        raw.extend((high, low) if order == StringByteOrder.ABCD else (low, high))
    return raw.rstrip(b"\x00").decode("ascii", errors="replace")


def decode_bool(bits: Sequence[Any], offset: int) -> bool:
    _require(bits, offset, 1)
    return bool(bits[offset])


def decode_value(
    data: Sequence[Any],
    offset: int,
    point_type: PointType,
    *,
    register_length: int = 1,
    array_length: int = 1,
    byte_order: ByteOrder = ByteOrder.ABCD,
    string_byte_order: StringByteOrder = StringByteOrder.BADC,
) -> Any:
    """
    Decode one point at offset. ``data`` is coil bits for bool types and
    register words otherwise. Arrays repeat the scalar rule every element
    width: o, o + w, o + 2w, ...
    """
    if point_type.is_array:
        width = element_width(point_type)
        scalar = PointType(point_type.base)
        return [
            decode_value(
                data,
                offset + i * width,
                scalar,
                register_length=width,
                byte_order=byte_order,
                string_byte_order=string_byte_order,
            )
            for i in range(array_length)
        ]
    base = point_type.base
    if base == "bool":
        return decode_bool(data, offset)
    if base == "short":
        return decode_short(data, offset, byte_order)
    if base == "int":
        return decode_int(data, offset, byte_order)
    if base == "float":
        return decode_float(data, offset, byte_order)
    return decode_string(data, offset, register_length, string_byte_order)


def decode_tag(
    tag: Tag,
    data: Sequence[Any],
    offset: int,
    byte_order: ByteOrder = ByteOrder.ABCD,
    string_byte_order: StringByteOrder = StringByteOrder.BADC,
) -> Any:
    return decode_value(
        data,
        offset,
        tag.point_type,
        register_length=tag.register_length,
        array_length=tag.array_length,
        byte_order=byte_order,
        string_byte_order=string_byte_order,
    )


def decode_block(
    block: RequestBlock,
    data: Sequence[Any],
    byte_order: ByteOrder = ByteOrder.ABCD,
    string_byte_order: StringByteOrder = StringByteOrder.BADC,
) -> dict[str, Any]:
    """
    Demultiplex one batched read into {tag name: value}, in block order.
    ``data`` is what the read returned: bits for coil blocks, words otherwise.
    """
    if len(data) < block.length:
        raise DecodeError(
            f"Short {'bit' if block.table == ModbusTable.COIL else 'register'} response for block "
            f"at {block.start_address}: got {len(data)}, expected {block.length}",
            offset=block.start_address,
            needed=block.length,
            available=len(data),
        )
    return {
        tag.name: decode_tag(tag, data, block.offset_of(tag), byte_order, string_byte_order)
        for tag in block.tags
    }


def encode_short(value: int, order: ByteOrder = ByteOrder.ABCD) -> list[int]:
    word = value & 0xFFFF
    return [swap_bytes(word) if order.swaps_bytes else word]


def encode_int(value: int, order: ByteOrder = ByteOrder.ABCD) -> list[int]:
    """Two words that decode_int reads back as value under the same order."""
    pair = ModbusClientMixin.convert_to_registers(int(value), DATATYPE.INT32)
    return _from_canonical(pair, order)


def encode_float(value: float, order: ByteOrder = ByteOrder.ABCD) -> list[int]:
    pair = ModbusClientMixin.convert_to_registers(float(value), DATATYPE.FLOAT32)
    return _from_canonical(pair, order)


def encode_string(text: str, length: int, order: StringByteOrder = StringByteOrder.BADC) -> list[int]:
    """Pack text into exactly ``length`` registers, NUL padded; longer text is truncated."""
    raw = text.encode("ascii", errors="replace")[: length * 2].ljust(length * 2, b"\x00")
    words = []
    for i in range(0, len(raw), 2):
        first, second = raw[i], raw[i + 1]
        words.append((first << 8) | second if order == StringByteOrder.ABCD else (second << 8) | first)
    return words
