#!/usr/bin/env python3
"""Example: demultiplex one simulated register read into tag values."""

from pyplcpoint import ByteOrder, DecodeError, decode_block, encode_float, encode_int, encode_string, optimize_requests
from pyplcpoint.types import PointType, Tag


def main() -> None:
    tags = [
        Tag("Temp_M1", "Temp", 100, 2, PointType("float")),
        Tag("BatchNo_M1", "BatchNo", 102, 2, PointType("int")),
        Tag("Recipe_M1", "Recipe", 110, 4, PointType("string")),
    ]
    (block,) = optimize_requests(tags)
    print(f"read {block.length} registers from {block.start_address}")

    # What a CDAB device would answer for that read
    words = [0] * block.length
    words[0:2] = encode_float(21.5, ByteOrder.CDAB)
    words[2:4] = encode_int(4711, ByteOrder.CDAB)
    words[10:14] = encode_string("PLA-2", 4)

    try:
        values = decode_block(block, words, byte_order=ByteOrder.CDAB)
    except DecodeError as e:
        print(f"Decode error: {e}")
        return
    for name, value in values.items():
        print(f"{name} = {value!r}")


if __name__ == "__main__":
    main()
