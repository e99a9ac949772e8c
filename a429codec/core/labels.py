"""
ARINC 429 label table.

Labels are documented as three-digit octal numbers (000-377) but are
transmitted least-significant-bit first, so the byte found in bits 0-7 of a
word is the label number with its bit order reversed. This module provides
the bijection between the two forms.

- LABEL_TABLE: label number -> wire byte (256 entries)
- label_to_wire / wire_to_label: the bijection itself
- parse_label / format_label: octal text conversion
"""

from typing import Tuple, Union


def _reverse_bits8(value: int) -> int:
    """Reverse the bit order of an 8-bit value."""
    result = 0
    for _ in range(8):
        result = (result << 1) | (value & 1)
        value >>= 1
    return result


# Index is the label number (0o000-0o377), value is the byte sent on the wire.
LABEL_TABLE: Tuple[int, ...] = tuple(_reverse_bits8(n) for n in range(256))


def parse_label(text: Union[str, int]) -> int:
    """
    Parse a label written in octal notation.

    Args:
        text: Octal digits such as '203' or '0o203'. An int is read as if its
              decimal digits were octal (203 -> 0o203), which is what YAML
              yields for an unquoted label.

    Returns:
        Label number (0-255)

    Raises:
        ValueError: If the text is not a valid octal label 000-377
    """
    raw = str(text).strip().lower()
    if raw.startswith('0o'):
        raw = raw[2:]

    if not raw or any(ch not in '01234567' for ch in raw):
        raise ValueError(f"Label must be written in octal (000-377), got '{text}'")

    label = int(raw, 8)
    if label > 0o377:
        raise ValueError(f"Label must be 000-377 octal, got '{text}'")

    return label


def format_label(label: int) -> str:
    """Format a label number as three octal digits."""
    if not (0 <= label <= 0o377):
        raise ValueError(f"Label number must be 0-255, got {label}")
    return f"{label:03o}"


def label_to_wire(label: Union[int, str]) -> int:
    """
    Convert a label to its bit-reversed wire byte.

    Args:
        label: Label number (0-255) or octal text ('203')

    Returns:
        Wire byte for bits 0-7 of an ARINC word
    """
    if isinstance(label, str):
        label = parse_label(label)
    if not (0 <= label <= 0xFF):
        raise ValueError(f"Label number must be 0-255, got {label}")
    return LABEL_TABLE[label]


def wire_to_label(wire: int) -> int:
    """Convert a wire byte (bits 0-7 of a word) back to the label number."""
    if not (0 <= wire <= 0xFF):
        raise ValueError(f"Wire label must be 0-255, got {wire}")
    # Bit reversal is its own inverse
    return LABEL_TABLE[wire]
