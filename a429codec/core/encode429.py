"""
ARINC 429 word encoders (BNR and float payloads) and SSM combination.

This module provides the core encoding functions for 32-bit ARINC 429 words:

- BNR (Binary): payload as a scaled two's-complement integer, with a
  half-scale range, SSM and optional SDI field
- Float: a single-precision float packed into bits 8-30 with NaN as the
  invalid marker
- SSM combination for dual-redundant sources
- Raw field extraction for inspection

Word layout (bit 0 = LSB):

    bits 0-7    label (bit-reversed octal)
    bits 8-9    SDI, or the two lowest data bits in no-SDI mode
    bits 10-28  data (bits 8-28 in no-SDI mode)
    bits 29-30  SSM
    bit 31      parity (set by the transmitter hardware, never here)

All functions are pure and allocate nothing beyond their return values.
"""

import math
import struct
from enum import IntEnum
from typing import Any, Dict, Tuple

import numpy as np

from .labels import format_label, wire_to_label


NOSDI = 4  # any sdi > 3 selects no-SDI mode

BNR_SCALE = 1 << 18  # 2^18: full range in SDI mode
SIGNED_WORD_SCALE = 2147483648.0  # 2^31

SSM_SHIFT = 29
SDI_SHIFT = 8
LABEL_MASK = 0x000000FF
SSM_FIELD_MASK = 0x1FFFFFFF  # everything below the SSM
DATA_MASK_NOSDI = 0xFFFFFF00
DATA_MASK_SDI = 0xFFFFFC00

FLOAT_BIAS = 1.000030  # compensates the truncated mantissa bits
FLOAT_DATA_MASK = 0x7FFFFF00
FLOAT_NAN_BITS = 0x7FC00000
FLOAT_INVALID = FLOAT_NAN_BITS >> 1  # 0x3FE00000

OVERFLOW_MODES = ('wrap', 'clamp', 'error')


class BnrSsm(IntEnum):
    """
    Sign/Status Matrix values for BNR data.

    These follow the ARINC 429 BNR convention. Only combine_ssm depends on
    the numeric codes; applications with their own SSM table can ignore
    the names.
    """
    FAILURE_WARNING = 0
    NO_COMPUTED_DATA = 1
    FUNCTIONAL_TEST = 2
    NORMAL_OPERATION = 3


class WordOverflowError(ValueError):
    """Raised when a BNR value does not fit its data field and overflow='error'."""


def float_to_bits(value: float) -> int:
    """
    Reinterpret a value as an IEEE 754 single-precision bit pattern.

    Values beyond the float32 range become +/-inf, as a C float would.
    """
    with np.errstate(over='ignore'):
        single = np.float32(value)
    return struct.unpack("<I", struct.pack("<f", float(single)))[0]


def bits_to_float(bits: int) -> float:
    """Reinterpret a 32-bit pattern as an IEEE 754 single-precision float."""
    return struct.unpack("<f", struct.pack("<I", bits & 0xFFFFFFFF))[0]


def _round_away_from_zero(value: float) -> int:
    # Ties go away from zero, never to even
    if value > 0:
        return int(value + 0.5)
    return int(value - 0.5)


def bnr_data_bits(no_sdi: bool) -> int:
    """Width of the BNR data field in bits (21 without SDI, 19 with SDI)."""
    return 21 if no_sdi else 19


def build_bnr_word(range_: float, data: float, ssm: int, sdi: int, label: int,
                   overflow: str = 'wrap') -> int:
    """
    Build a BNR ARINC word.

    Args:
        range_: Half full-scale range (e.g. 4096 for +/-4096), must be > 0
        data: Engineering value to encode
        ssm: Sign/Status Matrix value (0-3)
        sdi: SDI value (0-3), or NOSDI (any value > 3) to use the SDI bits
             as extra data precision
        label: Label in wire form (already bit-reversed, 0-255)
        overflow: What to do when the value does not fit the data field:
                  'wrap' (silently drop the high bits), 'clamp' (saturate)
                  or 'error' (raise WordOverflowError)

    Returns:
        32-bit ARINC word without parity

    Raises:
        ValueError: If an argument is outside its domain
        WordOverflowError: If overflow='error' and |data| does not fit
    """
    if not range_ > 0:
        raise ValueError(f"Range must be positive, got {range_}")
    if not (0 <= ssm <= 3):
        raise ValueError(f"SSM must be 0-3, got {ssm}")
    if sdi < 0:
        raise ValueError(f"SDI must be 0-3 or NOSDI, got {sdi}")
    if not (0 <= label <= 0xFF):
        raise ValueError(f"Label must be 0-255 (wire form), got {label}")
    if overflow not in OVERFLOW_MODES:
        raise ValueError(f"Invalid overflow mode: '{overflow}'. Must be one of {OVERFLOW_MODES}")

    no_sdi = sdi > 3
    quantized = data / range_ * BNR_SCALE
    if no_sdi:
        quantized *= 4

    rounded = _round_away_from_zero(quantized)

    if overflow != 'wrap':
        bits = bnr_data_bits(no_sdi)
        max_value = (1 << (bits - 1)) - 1
        min_value = -(1 << (bits - 1))
        if rounded > max_value or rounded < min_value:
            if overflow == 'error':
                raise WordOverflowError(
                    f"Value {data} does not fit a {bits}-bit BNR field with range {range_}. "
                    f"Encodable values lie in [{-range_}, {range_})."
                )
            rounded = max(min(rounded, max_value), min_value)

    word = ssm << SSM_SHIFT
    if no_sdi:
        word |= (rounded << 8) & SSM_FIELD_MASK
    else:
        word |= ((rounded << 10) & SSM_FIELD_MASK) | (sdi << SDI_SHIFT)

    return word | label


def split_bnr_word(word: int, no_sdi: bool, range_: float) -> Tuple[float, int, int]:
    """
    Split a BNR ARINC word into data, SSM and SDI.

    The no_sdi flag must match the one used to build the word: nothing in
    the word itself tells the two layouts apart.

    Args:
        word: 32-bit ARINC word
        no_sdi: True if bits 8-9 carry data rather than an SDI
        range_: Half full-scale range used when building the word

    Returns:
        Tuple of (data, ssm, sdi); sdi is 0 in no-SDI mode

    Raises:
        ValueError: If the range is not positive or the word exceeds 32 bits
    """
    if not range_ > 0:
        raise ValueError(f"Range must be positive, got {range_}")
    if not (0 <= word <= 0xFFFFFFFF):
        raise ValueError(f"ARINC word must be 32-bit unsigned, got {word}")

    # Left-justify the data field so bit 28 becomes the sign bit
    aligned = ((word & (DATA_MASK_NOSDI if no_sdi else DATA_MASK_SDI)) << 3) & 0xFFFFFFFF
    if aligned & 0x80000000:
        aligned -= 1 << 32

    data = range_ / SIGNED_WORD_SCALE * aligned
    ssm = (word >> SSM_SHIFT) & 0x3
    sdi = 0 if no_sdi else (word >> SDI_SHIFT) & 0x3

    return data, ssm, sdi


def build_float_word(data: float, valid: bool, label: int) -> int:
    """
    Build a float ARINC word.

    The float32 bit pattern is shifted right by one bit so that sign,
    exponent and the top 14 mantissa bits land in bits 8-30. The value is
    first scaled by FLOAT_BIAS (in single precision) so the truncation
    error is centred around zero.

    Args:
        data: Value to encode
        valid: False to send the NaN "invalid" marker instead of data
        label: Label in wire form (0-255)

    Returns:
        32-bit ARINC word
    """
    if not (0 <= label <= 0xFF):
        raise ValueError(f"Label must be 0-255 (wire form), got {label}")

    if not valid:
        return FLOAT_INVALID | label

    with np.errstate(over='ignore', invalid='ignore'):
        scaled = np.float32(FLOAT_BIAS) * np.float32(data)

    return ((float_to_bits(scaled) >> 1) & FLOAT_DATA_MASK) | label


def split_float_word(word: int) -> Tuple[float, bool]:
    """
    Split a float ARINC word into data and validity.

    Returns:
        Tuple of (data, valid); data is 0.0 when the word carries NaN
    """
    if not (0 <= word <= 0xFFFFFFFF):
        raise ValueError(f"ARINC word must be 32-bit unsigned, got {word}")

    value = bits_to_float((word & FLOAT_DATA_MASK) << 1)
    valid = not math.isnan(value)

    return (value if valid else 0.0), valid


def combine_ssm(ssm1: int, ssm2: int) -> int:
    """
    Combine the SSMs of two redundant sources.

    Both Normal Operation (3) -> 3; otherwise any Failure Warning (0) -> 0;
    otherwise No Computed Data (1).
    """
    if ssm1 == 3 and ssm2 == 3:
        return 3
    if ssm1 == 0 or ssm2 == 0:
        return 0
    return 1


def word_fields(word: int, no_sdi: bool = False) -> Dict[str, Any]:
    """
    Extract the raw fields of an ARINC word without applying any scaling.

    Args:
        word: 32-bit ARINC word
        no_sdi: True if bits 8-9 belong to the data field

    Returns:
        Dictionary with label, wire_label, sdi, data_bits, ssm and parity
    """
    if not (0 <= word <= 0xFFFFFFFF):
        raise ValueError(f"ARINC word must be 32-bit unsigned, got {word}")

    wire_label = word & LABEL_MASK

    if no_sdi:
        sdi = None
        data_bits = (word >> 8) & 0x1FFFFF
    else:
        sdi = (word >> SDI_SHIFT) & 0x3
        data_bits = (word >> 10) & 0x7FFFF

    return {
        'label': format_label(wire_to_label(wire_label)),
        'wire_label': wire_label,
        'sdi': sdi,
        'data_bits': data_bits,
        'ssm': (word >> SSM_SHIFT) & 0x3,
        'parity': (word >> 31) & 0x1,
    }
