"""ARINC 429 word codec core: label table, BNR/float encoders, SSM combination."""

from .labels import LABEL_TABLE, label_to_wire, wire_to_label, parse_label, format_label
from .encode429 import (
    NOSDI,
    BnrSsm,
    WordOverflowError,
    build_bnr_word,
    split_bnr_word,
    build_float_word,
    split_float_word,
    combine_ssm,
    word_fields,
    float_to_bits,
    bits_to_float,
)
