"""a429codec - Encode and decode ARINC 429 data words."""

__version__ = "1.0.0"
__author__ = "a429codec Team"

# Import key modules to make them available at package level
from .icd import load_icd, validate_icd_file, ICDDefinition, LabelDefinition
from .config import get_config, Config
from .transport import ArincTransport, LoopbackTransport, FifoEmptyError, build_label_filter

# Import core codec
from .core import (
    NOSDI, BnrSsm, WordOverflowError,
    build_bnr_word, split_bnr_word, build_float_word, split_float_word,
    combine_ssm, word_fields, float_to_bits, bits_to_float,
    LABEL_TABLE, label_to_wire, wire_to_label, parse_label, format_label,
)

__all__ = [
    'load_icd',
    'validate_icd_file',
    'ICDDefinition',
    'LabelDefinition',
    'get_config',
    'Config',
    'ArincTransport',
    'LoopbackTransport',
    'FifoEmptyError',
    'build_label_filter',
    # Codec
    'NOSDI',
    'BnrSsm',
    'WordOverflowError',
    'build_bnr_word',
    'split_bnr_word',
    'build_float_word',
    'split_float_word',
    'combine_ssm',
    'word_fields',
    'float_to_bits',
    'bits_to_float',
    # Labels
    'LABEL_TABLE',
    'label_to_wire',
    'wire_to_label',
    'parse_label',
    'format_label',
]
