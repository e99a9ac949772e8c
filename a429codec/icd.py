"""ICD (Interface Control Document) label definitions and validation."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .core.encode429 import (
    NOSDI, build_bnr_word, split_bnr_word,
    build_float_word, split_float_word,
)
from .core.labels import format_label, label_to_wire, parse_label, wire_to_label
from .transport import build_label_filter

logger = logging.getLogger(__name__)

VALID_ENCODINGS = ['bnr', 'float']

# YAML 1.1 reads 012 as octal 10; labels must keep their digits
_LEADING_ZERO_INT = re.compile(r'^0[0-7_]+$')


class ICDLoader(yaml.SafeLoader):
    """SafeLoader that keeps leading-zero integers (012, 077) as text."""

    def construct_yaml_int(self, node):
        value = self.construct_scalar(node)
        if _LEADING_ZERO_INT.match(value):
            return value.replace('_', '')
        return super().construct_yaml_int(node)


ICDLoader.add_constructor('tag:yaml.org,2002:int', ICDLoader.construct_yaml_int)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class LabelDefinition:
    """Definition of a single label carried on the bus."""
    name: str
    label: Union[int, str]  # Octal notation: 203 or '203'
    encode: str  # bnr, float
    range: Optional[float] = None  # Half full-scale range, bnr only
    sdi: Optional[int] = None  # 0-3, None = SDI bits used as data (bnr only)
    ssm: Optional[int] = None  # Default SSM when encoding, bnr only
    units: Optional[str] = None
    description: Optional[str] = None

    def validate(self) -> List[str]:
        """Validate label definition and return list of errors."""
        errors = []

        try:
            parse_label(self.label)
        except ValueError as e:
            errors.append(str(e))

        if self.encode not in VALID_ENCODINGS:
            errors.append(f"Encoding must be one of {VALID_ENCODINGS}, got '{self.encode}'")

        if self.encode == 'bnr':
            if self.range is None:
                errors.append("bnr encoding requires 'range'")
            elif not _is_number(self.range):
                # PyYAML reads 1e5 as a string, 1.0e5 as a float
                errors.append(f"Range must be a number, got {self.range!r}")
            elif self.range <= 0:
                errors.append(f"Range must be positive, got {self.range}")
            if self.sdi is not None and not (_is_int(self.sdi) and 0 <= self.sdi <= 3):
                errors.append(f"SDI must be an integer 0-3, got {self.sdi!r}")
            if self.ssm is not None and not (_is_int(self.ssm) and 0 <= self.ssm <= 3):
                errors.append(f"SSM must be an integer 0-3, got {self.ssm!r}")

        if self.encode == 'float':
            # Float words use bits 8-30 for data: no SDI, no SSM
            if self.range is not None:
                errors.append("float encoding cannot use 'range'")
            if self.sdi is not None:
                errors.append("float encoding cannot use 'sdi'")
            if self.ssm is not None:
                errors.append("float encoding cannot use 'ssm'")

        return errors

    @property
    def label_number(self) -> int:
        """Label number (0-255)."""
        return parse_label(self.label)

    @property
    def wire_label(self) -> int:
        """Label byte as transmitted (bit-reversed)."""
        return label_to_wire(self.label_number)

    @property
    def no_sdi(self) -> bool:
        return self.sdi is None

    def encode_value(self, value: float, ssm: Optional[int] = None,
                     valid: bool = True, overflow: str = 'wrap') -> int:
        """
        Encode an engineering value into an ARINC word for this label.

        Args:
            value: Engineering value
            ssm: SSM override (bnr only); defaults to the definition's ssm,
                 then Normal Operation (3)
            valid: Validity flag (float only)
            overflow: Overflow handling for bnr ('wrap', 'clamp', 'error')

        Returns:
            32-bit ARINC word
        """
        if self.encode == 'float':
            return build_float_word(value, valid, self.wire_label)

        if ssm is None:
            ssm = self.ssm if self.ssm is not None else 3

        sdi = NOSDI if self.no_sdi else self.sdi
        return build_bnr_word(self.range, value, ssm, sdi, self.wire_label, overflow=overflow)

    def decode_word(self, word: int) -> Dict[str, Any]:
        """
        Decode an ARINC word according to this definition.

        Returns:
            Dictionary with name, label, value and the status fields that
            apply to the encoding (ssm/sdi for bnr, valid for float)
        """
        result = {
            'name': self.name,
            'label': format_label(self.label_number),
            'units': self.units,
        }

        if self.encode == 'float':
            value, valid = split_float_word(word)
            result.update({'value': value, 'valid': valid})
        else:
            value, ssm, sdi = split_bnr_word(word, self.no_sdi, self.range)
            result.update({
                'value': value,
                'ssm': ssm,
                'sdi': None if self.no_sdi else sdi,
            })

        return result


@dataclass
class ICDDefinition:
    """Complete ICD definition for one ARINC 429 bus."""
    name: str
    labels: List[LabelDefinition] = field(default_factory=list)

    def validate(self) -> List[str]:
        """Validate ICD definition and return list of errors."""
        errors = []

        if not self.name:
            errors.append("ICD must have a name")

        # Check for duplicate label names
        seen_names = set()
        duplicate_names = []
        for definition in self.labels:
            if definition.name in seen_names:
                duplicate_names.append(definition.name)
            seen_names.add(definition.name)

        if duplicate_names:
            errors.append(f"Duplicate label names: {', '.join(duplicate_names)}")

        for i, definition in enumerate(self.labels):
            def_errors = definition.validate()
            for error in def_errors:
                errors.append(f"Label '{definition.name}' (index {i}): {error}")

        # Slot conflicts need parseable labels
        if not errors:
            errors.extend(self._check_slots())

        return errors

    def _check_slots(self) -> List[str]:
        """Check that every word on the bus maps to one definition."""
        errors = []
        by_label: Dict[int, List[LabelDefinition]] = {}
        for definition in self.labels:
            by_label.setdefault(definition.label_number, []).append(definition)

        for number, definitions in by_label.items():
            if len(definitions) == 1:
                continue

            octal = format_label(number)
            names = ', '.join(d.name for d in definitions)
            # Several definitions can share a label only when SDI tells them apart
            if any(d.encode != 'bnr' or d.no_sdi for d in definitions):
                errors.append(f"Label {octal} is used by {names} without distinct SDIs")
                continue

            sdis = [d.sdi for d in definitions]
            if len(set(sdis)) != len(sdis):
                errors.append(f"Label {octal} is used by {names} with duplicate SDIs")

        return errors

    def get_label_by_name(self, name: str) -> Optional[LabelDefinition]:
        """Get label definition by name."""
        for definition in self.labels:
            if definition.name == name:
                return definition
        return None

    def get_labels_by_number(self, label: int) -> List[LabelDefinition]:
        """Get all definitions sharing a label number."""
        return [d for d in self.labels if d.label_number == label]

    def find_definition(self, word: int) -> Optional[LabelDefinition]:
        """Find the definition a received word belongs to."""
        candidates = self.get_labels_by_number(wire_to_label(word & 0xFF))
        if len(candidates) <= 1:
            return candidates[0] if candidates else None

        sdi = (word >> 8) & 0x3
        for definition in candidates:
            if definition.sdi == sdi:
                return definition
        return None

    def decode_word(self, word: int) -> Optional[Dict[str, Any]]:
        """Decode a received word, or return None for an unknown label."""
        definition = self.find_definition(word)
        if definition is None:
            logger.debug("No definition for word 0x%08X", word)
            return None
        return definition.decode_word(word)

    def label_filter(self) -> bytes:
        """Label filter bitmap accepting every label in this ICD."""
        return build_label_filter(d.label_number for d in self.labels)


def load_icd(filepath: Path) -> ICDDefinition:
    """Load ICD from YAML file."""
    with open(filepath, 'r') as f:
        data = yaml.load(f, Loader=ICDLoader)

    if not isinstance(data, dict):
        raise ValueError(f"ICD file {filepath} must contain a YAML mapping")

    label_list = data.get('labels') or []
    if not isinstance(label_list, list):
        raise ValueError(f"ICD 'labels' must be a list, got {label_list!r}")

    labels = []
    for i, label_data in enumerate(label_list):
        if not isinstance(label_data, dict):
            raise ValueError(f"Label entry {i} must be a mapping, got {label_data!r}")
        try:
            labels.append(LabelDefinition(**label_data))
        except TypeError as e:
            # Unknown or missing keys
            raise ValueError(f"Label entry {i}: {e}") from e

    icd = ICDDefinition(
        name=data.get('name', ''),
        labels=labels
    )

    # Validate and raise exceptions for critical errors
    errors = icd.validate()
    if errors:
        error_message = f"ICD validation failed with {len(errors)} errors:\n"
        error_message += "\n".join(f"  - {error}" for error in errors)
        raise ValueError(error_message)

    logger.debug("Loaded ICD '%s' with %d labels", icd.name, len(icd.labels))
    return icd


def validate_icd_file(filepath: Path) -> Dict[str, Any]:
    """Validate ICD file and return validation results."""
    try:
        icd = load_icd(filepath)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        return {
            'valid': False,
            'errors': [f"Failed to load ICD: {e}"],
            'icd': None
        }

    return {
        'valid': True,
        'errors': [],
        'icd': icd
    }
