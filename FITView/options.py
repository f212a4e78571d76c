# Copyright 2019 Joan Puig
# See LICENSE for details


from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


"""
Decoder options accepted by the FIT decoding library, their types and defaults.
The schema is the single source of truth for validation and for computing defaults.
"""


DecoderOptions = Dict[str, bool]


@dataclass(frozen=True)
class OptionSchemaEntry:
    type: str
    default: bool
    description: str


TYPE_NAME_TO_CLASS = {
    'boolean': bool,
}


DECODER_OPTIONS_SCHEMA: Mapping[str, OptionSchemaEntry] = MappingProxyType({
    'apply_scale_and_offset': OptionSchemaEntry('boolean', True, 'Apply scale and offset transformations'),
    'expand_sub_fields': OptionSchemaEntry('boolean', True, 'Expand sub-fields in messages'),
    'expand_components': OptionSchemaEntry('boolean', True, 'Expand component fields'),
    'convert_types_to_strings': OptionSchemaEntry('boolean', True, 'Convert enum types to strings'),
    'convert_datetimes_to_dates': OptionSchemaEntry('boolean', True, 'Convert timestamps to datetime objects'),
    'include_unknown_data': OptionSchemaEntry('boolean', True, 'Include unknown message types'),
    'merge_heart_rates': OptionSchemaEntry('boolean', True, 'Merge heart rate data from multiple sources'),
})


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Tuple[str, ...]
    validated_options: DecoderOptions


def get_default_decoder_options() -> DecoderOptions:
    return {name: entry.default for name, entry in DECODER_OPTIONS_SCHEMA.items()}


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return 'boolean'
    return type(value).__name__


def _matches_type(value: Any, entry: OptionSchemaEntry) -> bool:
    expected = TYPE_NAME_TO_CLASS[entry.type]
    # bool is a subclass of int, but an int is never accepted as a bool
    if expected is bool:
        return isinstance(value, bool)
    return isinstance(value, expected) and not isinstance(value, bool)


def validate_decoder_options(candidate: Optional[Mapping[str, Any]]) -> ValidationResult:
    """
    Validates the candidate options against DECODER_OPTIONS_SCHEMA

    None means "use all defaults" and is always valid. Type mismatches and unknown keys are
    reported as errors but never raise: the returned validated_options is always a complete
    set of options where every invalid or missing entry holds its default value
    """
    errors = []
    validated_options = get_default_decoder_options()

    if candidate is None:
        return ValidationResult(True, (), validated_options)

    if not isinstance(candidate, Mapping):
        errors.append('Decoder options must be a mapping, got {}'.format(_type_name(candidate)))
        return ValidationResult(False, tuple(errors), validated_options)

    for key, value in candidate.items():
        entry = DECODER_OPTIONS_SCHEMA.get(key)
        if entry is None:
            errors.append('Unknown decoder option: {}'.format(key))
        elif value is None:
            continue
        elif not _matches_type(value, entry):
            errors.append('{} must be of type {}, got {}'.format(key, entry.type, _type_name(value)))
        else:
            validated_options[key] = value

    return ValidationResult(len(errors) == 0, tuple(errors), validated_options)
