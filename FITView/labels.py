# Copyright 2019 Joan Puig
# See LICENSE for details


from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


Messages = Dict[Any, List[Any]]


@dataclass(frozen=True)
class UnknownMessageMapping:
    name: str
    # (label, field number) pairs, in output order
    fields: Tuple[Tuple[str, int], ...]

    def label_row(self, row: Any) -> Any:
        if not isinstance(row, Mapping):
            return row
        return {label: _field_value(row, number) for label, number in self.fields}


UNKNOWN_MESSAGE_MAPPINGS: Mapping[int, UnknownMessageMapping] = MappingProxyType({
    104: UnknownMessageMapping('Device Status', (
        ('timestamp', 253),
        ('battery_voltage', 0),
        ('battery_level', 2),
        ('temperature', 3),
        ('field_4', 4),
    )),
})


def _field_value(row: Mapping, number: int) -> Any:
    if number in row:
        return row[number]
    return row.get(str(number))


def unknown_message_keys(message_number: int) -> Tuple[Any, ...]:
    return 'unknown_{}'.format(message_number), str(message_number), message_number


def apply_unknown_message_labels(messages: Optional[Messages]) -> Messages:
    """
    Adds a human readable entry for every decoded vendor specific message type listed in
    UNKNOWN_MESSAGE_MAPPINGS. The decoder keys those messages by their number ("104" or
    "unknown_104"); the labeled entry is added under the mapping name with the field numbers
    replaced by field names. All the input entries are kept as they are and the input is not modified
    """
    if not messages:
        return {}

    labeled = dict(messages)
    for message_number, mapping in UNKNOWN_MESSAGE_MAPPINGS.items():
        for key in unknown_message_keys(message_number):
            rows = messages.get(key)
            if not isinstance(rows, list):
                continue
            labeled[mapping.name] = [mapping.label_row(row) for row in rows]
            break

    return labeled
