"""
HID report descriptor parsing.

Turns the raw descriptor bytes of an interface into a tree of items
(collections, with their nested collections and data items) so an
interface can be recognised by a chain of usages, and computes the
report lengths needed to size reads and writes.

Usages are extended 32-bit values: usage page in the high 16 bits.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


# Item types
TYPE_MAIN = 0
TYPE_GLOBAL = 1
TYPE_LOCAL = 2

# Main item tags
TAG_INPUT = 0x8
TAG_OUTPUT = 0x9
TAG_COLLECTION = 0xA
TAG_FEATURE = 0xB
TAG_END_COLLECTION = 0xC

# Global item tags
TAG_USAGE_PAGE = 0x0
TAG_REPORT_SIZE = 0x7
TAG_REPORT_ID = 0x8
TAG_REPORT_COUNT = 0x9
TAG_PUSH = 0xA
TAG_POP = 0xB

# Local item tags
TAG_USAGE = 0x0
TAG_USAGE_MINIMUM = 0x1
TAG_USAGE_MAXIMUM = 0x2

LONG_ITEM_PREFIX = 0xFE

DATA_ITEM_KINDS = {
    TAG_INPUT: 'input',
    TAG_OUTPUT: 'output',
    TAG_FEATURE: 'feature',
}


class DescriptorError(ValueError):
    """The descriptor bytes are truncated or unbalanced."""


@dataclass
class DescriptorItem:
    """A collection or data item with the usages declared for it."""
    kind: str
    usages: List[int] = field(default_factory=list)
    usage_ranges: List[Tuple[int, int]] = field(default_factory=list)
    children: List['DescriptorItem'] = field(default_factory=list)

    def has_usage(self, usage: int) -> bool:
        if usage in self.usages:
            return True
        return any(low <= usage <= high for low, high in self.usage_ranges)


@dataclass
class ReportDescriptor:
    """Parsed descriptor: top-level items and maximum report lengths.

    Report lengths are in bytes and include the report id byte, whether
    or not the device uses report ids; 0 means no such report. When
    uses_report_ids is False, hidapi delivers input reports without the
    leading id byte.
    """
    items: List[DescriptorItem]
    max_input_report_length: int
    max_output_report_length: int
    uses_report_ids: bool = False


def has_usage_chain(item: DescriptorItem, usages: Sequence[int]) -> bool:
    """
    True if the item carries usages[0] and, when more usages remain,
    some child item recursively matches the rest of the chain.
    """
    if not usages:
        return False
    if not item.has_usage(usages[0]):
        return False
    if len(usages) == 1:
        return True
    return any(has_usage_chain(child, usages[1:]) for child in item.children)


def descriptor_has_usage_chain(descriptor: ReportDescriptor, usages: Sequence[int]) -> bool:
    return any(has_usage_chain(item, usages) for item in descriptor.items)


def _iter_items(data: bytes):
    """Yield (type, tag, size, value) for each short item."""
    i = 0
    while i < len(data):
        prefix = data[i]
        if prefix == LONG_ITEM_PREFIX:
            if i + 1 >= len(data):
                raise DescriptorError("truncated long item")
            i += 3 + data[i + 1]
            continue

        size = (0, 1, 2, 4)[prefix & 0x3]
        item_type = (prefix >> 2) & 0x3
        tag = (prefix >> 4) & 0xF
        if i + 1 + size > len(data):
            raise DescriptorError(f"truncated item at offset {i}")

        value = int.from_bytes(data[i + 1:i + 1 + size], 'little')
        yield item_type, tag, size, value
        i += 1 + size


def _extend_usage(usage_page: int, value: int, size: int) -> int:
    if size == 4:
        return value
    return (usage_page << 16) | value


def parse_report_descriptor(data: bytes) -> ReportDescriptor:
    """Parse raw report descriptor bytes."""
    root = DescriptorItem(kind='root')
    stack: List[DescriptorItem] = [root]

    globals_state = {'usage_page': 0, 'report_size': 0, 'report_count': 0, 'report_id': 0}
    globals_stack: List[Dict[str, int]] = []

    usages: List[int] = []
    usage_ranges: List[Tuple[int, int]] = []
    usage_minimum: Optional[int] = None

    report_bits: Dict[Tuple[str, int], int] = {}

    for item_type, tag, size, value in _iter_items(bytes(data)):
        if item_type == TYPE_MAIN:
            if tag == TAG_COLLECTION:
                collection = DescriptorItem('collection', usages, usage_ranges)
                stack[-1].children.append(collection)
                stack.append(collection)
            elif tag == TAG_END_COLLECTION:
                if len(stack) == 1:
                    raise DescriptorError("end collection without collection")
                stack.pop()
            elif tag in DATA_ITEM_KINDS:
                kind = DATA_ITEM_KINDS[tag]
                stack[-1].children.append(DescriptorItem(kind, usages, usage_ranges))
                key = (kind, globals_state['report_id'])
                report_bits[key] = (report_bits.get(key, 0)
                                    + globals_state['report_size'] * globals_state['report_count'])

            # Local items only apply to the next main item
            usages, usage_ranges, usage_minimum = [], [], None

        elif item_type == TYPE_GLOBAL:
            if tag == TAG_USAGE_PAGE:
                globals_state['usage_page'] = value
            elif tag == TAG_REPORT_SIZE:
                globals_state['report_size'] = value
            elif tag == TAG_REPORT_ID:
                globals_state['report_id'] = value
            elif tag == TAG_REPORT_COUNT:
                globals_state['report_count'] = value
            elif tag == TAG_PUSH:
                globals_stack.append(dict(globals_state))
            elif tag == TAG_POP:
                if not globals_stack:
                    raise DescriptorError("pop without push")
                globals_state = globals_stack.pop()

        elif item_type == TYPE_LOCAL:
            if tag == TAG_USAGE:
                usages.append(_extend_usage(globals_state['usage_page'], value, size))
            elif tag == TAG_USAGE_MINIMUM:
                usage_minimum = _extend_usage(globals_state['usage_page'], value, size)
            elif tag == TAG_USAGE_MAXIMUM and usage_minimum is not None:
                usage_ranges.append((usage_minimum, _extend_usage(globals_state['usage_page'], value, size)))
                usage_minimum = None

    if len(stack) != 1:
        raise DescriptorError("unterminated collection")

    def max_length(kind: str) -> int:
        lengths = [(bits + 7) // 8 for (k, _), bits in report_bits.items() if k == kind]
        return max(lengths) + 1 if lengths else 0

    return ReportDescriptor(
        items=root.children,
        max_input_report_length=max_length('input'),
        max_output_report_length=max_length('output'),
        # Report id 0 is reserved: it means the device does not number its reports
        uses_report_ids=any(report_id != 0 for _, report_id in report_bits),
    )
