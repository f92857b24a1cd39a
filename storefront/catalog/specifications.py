"""
Specification text parsing for the product detail page.

Admins type specifications into a plain textarea, one fact per line:

    Hardware
    CPU: IPQ-4019
    Ports: 5x Gigabit Ethernet
    Power
    Input: 12-30 V DC

Lines without a colon are section headings, lines with a colon are
key/value rows. Text that yields no rows at all is shown as-is.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional
import re

# Whitespace plus the byte order mark some editors prepend
EDGE_SPACE = re.compile(r'^[\s\ufeff]+|[\s\ufeff]+$')


@dataclass
class SpecificationItem:
    key: str
    value: str


@dataclass
class SpecificationSection:
    heading: Optional[str]
    items: List[SpecificationItem] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


def trim(text: str) -> str:
    return EDGE_SPACE.sub('', text)


def parse_line(line: str):
    """Split a key/value line at the first colon.

    Returns a SpecificationItem, or None when the key or value is blank
    (e.g. "Key:" or ": value").
    """
    key, _, value = line.partition(':')
    key = trim(key)
    value = trim(value)
    if not key or not value:
        return None
    return SpecificationItem(key=key, value=value)


def parse_specifications(text) -> List[SpecificationSection]:
    """
    Convert a specification blob into ordered display sections.

    Args:
        text: Raw specification text. Anything that is not a string
              yields no sections.

    Returns:
        list of SpecificationSection, each holding at least one item.
        A heading with no rows before the next heading is dropped.
    """
    if not isinstance(text, str):
        return []

    sections = []
    current_section = None

    for line in text.split('\n'):
        trimmed_line = trim(line)
        if not trimmed_line:
            continue

        if ':' not in trimmed_line:
            # Heading: close the open section if it collected anything
            if current_section and current_section.items:
                sections.append(current_section)
            current_section = SpecificationSection(heading=trimmed_line)
            continue

        item = parse_line(trimmed_line)
        if item is None:
            continue
        if current_section is None:
            current_section = SpecificationSection(heading=None)
        current_section.items.append(item)

    if current_section and current_section.items:
        sections.append(current_section)

    return sections


def build_specifications_display(content):
    """
    Shape specification text for the product page.

    Returns:
        dict:
        {
            'is_structured': bool,
            'sections': list of {'heading': str|None, 'items': [{'key', 'value'}]},
            'raw': original content, shown unformatted when not structured
        }
    """
    sections = parse_specifications(content)
    return {
        'is_structured': bool(sections),
        'sections': [section.to_dict() for section in sections],
        'raw': content,
    }
