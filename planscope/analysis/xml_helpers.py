"""
Namespace agnostic ElementTree lookups

Plans captured by different tools may or may not carry the showplan
namespace, so every lookup compares local names only.
"""

import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional


def local_name(elem: ET.Element) -> str:
    """Tag without its '{namespace}' prefix"""
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    return tag.split('}', 1)[1] if tag.startswith('{') else tag


def child(elem: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    """First direct child with the given local name"""
    if elem is None:
        return None
    for sub in elem:
        if local_name(sub) == name:
            return sub
    return None


def children(elem: Optional[ET.Element], name: str) -> List[ET.Element]:
    """Direct children with the given local name, in document order"""
    if elem is None:
        return []
    return [sub for sub in elem if local_name(sub) == name]


def scoped_descendants(elem: Optional[ET.Element], name: str, stop: str = "RelOp") -> Iterator[ET.Element]:
    """
    Descendants with the given local name that belong to ``elem`` itself
    
    The walk does not enter elements named ``stop``; used so a join's payload
    does not pick up objects or predicates of its child operators.
    """
    if elem is None:
        return
    stack = list(reversed(list(elem)))
    while stack:
        sub = stack.pop()
        sub_name = local_name(sub)
        if sub_name == stop:
            continue
        if sub_name == name:
            yield sub
        stack.extend(reversed(list(sub)))


def strip_brackets(value: Optional[str]) -> str:
    """'[dbo]' -> 'dbo'"""
    if not value:
        return ""
    return value.replace('[', '').replace(']', '')
