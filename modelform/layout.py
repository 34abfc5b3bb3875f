"""
Row layout for resolved form fields.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .config_loader import get_config_value

T = TypeVar("T")

NO_ROW = 0


@dataclass
class RowGroup(Generic[T]):
    """Fields sharing a row key. Key 0 members render one per row."""
    key: int
    fields: List[T]

    @property
    def is_explicit(self) -> bool:
        return self.key != NO_ROW

    def __len__(self) -> int:
        return len(self.fields)


def group_by_row(fields: Sequence[T]) -> List[RowGroup[T]]:
    """
    Group fields by their row key in ascending key order.

    Grouping is stable: members keep their original relative order and rows
    appear in ascending key order, so the result depends only on
    (row key, input position).

    Args:
        fields: Items exposing a ``row_key`` attribute

    Returns:
        List of RowGroup
    """
    groups: Dict[int, List[T]] = {}
    for item in fields:
        groups.setdefault(getattr(item, "row_key", NO_ROW), []).append(item)
    return [RowGroup(key, groups[key]) for key in sorted(groups)]


def column_width(group: RowGroup, total_span: int = 12) -> int:
    """
    Grid columns given to each member of a row.

    Rows without an explicit key use the full span. Explicit rows divide the
    span with truncating division; leftover columns stay empty.
    """
    if not group.is_explicit or not group.fields:
        return total_span
    return max(1, total_span // len(group.fields))


def row_css_class(group: RowGroup, config: Optional[Dict[str, Any]] = None) -> str:
    row_class = get_config_value('layout', 'row_class', 'm-form-row', config=config)
    if group.is_explicit and len(group.fields) > 1:
        return f"{row_class} {get_config_value('layout', 'multiple_class', 'multiple-forms-in-row', config=config)}"
    return row_class


def cell_css_class(group: RowGroup, config: Optional[Dict[str, Any]] = None) -> str:
    prefix = get_config_value('layout', 'cell_class_prefix', 'form-group col-', config=config)
    total_span = get_config_value('layout', 'total_span', 12, config=config)
    return f"{prefix}{column_width(group, total_span)}"
