from __future__ import annotations

from collections.abc import Mapping, Sequence
from textwrap import wrap
from typing import Union

WRAP_WIDTH = 110
MAX_LABEL_WIDTH = 22
INDENT = "    "
VALUE_LIMIT = 2000

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object, limit: int = VALUE_LIMIT) -> str:
    if value is None:
        text = ""
    elif isinstance(value, str):
        text = value.strip()
    elif isinstance(value, (list, tuple, set)):
        text = ", ".join(_stringify(item, limit) for item in value)
    else:
        text = str(value)
    return text if len(text) <= limit else text[:limit] + "..."


def _wrap_text(text: str, width: int) -> list[str]:
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    """Titled block of aligned ``label: value`` lines, used for debug delivery reports.

    Long values are cut at ``VALUE_LIMIT`` characters and wrapped under their label.
    """

    def __init__(self, title: str, *, pad_top: bool = True) -> None:
        self.lines: list[str] = [""] if pad_top else []
        self.lines.extend([title, "-" * len(title)])

    def add_fields(self, fields: FieldMapping | None) -> None:
        items = _coerce_items(fields) if fields else []
        if not items:
            return

        label_width = max(min(max(len(str(key)) for key, _ in items), MAX_LABEL_WIDTH), 8)
        value_width = max(WRAP_WIDTH - len(INDENT) - label_width - 4, 32)
        for key, value in items:
            first, *rest = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{INDENT}{str(key):<{label_width}}: {first}")
            self.lines.extend(f"{INDENT}{'':<{label_width}}  {line}" for line in rest)

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()
