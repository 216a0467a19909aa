"""
Rendering of command results.

Any result a command produces (a resource dataclass, a list of them, a dict
or a plain value) goes through Formatter.format which knows five modes:

    json   pretty printed, everything kept
    yaml   same structure as json
    csv    one row per record, columns picked by header name
    table  the csv rows in a bordered text table
    plain  'key: value' per field, blank line between records

For csv and table a record's columns are found by matching header names
case-insensitively against the display names of its fields (field metadata
"name", falling back on the field name) or the keys of a mapping.  Headers
that match nothing give an empty cell.
"""
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass, asdict
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, TextIO
from zoneinfo import ZoneInfo
import csv
import io
import json
import sys

import yaml
from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import format_duration
from .errors import ConfigurationError, FormatError
from .resources import GoogleWorkSpaceResourceBase

NO_DATA = "No data to display"


class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    CSV = "csv"
    TABLE = "table"
    PLAIN = "plain"

    def __str__(self) -> str:
        return self.value


def validate_output_format(value: str|OutputFormat|None) -> OutputFormat:
    """Empty means plain.  Anything unknown is a configuration error."""
    if isinstance(value, OutputFormat):
        return value
    v = str(value or OutputFormat.PLAIN.value).strip().lower()
    try:
        return OutputFormat(v)
    except ValueError:
        valid = ", ".join(f.value for f in OutputFormat)
        raise ConfigurationError(f"invalid output format '{value}', valid formats: {valid}") from None


def _default(obj: Any) -> Any:
    """json.dumps hook for the types our resources carry."""
    if isinstance(obj, GoogleWorkSpaceResourceBase):
        return obj.trim()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return format_duration(obj)
    if isinstance(obj, (ZoneInfo, Path)):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=_default)


def to_plain_structure(data: Any) -> Any:
    """Dicts, lists and scalars only, as json would see it."""
    return json.loads(to_json(data))


def cell(value: Any) -> str:
    """Single table/csv cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return ",".join(cell(v) for v in value)
    if isinstance(value, GoogleWorkSpaceResourceBase):
        return str(value)
    if isinstance(value, Mapping) or (is_dataclass(value) and not isinstance(value, type)):
        return json.dumps(value, ensure_ascii=False, default=_default)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _is_record(item: Any) -> bool:
    return (is_dataclass(item) and not isinstance(item, type)) or isinstance(item, Mapping)


def record_items(item: Any) -> list[tuple[str, Any]]:
    """
    (display name, value) pairs of a record.  Empty for non-records.
    """
    if isinstance(item, GoogleWorkSpaceResourceBase):
        return item.field_items()
    if is_dataclass(item) and not isinstance(item, type):
        return [(f.metadata.get("name", f.name), getattr(item, f.name))
                for f in fields(item) if not f.metadata.get("hidden")]
    if isinstance(item, Mapping):
        return [(str(k), v) for k, v in item.items()]
    return []


def _lookup(item: Any) -> dict[str, Any]:
    """Case-insensitive name -> value, matching display name or field name."""
    found = {}
    if is_dataclass(item) and not isinstance(item, type):
        for f in fields(item):
            if f.metadata.get("hidden"):
                continue
            v = getattr(item, f.name)
            found.setdefault(str(f.metadata.get("name", f.name)).lower(), v)
            found.setdefault(f.name.lower(), v)
    else:
        for k, v in record_items(item):
            found.setdefault(k.lower(), v)
    return found


def _records(data: Any) -> list[Any]:
    if isinstance(data, (list, tuple)):
        return list(data)
    return [data]


def resolve_row(item: Any, headers: list[str]) -> list[str]:
    """
    Map one record onto the header columns.  Something that isn't a record
    becomes a single cell.
    """
    if not _is_record(item):
        return [cell(item)]
    lookup = _lookup(item)
    return [cell(lookup.get(h.lower())) for h in headers]


def resolve_rows(data: Any, headers: list[str]) -> list[list[str]]:
    return [resolve_row(item, headers) for item in _records(data)]


def default_headers(data: Any) -> list[str]:
    """Column names taken from the first record when the caller gives none."""
    records = _records(data)
    if not records or not _is_record(records[0]):
        return []
    return [name for name, _ in record_items(records[0])]


@dataclass
class Formatter():
    """
    Output settings for one invocation.  Passed around explicitly rather
    than living in module globals.
    """
    mode: OutputFormat = OutputFormat.PLAIN
    quiet: bool = False

    def __post_init__(self) -> None:
        self.mode = validate_output_format(self.mode)

    @property
    def structured(self) -> bool:
        """json or yaml, where the whole object is dumped."""
        return self.mode in (OutputFormat.JSON, OutputFormat.YAML)

    def format(self, writer: TextIO, data: Any, headers: list[str]|None = None) -> None:
        if data is None:
            if not self.quiet:
                writer.write(NO_DATA + "\n")
            return
        match self.mode:
            case OutputFormat.JSON:
                self._json(writer, data)
            case OutputFormat.YAML:
                self._yaml(writer, data)
            case OutputFormat.CSV:
                self._csv(writer, data, headers)
            case OutputFormat.TABLE:
                self._table(writer, data, headers)
            case OutputFormat.PLAIN:
                self._plain(writer, data)
            case _:
                raise FormatError(f"unsupported output format: {self.mode}")

    def echo(self, data: Any, headers: list[str]|None = None) -> None:
        self.format(sys.stdout, data, headers)

    def note(self, text: str = "", writer: TextIO|None = None) -> None:
        """Informational text that quiet mode suppresses."""
        if not self.quiet:
            (writer or sys.stdout).write(text + "\n")

    def _json(self, writer: TextIO, data: Any) -> None:
        try:
            writer.write(to_json(data) + "\n")
        except (TypeError, ValueError) as e:
            raise FormatError(f"failed to encode JSON: {e}") from e

    def _yaml(self, writer: TextIO, data: Any) -> None:
        try:
            plain = to_plain_structure(data)
        except (TypeError, ValueError) as e:
            raise FormatError(f"failed to encode YAML: {e}") from e
        yaml.safe_dump(plain, writer, indent=2, sort_keys=False, allow_unicode=True, default_flow_style=False)

    def _csv(self, writer: TextIO, data: Any, headers: list[str]|None) -> None:
        hdrs = list(headers) if headers else default_headers(data)
        w = csv.writer(writer, lineterminator="\n")
        if hdrs and not self.quiet:
            w.writerow(hdrs)
        w.writerows(resolve_rows(data, hdrs))

    def _table(self, writer: TextIO, data: Any, headers: list[str]|None) -> None:
        hdrs = list(headers) if headers else default_headers(data)
        rows = resolve_rows(data, hdrs)
        ncols = max([len(hdrs)] + [len(r) for r in rows]) if (hdrs or rows) else 0
        if not ncols:
            return
        table = Table(box=box.ASCII, show_header=bool(hdrs) and not self.quiet,
                      show_edge=True, pad_edge=True, highlight=False)
        widths = [0] * ncols
        for i in range(ncols):
            title = hdrs[i].upper() if i < len(hdrs) else ""
            table.add_column(Text(title), no_wrap=True, overflow="ignore")
            if table.show_header:
                widths[i] = cell_len(title)
        for r in rows:
            for i, c in enumerate(r):
                widths[i] = max(widths[i], max((cell_len(line) for line in c.splitlines()), default=0))
            table.add_row(*[Text(c) for c in r])
        # wide enough that rich never wraps or truncates a column
        width = sum(widths) + 3 * ncols + 1
        console = Console(file=writer, width=width, no_color=True, color_system=None,
                          highlight=False, markup=False, emoji=False, force_terminal=False)
        console.print(table)

    def _plain(self, writer: TextIO, data: Any) -> None:
        out = io.StringIO()
        for item in _records(data):
            if _is_record(item):
                for name, value in record_items(item):
                    out.write(f"{name}: {cell(value)}\n")
                out.write("\n")
            else:
                out.write(f"{cell(item)}\n")
        writer.write(out.getvalue())
