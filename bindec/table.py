# bindec/table.py
# Register tables: build decoder trees from YAML/JSON definitions
from __future__ import annotations
import os
import glob
import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from .decoder import (
    ComputedInteger,
    Decoder,
    DecoderList,
    Enumeration,
    Flag,
    FormattedInteger,
    Group,
    Shift,
    Signal,
)

logger = logging.getLogger(__name__)

Converters = Mapping[str, Callable[[int], str]]


class TableError(ValueError):
    """A table definition that cannot be turned into decoders."""


class TableLoader(yaml.SafeLoader):
    """
    SafeLoader that reads only true/false as booleans.
    Bit and value names such as off, ON, yes or N stay text.
    """


TableLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
TableLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)

_LOCATION = re.compile(r"^\s*(\d+)\s*(?:(?:\.\.|:|-)\s*(\d+)\s*)?$")


def parse_range_spec(location) -> Tuple[int, int]:
    """Field location as (msb, lsb): 5, "5", "13..4", "13:4", "13-4" or [13, 4], in either order."""
    if isinstance(location, int) and not isinstance(location, bool):
        hi = lo = location
    elif isinstance(location, (list, tuple)) and len(location) == 2:
        hi, lo = int(location[0]), int(location[1])
    else:
        m = _LOCATION.match(location) if isinstance(location, str) else None
        if not m:
            raise ValueError(f"bad location {location!r}")
        hi = int(m.group(1))
        lo = hi if m.group(2) is None else int(m.group(2))
    return max(hi, lo), min(hi, lo)


def _text(field: Dict[str, Any], key: str, default: Optional[str] = "") -> str:
    v = field.get(key)
    if v is None:
        if default is None:
            raise TableError(f"{key} is required")
        return default
    if not isinstance(v, str):
        raise TableError(f"{key} must be text, got {v!r}; quote it in the table file")
    return v


def _names(field: Dict[str, Any]) -> List[str]:
    names = []
    for n in field.get("names") or []:
        if n is not None and not isinstance(n, str):
            raise TableError(f"names must be text, got {n!r}; quote it in the table file")
        names.append(n or "")
    return names


def _field_type(field: Dict[str, Any]) -> str:
    t = field.get("type")
    if t:
        return str(t)
    if "fields" in field:
        return "shift" if "offset" in field else "group"
    if "location" in field and "label" not in field:
        msb, lsb = parse_range_spec(field["location"])
        if msb == lsb:
            return "signal"
    raise TableError("field type is required")


def _build_field(field: Dict[str, Any], converters: Converters) -> Decoder:
    kind = _field_type(field)
    if kind in ("group", "shift"):
        sub = build_decoder(field.get("fields") or [], converters)
        if kind == "group":
            return Group(_text(field, "name", None), sub)
        return Shift(int(field["offset"]), sub)

    msb, lsb = parse_range_spec(field.get("location"))
    if kind in ("signal", "flag"):
        if msb != lsb:
            raise TableError(f"{kind} needs a single bit, got {msb}..{lsb}")
        cls = Signal if kind == "signal" else Flag
        return cls(lsb, _text(field, "name", None))

    label = _text(field, "label")
    if kind == "enum":
        return Enumeration(lsb, msb, label, _names(field), _text(field, "default"))
    if kind == "int":
        return FormattedInteger(lsb, msb, label, _text(field, "format", "%d"))
    if kind == "func":
        name = field.get("convert")
        if name not in converters:
            raise TableError(f"unknown converter {name!r}")
        return ComputedInteger(lsb, msb, label, converters[name])
    raise TableError(f"unknown field type {kind!r}")


def build_decoder(fields: List[Dict[str, Any]], converters: Optional[Converters] = None) -> DecoderList:
    """Build a DecoderList from an ordered list of field definitions."""
    converters = converters or {}
    if not isinstance(fields, list):
        raise TableError(f"fields must be a list, got {type(fields).__name__}")
    decoders = []
    for i, field in enumerate(fields):
        if not isinstance(field, dict):
            raise TableError(f"field #{i}: expected a mapping, got {type(field).__name__}")
        where = field.get("name") or field.get("label") or f"#{i}"
        try:
            decoders.append(_build_field(field, converters))
        except TableError as e:
            raise TableError(f"field {where}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise TableError(f"field {where}: {e!r}") from e
    return DecoderList(decoders)


def build_table(data: Dict[str, Any], converters: Optional[Converters] = None) -> Decoder:
    """
    Build the decoder for one register table mapping:
    a Group named after the register, optionally shifted by `shift` bits.
    """
    name = _text(data, "name")
    if not name:
        raise TableError("table has no name")
    try:
        decoder: Decoder = Group(name, build_decoder(data.get("fields") or [], converters))
        offset = data.get("shift")
        if offset:
            decoder = Shift(int(offset), decoder)
    except (TypeError, ValueError) as e:
        raise TableError(f"{name}: {e}") from e
    return decoder


class TableParser:
    """
    Loads register tables from a directory of YAML/JSON files, one table per file.
    Files that cannot be read or do not hold a register table are skipped;
    malformed fields inside a table raise TableError.
    """
    def __init__(self, tables_dir: str, converters: Optional[Converters] = None):
        self.tables_dir = tables_dir
        self.converters = dict(converters or {})
        self._by_name: Dict[str, Decoder] = {}

    def load_all(self) -> Dict[str, Decoder]:
        patterns = [
            os.path.join(self.tables_dir, "*.yml"),
            os.path.join(self.tables_dir, "*.yaml"),
            os.path.join(self.tables_dir, "*.json"),
        ]
        self._by_name = {}
        files = []
        for p in patterns:
            files.extend(glob.glob(p))
        for fn in sorted(files):
            try:
                with open(fn, "r", encoding="utf-8") as f:
                    if fn.endswith(".json"):
                        data = json.load(f)
                    else:
                        data = yaml.load(f, Loader=TableLoader)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("Skipping %s: %s", fn, e)
                continue
            if not data or not isinstance(data, dict):
                logger.warning("Skipping %s: not a mapping", fn)
                continue
            if data.get("kind") != "register" or "name" not in data:
                logger.debug("Skipping %s: not a register table", fn)
                continue
            decoder = build_table(data, self.converters)
            name = data["name"]
            self._by_name[name] = decoder
            logger.debug("Built table %s from %s", name, fn)

        logger.info("Loaded %d register tables from %d files.", len(self._by_name), len(files))
        return dict(self._by_name)

    def names(self) -> List[str]:
        return sorted(self._by_name)

    def get(self, name: str) -> Optional[Decoder]:
        # case-insensitive lookup by table name
        if name in self._by_name:
            return self._by_name[name]
        low = name.lower()
        for k, v in self._by_name.items():
            if k.lower() == low:
                return v
        return None

    def decode(self, name: str, value: int) -> List[str]:
        decoder = self.get(name)
        if decoder is None:
            raise KeyError(name)
        return decoder.decode_value(value)
