# bindec/decoder.py
# Decoders: turn flags and bitfields of an integer value into ordered text lines
from __future__ import annotations
import re
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .bits import bit_mask, check_bit, check_range, extract, range_mask

RESERVED = "<reserved>"
INDENT = "\t"

# one printf-style integer conversion: flags, width, precision, then d i o u x X
_INT_CONVERSION = re.compile(r"%[#0 +\-]*\d*(?:\.\d+)?[diouxX]")


class Decoder:
    """
    Base of all decoders.

    decode() appends the lines describing `value` to a copy of `acc` and returns it.
    The caller's sequence is never modified, and no decoder keeps per-call state,
    so one decoder tree can be shared freely between callers and threads.
    Decoding never raises; bad bit ranges are rejected when a decoder is built.
    """

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        raise NotImplementedError

    def decode_value(self, value: int) -> List[str]:
        return self.decode([], value)


class Signal(Decoder):
    """Emits name if the bit at pos is set, nothing otherwise."""

    def __init__(self, pos: int, name: str):
        self.pos = check_bit(pos)
        self.mask = bit_mask(pos)
        self.name = name

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        if value & self.mask == 0:
            return out
        if self.name == RESERVED:
            out.append(f"bit {self.pos}: {RESERVED}")
        else:
            out.append(self.name)
        return out

    def __repr__(self) -> str:
        return f"Signal({self.pos}, {self.name!r})"


class Flag(Decoder):
    """
    Always emits one line: name if the bit at pos is set, "!"+name if clear.
    A name given as "!NAME" inverts the mapping; NAME is still displayed.
    """

    def __init__(self, pos: int, name: str):
        self.pos = check_bit(pos)
        self.mask = bit_mask(pos)
        self.negate = name.startswith("!")
        self.name = name[1:] if self.negate else name

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        on = (value & self.mask != 0) != self.negate
        out.append(self.name if on else "!" + self.name)
        return out

    def __repr__(self) -> str:
        name = "!" + self.name if self.negate else self.name
        return f"Flag({self.pos}, {name!r})"


class Enumeration(Decoder):
    """
    Maps the field between start_bit and end_bit (inclusive) to names[field].
    Fields beyond the end of names use default. An empty result emits nothing,
    and "<reserved>" is shown together with the raw field value.
    """

    def __init__(self, start_bit: int, end_bit: int, label: str, names: Iterable[str], default: str = ""):
        check_range(start_bit, end_bit)
        self.start_bit = start_bit
        self.end_bit = end_bit
        self.mask = range_mask(start_bit, end_bit)
        self.label = label
        self.names = tuple(names)
        self.default = default

    def lookup(self, field: int) -> str:
        if field < len(self.names):
            return self.names[field]
        return self.default or ""

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        field = extract(value, self.mask, self.start_bit)
        s = self.lookup(field)
        if s == "":
            return out
        prefix = self.label + ": " if self.label else ""
        if s == RESERVED:
            out.append(f"{prefix}{field}: {RESERVED}")
        else:
            out.append(prefix + s)
        return out

    def __repr__(self) -> str:
        return f"Enumeration({self.start_bit}, {self.end_bit}, {self.label!r}, {list(self.names)!r}, {self.default!r})"


class _IntField(Decoder):
    # Shared by FormattedInteger and ComputedInteger: an unlabeled field emits nothing.

    def __init__(self, start_bit: int, end_bit: int, label: str):
        check_range(start_bit, end_bit)
        self.start_bit = start_bit
        self.end_bit = end_bit
        self.mask = range_mask(start_bit, end_bit)
        self.label = label

    def render(self, field: int) -> str:
        raise NotImplementedError

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        if not self.label:
            return out
        field = extract(value, self.mask, self.start_bit)
        out.append(f"{self.label}: {self.render(field)}")
        return out


class FormattedInteger(_IntField):
    """Renders the field with a printf-style template taking one integer, e.g. "%#04x"."""

    def __init__(self, start_bit: int, end_bit: int, label: str, template: str):
        super().__init__(start_bit, end_bit, label)
        rest = template.replace("%%", "")
        if rest.count("%") != 1 or len(_INT_CONVERSION.findall(rest)) != 1:
            raise ValueError(f"format template {template!r} must hold exactly one integer conversion (d, i, o, u, x or X)")
        self.template = template

    def render(self, field: int) -> str:
        return self.template % field

    def __repr__(self) -> str:
        return f"FormattedInteger({self.start_bit}, {self.end_bit}, {self.label!r}, {self.template!r})"


class ComputedInteger(_IntField):
    """Renders the field by calling convert(field); convert must be pure."""

    def __init__(self, start_bit: int, end_bit: int, label: str, convert: Callable[[int], str]):
        super().__init__(start_bit, end_bit, label)
        if not callable(convert):
            raise TypeError(f"convert must be callable, got {type(convert).__name__}")
        self.convert = convert

    def render(self, field: int) -> str:
        return self.convert(field)

    def __repr__(self) -> str:
        name = getattr(self.convert, "__name__", repr(self.convert))
        return f"ComputedInteger({self.start_bit}, {self.end_bit}, {self.label!r}, {name})"


class DecoderList(Decoder):
    """Runs each member in order against the same value, threading the output through."""

    def __init__(self, decoders: Iterable[Decoder] = ()):
        self.decoders = tuple(decoders)

    @classmethod
    def concat(cls, *tables: Iterable[Decoder]) -> "DecoderList":
        """Flatten several decoder sequences into one list, keeping their order."""
        decoders: List[Decoder] = []
        for t in tables:
            decoders.extend(t)
        return cls(decoders)

    def __iter__(self) -> Iterator[Decoder]:
        return iter(self.decoders)

    def __len__(self) -> int:
        return len(self.decoders)

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        for d in self.decoders:
            out = d.decode(out, value)
        return out

    def __repr__(self) -> str:
        return f"DecoderList({list(self.decoders)!r})"


class Shift(Decoder):
    """Moves a decoder defined relative to bit 0 up to bit `offset` of a larger value."""

    def __init__(self, offset: int, decoder: Decoder):
        self.offset = check_bit(offset)
        self.decoder = decoder

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        return self.decoder.decode(acc, value >> self.offset)

    def __repr__(self) -> str:
        return f"Shift({self.offset}, {self.decoder!r})"


class Group(Decoder):
    """
    Attaches a name to a sub-decoder. When the sub-decoder produces lines,
    the name is emitted followed by those lines, each indented by one tab.
    A group producing nothing is left out entirely, name included.
    Nested groups indent one more level each.
    """

    def __init__(self, name: str, decoder: Decoder):
        self.name = name
        self.decoder = decoder

    def decode(self, acc: Optional[Sequence[str]], value: int) -> List[str]:
        out = list(acc or ())
        sub = self.decoder.decode([], value)
        if not sub:
            return out
        out.append(self.name)
        out.extend(INDENT + line for line in sub)
        return out

    def __repr__(self) -> str:
        return f"Group({self.name!r}, {self.decoder!r})"
