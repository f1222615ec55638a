"""OBIS identifiers (DIN EN 62056-61): parsing, aliases and checks."""

from __future__ import annotations

from dataclasses import dataclass

from vzlog.errors import VZException

DC = 0xFF  # "not specified / not given"

# Special characters and their OBIS codes.
_SPECIAL_CODES = {"C": 96, "F": 97, "L": 98, "P": 99}

_A, _B, _C, _D, _E, _F = range(6)


class Obis:
    """A six-group OBIS identifier A-B:C.D.E*F."""

    __slots__ = ("_raw",)

    def __init__(self, a=DC, b=DC, c=DC, d=DC, e=DC, f=DC) -> None:
        raw = (a, b, c, d, e, f)
        if any(not 0 <= v <= 255 for v in raw):
            raise ValueError(f"OBIS groups must be bytes: {raw}")
        self._raw = raw

    @classmethod
    def from_string(cls, text: str) -> Obis:
        """Parse ``text`` as an OBIS string, falling back to a known alias."""
        try:
            return parse_obis(text)
        except ValueError:
            pass
        try:
            return lookup_alias(text)
        except KeyError:
            raise VZException("Parse ObisString failed.") from None

    @property
    def raw(self) -> tuple[int, ...]:
        return self._raw

    @property
    def media(self) -> int:
        return self._raw[0]

    @property
    def channel(self) -> int:
        return self._raw[1]

    @property
    def indicator(self) -> int:
        return self._raw[2]

    @property
    def mode(self) -> int:
        return self._raw[3]

    @property
    def quantities(self) -> int:
        return self._raw[4]

    @property
    def storage(self) -> int:
        return self._raw[5]

    def is_all_not_given(self) -> bool:
        return self == Obis()

    def is_manufacturer_specific(self) -> bool:
        return (
            128 <= self.channel <= 199
            or 128 <= self.indicator <= 199
            or self.indicator == 240
            or 128 <= self.mode <= 254
            or 128 <= self.quantities <= 254
            or 128 <= self.storage <= 254
        )

    def is_valid(self) -> bool:
        """Basic sanity check: A in 0..9, B up to 64, F up to 99 or not given."""
        if not 0 <= self.media <= 9:
            return False
        if self.channel > 64:
            return False
        if self.storage != 0xFF and self.storage > 99:
            return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Obis):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        a, b, c, d, e, f = self._raw
        return f"{a}-{b}:{c}.{d}.{e}*{f}"

    def __repr__(self) -> str:
        return "Obis({}, {}, {}, {}, {}, {})".format(*self._raw)


def parse_obis(text: str) -> Obis:
    """Parse "A-B:C.D.E*F" where A, B, E and F are optional.

    Raises ValueError if the string is not a valid OBIS code.
    """
    raw = [DC] * 6
    num = 0
    field = -1
    digits = 0
    has_special = False

    for char in text:
        digits += 1
        if "0" <= char <= "9":
            if has_special:
                raise ValueError(f"digit after special character in {text!r}")
            num = num * 10 + ord(char) - ord("0")
        elif char in _SPECIAL_CODES:
            num = _SPECIAL_CODES[char]
            has_special = True
            if digits > 1:
                raise ValueError(f"misplaced special character in {text!r}")
        else:
            if char == "-" and field < _A:
                field = _A
            elif char == ":" and field < _B:
                field = _B
            elif char == "." and field < _D:
                field = _C if field < _C else _D
            elif char in "*&" and field == _D:
                field = _E
            else:
                raise ValueError(f"unexpected {char!r} in {text!r}")
            if not 0 <= num <= 255:
                raise ValueError(f"group out of range in {text!r}")
            raw[field] = num
            num = 0
            digits = 0
            has_special = False

    field += 1
    # the last group is stored truncated to a byte, without a range check
    raw[field] = num & 0xFF
    if field < _D:
        raise ValueError(f"groups C and D are mandatory in {text!r}")
    return Obis(*raw)


@dataclass(frozen=True)
class ObisAlias:
    """A named, described OBIS code."""

    obis: Obis
    name: str
    description: str


_ALIASES = (
    # General
    ObisAlias(Obis(1, 0, 1, 7, DC, DC), "power", "Wirkleistung  (Summe)"),
    ObisAlias(Obis(1, 0, 21, 7, DC, DC), "power-l1", "Wirkleistung  (Phase 1)"),
    ObisAlias(Obis(1, 0, 41, 7, DC, DC), "power-l2", "Wirkleistung  (Phase 2)"),
    ObisAlias(Obis(1, 0, 61, 7, DC, DC), "power-l3", "Wirkleistung  (Phase 3)"),
    ObisAlias(Obis(1, 0, 12, 7, DC, DC), "voltage", "Spannung      (Mittelwert)"),
    ObisAlias(Obis(1, 0, 32, 7, DC, DC), "voltage-l1", "Spannung      (Phase 1)"),
    ObisAlias(Obis(1, 0, 52, 7, DC, DC), "voltage-l2", "Spannung      (Phase 2)"),
    ObisAlias(Obis(1, 0, 72, 7, DC, DC), "voltage-l3", "Spannung      (Phase 3)"),
    ObisAlias(Obis(1, 0, 11, 7, DC, DC), "current", "Stromstaerke  (Summe)"),
    ObisAlias(Obis(1, 0, 31, 7, DC, DC), "current-l1", "Stromstaerke  (Phase 1)"),
    ObisAlias(Obis(1, 0, 51, 7, DC, DC), "current-l2", "Stromstaerke  (Phase 2)"),
    ObisAlias(Obis(1, 0, 71, 7, DC, DC), "current-l3", "Stromstaerke  (Phase 3)"),
    ObisAlias(Obis(1, 0, 14, 7, 0, DC), "frequency", "Netzfrequenz"),
    ObisAlias(Obis(1, 0, 12, 7, 0, DC), "powerfactor", "Leistungsfaktor"),
    ObisAlias(Obis(0, 0, 96, 1, DC, DC), "device", "Zaehler Seriennr."),
    ObisAlias(Obis(1, 0, 96, 5, 5, DC), "status", "Zaehler Status"),
    ObisAlias(Obis(1, 0, 1, 8, DC, DC), "counter", "Zaehlerstand Wirkleistung"),
    ObisAlias(Obis(1, 0, 2, 8, DC, DC), "counter-out", "Zaehlerstand Lieferg."),
    # Easymeter Q3B
    ObisAlias(Obis(1, 0, 1, 8, 1, DC), "esy-counter-t1", "Active Power Counter Tariff 1"),
    ObisAlias(Obis(1, 0, 1, 8, 2, DC), "esy-counter-t2", "Active Power Counter Tariff 2"),
    # Hager eHz
    ObisAlias(Obis(1, 0, 0, 0, 0, DC), "hag-id", "Eigentumsnr."),
    ObisAlias(Obis(1, 0, 96, 50, 0, 0), "hag-status", "Netz Status"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 1), "hag-frequency", "Netz Periode"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 2), "hag-temp", "aktuelle Chiptemperatur"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 3), "hag-temp-min", "minimale Chiptemperatur"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 4), "hag-temp-avg", "gemittelte Chiptemperatur"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 5), "hag-temp-max", "maximale Chiptemperatur"),
    ObisAlias(Obis(1, 0, 96, 50, 0, 6), "hag-check", "Kontrollnr."),
    ObisAlias(Obis(1, 0, 96, 50, 0, 7), "hag-diag", "Diagnose"),
    # Swiss grid operators
    ObisAlias(Obis(255, 255, 16, 8, 0, 255), "lg-counter-et", "Sum active energy (Total)"),
    ObisAlias(Obis(255, 255, 16, 8, 1, 255), "lg-counter-ht", "Sum active energy (T1)"),
    ObisAlias(Obis(255, 255, 16, 8, 2, 255), "lg-counter-lt", "Sum active energy (T2)"),
)


def get_aliases() -> tuple[ObisAlias, ...]:
    """Return all known OBIS aliases."""
    return _ALIASES


def lookup_alias(alias: str) -> Obis:
    """Return the OBIS code for ``alias``; raises KeyError if unknown."""
    for entry in _ALIASES:
        if entry.name == alias:
            return entry.obis
    raise KeyError(alias)