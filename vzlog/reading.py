"""Meter readings and the identifiers that tell readings apart."""

from __future__ import annotations

import abc
import math
import re
from dataclasses import dataclass, field

from vzlog import meter
from vzlog.errors import VZException
from vzlog.obis import Obis

# "sensor<unsigned>/<type of at most 12 characters>"
_SENSOR_PATTERN = re.compile(r"sensor\s*(\d+)/\s*(\S{1,12})")


class ReadingIdentifier(abc.ABC):
    """Identifies which quantity of a meter a reading belongs to."""

    @abc.abstractmethod
    def unparse(self) -> str:
        """Return the textual form of the identifier."""


@dataclass
class ObisIdentifier(ReadingIdentifier):
    """Identifier made of an OBIS code."""

    obis: Obis = field(default_factory=Obis)

    def unparse(self) -> str:
        return str(self.obis)


@dataclass
class StringIdentifier(ReadingIdentifier):
    """Identifier made of a free-form string."""

    string: str = ""

    def parse(self, text: str) -> None:
        self.string = text

    def unparse(self) -> str:
        return self.string


@dataclass
class ChannelIdentifier(ReadingIdentifier):
    """Identifier of a sensor channel; negative for consumption channels.

    The stored channel is the sensor number plus one, so that sensor 0 can
    carry a sign.
    """

    channel: int = 0

    def parse(self, text: str) -> None:
        match = _SENSOR_PATTERN.match(text)
        if match is None:
            raise VZException("Failed to parse channel identifier")
        channel = int(match.group(1)) + 1
        kind = match.group(2)
        if kind == "consumption":
            channel = -channel
        elif kind != "power":
            raise VZException("Invalid channel type")
        self.channel = channel

    def unparse(self) -> str:
        sensor = (abs(self.channel) - 1) & 0xFFFFFFFF
        kind = "power" if self.channel > 0 else "consumption"
        return f"sensor{sensor}/{kind}"


@dataclass
class NilIdentifier(ReadingIdentifier):
    """Identifier for meters that deliver a single, unnamed value."""

    def unparse(self) -> str:
        return "NilIdentifier"


@dataclass
class Reading:
    """A value taken at a point in time, with the identifier it belongs to."""

    value: float = 0.0
    seconds: int = 0
    microseconds: int = 0
    identifier: ReadingIdentifier | None = None
    deleted: bool = field(default=False, compare=False)

    @property
    def time_ms(self) -> int:
        """Timestamp in whole milliseconds."""
        return self.seconds * 1000 + self.microseconds // 1000

    def set_time(self, seconds: int, microseconds: int = 0) -> None:
        self.seconds = seconds
        self.microseconds = microseconds

    def mark_delete(self) -> None:
        self.deleted = True

    def reset(self) -> None:
        self.deleted = False

    def tvtod(self) -> float:
        """Timestamp as fractional seconds."""
        return self.seconds + self.microseconds / 1e6

    def time_from_double(self, ts: float) -> None:
        fraction, integral = math.modf(ts)
        self.microseconds = int(fraction * 1e6)
        self.seconds = int(integral)

    def unparse(self) -> str:
        if self.identifier is None:
            raise VZException("Reading has no identifier")
        return self.identifier.unparse()


def reading_id_parse(protocol, text: str) -> ReadingIdentifier:
    """Build the identifier a meter of ``protocol`` uses from ``text``."""
    kinds = meter.MeterProtocol
    if protocol in (kinds.D0, kinds.SML, kinds.OMS):
        return ObisIdentifier(Obis.from_string(text))
    if protocol is kinds.FLUKSOV2:
        match = _SENSOR_PATTERN.match(text)
        if match is None:
            raise VZException("meter-fluksov4 failed")
        return ChannelIdentifier(int(match.group(1)) + 1)
    if protocol in (kinds.FILE, kinds.EXEC, kinds.S0, kinds.OCR, kinds.W1THERM):
        return StringIdentifier(text)
    return NilIdentifier()