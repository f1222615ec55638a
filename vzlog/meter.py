"""Meter protocols and the meter configured from an option list."""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

from vzlog import reading
from vzlog.errors import ConnectionException, OptionNotFoundException, VZException
from vzlog.options import Option, lookup, lookup_string

log = logging.getLogger(__name__)


class MeterProtocol(enum.Enum):
    """The protocols a meter can speak."""

    NONE = 0
    FILE = 1
    EXEC = 2
    RANDOM = 3
    FLUKSOV2 = 4
    S0 = 5
    D0 = 6
    SML = 7
    OCR = 8
    W1THERM = 9
    OMS = 10


@dataclass(frozen=True)
class MeterDetails:
    """Name, description and reading capacity of a protocol."""

    id: MeterProtocol
    name: str
    description: str
    max_readings: int


_PROTOCOLS = (
    MeterDetails(MeterProtocol.FILE, "file", "Read from file or fifo", 32),
    MeterDetails(MeterProtocol.EXEC, "exec", "Parse program output", 32),
    MeterDetails(
        MeterProtocol.RANDOM, "random", "Generate random values with a random walk", 1
    ),
    MeterDetails(MeterProtocol.FLUKSOV2, "fluksov2", "Read from Flukso's onboard SPI fifo", 16),
    MeterDetails(MeterProtocol.S0, "s0", "S0-meter directly connected to RS232", 4),
    MeterDetails(MeterProtocol.D0, "d0", "DLMS/IEC 62056-21 plaintext protocol", 400),
    MeterDetails(
        MeterProtocol.SML,
        "sml",
        "Smart Message Language as used by EDL-21, eHz and SyM²",
        32,
    ),
    MeterDetails(MeterProtocol.OCR, "ocr", "Image processing/recognizing meter", 32),
    MeterDetails(MeterProtocol.W1THERM, "w1therm", "W1-therm / 1wire temperature devices", 400),
    MeterDetails(MeterProtocol.OMS, "oms", "OMS (M-BUS) protocol based devices", 100),
)


def meter_lookup_protocol(name: str | None) -> MeterProtocol:
    """Find a protocol by name, ignoring case; raises KeyError if unknown."""
    if name is not None:
        wanted = name.lower()
        for details in _PROTOCOLS:
            if details.name.lower() == wanted:
                return details.id
    raise KeyError(name)


def meter_get_protocols() -> tuple[MeterDetails, ...]:
    """Return the details of every supported protocol."""
    return _PROTOCOLS


def meter_get_details(protocol: MeterProtocol) -> MeterDetails | None:
    """Return the details of ``protocol``, or None if it is not supported."""
    for details in _PROTOCOLS:
        if details.id is protocol:
            return details
    return None


class MeterDriver(Protocol):
    """What a meter needs from the code that talks to the device."""

    def open(self) -> Any: ...

    def close(self) -> Any: ...

    def read(self, count: int) -> list: ...

    def allow_interval(self) -> bool: ...


def _default_identifier(protocol: MeterProtocol):
    if protocol in (MeterProtocol.D0, MeterProtocol.SML, MeterProtocol.OMS):
        return reading.ObisIdentifier()
    if protocol is MeterProtocol.RANDOM:
        return reading.NilIdentifier()
    if protocol is MeterProtocol.FLUKSOV2:
        return reading.ChannelIdentifier()
    if protocol is MeterProtocol.NONE:
        return None
    return reading.StringIdentifier()


class Meter:
    """A meter configured from options and backed by a protocol driver."""

    _instances = itertools.count()

    def __init__(self, options: Iterable[Option], protocol: MeterDriver) -> None:
        options = list(options)
        self.id = next(Meter._instances)
        self.name = f"mtr{self.id}"

        try:
            protocol_name = lookup_string(options, "protocol")
            log.debug("[%s] Creating new meter with protocol %s.", self.name, protocol_name)
            try:
                self.protocol_id = meter_lookup_protocol(protocol_name)
            except KeyError:
                raise VZException("Protocol not found.") from None
        except VZException as exc:
            log.error("[%s] Missing protocol or invalid type (%s)", self.name, exc)
            raise

        self.interval = self._optional(options, "interval", Option.as_int, -1)
        self.aggtime = self._optional(options, "aggtime", Option.as_int, -1)
        self.agg_fixed_interval = self._optional(
            options, "aggfixedinterval", Option.as_bool, False
        )

        self.protocol = protocol
        self.identifier = _default_identifier(self.protocol_id)

        self.enabled = self._optional(options, "enabled", Option.as_bool, False)
        self.allow_skip = self._optional(options, "allowskip", Option.as_bool, False)

        if self.interval > 0 and not self.protocol.allow_interval():
            log.warning(
                "[%s] Interval set but not allowed for this meter! Ignoring (setting to 0). "
                "Use aggregation if you want less frequent output.",
                self.name,
            )
            self.interval = 0

        log.debug(
            "[%s] Meter configured, %s.", self.name, "enabled" if self.enabled else "disabled"
        )

    def _optional(
        self, options: list[Option], key: str, getter: Callable[[Option], Any], default: Any
    ) -> Any:
        try:
            return getter(lookup(options, key))
        except OptionNotFoundException:
            return default
        except VZException:
            log.error("[%s] Invalid type for %s", self.name, key)
            raise

    @property
    def details(self) -> MeterDetails | None:
        return meter_get_details(self.protocol_id)

    def open(self) -> None:
        """Open the device; raises ConnectionException on failure."""
        result = self.protocol.open()
        if isinstance(result, int) and not isinstance(result, bool) and result < 0:
            log.error("[%s] Cannot open meter", self.name)
            raise ConnectionException("Meter open failed.")

    def close(self) -> Any:
        return self.protocol.close()

    def read(self, count: int) -> list:
        """Read at most ``count`` readings from the device."""
        return self.protocol.read(count)

    def __repr__(self) -> str:
        return f"Meter({self.name!r}, {self.protocol_id.name})"