"""A channel: one measured quantity of a meter and its reading buffer."""

from __future__ import annotations

import itertools
import logging
from typing import Iterable

from vzlog.buffer import AggMode, Buffer
from vzlog.errors import OptionNotFoundException, VZException
from vzlog.options import Option, lookup_int, lookup_string
from vzlog.reading import Reading, ReadingIdentifier

log = logging.getLogger(__name__)

_AGGMODES = {
    "max": AggMode.MAX,
    "avg": AggMode.AVG,
    "sum": AggMode.SUM,
    "none": AggMode.NONE,
}


class Channel:
    """Collects readings for one identifier and hands them to an API."""

    _instances = itertools.count()

    def __init__(
        self,
        options: Iterable[Option],
        api_protocol: str,
        uuid: str,
        identifier: ReadingIdentifier | None,
    ) -> None:
        self.options = list(options)
        self.id = next(Channel._instances)
        self.name = f"chn{self.id}"
        self.api_protocol = api_protocol
        self.uuid = uuid
        self.identifier = identifier
        self.buffer = Buffer()
        self.last: Reading | None = None
        self.duplicates = 0

        self.buffer.aggmode = self._parse_aggmode()
        self._parse_duplicates()

    def _parse_aggmode(self) -> AggMode:
        try:
            text = lookup_string(self.options, "aggmode")
            try:
                return _AGGMODES[text.lower()]
            except KeyError:
                raise VZException("Aggmode unknown.") from None
        except OptionNotFoundException:
            return AggMode.NONE
        except VZException as exc:
            log.error("[%s] Missing or invalid aggmode (%s)", self.name, exc)
            raise

    def _parse_duplicates(self) -> None:
        try:
            duplicates = lookup_int(self.options, "duplicates")
            if duplicates < 0:
                raise VZException("duplicates < 0 not allowed")
            self.duplicates = duplicates
        except OptionNotFoundException:
            pass
        except VZException as exc:
            log.error("[%s] Invalid parameter duplicates (%s)", self.name, exc)
            raise

    def push(self, reading: Reading) -> None:
        """Add a reading to the buffer and remember it as the latest one."""
        self.buffer.push(reading)
        self.last = reading

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, uuid={self.uuid!r}, api={self.api_protocol!r})"