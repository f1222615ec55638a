"""Reading the JSON configuration into meters and channels."""

from __future__ import annotations

import json
import logging
import re
import string
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from vzlog.channel import Channel
from vzlog.errors import VZException
from vzlog.meter import Meter, MeterDriver
from vzlog.options import Option
from vzlog.reading import reading_id_parse

log = logging.getLogger(__name__)

_INCOMPLETE = "configuration file incomplete, missing closing braces/parens?"

_COMMENTS = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_IGNORABLE = re.compile(r"\s*(?://.*)?")
_UUID_DASHES = frozenset((8, 13, 18, 23))


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "string"


def _strip_comments(text: str) -> str:
    """Blank out // and /* */ comments outside strings, keeping offsets."""

    def blank(match: re.Match) -> str:
        found = match.group()
        if found.startswith('"'):
            return found
        return re.sub(r"[^\n]", " ", found)

    return _COMMENTS.sub(blank, text)


def config_validate_uuid(uuid: str) -> bool:
    """Check that ``uuid`` has hex digits with dashes at the usual places."""
    for position, char in enumerate(uuid):
        if position in _UUID_DASHES:
            if char != "-":
                return False
        elif char not in string.hexdigits:
            return False
    return True


def is_ignorable_line(line: str) -> bool:
    """True for blank lines and lines holding only a // comment."""
    return _IGNORABLE.fullmatch(line.rstrip("\r\n")) is not None


class _UnavailableDriver:
    """Stands in where no driver for a meter protocol is available."""

    def open(self) -> int:
        return -1

    def close(self) -> int:
        return 0

    def read(self, count: int) -> list:
        return []

    def allow_interval(self) -> bool:
        return True


def _no_driver(options: list[Option]) -> MeterDriver:
    return _UnavailableDriver()


@dataclass
class MeterMapping:
    """A meter together with the channels fed from it."""

    meter: Meter
    channels: list[Channel] = field(default_factory=list)

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self.channels)


class ConfigOptions:
    """Application settings and the meter configuration file they come from.

    ``driver_factory`` builds the protocol driver for each meter from its
    options; it may be replaced before :meth:`parse` is called.
    """

    def __init__(self, filename: str = "/etc/vzlogger.conf") -> None:
        self.config = filename
        self.log = ""
        self.port = 8080
        self.verbosity = 0
        self.comet_timeout = 30
        self.buffer_length = -1
        self.retry_pause = 15
        self.local = False
        self.channel_index = False
        self.foreground = False
        self.time_machine = False
        self.push_entries: list | None = None
        self.driver_factory: Callable[[list[Option]], MeterDriver] = _no_driver

    def parse(self) -> list[MeterMapping]:
        """Read the configuration file and build all meters and channels."""
        try:
            with open(self.config, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            log.error("Cannot open configfile %s: %s", self.config, exc)
            raise VZException("Cannot open configfile.") from exc
        log.info("Start parsing configuration from %s", self.config)

        document = self._decode(text)
        mappings: list[MeterMapping] = []
        try:
            for key, value in document.items():
                self._apply(key, value, mappings)
        except VZException as exc:
            log.error("parse configuration failed due to: %s", exc)
            raise
        log.debug("Have %d meters.", len(mappings))
        return mappings

    def _decode(self, text: str) -> dict:
        stripped = _strip_comments(text)
        start = len(stripped) - len(stripped.lstrip())
        if start == len(stripped):
            raise VZException(_INCOMPLETE)
        try:
            document, end = json.JSONDecoder().raw_decode(stripped, start)
        except json.JSONDecodeError as exc:
            if not stripped[exc.pos :].strip() or exc.msg.startswith("Unterminated string"):
                raise VZException(_INCOMPLETE) from exc
            log.error(
                "Error in %s:%d %s at offset %d", self.config, exc.lineno, exc.msg, exc.colno
            )
            raise VZException("Parse configuration failed.") from exc

        last_line = stripped.count("\n", 0, end)
        trailing = text.splitlines(keepends=True)[last_line + 1 :]
        for number, line in enumerate(trailing, start=last_line + 2):
            if not is_ignorable_line(line):
                log.error("extra data after end of configuration in %s:%d", self.config, number)
                raise VZException("extra data after end of configuration")

        if not isinstance(document, dict):
            raise VZException("configuration is not a JSON object")
        return document

    def _apply(self, key: str, value: Any, mappings: list[MeterMapping]) -> None:
        kind = _json_type(value)
        if key == "daemon" and kind == "boolean":
            if not value:
                raise VZException(
                    '"daemon" option is not supported anymore, '
                    "you probably want to use -f instead."
                )
        elif key == "log" and kind == "string":
            self.log = value
        elif key == "retry" and kind == "int":
            self.retry_pause = value
        elif key == "verbosity" and kind == "int":
            self.verbosity = value
        elif key == "local":
            self._apply_local(value)
        elif key in ("sensors", "meters") and kind == "array":
            for entry in value:
                mappings.append(self._parse_meter(entry))
        elif key == "push" and kind == "array":
            if self.push_entries is None and value:
                self.push_entries = list(value)
            else:
                log.error("Ignoring push entry due to empty array or duplicate section")
        elif key == "i_have_a_time_machine" and kind == "boolean":
            self.time_machine = value
        else:
            log.warning("Ignoring invalid field or type: %s=%s (%s)", key, value, kind)

    def _apply_local(self, section: Any) -> None:
        if not isinstance(section, dict):
            log.warning("Ignoring invalid field or type: local=%s", section)
            return
        for key, value in section.items():
            kind = _json_type(value)
            if key == "enabled" and kind == "boolean":
                self.local = value
            elif key == "port" and kind == "int":
                self.port = value
            elif key == "timeout" and kind == "int":
                self.comet_timeout = value
            elif key == "buffer" and kind == "int":
                # zero makes no sense; fall back to size based mode with one element
                self.buffer_length = value or -1
            elif key == "index" and kind == "boolean":
                self.channel_index = value
            else:
                log.warning("Ignoring invalid field or type: %s=%s (%s)", key, value, kind)

    def _parse_meter(self, entry: Any) -> MeterMapping:
        if not isinstance(entry, dict):
            raise VZException("meter entry is not an object")
        channel_entries: list[Any] = []
        options: list[Option] = []
        for key, value in entry.items():
            kind = _json_type(value)
            if key == "channels" and kind == "array":
                channel_entries.extend(value)
            elif key == "channel" and kind == "object":
                channel_entries.append(value)
            else:
                options.append(Option(key, value))

        meter = Meter(options, self.driver_factory(options))
        details = meter.details
        log.info("New meter initialized (protocol=%s)", details.name if details else "?")

        mapping = MeterMapping(meter)
        for channel_entry in channel_entries:
            mapping.channels.append(self._parse_channel(channel_entry, meter))
        return mapping

    def _parse_channel(self, entry: Any, meter: Meter) -> Channel:
        if not isinstance(entry, dict):
            raise VZException("channel entry is not an object")
        log.debug("Configure channel.")
        options: list[Option] = []
        uuid: str | None = None
        id_str: str | None = None
        api_protocol = ""
        for key, value in entry.items():
            kind = _json_type(value)
            if key == "uuid" and kind == "string":
                uuid = value
            elif key == "identifier" and kind == "string":
                id_str = value
            elif key == "api" and kind == "string":
                api_protocol = value
            else:
                options.append(Option(key, value))

        if uuid is None:
            log.error("Missing UUID")
            raise VZException("Missing UUID")
        if not config_validate_uuid(uuid):
            log.error("Invalid UUID: %s", uuid)
            raise VZException("Invalid UUID.")
        if id_str is None:
            log.error("Identifier is not set. Using default value 'NilIdentifier'.")
            id_str = "NilIdentifier"
        if not api_protocol:
            api_protocol = "volkszaehler"

        try:
            identifier = reading_id_parse(meter.protocol_id, id_str)
        except VZException as exc:
            log.error("Invalid id: %s due to: '%s'", id_str, exc)
            raise VZException("Invalid reader.") from exc

        channel = Channel(options, api_protocol, uuid, identifier)
        log.info(
            "[%s] New channel initialized (uuid=...%s api=%s id=%s)",
            channel.name,
            uuid[30:],
            api_protocol,
            id_str,
        )
        return channel