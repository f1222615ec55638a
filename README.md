# vzlog

Building blocks for a smart-meter data logger. The package reads a JSON configuration
of meters and channels. It keeps readings in buffers that can be aggregated, and it
builds and posts the JSON payloads that go to a middleware. It uses only the standard
library.

## Install

    pip install .

To run the tests:

    pip install .[test]
    pytest

## Modules

### `vzlog.obis`

`Obis(a, b, c, d, e, f)` is a six-group OBIS identifier. A group that is left out
defaults to 255 ("not given"). `Obis.from_string(text)` parses the `A-B:C.D.E*F` form,
where A, B, E and F are optional and `&` may stand for `*`. The special letters `C`,
`F`, `L` and `P` stand for the codes 96 to 99. If the text is not an OBIS string,
`from_string` looks it up as a named alias such as `"power"` or `"counter"`. When both
fail it raises `VZException`.

- `parse_obis(text)` parses OBIS strings only and raises `ValueError` on bad input.
- `lookup_alias(name)` raises `KeyError` for an unknown name.
- `get_aliases()` returns every `ObisAlias` as `(obis, name, description)`.

An `Obis` has the methods `is_valid()`, `is_manufacturer_specific()` and
`is_all_not_given()`. Two codes are equal only when all six groups match exactly, and
255 is not treated as a wildcard.

    from vzlog.obis import Obis

    print(Obis.from_string("power"))                                  # 1-0:1.7.255*255
    print(Obis.from_string("1.8.0") == Obis(255, 255, 1, 8, 0, 255))  # True

### `vzlog.options`

An `Option(key, value)` holds one JSON value. Its `OptionType` is taken from the Python
type of the value: boolean, double, int, object, array or string. The typed accessors
`as_string`, `as_int`, `as_float`, `as_bool` and `as_json` raise
`InvalidTypeException` when the type does not match.

The module-level helpers take a list of options:

- `lookup(options, key)` returns the first option with that key, or raises
  `OptionNotFoundException`.
- `lookup_string`, `lookup_string_tolower`, `lookup_int`, `lookup_bool`,
  `lookup_double`, `lookup_json_array` and `lookup_json_object` return the value with
  the type their name gives.
- `dump(options)` prints the options to standard output.

### `vzlog.errors`

All errors derive from `VZException`. The subclasses are `OptionNotFoundException`,
`InvalidTypeException` and `ConnectionException`.

### `vzlog.reading`

A `Reading` holds a value, a timestamp in seconds and microseconds, and an identifier.
It has these members:

- `time_ms`, the timestamp in milliseconds.
- `tvtod()`, the timestamp as fractional seconds.
- `time_from_double()`, which sets the timestamp from fractional seconds.
- `mark_delete()` and `reset()`, which set and clear the deleted flag.
- `unparse()`, which returns the identifier as text.

There are four identifier classes:

- `ObisIdentifier`
- `StringIdentifier`
- `ChannelIdentifier`, which parses `sensor<N>/power` and `sensor<N>/consumption`.
  Consumption channels are stored as negative numbers.
- `NilIdentifier`

`reading_id_parse(protocol, text)` chooses the identifier class from a `MeterProtocol`.

### `vzlog.meter`

The protocol table is reached through `meter_get_protocols()`,
`meter_lookup_protocol(name)` and `meter_get_details(protocol)`. `meter_lookup_protocol`
ignores case and raises `KeyError` for an unknown name.

`Meter(options, driver)` reads the options `protocol`, `interval`, `aggtime`,
`aggfixedinterval`, `enabled` and `allowskip`. All device access goes to the driver:
any object with `open()`, `close()`, `read(count)` and `allow_interval()`.
`Meter.open()` raises `ConnectionException` when the driver's `open()` returns a
negative number.

### `vzlog.buffer`

`Buffer` is a thread-safe list of readings. `aggregate(aggtime, agg_fixed_interval)`
collapses the live readings into the latest one. How they are combined depends on the
`AggMode`:

- MAX keeps the largest value.
- SUM adds the values.
- AVG takes a mean weighted by time. It starts from the last reading of the previous
  call.
- NONE leaves the buffer unchanged.

When `agg_fixed_interval` is set, timestamps are rounded down to a multiple of
`aggtime` seconds. The other methods are:

- `clean()` removes deleted readings, and `clean(False)` removes all of them.
- `undelete()` clears the deleted flag on every reading.
- `dump()` renders the values as text.
- Iterating over a buffer, and `len()`, work on a snapshot taken under the lock.

### `vzlog.channel`

`Channel(options, api_protocol, uuid, identifier)` owns a `Buffer`. It reads two
options:

- `aggmode`: one of `max`, `avg`, `sum` or `none`, in any case.
- `duplicates`: a non-negative integer, stored as `channel.duplicates`.

An invalid value for either raises `VZException`. `push(reading)` appends the reading
to the buffer and stores it as `last`.

### `vzlog.config`

`ConfigOptions(filename)` holds the application settings. Its default file is
`/etc/vzlogger.conf`. `parse()` reads the file and returns a list of `MeterMapping`,
each a meter together with its channels. The file is JSON, and `//` and `/* */`
comments are accepted. After the closing brace, only blank lines and `//` comment lines
may follow.

These keys are recognised:

- `log`, `retry` and `verbosity`.
- `local`, with its own keys `enabled`, `port`, `timeout`, `buffer` and `index`.
- `meters` or `sensors`.
- `push`, whose entries are stored in `push_entries`.
- `i_have_a_time_machine`.
- `daemon: false` is rejected.

Each channel needs a valid `uuid`. It may carry an `identifier` and an `api`, which
defaults to `volkszaehler`. Every other key becomes an option of the channel.

`config_validate_uuid(uuid)` checks that the UUID is made of hex digits with dashes at
positions 8, 13, 18 and 23. `is_ignorable_line(line)` tells whether a line is blank or
holds only a comment.

To build the driver for each meter from its options, set
`ConfigOptions.driver_factory`. The default driver fails to open and returns no
readings.

### `vzlog.api`

- `api_json_tuples(buffer)` returns `[timestamp_ms, value]` pairs for the buffered
  readings.
- `api_parse_exception(data)` describes the error in a middleware's JSON response.
  - With an `exception` object it returns `"type: message"`.
  - With no `exception` key it returns `"missing exception"`.
  - For empty or incomplete input it returns `"continue"`.
  - For malformed input it returns a short parser message, such as
    `"quoted object property name expected"`.

### `vzlog.session` and `vzlog.pushdata`

`SessionProvider` hands out one session per key. `get_session(key, timeout)` blocks
while that session is in use. `return_session` releases it, and `in_use` tells whether
it is taken. `close()` closes all sessions. The provider can also be used as a context
manager. Sessions are plain `urllib` HTTP sessions unless you pass another factory.

`PushDataList.add(uuid, time_ms, value)` collects tuples, and `wait_for_data(timeout)`
hands them over. `PushDataServer(entries, data_list, session_provider)` takes entries
of the form `{"url": ...}`. `wait_and_send_once_to_all()` posts
`{"data": [{"uuid": ..., "tuples": [[ms, value], ...]}]}` to every URL. It returns True
only when every URL answered HTTP 200. `run_push_data(server, stop_event)` repeats this
until the event is set.

## What it does not do

- There is no command-line program and no daemon.
- There are no drivers for meter hardware such as serial D0, S0 or SML. Reading a
  device is left to the driver you give each `Meter`.
- There is no local HTTP server for readings.
- There are no client classes that register channels with a middleware or send their
  buffers. Only `api_json_tuples` and `api_parse_exception` are provided for that.
- Readings are not stored on disk.