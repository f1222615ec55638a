import pytest

from vzlog.errors import VZException
from vzlog.obis import DC, Obis, get_aliases, lookup_alias, parse_obis


def test_no_wildcard_matching():
    assert Obis.from_string("1.8.0") == Obis(255, 255, 1, 8, 0, 255)
    assert not Obis.from_string("1.8.0*1") == Obis.from_string("1.8.0")
    assert Obis.from_string("1.8.0*1") == Obis(255, 255, 1, 8, 0, 1)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1-0:1.8.0*255", (1, 0, 1, 8, 0, 255)),
        ("1-0:1.7.0*255", (1, 0, 1, 7, 0, 255)),
        ("1-0:1.9.0*255", (1, 0, 1, 9, 0, 255)),
        ("2-1:2.3.4*255", (2, 1, 2, 3, 4, 255)),
        ("1.8.1", (0xFF, 0xFF, 1, 8, 1, 255)),
        ("1.8.2", (0xFF, 0xFF, 1, 8, 2, 0xFF)),
        ("2.8.1", (0xFF, 0xFF, 2, 8, 1, 0xFF)),
        ("1.8.0", (0xFF, 0xFF, 1, 8, 0, 255)),
        ("C.1", (0xFF, 0xFF, 96, 1, 0xFF, 0xFF)),
        ("F.F", (0xFF, 0xFF, 97, 97, 0xFF, 0xFF)),
        ("C.5.0", (0xFF, 0xFF, 96, 5, 0, 0xFF)),
    ],
)
def test_parse_meter_codes(text, expected):
    assert Obis.from_string(text) == Obis(*expected)
    assert parse_obis(text).raw == expected


def test_ampersand_separator():
    assert parse_obis("1.8.0&1") == parse_obis("1.8.0*1")


@pytest.mark.parametrize(
    "text",
    ["", "1", "1-0", "CC.1", "F1.8", "1.8.0*1*2", "256.8.0", "1:2-3.4", "1.8.0x"],
)
def test_parse_rejects(text):
    with pytest.raises(ValueError):
        parse_obis(text)
    with pytest.raises(VZException):
        Obis.from_string(text)


def test_alias_lookup():
    assert Obis.from_string("power") == Obis(1, 0, 1, 7, DC, DC)
    assert lookup_alias("hag-status") == Obis(1, 0, 96, 50, 0, 0)
    assert Obis.from_string("lg-counter-lt") == Obis(255, 255, 16, 8, 2, 255)
    with pytest.raises(KeyError):
        lookup_alias("no-such-alias")


def test_aliases_unique_and_resolvable():
    aliases = get_aliases()
    names = [a.name for a in aliases]
    assert len(names) == len(set(names))
    for alias in aliases:
        assert lookup_alias(alias.name) == alias.obis
        assert not alias.obis.is_all_not_given()


def test_default_is_all_not_given():
    assert Obis().is_all_not_given()
    assert Obis().raw == (DC,) * 6
    assert not Obis(1, 0, 1, 8, 0, 255).is_all_not_given()


def test_str_format():
    assert str(Obis(1, 0, 1, 8, 0, 255)) == "1-0:1.8.0*255"


@pytest.mark.parametrize("raw", [(1, 0, 1, 8, 0, 255), (2, 1, 2, 3, 4, 7), (0, 0, 96, 1, 0, 0)])
def test_str_round_trip(raw):
    obis = Obis(*raw)
    assert Obis.from_string(str(obis)) == obis


def test_group_properties():
    obis = Obis(1, 2, 3, 4, 5, 6)
    assert (obis.media, obis.channel, obis.indicator) == (1, 2, 3)
    assert (obis.mode, obis.quantities, obis.storage) == (4, 5, 6)


def test_hash_consistent_with_eq():
    assert len({Obis(1, 0, 1, 8, 0, 255), Obis.from_string("1-0:1.8.0*255")}) == 1


def test_out_of_range_group_rejected():
    with pytest.raises(ValueError):
        Obis(256, 0, 0, 0, 0, 0)


def test_is_valid():
    assert Obis(1, 0, 1, 8, 0, 255).is_valid()
    assert Obis(9, 64, 1, 8, 0, 99).is_valid()
    assert not Obis(10, 0, 1, 8, 0, 255).is_valid()
    assert not Obis(1, 65, 1, 8, 0, 255).is_valid()
    assert not Obis(1, 0, 1, 8, 0, 100).is_valid()
    assert not Obis().is_valid()


def test_is_manufacturer_specific():
    assert not Obis(1, 0, 1, 8, 0, 0).is_manufacturer_specific()
    assert Obis(1, 128, 1, 8, 0, 0).is_manufacturer_specific()
    assert Obis(1, 0, 240, 8, 0, 0).is_manufacturer_specific()
    assert Obis(1, 0, 1, 254, 0, 0).is_manufacturer_specific()
    assert not Obis(1, 0, 1, 255, 0, 0).is_manufacturer_specific()
    assert Obis(1, 0, 1, 8, 0, 128).is_manufacturer_specific()