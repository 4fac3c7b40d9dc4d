import pytest

from n64runtime.version import Version


def test_plain_version():
    version = Version.from_string("1.2.3")
    assert (version.major, version.minor, version.patch, version.suffix) == (1, 2, 3, "")


@pytest.mark.parametrize(
    "text, suffix",
    [("1.2.3-beta", "-beta"), ("4.5.6+build.7", "+build.7"), ("0.0.1-", "-")],
)
def test_suffix_keeps_its_sign(text, suffix):
    assert Version.from_string(text).suffix == suffix


@pytest.mark.parametrize("text", ["1.2.3", "10.20.30-rc1", "0.0.0+meta", "65535.0.65535"])
def test_string_round_trip(text):
    assert str(Version.from_string(text)) == text


def test_parse_of_str_round_trip():
    version = Version(7, 8, 9, "-dev")
    assert Version.from_string(str(version)) == version


@pytest.mark.parametrize(
    "text",
    [
        "",
        "1",
        "1.2",
        "1.2.",
        ".2.3",
        "1..3",
        "a.2.3",
        "1.x.3",
        "1.2.3a",
        "1.2.3.4",
        "-1.2.3",
        "+1.2.3",
        "1.+2.3",
        "1.2.-3",
        "1.2.65536",
        "65536.1.1",
        "1 .2.3",
    ],
)
def test_invalid_versions_raise(text):
    with pytest.raises(ValueError):
        Version.from_string(text)


def test_components_fit_sixteen_bits():
    version = Version.from_string("65535.65535.65535")
    assert max(version.major, version.minor, version.patch) == 65535