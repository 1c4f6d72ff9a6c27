import pytest

from jcompile._impl.errors import ConfigurationError
from jcompile._impl.release import JavaRelease


def test_parse():
    assert JavaRelease("1.8") == JavaRelease(8)
    assert JavaRelease(" 17 ") == JavaRelease("17")
    assert JavaRelease(JavaRelease(21)).value == 21
    assert str(JavaRelease(11)) == "11"
    assert str(JavaRelease.default()) == "default"
    assert JavaRelease(None).is_default()


def test_invalid():
    for spec in ["1.11", "5", "seventeen", "17.0.1", ""]:
        with pytest.raises(ConfigurationError):
            JavaRelease(spec)


def test_error_context():
    with pytest.raises(ConfigurationError) as excinfo:
        JavaRelease("x", context="src/main/java21")
    assert str(excinfo.value).startswith('src/main/java21: Invalid release "x"')


def test_order():
    releases = [JavaRelease.default(), JavaRelease(21), JavaRelease("1.8"), JavaRelease(17)]
    assert [str(r) for r in sorted(releases)] == ["8", "17", "21", "default"]
    assert JavaRelease(17) < JavaRelease(21)
    assert JavaRelease(21) < JavaRelease.default()
    assert len({JavaRelease(17), JavaRelease("17")}) == 1
