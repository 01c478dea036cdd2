import pytest

from deskboot.util.ids import ensure_unique, validate_step_name


def test_validate_step_name_valid():
    assert validate_step_name("apt.baseline") == "apt.baseline"
    assert validate_step_name("path.fd-shim") == "path.fd-shim"
    assert validate_step_name("a") == "a"
    assert validate_step_name("x" * 64) == "x" * 64


def test_validate_step_name_invalid():
    with pytest.raises(ValueError, match="Invalid step name"):
        validate_step_name("Has Space")
    with pytest.raises(ValueError, match="Invalid step name"):
        validate_step_name(".hidden")
    with pytest.raises(ValueError):
        validate_step_name("")
    with pytest.raises(ValueError):
        validate_step_name("x" * 65)


def test_ensure_unique():
    assert ensure_unique(["a", "b"]) == ["a", "b"]
    with pytest.raises(ValueError, match="Duplicate step name: a"):
        ensure_unique(["a", "b", "a"])
