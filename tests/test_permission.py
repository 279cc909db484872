"""Permission values, derived accessors and parsing."""

import pytest

from topic_acl import InvalidArgumentError, InvalidPermissionError, Permission


def test_read_write_flags():
    assert Permission.READ_WRITE.can_read and Permission.READ_WRITE.can_write
    assert Permission.READ_ONLY.can_read and not Permission.READ_ONLY.can_write
    assert not Permission.WRITE_ONLY.can_read and Permission.WRITE_ONLY.can_write
    assert not Permission.DENY_ALL.can_read and not Permission.DENY_ALL.can_write


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", Permission.READ_WRITE),
        ("read-write", Permission.READ_WRITE),
        ("rw", Permission.READ_WRITE),
        ("read-only", Permission.READ_ONLY),
        ("read", Permission.READ_ONLY),
        ("ro", Permission.READ_ONLY),
        ("write-only", Permission.WRITE_ONLY),
        ("write", Permission.WRITE_ONLY),
        ("wo", Permission.WRITE_ONLY),
        ("deny", Permission.DENY_ALL),
        ("deny-all", Permission.DENY_ALL),
        ("none", Permission.DENY_ALL),
        ("RW", Permission.READ_WRITE),
    ],
)
def test_parse_aliases(text, expected):
    assert Permission.parse(text) is expected


def test_parse_passes_through_enum_values():
    assert Permission.parse(Permission.WRITE_ONLY) is Permission.WRITE_ONLY


@pytest.mark.parametrize("text", ["admin", "r", "readwrite", None])
def test_parse_rejects_unknown(text):
    with pytest.raises(InvalidPermissionError):
        Permission.parse(text)


def test_invalid_permission_is_invalid_argument():
    assert issubclass(InvalidPermissionError, InvalidArgumentError)


@pytest.mark.parametrize("permission", list(Permission))
def test_from_flags_inverts_accessors(permission):
    assert Permission.from_flags(permission.can_read, permission.can_write) is permission


def test_str_is_canonical_name():
    assert str(Permission.READ_ONLY) == "read-only"
