from __future__ import annotations

from authz_core.core.default_group import DefaultGroup, is_default_group


def test_is_default_group_matches_id_or_name() -> None:
    default = DefaultGroup(id=3, name="everyone")

    assert is_default_group(default, group_id=3)
    assert is_default_group(default, name="everyone")
    assert not is_default_group(default, group_id=4)
    assert not is_default_group(default, name="ops")
    assert not is_default_group(default)


def test_is_default_group_without_configured_group() -> None:
    assert not is_default_group(None, group_id=1, name="everyone")
