from __future__ import annotations

import pytest
from pydantic import ValidationError

from authz_core.features.projects.provisioning import default_key_name, with_default_keys
from authz_core.features.projects.schemas import GroupGrantSpec, KeySpec, ProjectCreate
from authz_core.models import KeyType


def test_default_key_name() -> None:
    assert default_key_name(KeyType.SSH, "PRJ") == "proj-ssh-prj"
    assert default_key_name(KeyType.PGP, "PRJ") == "proj-pgp-prj"


def test_with_default_keys_adds_missing_types() -> None:
    keys = with_default_keys("PRJ", [])

    assert [(spec.name, spec.type) for spec in keys] == [
        ("proj-ssh-prj", "ssh"),
        ("proj-pgp-prj", "pgp"),
    ]


def test_with_default_keys_keeps_requested_keys() -> None:
    requested = [KeySpec(name="deploy", type=KeyType.SSH)]

    keys = with_default_keys("PRJ", requested)

    assert [spec.name for spec in keys] == ["deploy", "proj-pgp-prj"]


def test_group_grant_spec_blank_entries_are_empty() -> None:
    assert GroupGrantSpec(name="  ", level=4).is_empty
    assert GroupGrantSpec(level=4).is_empty
    assert GroupGrantSpec(name=" ops ", level=4).clean_name == "ops"
    assert not GroupGrantSpec(id=3, level="READ").is_empty


def test_group_grant_spec_requires_level() -> None:
    with pytest.raises(ValidationError):
        GroupGrantSpec(name="ops")


def test_project_create_defaults_to_empty_collections() -> None:
    spec = ProjectCreate(key="PRJ", name="Proj")

    assert spec.groups == []
    assert spec.keys == []
    assert spec.variables == []
