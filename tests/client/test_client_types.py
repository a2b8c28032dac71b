"""Unit tests for response identifier decoding."""

import pytest

from dokship.client.types import extract_created_id, resource_id
from dokship.errors import MissingIdentifierError


def test_resource_id_prefers_specific_field():
    assert resource_id({"projectId": "p1", "id": "x"}, "project") == "p1"


def test_resource_id_falls_back_to_id():
    assert resource_id({"id": "x"}, "project") == "x"


def test_resource_id_non_dict():
    assert resource_id(None, "project") is None


def test_extract_nested_before_flat():
    response = {"project": {"projectId": "nested"}, "projectId": "flat"}
    assert extract_created_id(response, "project", "project.create") == "nested"


def test_extract_flat():
    assert extract_created_id({"applicationId": "a1"}, "application", "application.create") == "a1"


def test_extract_missing_lists_keys():
    with pytest.raises(MissingIdentifierError, match="keys: name, status"):
        extract_created_id({"status": "ok", "name": "web"}, "compose", "compose.create")


def test_extract_non_dict():
    with pytest.raises(MissingIdentifierError, match="keys: none"):
        extract_created_id(None, "compose", "compose.create")
