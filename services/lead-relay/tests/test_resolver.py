"""
Tests for dotted-path resolution
"""
from app.services.resolver import resolve_path, find_first_value


def test_resolves_nested_values():
    payload = {"body": {"contact": {"email": "a@x.com"}}}
    assert resolve_path(payload, "body.contact.email") == "a@x.com"
    assert resolve_path(payload, "body.contact") == {"email": "a@x.com"}


def test_missing_segments_are_absent():
    payload = {"body": {"name": "Ana"}}
    assert resolve_path(payload, "body.email") is None
    assert resolve_path(payload, "body.name.first") is None
    assert resolve_path(payload, "headers.origin") is None


def test_empty_path_or_null_root_is_absent():
    assert resolve_path(None, "body.name") is None
    assert resolve_path({"a": 1}, "") is None
    assert resolve_path({"a": 1}, None) is None


def test_digit_segments_index_lists():
    payload = {"items": [{"sku": "A1"}, {"sku": "B2"}]}
    assert resolve_path(payload, "items.1.sku") == "B2"
    assert resolve_path(payload, "items.5.sku") is None
    assert resolve_path(payload, "items.first") is None


def test_falsy_values_are_returned_as_is():
    payload = {"count": 0, "flag": False, "text": ""}
    assert resolve_path(payload, "count") == 0
    assert resolve_path(payload, "flag") is False
    assert resolve_path(payload, "text") == ""


def test_find_first_value_searches_depth_first():
    payload = {"form": {"fields": [{"Email": ""}, {"contact": {"EMAIL": "b@y.com"}}]}, "phone": "+55 11 9999"}
    assert find_first_value(payload, ["email"]) == "b@y.com"
    assert find_first_value(payload, ["phone", "telefone"]) == "+55 11 9999"
    assert find_first_value(payload, ["fax"]) is None
