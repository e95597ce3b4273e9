"""Tests for response envelope normalization."""

from __future__ import annotations

import warnings

import pytest

from eden_registry.services.errors import ShapeMismatchWarning
from eden_registry.services.normalizer import (
    COLLECTION_KEYS,
    has_agent_id,
    has_id,
    has_id_or_handle,
    is_list,
    normalize,
)


@pytest.mark.parametrize(
    "payload",
    [
        [{"id": "a1"}],
        [],
        {"id": "a1"},
        {"data": {"id": "nested"}},
        "plain",
        None,
    ],
)
def test_data_envelope_unwraps_exactly_once(payload) -> None:
    assert normalize({"data": payload}, is_list) is payload


def test_bare_array_returned_identically() -> None:
    body = [{"id": "b"}, {"id": "a"}, {"id": "c"}]

    result = normalize(body, is_list)

    assert result is body
    assert [item["id"] for item in result] == ["b", "a", "c"]


def test_direct_match_wins_over_envelope_keys() -> None:
    body = {"id": "a1", "data": {"other": True}, "agents": []}
    assert normalize(body, has_id_or_handle) is body


def test_data_unwrap_is_permissive() -> None:
    assert normalize({"data": {"unexpected": 1}}, is_list) == {"unexpected": 1}


@pytest.mark.parametrize("key", COLLECTION_KEYS)
def test_collection_keys(key: str) -> None:
    items = [{"id": "x"}]
    assert normalize({key: items, "total": 1}, is_list) is items


def test_collection_keys_follow_fixed_priority() -> None:
    body = {"profiles": ["p"], "agents": ["a"]}
    assert normalize(body, is_list) == ["a"]


def test_unknown_shape_returned_unchanged_with_warning() -> None:
    body = {"items": [1, 2]}

    with pytest.warns(ShapeMismatchWarning):
        result = normalize(body, is_list)

    assert result is body


def test_unknown_scalar_does_not_raise() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ShapeMismatchWarning)
        assert normalize("oops", is_list) == "oops"


def test_predicates() -> None:
    assert has_id({"id": 1}) and not has_id([])
    assert has_id_or_handle({"handle": "abraham"})
    assert not has_id_or_handle({"name": "x"})
    assert has_agent_id({"agentId": "a1"})
