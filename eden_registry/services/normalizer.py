"""
Response-shape normalizer.

Registry endpoints are not consistent about envelopes. A body may be the
payload itself, `{"data": payload}`, or `{"<collection>": [...]}`. The
envelope parsers below are tried in a fixed order; an unrecognised shape is
returned unchanged with a warning, never raised.
"""

import json
import warnings
from collections.abc import Mapping
from typing import Any, Callable

from loguru import logger

from eden_registry.services.errors import ShapeMismatchWarning

ShapePredicate = Callable[[Any], bool]

COLLECTION_KEYS = ("agents", "creations", "personas", "artifacts", "profiles")

_MISSING = object()


def is_list(data: Any) -> bool:
    return isinstance(data, list)


def has_id(data: Any) -> bool:
    return isinstance(data, Mapping) and "id" in data


def has_id_or_handle(data: Any) -> bool:
    return isinstance(data, Mapping) and ("id" in data or "handle" in data)


def is_object(data: Any) -> bool:
    return isinstance(data, Mapping)


def has_agent_id(data: Any) -> bool:
    return isinstance(data, Mapping) and "agentId" in data


def _parse_direct(raw: Any, expected: ShapePredicate | None) -> Any:
    if expected is not None and expected(raw):
        return raw
    return _MISSING


def _parse_data_envelope(raw: Any, expected: ShapePredicate | None) -> Any:
    if not isinstance(raw, Mapping) or "data" not in raw:
        return _MISSING
    # Single-level, permissive: returned whether or not it satisfies `expected`
    return raw["data"]


def _parse_collection_envelope(raw: Any, expected: ShapePredicate | None) -> Any:
    if not isinstance(raw, Mapping):
        return _MISSING
    for key in COLLECTION_KEYS:
        if key in raw:
            return raw[key]
    return _MISSING


ENVELOPE_PARSERS = (
    _parse_direct,
    _parse_data_envelope,
    _parse_collection_envelope,
)


def normalize(raw: Any, expected: ShapePredicate | None = None) -> Any:
    """
    Extract the payload from a decoded response body.

    Args:
        raw: Decoded JSON body
        expected: Predicate the payload should satisfy

    Returns:
        The payload, or `raw` unchanged when no known envelope applies
    """
    for parser in ENVELOPE_PARSERS:
        result = parser(raw, expected)
        if result is not _MISSING:
            return result

    _warn_unexpected(raw)
    return raw


def _warn_unexpected(raw: Any) -> None:
    keys = list(raw.keys()) if isinstance(raw, Mapping) else None
    try:
        sample = json.dumps(raw, default=str)[:200]
    except (TypeError, ValueError):
        sample = repr(raw)[:200]
    logger.warning(
        f"[Registry] Unexpected response format: keys={keys}, sample={sample}"
    )
    warnings.warn(
        f"Unexpected registry response format (keys={keys})",
        ShapeMismatchWarning,
        stacklevel=3,
    )
