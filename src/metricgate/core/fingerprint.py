"""Canonical serialization and fingerprinting of metrics.

Two metrics with the same name, page path, type, value and tag set hash to the
same fingerprint regardless of the order in which tag keys were submitted.
Only the top level of ``tags`` is reordered: nested objects inside tag values
are serialized in the order they were given.
"""

import hashlib
import json
from typing import Any

from metricgate.core.models import Metric


def normalize_value(value: int | float) -> int | float:
    """Collapse integral floats to ints so ``1`` and ``1.0`` are one value."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def value_key(value: int | float) -> str:
    """Return the canonical text form of a metric value.

    Used as the exact-equality column in storage.
    """
    return json.dumps(normalize_value(value))


def canonical_form(metric: Metric) -> dict[str, Any]:
    """Build the ordered identity object for a metric.

    Args:
        metric: A validated metric.

    Returns:
        Dict with keys in fixed order: metric_name, page_path, tags, type, value.
        Tag keys are sorted; tag values are embedded as-is.
    """
    # @tra: Core.Fingerprint.SortedTags
    tags = {key: metric.tags[key] for key in sorted(metric.tags)}
    return {
        "metric_name": metric.name,
        "page_path": metric.page_path or None,
        "tags": tags,
        "type": metric.type,
        "value": normalize_value(metric.value),
    }


def canonical_bytes(metric: Metric) -> bytes:
    """Serialize the canonical form to compact UTF-8 JSON."""
    return json.dumps(
        canonical_form(metric),
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def fingerprint(metric: Metric) -> str:
    """Return the SHA-256 hex digest of the canonical metric."""
    # @tra: Core.Fingerprint.Deterministic
    return hashlib.sha256(canonical_bytes(metric)).hexdigest()
