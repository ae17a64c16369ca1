"""
Serialization of SemanticChangeDetail

Edit-history rows persist the change detail as a JSON blob with the
camelCase keys used by the rest of the note application. The direction
vector is omitted by default to save space; readers must tolerate its
absence and report it as None rather than a zero vector.
"""

import json
from typing import Any

from mindrift.models import ChangeMetrics, SemanticChangeDetail, SemanticChangeType


def change_detail_to_dict(
    detail: SemanticChangeDetail,
    include_direction: bool = False,
) -> dict[str, Any]:
    """Convert a change detail to a JSON-ready dictionary."""
    data: dict[str, Any] = {
        "type": detail.type.value,
        "confidence": detail.confidence,
        "magnitude": detail.magnitude,
        "metrics": {
            "contentLengthRatio": detail.metrics.content_length_ratio,
            "topicShift": detail.metrics.topic_shift,
            "vocabularyOverlap": detail.metrics.vocabulary_overlap,
            "structuralSimilarity": detail.metrics.structural_similarity,
        },
    }
    if include_direction and detail.direction is not None:
        data["direction"] = list(detail.direction)
    return data


def change_detail_from_dict(data: dict[str, Any]) -> SemanticChangeDetail:
    """
    Build a change detail from its dictionary form.

    Raises:
        ValueError: If a required field is missing or has an unknown value
    """
    try:
        metrics = data["metrics"]
        direction = data.get("direction")
        return SemanticChangeDetail(
            type=SemanticChangeType(data["type"]),
            confidence=float(data["confidence"]),
            magnitude=float(data["magnitude"]),
            metrics=ChangeMetrics(
                content_length_ratio=float(metrics["contentLengthRatio"]),
                topic_shift=float(metrics["topicShift"]),
                vocabulary_overlap=float(metrics["vocabularyOverlap"]),
                structural_similarity=float(metrics["structuralSimilarity"]),
            ),
            direction=tuple(float(v) for v in direction) if direction is not None else None,
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed change detail: {e!r}") from e


def serialize_change_detail(
    detail: SemanticChangeDetail,
    include_direction: bool = False,
) -> str:
    """
    Serialize a change detail to JSON.

    Args:
        detail: The detail to serialize
        include_direction: Keep the direction vector (dropped by default)

    Returns:
        JSON string
    """
    return json.dumps(change_detail_to_dict(detail, include_direction))


def deserialize_change_detail(text: str) -> SemanticChangeDetail:
    """
    Parse a change detail from JSON.

    A missing "direction" key yields direction=None.

    Raises:
        ValueError: If the JSON is invalid or a required field is missing
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid change detail JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Change detail JSON must be an object")
    return change_detail_from_dict(data)
