"""Utility functions for resource quantities and object labels."""

from typing import Dict, Optional

GI = 1024 ** 3

_MEMORY_UNITS = {
    'Ki': 1024,
    'Mi': 1024 ** 2,
    'Gi': 1024 ** 3,
    'Ti': 1024 ** 4,
    'Pi': 1024 ** 5,
    'Ei': 1024 ** 6,
    'k': 1000,
    'K': 1000,
    'M': 1000 ** 2,
    'G': 1000 ** 3,
    'T': 1000 ** 4,
    'P': 1000 ** 5,
    'E': 1000 ** 6,
}


def parse_memory(memory_string: str) -> int:
    """
    Parse memory string to bytes.

    Examples:
        "128Mi" -> 134217728
        "1Gi" -> 1073741824
        "512M" -> 512000000
        "16323344Ki" -> 16715104256

    Raises:
        ValueError: If the string is not a memory quantity
    """
    if not memory_string:
        return 0

    memory_string = str(memory_string).strip()

    # Binary suffixes are two characters, so they must be tried first
    for suffix, multiplier in _MEMORY_UNITS.items():
        if memory_string.endswith(suffix):
            value = float(memory_string[:-len(suffix)])
            return int(value * multiplier)

    # Plain bytes
    return int(float(memory_string))


def bytes_to_gi(bytes_value: int) -> float:
    """Convert bytes to (fractional) gibibytes."""
    return bytes_value / GI


def format_memory_gi(size_gi: int) -> str:
    """
    Format a whole number of gibibytes as a Kubernetes memory quantity.

    Examples:
        80 -> "80Gi"
    """
    return f"{int(size_gi)}Gi"


def memory_matches(actual_memory: Optional[str], desired_memory: str) -> bool:
    """
    Compare two memory quantities by value rather than by spelling.

    "80Gi" and "85899345920" are equal. A missing or unparsable actual value
    never matches.
    """
    if not actual_memory:
        return False
    try:
        return parse_memory(actual_memory) == parse_memory(desired_memory)
    except ValueError:
        return False


def patch_labels(metadata, key: str, value: str) -> bool:
    """
    Ensure a label is set on an object's metadata.

    Args:
        metadata: A V1ObjectMeta (labels may be None)
        key: Label key
        value: Desired label value

    Returns:
        True if the labels were changed
    """
    current = metadata.labels or {}
    if current.get(key) == value:
        return False
    labels = dict(current)
    labels[key] = value
    metadata.labels = labels
    return True


def selector_matches(match_labels: Optional[Dict[str, str]], key: str, value: str) -> bool:
    """Check that a selector selects exactly ``key=value`` and nothing else."""
    if not match_labels:
        return False
    return match_labels.get(key) == value and len(match_labels) == 1
