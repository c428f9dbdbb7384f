"""Template expansion for operation payloads.

Payload strings may reference metadata with ``{meta:field}``. Expansion is
lazy: it happens right before an operation is applied so earlier operations
in the same record are visible.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

TEMPLATE_PATTERN = re.compile(r"\{meta:([^{}:]+)\}")


def has_templates(value: str) -> bool:
    """Check whether a payload contains any ``{meta:...}`` tag."""
    return TEMPLATE_PATTERN.search(value) is not None


def expand_templates(value: str, meta: Mapping[str, Any]) -> str:
    """Substitute ``{meta:field}`` tags with the field's current value.

    A tag whose field is absent, or holds a non-string value, is left as
    the literal text.

    Args:
        value: Payload string.
        meta: Current metadata of the record.

    Returns:
        The expanded string.

    Example:
        >>> expand_templates("[{meta:uploader}] ", {"uploader": "Chan"})
        '[Chan] '
    """

    def replace(match: re.Match[str]) -> str:
        current = meta.get(match.group(1).strip())
        if isinstance(current, str):
            return current
        return match.group(0)

    return TEMPLATE_PATTERN.sub(replace, value)
