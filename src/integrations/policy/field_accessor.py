"""
Field accessor for raw form submissions.

A field is read through an ordered list of steps. Each step is either a value
transform (raw value -> typed value) or a string sanitizer. Processing stops
early and yields the caller's default when:
- the field is absent, or trims to an empty string
- a transform returns None for a non-null input (it rejected the value)
- a sanitizer returns an empty string (e.g. an invalid e-mail)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from src.utils.transformers import sanitize_text_field


@dataclass(frozen=True)
class Transform:
    fn: Callable[[Any], Any]


@dataclass(frozen=True)
class Sanitize:
    fn: Callable[[str], str]


Step = Union[Transform, Sanitize]


class _Rejected(Exception):
    pass


class FieldAccessor:
    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def get(
        self,
        key: str,
        default: Any = None,
        sanitizer: Optional[Callable[[str], str]] = sanitize_text_field,
        transformer: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Transform first (typed values need the raw input), sanitize after."""
        steps = []
        if transformer is not None:
            steps.append(Transform(transformer))
        if sanitizer is not None:
            steps.append(Sanitize(sanitizer))
        return self.get_steps(key, steps, default=default)

    def get_steps(self, key: str, steps: Sequence[Step], default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None or str(raw).strip() == "":
            return default

        value = raw
        try:
            for step in steps:
                value = self._apply(step, value)
        except _Rejected:
            return default
        return value

    @staticmethod
    def _apply(step: Step, value: Any) -> Any:
        if isinstance(step, Transform):
            result = step.fn(value)
            if result is None and value is not None:
                raise _Rejected()
            return result
        if isinstance(value, str):
            result = step.fn(value)
            if result == "":
                raise _Rejected()
            return result
        return value
