"""Variable context store for one calculator session."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from models.calculator_config import Variable


class VariableContext:
    """
    Mutable id -> value map holding user inputs and computed results.

    Declared variable defaults seed the map on creation and after reset().
    A key holding None counts as unknown.
    """

    def __init__(self, variables: Optional[Iterable[Variable]] = None):
        self._defaults: Dict[str, Any] = {
            v.id: v.default_value for v in (variables or []) if v.default_value is not None
        }
        self._values: Dict[str, Any] = dict(self._defaults)

    def set_variable(self, variable_id: str, value: Any) -> None:
        self._values[variable_id] = value

    def set_variables(self, values: Mapping[str, Any]) -> None:
        self._values.update(values)

    def get_variable(self, variable_id: str, default: Any = None) -> Any:
        value = self._values.get(variable_id)
        return default if value is None else value

    def has(self, variable_id: str) -> bool:
        return self._values.get(variable_id) is not None

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current values."""
        return dict(self._values)

    def reset(self) -> None:
        """Discard session values and restore declared defaults."""
        self._values = dict(self._defaults)

    def __contains__(self, variable_id: object) -> bool:
        return isinstance(variable_id, str) and self.has(variable_id)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)
