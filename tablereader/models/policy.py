"""Anomaly-handling policies: a fixed action or a caller decision function."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Type

from tablereader.errors.exceptions import ConfigurationError


class UnknownColumnsAction(str, Enum):
    """Handling of header columns that no field claimed."""
    USE = "use"
    NEXT = "next"
    DIE = "die"


class BlankRowAction(str, Enum):
    """Handling of a run of blank rows inside the table."""
    NEXT = "next"
    LAST = "last"
    DIE = "die"
    USE = "use"


class ValidationFailAction(str, Enum):
    """Handling of a record whose values failed their type checks."""
    NEXT = "next"
    USE = "use"
    DIE = "die"


@dataclass(frozen=True)
class Policy:
    """Either a fixed action or a function deciding one per occurrence.

    Decision functions receive the context of the anomaly (see TableReader
    for the arguments of each policy) and must return one of the action
    tags.
    """
    option: str
    action_type: Type[Enum]
    action: Optional[Enum] = None
    decide: Optional[Callable[..., Any]] = None

    @classmethod
    def build(cls, option: str, action_type: Type[Enum], value: Any) -> "Policy":
        """Create a policy from a tag, an enum member, a callable, or a Policy.

        Raises:
            ConfigurationError: If value is not a valid tag for action_type
        """
        if isinstance(value, Policy):
            if value.action_type is not action_type:
                raise ConfigurationError(f"Policy for '{value.option}' can't be used for '{option}'")
            return value
        if callable(value) and not isinstance(value, (str, Enum)):
            return cls.custom(option, action_type, value)
        return cls.fixed(option, action_type, value)

    @classmethod
    def fixed(cls, option: str, action_type: Type[Enum], tag: Any) -> "Policy":
        """Policy always taking the same action."""
        return cls(option=option, action_type=action_type, action=cls._coerce(option, action_type, tag))

    @classmethod
    def custom(cls, option: str, action_type: Type[Enum], decide: Callable[..., Any]) -> "Policy":
        """Policy asking `decide` for an action tag on every occurrence."""
        return cls(option=option, action_type=action_type, decide=decide)

    @staticmethod
    def _coerce(option: str, action_type: Type[Enum], value: Any) -> Enum:
        try:
            return action_type(value.value if isinstance(value, Enum) else value)
        except ValueError:
            allowed = ", ".join(repr(a.value) for a in action_type)
            raise ConfigurationError(
                f"Invalid action {value!r} for '{option}'; expected one of {allowed}"
            ) from None

    @property
    def is_custom(self) -> bool:
        return self.decide is not None

    def resolve(self, *context: Any) -> Enum:
        """Return the action to take for one occurrence of the anomaly."""
        if self.decide is None:
            return self.action
        return self._coerce(self.option, self.action_type, self.decide(*context))
