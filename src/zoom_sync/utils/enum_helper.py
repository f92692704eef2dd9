"""Enum conversion utilities"""

from enum import Enum
from typing import TypeVar, Type, Optional, List, Any

E = TypeVar("E", bound=Enum)


class EnumHelper:
    """
    Utility class for working with Enums:
    - Parse config strings to enum members (case-insensitive, name or value)
    - Render enum members for logs
    """

    @staticmethod
    def from_string(enum_class: Type[E], name: str, default: Optional[E] = None) -> E:
        """
        Parse string to Enum member.

        Matches member names case-insensitively, then string values
        (so both "FAHRENHEIT" and "F" resolve TemperatureUnit.FAHRENHEIT).

        Raises:
            ValueError: no match and no default
        """
        if not issubclass(enum_class, Enum):
            raise TypeError(f"{enum_class} is not an Enum class")

        wanted = str(name).strip().upper()
        for member in enum_class:
            if member.name.upper() == wanted:
                return member
        for member in enum_class:
            if isinstance(member.value, str) and member.value.upper() == wanted:
                return member

        if default is not None:
            return default
        raise ValueError(f"Invalid {enum_class.__name__} name: {name}")

    @staticmethod
    def to_enum(enum_class: Type[E], value: Any) -> E:
        """Convert string or enum instance to enum instance"""
        if isinstance(value, enum_class):
            return value
        if isinstance(value, str):
            return EnumHelper.from_string(enum_class, value)
        raise TypeError(f"Expected str or {enum_class.__name__}, got {type(value).__name__}")

    @staticmethod
    def list_names(enum_class: Type[E], lowercase: bool = False) -> List[str]:
        if lowercase:
            return [member.name.lower() for member in enum_class]
        return [member.name for member in enum_class]

    @staticmethod
    def to_name(value: Any) -> str:
        """Convert enum instance to string name"""
        if isinstance(value, Enum):
            return value.name
        return str(value)
