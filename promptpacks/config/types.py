# promptpacks/config/types.py
from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Callable

__all__ = ["ConfigProvider", "ChangeListener", "Validator"]

# (key, oldValue, newValue, context)
ChangeListener = Callable[[str, Any, Any, dict[str, Any]], None]
Validator = Callable[[Any], Any]



class ConfigProvider(ABC):
    """One layer of a ConfigStore."""

    @abstractmethod
    def get(self, key: str) -> Any | None: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def to_dict(self) -> Mapping[str, Any]: ...

    @abstractmethod
    def save(self) -> None: ...
