"""Update check methods for different sources."""

from typing import Iterable, Optional, Type

from ..constants import DEFAULT_METHOD_ORDER
from .app_store import AppStoreMethod
from .base import UpdateCheckMethod
from .homebrew import HomebrewCaskMethod
from .sparkle import SparkleMethod

__all__ = [
    "UpdateCheckMethod",
    "AppStoreMethod",
    "SparkleMethod",
    "HomebrewCaskMethod",
    "MethodRegistry",
    "create_methods",
]


class MethodRegistry:
    """Registry of update check methods by name."""

    _methods: dict[str, Type[UpdateCheckMethod]] = {}

    @classmethod
    def register(cls, name: str, method_class: Type[UpdateCheckMethod]) -> None:
        """Register a method class under a name.

        Args:
            name: The name used in method order configuration.
            method_class: The method class to register.
        """
        cls._methods[name] = method_class

    @classmethod
    def get_method_class(cls, name: str) -> Optional[Type[UpdateCheckMethod]]:
        return cls._methods.get(name)

    @classmethod
    def registered_names(cls) -> list[str]:
        return list(cls._methods.keys())


MethodRegistry.register("app_store", AppStoreMethod)
MethodRegistry.register("sparkle", SparkleMethod)
MethodRegistry.register("homebrew", HomebrewCaskMethod)


def create_methods(names: Optional[Iterable[str]] = None) -> list[UpdateCheckMethod]:
    """Create method instances in the given priority order.

    Args:
        names: Method names, highest priority first. Defaults to
            DEFAULT_METHOD_ORDER.

    Returns:
        New method instances, in order.

    Raises:
        ValueError: If a name is not registered.
    """
    if names is None:
        names = DEFAULT_METHOD_ORDER

    methods = []
    for name in names:
        method_class = MethodRegistry.get_method_class(name)
        if method_class is None:
            raise ValueError(
                f"Unknown update method '{name}'. "
                f"Available: {', '.join(MethodRegistry.registered_names())}"
            )
        methods.append(method_class())
    return methods
