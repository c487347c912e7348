# =============================================================================
# File:       chainq/container/container.py
# Purpose:    Minimal service container: lazy singletons, factories and aliases
# Created:    2026-10-18
# =============================================================================

from typing import Any, Callable, Dict, Hashable


class Container:
    def __init__(self):
        self._bindings: Dict[Hashable, Callable[["Container"], Any]] = {}
        self._shared: Dict[Hashable, bool] = {}
        self._instances: Dict[Hashable, Any] = {}
        self._aliases: Dict[Hashable, Hashable] = {}

    def bind(self, name: Hashable, factory: Callable[["Container"], Any]) -> None:
        """New object on every make()."""
        self._bindings[name] = factory
        self._shared[name] = False
        self._instances.pop(name, None)

    def singleton(self, name: Hashable, factory: Callable[["Container"], Any]) -> None:
        """Built on the first make(), then the same object every time."""
        self._bindings[name] = factory
        self._shared[name] = True
        self._instances.pop(name, None)

    def alias(self, name: Hashable, alias: Hashable) -> None:
        """make(alias) resolves `name`. Types work as aliases too."""
        if alias == name:
            raise ValueError(f"{name!r} cannot alias itself")
        self._aliases[alias] = name

    def _resolve_key(self, key: Hashable) -> Hashable:
        seen = set()
        while key in self._aliases:
            if key in seen:
                raise KeyError(f"Alias loop at {key!r}")
            seen.add(key)
            key = self._aliases[key]
        return key

    def bound(self, key: Hashable) -> bool:
        return self._resolve_key(key) in self._bindings

    def resolved(self, key: Hashable) -> bool:
        return self._resolve_key(key) in self._instances

    def make(self, key: Hashable) -> Any:
        name = self._resolve_key(key)
        if name not in self._bindings:
            raise KeyError(f"Nothing bound for {key!r}")
        if name in self._instances:
            return self._instances[name]
        obj = self._bindings[name](self)
        if self._shared[name]:
            self._instances[name] = obj
        return obj

    def forget_instances(self) -> None:
        self._instances.clear()
