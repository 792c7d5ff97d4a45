"""
Extension points of the customize session.

Actions run for their side effects; filters thread a value through every
callback. Callbacks may be plain functions or coroutines.
"""

import inspect
from typing import Any, Callable, Dict, List

REGISTER = "register"
SAVE = "save"
SAVE_AFTER = "save_after"
SAVE_RESPONSE = "save_response"

HOOK_NAMES = (REGISTER, SAVE, SAVE_AFTER, SAVE_RESPONSE)


class CustomizeHooks:
    """Ordered callback lists keyed by hook name."""

    def __init__(self) -> None:
        self._callbacks: Dict[str, List[Callable[..., Any]]] = {name: [] for name in HOOK_NAMES}

    def add(self, name: str, callback: Callable[..., Any]) -> None:
        if name not in self._callbacks:
            raise ValueError(f"Unknown customize hook {name!r}")
        self._callbacks[name].append(callback)

    def remove(self, name: str, callback: Callable[..., Any]) -> None:
        callbacks = self._callbacks.get(name, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def count(self, name: str) -> int:
        return len(self._callbacks.get(name, []))

    def copy(self) -> "CustomizeHooks":
        clone = CustomizeHooks()
        for name, callbacks in self._callbacks.items():
            clone._callbacks[name] = list(callbacks)
        return clone

    async def run(self, name: str, *args: Any) -> None:
        for callback in list(self._callbacks[name]):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result

    async def filter(self, name: str, value: Any, *args: Any) -> Any:
        for callback in list(self._callbacks[name]):
            result = callback(value, *args)
            if inspect.isawaitable(result):
                result = await result
            value = result
        return value
