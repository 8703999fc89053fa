from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from amana_vaults.core.errors import NotInitializedError, ReentrancyError


def external(fn: Callable) -> Callable:
    """Run a state-mutating entry point atomically inside ``chain.transaction()``."""

    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with self.chain.transaction():
            return fn(self, *args, **kwargs)

    return wrapper


def nonreentrant(fn: Callable) -> Callable:
    """Reject re-entry while any guarded entry point of the same contract is running."""

    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(self, "_entered", False):
            raise ReentrancyError(f"reentrant call to {fn.__name__}", contract=self.label)
        self._entered = True
        try:
            return fn(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper


def require_initialized(fn: Callable) -> Callable:
    """Raise ``NotInitializedError`` until the contract's ``initialize`` has run."""

    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "initialized", False):
            raise NotInitializedError(f"{fn.__name__} called before initialize", contract=self.label)
        return fn(self, *args, **kwargs)

    return wrapper
