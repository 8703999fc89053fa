from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger

from amana_vaults.core.chain.models import EventBase

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain

E = TypeVar("E", bound=EventBase)


class Contract:
    contract_type: str | None = None

    # Identity and wiring; never rolled back.
    _snapshot_exclude = frozenset({"chain", "logger", "address", "label"})

    def __init__(self, chain: Chain, label: str | None = None):
        self.chain = chain
        self.label = label or self.__class__.__name__
        self.address = chain.allocate_address(self.label)
        self.logger = logger.bind(contract=self.__class__.__name__, address=self.address)
        chain.register(self)

    def emit(self, event_cls: type[E], **fields: Any) -> E:
        return self.chain.emit(event_cls(contract=self.address, **fields))

    def snapshot(self, memo: dict[int, Any] | None = None) -> dict[str, Any]:
        state = {k: v for k, v in vars(self).items() if k not in self._snapshot_exclude}
        return copy.deepcopy(state, memo if memo is not None else {})

    def restore(self, state: dict[str, Any]) -> None:
        for key in [k for k in vars(self) if k not in self._snapshot_exclude]:
            if key not in state:
                delattr(self, key)
        vars(self).update(state)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.label} {self.address}>"
