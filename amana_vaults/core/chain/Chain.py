from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from eth_utils import keccak, to_checksum_address
from loguru import logger

from amana_vaults.core.chain.models import EventBase
from amana_vaults.core.config import get_chain_id, get_genesis_timestamp
from amana_vaults.core.constants.chains import CHAIN_ID_TO_CODE, resolve_chain_id

if TYPE_CHECKING:
    from amana_vaults.core.chain.Contract import Contract

E = TypeVar("E", bound=EventBase)


class Chain:
    """Deterministic single-threaded ledger hosting contracts.

    Provides a clock, address allocation, an event log and all-or-nothing
    transactions. Every mutating contract entry point runs inside
    ``transaction()``; an exception anywhere inside restores the state of all
    registered contracts and drops the events emitted since the outermost
    transaction began.
    """

    def __init__(self, chain_id: int | str | None = None, *, timestamp: int | None = None):
        self.chain_id = resolve_chain_id(chain_id if chain_id is not None else get_chain_id())
        self.timestamp = int(timestamp if timestamp is not None else get_genesis_timestamp())
        self.block_number = 0
        self.contracts: dict[str, Contract] = {}
        self.logs: list[EventBase] = []
        self._nonce = 0
        self._tx_depth = 0
        self.logger = logger.bind(chain=CHAIN_ID_TO_CODE.get(self.chain_id, self.chain_id))

    # ---------------------------
    # Contracts
    # ---------------------------

    def allocate_address(self, label: str) -> str:
        self._nonce += 1
        digest = keccak(text=f"{self.chain_id}:{self._nonce}:{label}")
        return to_checksum_address("0x" + digest[-20:].hex())

    def register(self, contract: Contract) -> None:
        if contract.address in self.contracts:
            raise ValueError(f"address already registered: {contract.address}")
        self.contracts[contract.address] = contract
        self.logger.debug(f"Registered {contract.label} at {contract.address}")

    def get(self, address: str) -> Contract | None:
        for addr, contract in self.contracts.items():
            if addr.lower() == str(address).lower():
                return contract
        return None

    # ---------------------------
    # Clock
    # ---------------------------

    def advance(self, seconds: int) -> int:
        seconds = int(seconds)
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.timestamp += seconds
        self.block_number += 1
        return self.timestamp

    def warp(self, timestamp: int) -> int:
        timestamp = int(timestamp)
        if timestamp < self.timestamp:
            raise ValueError(f"cannot warp back from {self.timestamp} to {timestamp}")
        return self.advance(timestamp - self.timestamp)

    # ---------------------------
    # Events
    # ---------------------------

    def emit(self, event: E) -> E:
        stamped = event.model_copy(
            update={
                "block_number": self.block_number,
                "block_timestamp": self.timestamp,
                "log_index": len(self.logs),
            }
        )
        self.logs.append(stamped)
        return stamped

    def events(self, event_type: type[E], *, contract: Any = None) -> list[E]:
        address = getattr(contract, "address", contract)
        return [
            e
            for e in self.logs
            if isinstance(e, event_type)
            and (address is None or e.contract.lower() == str(address).lower())
        ]

    # ---------------------------
    # Transactions
    # ---------------------------

    @property
    def in_transaction(self) -> bool:
        return self._tx_depth > 0

    def _snapshot(self) -> tuple[dict[str, Contract], dict[str, dict[str, Any]], int]:
        # Contracts and the chain keep their identity; everything else is copied.
        memo: dict[int, Any] = {id(c): c for c in self.contracts.values()}
        memo[id(self)] = self
        states = {addr: c.snapshot(memo) for addr, c in self.contracts.items()}
        return dict(self.contracts), states, len(self.logs)

    def _restore(
        self,
        contracts: dict[str, Contract],
        states: dict[str, dict[str, Any]],
        log_len: int,
    ) -> None:
        self.contracts.clear()
        self.contracts.update(contracts)
        for addr, state in states.items():
            contracts[addr].restore(state)
        del self.logs[log_len:]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return

        saved = self._snapshot()
        self._tx_depth = 1
        try:
            yield
        except Exception as exc:
            self._restore(*saved)
            self.logger.debug(f"Transaction reverted: {exc}")
            raise
        finally:
            self._tx_depth = 0

    def snapshot(self) -> dict[str, Any]:
        """Capture the full ledger for ``revert_to`` (test helper, like evm_snapshot)."""
        contracts, states, log_len = self._snapshot()
        return {
            "contracts": contracts,
            "states": states,
            "log_len": log_len,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
        }

    def revert_to(self, snap: dict[str, Any]) -> None:
        self._restore(
            snap["contracts"],
            copy.deepcopy(snap["states"], {id(c): c for c in snap["contracts"].values()} | {id(self): self}),
            snap["log_len"],
        )
        self.timestamp = snap["timestamp"]
        self.block_number = snap["block_number"]
