"""Wiring of a vault, one simulated venue and the matching strategy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from amana_vaults.core.strategies.Strategy import Strategy
from amana_vaults.core.vault.Vault import Vault
from amana_vaults.strategies.aave_strategy.strategy import AaveStrategy
from amana_vaults.strategies.erc4626_strategy.strategy import ERC4626Strategy
from amana_vaults.strategies.extra_strategy.strategy import ExtraStrategy
from amana_vaults.strategies.moonwell_strategy.strategy import MoonwellStrategy
from amana_vaults.sim.venues import (
    SimulatedAavePool,
    SimulatedERC4626Vault,
    SimulatedExtraLendingPool,
    SimulatedMToken,
)

if TYPE_CHECKING:
    from amana_vaults.core.chain.Chain import Chain
    from amana_vaults.sim.tokens import MockERC20

VENUE_KINDS = ("aave", "moonwell", "erc4626", "extra")


@dataclass
class VaultStack:
    vault: Vault
    strategy: Strategy
    venue: Any


def build_strategy(
    chain: Chain,
    kind: str,
    *,
    vault: Vault,
    asset: MockERC20,
    apr: float | str = 0,
) -> tuple[Strategy, Any]:
    match kind:
        case "aave":
            venue = SimulatedAavePool(chain, asset=asset, apr=apr)
            strategy = AaveStrategy(chain, vault=vault.address, asset=asset, pool=venue)
        case "moonwell":
            venue = SimulatedMToken(chain, underlying=asset, apr=apr)
            strategy = MoonwellStrategy(chain, vault=vault.address, asset=asset, m_token=venue)
        case "erc4626":
            venue = SimulatedERC4626Vault(chain, asset=asset)
            strategy = ERC4626Strategy(chain, vault=vault.address, asset=asset, target=venue)
        case "extra":
            venue = SimulatedExtraLendingPool(chain, asset=asset, apr=apr)
            strategy = ExtraStrategy(
                chain,
                vault=vault.address,
                asset=asset,
                pool=venue,
                reserve_id=venue.default_reserve_id,
            )
        case _:
            raise ValueError(f"Unknown venue kind: {kind} (expected one of {', '.join(VENUE_KINDS)})")
    return strategy, venue


def deploy_stack(
    chain: Chain,
    *,
    asset: MockERC20,
    kind: str,
    owner: str,
    fee_recipient: str | None = None,
    fee_rate_bps: int | None = None,
    apr: float | str = 0,
    strict_strategy_migration: bool | None = None,
) -> VaultStack:
    vault = Vault.deploy(
        chain,
        asset=asset,
        owner=owner,
        fee_rate_bps=fee_rate_bps,
        fee_recipient=fee_recipient,
        strict_strategy_migration=strict_strategy_migration,
    )
    strategy, venue = build_strategy(chain, kind, vault=vault, asset=asset, apr=apr)
    vault.set_strategy(strategy, caller=owner)
    return VaultStack(vault=vault, strategy=strategy, venue=venue)
