"""In-memory tokens and lending venues used by the scenario runner and the test suite."""

from amana_vaults.sim.stack import VENUE_KINDS, VaultStack, build_strategy, deploy_stack
from amana_vaults.sim.tokens import MockERC20
from amana_vaults.sim.venues import (
    SimulatedAavePool,
    SimulatedERC4626Vault,
    SimulatedExtraLendingPool,
    SimulatedMToken,
)

__all__ = [
    "VENUE_KINDS",
    "MockERC20",
    "SimulatedAavePool",
    "SimulatedERC4626Vault",
    "SimulatedExtraLendingPool",
    "SimulatedMToken",
    "VaultStack",
    "build_strategy",
    "deploy_stack",
]
