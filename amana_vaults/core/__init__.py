from amana_vaults.core.chain.Chain import Chain
from amana_vaults.core.strategies.Strategy import StatusDict, Strategy
from amana_vaults.core.vault.rewards import RewardState
from amana_vaults.core.vault.Vault import Vault, VaultState

__all__ = [
    "Chain",
    "RewardState",
    "Strategy",
    "StatusDict",
    "Vault",
    "VaultState",
]
