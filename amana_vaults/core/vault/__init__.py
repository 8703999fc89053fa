from amana_vaults.core.vault.rewards import RewardsMixin, RewardState
from amana_vaults.core.vault.Vault import Vault, VaultState, VaultStatus

__all__ = ["RewardState", "RewardsMixin", "Vault", "VaultState", "VaultStatus"]
