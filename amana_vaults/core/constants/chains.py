CHAIN_ID_ETHEREUM = 1
CHAIN_ID_BASE = 8453
CHAIN_ID_ARBITRUM = 42161
CHAIN_ID_ZETACHAIN = 7000

CHAIN_CODE_TO_ID = {
    "base": CHAIN_ID_BASE,
    "arbitrum": CHAIN_ID_ARBITRUM,
    "arbitrum-one": CHAIN_ID_ARBITRUM,
    "ethereum": CHAIN_ID_ETHEREUM,
    "mainnet": CHAIN_ID_ETHEREUM,
    "zetachain": CHAIN_ID_ZETACHAIN,
}

CHAIN_ID_TO_CODE: dict[int, str] = {
    v: k for k, v in CHAIN_CODE_TO_ID.items() if k not in ("arbitrum-one", "mainnet")
}

SUPPORTED_CHAINS = [
    CHAIN_ID_ETHEREUM,
    CHAIN_ID_BASE,
    CHAIN_ID_ARBITRUM,
    CHAIN_ID_ZETACHAIN,
]


def resolve_chain_id(chain: str | int) -> int:
    if isinstance(chain, int):
        chain_id = chain
    elif str(chain).strip().isdigit():
        chain_id = int(str(chain).strip())
    else:
        code = str(chain).strip().lower()
        if code not in CHAIN_CODE_TO_ID:
            raise ValueError(f"Unknown chain: {chain}")
        chain_id = CHAIN_CODE_TO_ID[code]
    if chain_id not in SUPPORTED_CHAINS:
        raise ValueError(f"Unsupported chain id: {chain_id}")
    return chain_id
