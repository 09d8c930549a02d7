"""Ledger access: ABI codec, web3 provider, contract facades and registry."""

from keep_rewards.chain.codec import ContractCodec
from keep_rewards.chain.facade import (
    BeaconOperatorFacade,
    BeaconStatisticsFacade,
    ContractFacade,
    KeepTokenFacade,
    TokenStakingFacade,
)
from keep_rewards.chain.provider import Web3LedgerProvider
from keep_rewards.chain.registry import CONTRACT_TABLE, ContractRegistry, ContractSpec

__all__ = [
    "ContractCodec",
    "ContractFacade", "KeepTokenFacade", "TokenStakingFacade",
    "BeaconOperatorFacade", "BeaconStatisticsFacade",
    "Web3LedgerProvider",
    "CONTRACT_TABLE", "ContractRegistry", "ContractSpec",
]
