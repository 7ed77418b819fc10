"""EIP-712 signing and verification of battle outcomes.

The authority signs a ``BattleResult`` struct under a domain bound to this
ledger's name, version, chain id and verifying contract.  Every outcome field
is part of the struct, so changing any of them yields a different digest and
the recovered signer no longer matches the authority.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak

from cardbattle.config import Settings
from cardbattle.domain.errors import InvalidAuthorization
from cardbattle.domain.models import BattleOutcome
from cardbattle.utils.addresses import normalize_address

BATTLE_RESULT_TYPES: dict[str, list[dict[str, str]]] = {
    "BattleResult": [
        {"name": "battleId", "type": "uint256"},
        {"name": "player2", "type": "address"},
        {"name": "isComputer", "type": "bool"},
        {"name": "p1TokenId", "type": "uint256"},
        {"name": "p2TokenId", "type": "uint256"},
        {"name": "winner", "type": "address"},
        {"name": "winnerExp", "type": "uint256"},
        {"name": "loserExp", "type": "uint256"},
    ]
}


@dataclass(frozen=True, slots=True)
class SigningDomain:
    """EIP-712 domain the ledger accepts signatures for."""

    name: str
    version: str
    chain_id: int
    verifying_contract: str

    @classmethod
    def from_settings(cls, settings: Settings) -> SigningDomain:
        return cls(
            name=settings.contract_name,
            version=settings.contract_version,
            chain_id=settings.chain_id,
            verifying_contract=normalize_address(
                settings.verifying_contract, field="verifying_contract"
            ),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


def encode_outcome(domain: SigningDomain, outcome: BattleOutcome) -> SignableMessage:
    """Encode ``outcome`` as an EIP-712 message under ``domain``."""

    return encode_typed_data(
        domain_data=domain.as_dict(),
        message_types=BATTLE_RESULT_TYPES,
        message_data=outcome.as_message(),
    )


def outcome_digest(domain: SigningDomain, outcome: BattleOutcome) -> bytes:
    """Return the 32-byte digest the authority signs."""

    message = encode_outcome(domain, outcome)
    return keccak(b"\x19" + message.version + message.header + message.body)


def sign_outcome(domain: SigningDomain, outcome: BattleOutcome, private_key: str | bytes) -> bytes:
    """Sign ``outcome`` with the authority key; used by the off-chain resolver."""

    signed = Account.sign_message(encode_outcome(domain, outcome), private_key=private_key)
    return bytes(signed.signature)


def parse_signature(value: str) -> bytes:
    """Decode a ``0x``-prefixed hex signature.

    Raises:
        InvalidAuthorization: If ``value`` is not hex or not 65 bytes long
    """
    try:
        raw = bytes.fromhex(value.removeprefix("0x"))
    except ValueError as exc:
        raise InvalidAuthorization("authorization is not hex encoded") from exc
    if len(raw) != 65:
        raise InvalidAuthorization("authorization must be a 65-byte signature")
    return raw


class EthAuthorityVerifier:
    """Recovers EIP-712 signers with ``eth-account``."""

    def __init__(self, domain: SigningDomain) -> None:
        self.domain = domain

    def recover(self, outcome: BattleOutcome, signature: bytes) -> str:
        try:
            signer = Account.recover_message(
                encode_outcome(self.domain, outcome), signature=signature
            )
        except Exception as exc:  # noqa: BLE001 - any decode failure means a bad proof
            raise InvalidAuthorization("authorization could not be decoded") from exc
        return normalize_address(signer)
