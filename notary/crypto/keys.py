# notary/crypto/keys.py
"""
Deterministic multi-account identity.

All accounts are derived once from a BIP-39 seed phrase along the standard
Ethereum path ``m/44'/60'/0'/0/{index}``. Selection is an index lookup into the
precomputed tuple, never a re-derivation. Private keys stay inside this module.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from eth_utils import ValidationError

from notary.core.encoding import canonical_address
from notary.core.errors import (
    InvalidIndexError,
    InvalidSeedError,
    NotConnectedError,
    SignatureError,
    SigningError,
)
from notary.core.types import Account

logger = logging.getLogger(__name__)

EthAccount.enable_unaudited_hdwallet_features()

DEFAULT_ACCOUNT_COUNT = 20
RESERVED_INDEX = 0              # deployer / default account, hidden from pickers
DEFAULT_SELECT_INDEX = 1
DERIVATION_PATH = "m/44'/60'/0'/0/{index}"

Message = Union[str, bytes]


def _signable(message: Message):
    if isinstance(message, str):
        return encode_defunct(text=message)
    return encode_defunct(primitive=bytes(message))


def recover_signer(message: Message, signature: Union[bytes, str]) -> str:
    """Recover the checksummed address that produced ``signature`` over ``message``."""
    try:
        return EthAccount.recover_message(_signable(message), signature=signature)
    except Exception as e:
        raise SignatureError(f"Cannot recover signer: {e}") from e


@dataclass
class ActiveSelection:
    """Currently selected account index for one provider. Not persisted."""
    index: Optional[int] = None

    def clear(self) -> None:
        self.index = None


class IdentityProvider:
    """
    Holds N derived accounts and the active selection; signs on behalf of the
    active account.
    """

    def __init__(
        self,
        mnemonic: str,
        count: int = DEFAULT_ACCOUNT_COUNT,
        passphrase: str = "",
        default_index: int = DEFAULT_SELECT_INDEX,
    ):
        if count < 1:
            raise InvalidIndexError(f"Account count must be positive, got {count}")
        if not mnemonic or not mnemonic.strip():
            raise InvalidSeedError("A seed phrase is required")

        signers = []
        for index in range(count):
            try:
                local = EthAccount.from_mnemonic(
                    " ".join(mnemonic.split()),
                    passphrase=passphrase,
                    account_path=DERIVATION_PATH.format(index=index),
                )
            except (ValueError, ValidationError) as e:
                raise InvalidSeedError("Seed phrase is not a valid BIP-39 mnemonic") from e
            signers.append(local)

        self._signers: Tuple = tuple(signers)
        self._accounts: Tuple[Account, ...] = tuple(
            Account(index=i, address=s.address) for i, s in enumerate(signers)
        )
        if not 0 <= default_index < count:
            raise InvalidIndexError(f"Default account index {default_index} outside [0, {count})")
        self.default_index = default_index
        self._selection = ActiveSelection()
        logger.info("Derived %d accounts", count)

    def __repr__(self) -> str:
        return f"IdentityProvider(count={len(self._accounts)}, active={self._selection.index})"

    # ── account set

    @property
    def accounts(self) -> Tuple[Account, ...]:
        return self._accounts

    @property
    def count(self) -> int:
        return len(self._accounts)

    def available_accounts(self) -> Tuple[Account, ...]:
        """Accounts offered for selection; the reserved index is left out."""
        return tuple(a for a in self._accounts if a.index != RESERVED_INDEX)

    def account(self, index: int) -> Account:
        self._check_index(index)
        return self._accounts[index]

    def find(self, address: str) -> Optional[Account]:
        target = canonical_address(address)
        for acct in self._accounts:
            if acct.address == target:
                return acct
        return None

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._accounts):
            raise InvalidIndexError(
                f"Account index {index!r} outside [0, {len(self._accounts)})",
                {"index": index},
            )

    # ── selection

    def select_account(self, index: int) -> Account:
        self._check_index(index)
        self._selection.index = index
        logger.info("Selected account %d (%s)", index, self._accounts[index].address)
        return self._accounts[index]

    def connect(self, index: Optional[int] = None) -> Account:
        return self.select_account(self.default_index if index is None else index)

    def switch(self, index: int) -> Account:
        return self.select_account(index)

    def deselect(self) -> None:
        if self._selection.index is not None:
            logger.info("Deselected account %d", self._selection.index)
        self._selection.clear()

    disconnect = deselect

    @property
    def is_connected(self) -> bool:
        return self._selection.index is not None

    def active_account(self) -> Optional[Account]:
        idx = self._selection.index
        return None if idx is None else self._accounts[idx]

    def active_address(self) -> Optional[str]:
        acct = self.active_account()
        return acct.address if acct else None

    # ── signing

    async def sign(self, message: Message, *, account: Optional[Account] = None) -> bytes:
        """
        EIP-191 personal-message signature by the active account.

        The key is captured before the first await, so a concurrent switch of the
        active account cannot change who signs this message.
        """
        idx = self._selection.index
        if idx is None:
            raise NotConnectedError("No active account; connect first")
        if account is not None and account.index != idx:
            raise NotConnectedError(
                f"Account {account.address} is not the active account",
                {"active": self._accounts[idx].address, "requested": account.address},
            )
        return await self.sign_as(self._accounts[idx], message)

    async def sign_as(self, account: Account, message: Message) -> bytes:
        """Sign with a specific derived account regardless of the current selection."""
        self._check_index(account.index)
        if self._accounts[account.index] != account:
            raise SigningError(
                f"Account {account.address} was not derived by this provider",
                {"index": account.index, "address": account.address},
            )
        signer = self._signers[account.index]
        signed = await asyncio.to_thread(signer.sign_message, _signable(message))
        return bytes(signed.signature)
