# notary/chain/workflow.py
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from notary.core.errors import NotaryError, NotConnectedError, OperationCancelled
from notary.core.types import Account, DocumentDigest, SignedRecord, TransactionReceipt
from notary.crypto.keys import IdentityProvider
from notary.storage.client import RegistryClient

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "Signing document with hash: {digest}"

Confirm = Callable[[str, dict], Union[bool, Awaitable[bool]]]


def signing_message(digest: DocumentDigest) -> str:
    """The exact text an account signs for a document."""
    return MESSAGE_TEMPLATE.format(digest=DocumentDigest.coerce(digest).hex)


def unix_now() -> int:
    return int(time.time())


@dataclass
class PendingSignature:
    """
    A signed-but-not-yet-stored document. Kept by the caller so a failed append
    can be retried without signing again.
    """
    record: SignedRecord
    message: str
    receipt: Optional[TransactionReceipt] = None
    attempts: int = field(default=0)

    @property
    def stored(self) -> bool:
        return self.receipt is not None


class SigningWorkflow:
    """
    hash → sign → append, with an optional confirmation gate before the
    signature and before the registry write.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        registry: RegistryClient,
        confirm: Optional[Confirm] = None,
        clock: Callable[[], int] = unix_now,
    ):
        self.identity = identity
        self.registry = registry
        self.confirm = confirm
        self.clock = clock

    async def _gate(self, stage: str, details: dict) -> None:
        if self.confirm is None:
            return
        answer = self.confirm(stage, details)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            logger.info("User declined %s step", stage)
            raise OperationCancelled(f"{stage.capitalize()} cancelled by user", {"stage": stage})

    async def prepare(self, digest: DocumentDigest, account: Account) -> PendingSignature:
        """
        Sign ``digest`` as ``account``, which must be the active account when the
        call starts. Switching accounts while the confirmation is pending does not
        change the signer.
        """
        digest = DocumentDigest.coerce(digest)
        active = self.identity.active_account()
        if active is None or active != account:
            raise NotConnectedError(
                f"Account {account.address} is not connected",
                {"active": active.address if active else None},
            )

        message = signing_message(digest)
        await self._gate("sign", {"message": message, "signer": account.address})

        signature = await self.identity.sign_as(account, message)
        timestamp = self.clock()
        record = SignedRecord(digest=digest, signer=account.address, timestamp=timestamp, signature=signature)
        logger.info("Signed %s with account %d", digest.hex, account.index)
        return PendingSignature(record=record, message=message)

    async def store(self, pending: PendingSignature) -> SignedRecord:
        """Exactly one append per call. On failure the pending signature is untouched."""
        if pending.stored:
            return pending.record
        record = pending.record
        await self._gate("store", {
            "digest": record.digest.hex,
            "signer": record.signer,
            "timestamp": record.timestamp,
            "signature": record.signature_hex,
        })
        pending.attempts += 1
        pending.receipt = await self.registry.append(
            record.digest, record.signer, record.timestamp, record.signature
        )
        return record

    async def sign_and_store(self, digest: DocumentDigest, account: Account) -> SignedRecord:
        pending = await self.prepare(digest, account)
        try:
            return await self.store(pending)
        except NotaryError as e:
            # hand the signature back so the caller can retry store() alone
            e.details["pending"] = pending
            raise
