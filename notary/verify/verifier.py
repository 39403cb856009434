# notary/verify/verifier.py
import logging
from pathlib import Path
from typing import Union

from notary.core.encoding import canonical_address
from notary.core.errors import (
    ConnectivityError,
    ConsistencyError,
    SignatureError,
    VerificationFailed,
)
from notary.core.types import DocumentDigest, VerdictReason, VerificationVerdict
from notary.crypto.hashing import hash_bytes, hash_file
from notary.crypto.keys import recover_signer
from notary.chain.workflow import signing_message
from notary.storage.client import RegistryClient

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, DocumentDigest]


class VerificationEngine:
    """
    Decides whether a document was registered by a claimed signer.
    Reads only; never retries. Registry failures surface as VerificationFailed.
    """

    def __init__(self, registry: RegistryClient, check_signature: bool = False):
        """
        check_signature: additionally recover the signer from the stored
        signature and require it to equal the registered signer.
        """
        self.registry = registry
        self.check_signature = check_signature

    async def digest_of(self, source: Source) -> DocumentDigest:
        if isinstance(source, DocumentDigest):
            return source
        if isinstance(source, (bytes, bytearray)):
            return hash_bytes(bytes(source))
        return await hash_file(source)

    async def verify(self, source: Source, claimed_signer: str) -> VerificationVerdict:
        """Input errors (missing file, bad address) are raised before any registry call."""
        claimed = canonical_address(claimed_signer)
        digest = await self.digest_of(source)
        return await self._decide(digest, claimed)

    async def verify_digest(self, digest: DocumentDigest, claimed_signer: str) -> VerificationVerdict:
        return await self._decide(DocumentDigest.coerce(digest), canonical_address(claimed_signer))

    async def _decide(self, digest: DocumentDigest, claimed: str) -> VerificationVerdict:
        try:
            exists = await self.registry.exists(digest)
            if not exists:
                logger.info("Verify %s: not registered", digest.hex)
                return VerificationVerdict(False, digest, claimed, reason=VerdictReason.NOT_REGISTERED)
            record = await self.registry.lookup(digest)
        except ConnectivityError as e:
            raise VerificationFailed(f"Registry unavailable while verifying {digest.hex}: {e.message}",
                                     {"digest": digest.hex, "cause": e.reason}) from e

        if record is None:
            verdict = VerificationVerdict(False, digest, claimed, reason=VerdictReason.INCONSISTENT)
            raise ConsistencyError(
                f"Registry reports {digest.hex} as stored but returned no record",
                {"digest": digest.hex},
                verdict=verdict,
            )

        if canonical_address(record.signer) != claimed:
            logger.info("Verify %s: signer mismatch", digest.hex)
            return VerificationVerdict(False, digest, claimed, record, VerdictReason.SIGNER_MISMATCH)

        if self.check_signature:
            try:
                recovered = recover_signer(signing_message(digest), record.signature)
            except SignatureError:
                recovered = None
            if recovered is None or canonical_address(recovered) != claimed:
                logger.warning("Verify %s: stored signature does not recover to %s", digest.hex, claimed)
                return VerificationVerdict(False, digest, claimed, record, VerdictReason.SIGNATURE_INVALID)

        logger.info("Verify %s: valid (signer %s)", digest.hex, claimed)
        return VerificationVerdict(True, digest, claimed, record)
