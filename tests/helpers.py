"""Shared keys, addresses, builders and proving backends for the t2z tests."""

from __future__ import annotations

import hashlib

from t2z.pczt.inputs import TransparentInput
from t2z.pczt.prover import BundleProvingRequest, ProvedBundle
from t2z.pczt.request import Payment, TransactionRequest
from t2z.zcash.transaction import ENC_CIPHERTEXT_SIZE, OUT_CIPHERTEXT_SIZE, OrchardAction
from t2z.zcash.unified import ReceiverType, encode_unified_address

# ---------------------------------------------------------------------------
# Keys and addresses
# ---------------------------------------------------------------------------

# secp256k1 private key [1u8; 32] and its compressed public key
PRIVKEY = b"\x01" * 32
PUBKEY = bytes.fromhex("031b84c5567b126440995d3ed5aaba0565d71e1834604819ff9c17f5e9d5dd078f")
P2PKH_SCRIPT = bytes.fromhex("76a91479b000887626b294a914501a4cd226b58b23598388ac")

TESTNET_RECIPIENT = "tm9iMLAuYMzJ6jtFLcA7rzUmfreGuKvr7Ma"
TESTNET_RECIPIENT_2 = "tmBsTi2xWTjUdEXnuTceL7fecEQKeWi4vxA"
TESTNET_RECIPIENT_3 = "tmEUfekwCArJoFTMEL2kFwQyrsDMCNX5ZFf"

ORCHARD_RECEIVER = bytes(range(43))
ORCHARD_RECEIVER_2 = bytes(range(100, 143))
ORCHARD_ADDRESS = encode_unified_address("u", {ReceiverType.ORCHARD: ORCHARD_RECEIVER})
ORCHARD_ADDRESS_2 = encode_unified_address("u", {ReceiverType.ORCHARD: ORCHARD_RECEIVER_2})

TARGET_HEIGHT = 2_500_000


def make_input(
    amount: int = 100_000_000,
    *,
    vout: int = 0,
    txid: bytes | None = None,
    pubkey: bytes = PUBKEY,
    script: bytes = P2PKH_SCRIPT,
) -> TransparentInput:
    """A P2PKH input controlled by PRIVKEY."""
    if txid is None:
        txid = hashlib.sha256(b"funding" + vout.to_bytes(4, "little")).digest()
    return TransparentInput(pubkey=pubkey, txid=txid, vout=vout, amount=amount, script_pubkey=script)


def make_request(*payments: Payment, target_height: int | None = TARGET_HEIGHT) -> TransactionRequest:
    if not payments:
        payments = (Payment(address=TESTNET_RECIPIENT, amount=50_000_000),)
    return TransactionRequest(payments, target_height=target_height)


# ---------------------------------------------------------------------------
# Proving backend
# ---------------------------------------------------------------------------


class FakeProvingBackend:
    """Deterministic stand-in for an Orchard prover.

    Derives every action field from the requested note, and "signs" the
    shielded sighash by repeating it, so tests can check what was committed.
    """

    ANCHOR = b"\xaa" * 32
    PROOF = b"\x5a" * 96

    def __init__(self) -> None:
        self.requests: list[BundleProvingRequest] = []

    def prove_bundle(self, request: BundleProvingRequest) -> ProvedBundle:
        self.requests.append(request)
        actions = []
        for i, desc in enumerate(request.actions):
            seed = hashlib.blake2b(
                bytes([i]) + (desc.recipient or b"") + desc.value.to_bytes(8, "little") + desc.memo,
                digest_size=32,
            ).digest()
            actions.append(
                OrchardAction(
                    cv=seed,
                    nullifier=hashlib.sha256(b"nf" + seed).digest(),
                    rk=hashlib.sha256(b"rk" + seed).digest(),
                    cmx=hashlib.sha256(b"cmx" + seed).digest(),
                    ephemeral_key=hashlib.sha256(b"epk" + seed).digest(),
                    enc_ciphertext=(seed * 19)[:ENC_CIPHERTEXT_SIZE],
                    out_ciphertext=(seed * 3)[:OUT_CIPHERTEXT_SIZE],
                )
            )
        digest = request.sighash(actions, self.ANCHOR)
        for action in actions:
            action.spend_auth_sig = digest * 2
        return ProvedBundle(
            anchor=self.ANCHOR,
            actions=actions,
            zkproof=self.PROOF,
            binding_signature=digest * 2,
        )


class FailingProvingBackend:
    def prove_bundle(self, request: BundleProvingRequest) -> ProvedBundle:
        msg = "circuit exploded"
        raise RuntimeError(msg)
