"""PCZT roles: propose, prove, verify, sign, combine, finalize."""

from t2z.pczt.builder import propose_transaction
from t2z.pczt.codec import parse_pczt, serialize_pczt
from t2z.pczt.combiner import combine
from t2z.pczt.document import Pczt, PcztState
from t2z.pczt.fees import calculate_fee
from t2z.pczt.finalizer import finalize_and_extract, transaction_id
from t2z.pczt.inputs import (
    TransparentInput,
    TransparentOutput,
    parse_transparent_inputs,
    serialize_transparent_inputs,
)
from t2z.pczt.prover import BundleProvingRequest, ProvedBundle, ProvingBackend, prove_transaction
from t2z.pczt.request import Payment, TransactionRequest
from t2z.pczt.signer import append_signature, get_sighash, sign_input
from t2z.pczt.verifier import verify_before_signing

__all__ = [
    "BundleProvingRequest",
    "Payment",
    "Pczt",
    "PcztState",
    "ProvedBundle",
    "ProvingBackend",
    "TransactionRequest",
    "TransparentInput",
    "TransparentOutput",
    "append_signature",
    "calculate_fee",
    "combine",
    "finalize_and_extract",
    "get_sighash",
    "parse_pczt",
    "parse_transparent_inputs",
    "propose_transaction",
    "prove_transaction",
    "serialize_pczt",
    "serialize_transparent_inputs",
    "sign_input",
    "transaction_id",
    "verify_before_signing",
]
