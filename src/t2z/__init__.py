"""t2z: build, prove, sign and finalize transparent-to-shielded Zcash transactions.

The PCZT (partially constructed Zcash transaction) moves through its roles::

    pczt = propose_transaction(inputs, request)
    pczt = prove_transaction(pczt, backend)
    verify_before_signing(pczt, request, expected_change)
    sighash = get_sighash(pczt, 0)
    pczt = append_signature(pczt, 0, sign_sighash(privkey, sighash))
    raw_tx = finalize_and_extract(pczt)
"""

from t2z.errors import T2ZError
from t2z.pczt import (
    BundleProvingRequest,
    Payment,
    Pczt,
    ProvedBundle,
    ProvingBackend,
    TransactionRequest,
    TransparentInput,
    TransparentOutput,
    append_signature,
    calculate_fee,
    combine,
    finalize_and_extract,
    get_sighash,
    parse_pczt,
    parse_transparent_inputs,
    propose_transaction,
    prove_transaction,
    serialize_pczt,
    serialize_transparent_inputs,
    sign_input,
    transaction_id,
    verify_before_signing,
)
from t2z.zcash.keys import sign_sighash

__version__ = "0.1.0"

__all__ = [
    "BundleProvingRequest",
    "Payment",
    "Pczt",
    "ProvedBundle",
    "ProvingBackend",
    "T2ZError",
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
    "sign_sighash",
    "transaction_id",
    "verify_before_signing",
]
