"""
ECDSA recovery-id normalization.

Wallets hand back 65-byte secp256k1 signatures whose trailing ``v`` byte comes
in one of three encodings:

- y-parity: ``0`` or ``1``
- legacy: ``27`` or ``28``
- EIP-155 (chain-bound): ``chain_id * 2 + 35 + y_parity``

Typed-data verifiers expect the legacy form, so every signature is rewritten
to ``27 + y_parity`` before it is checked. ``r`` and ``s`` are never touched.
"""

import re

from tink.errors import ValidationError

SIGNATURE_HEX_LEN = 128  # r (64) + s (64), excluding v

_HEX = re.compile(r"[0-9a-fA-F]+")


def _strip_prefix(signature: str) -> tuple[str, str]:
    if signature[:2].lower() == "0x":
        return "0x", signature[2:]
    return "", signature


def split_signature(signature: str) -> tuple[str, str, int]:
    """Return ``(r, s, v)`` with r and s as lower-case hex and v as an int."""
    _, body = _strip_prefix(signature)
    if len(body) <= SIGNATURE_HEX_LEN:
        raise ValidationError("InvalidSignature", f"Signature too short: {len(body)} hex chars")
    if not _HEX.fullmatch(body):
        raise ValidationError("InvalidSignature", "Signature is not hex encoded")
    body = body.lower()
    return body[:64], body[64:SIGNATURE_HEX_LEN], int(body[SIGNATURE_HEX_LEN:], 16)


def recovery_parity(v: int, chain_id: int) -> int:
    """Classify ``v`` and return its y-parity (0 or 1)."""
    if v in (0, 1):
        return v
    if v in (27, 28):
        return v - 27
    if v >= 35:
        return (v - 35 - chain_id * 2) % 2
    raise ValidationError("InvalidSignatureV", f"Unrecognised recovery value v={v}", details={"v": v})


def normalize_signature_v(signature: str, chain_id: int) -> str:
    """Rewrite the recovery byte of ``signature`` to the legacy 27/28 form.

    Idempotent: a signature that is already legacy comes back unchanged
    (modulo hex case). The ``0x`` prefix is preserved if present.
    """
    prefix, _ = _strip_prefix(signature)
    r, s, v = split_signature(signature)
    legacy_v = 27 + recovery_parity(v, chain_id)
    return f"{prefix}{r}{s}{legacy_v:02x}"
