"""Recovery byte normalization."""

import pytest

from tink.errors import ValidationError
from tink.signature import normalize_signature_v, recovery_parity, split_signature

R = "ab" * 32
S = "cd" * 32


def sig(v: int, prefix: str = "0x") -> str:
    return f"{prefix}{R}{S}{v:02x}"


@pytest.mark.parametrize("v,expected", [(0, 27), (1, 28), (27, 27), (28, 28)])
def test_parity_and_legacy_forms(v, expected):
    assert normalize_signature_v(sig(v), 43113).endswith(f"{expected:02x}")


def test_eip155_form():
    # 43113 * 2 + 35 = 86261, even parity -> 27, odd -> 28
    assert recovery_parity(86261, 43113) == 0
    assert recovery_parity(86262, 43113) == 1
    long_sig = f"0x{R}{S}{86262:x}"
    assert normalize_signature_v(long_sig, 43113) == sig(28)


def test_legacy_signature_is_unchanged():
    for v in (27, 28):
        assert normalize_signature_v(sig(v), 43113) == sig(v)


def test_idempotent():
    once = normalize_signature_v(sig(1), 43114)
    assert normalize_signature_v(once, 43114) == once


def test_r_and_s_preserved_and_prefix_kept():
    out = normalize_signature_v(sig(0, prefix=""), 43114)
    assert not out.startswith("0x")
    r, s, v = split_signature(out)
    assert (r, s, v) == (R, S, 27)


def test_uppercase_hex_is_lowered():
    upper = "0x" + (R + S).upper() + "01"
    assert normalize_signature_v(upper, 43113) == sig(28)


def test_rejects_short_signature():
    with pytest.raises(ValidationError) as exc:
        normalize_signature_v("0x" + R + S, 43113)
    assert exc.value.code == "InvalidSignature"


def test_rejects_non_hex():
    with pytest.raises(ValidationError) as exc:
        normalize_signature_v("0x" + "zz" * 65, 43113)
    assert exc.value.code == "InvalidSignature"


@pytest.mark.parametrize("bad", [
    "0x" + R + "_" + S + "1b",
    sig(27) + " ",
    "0x " + R + S + "1b",
])
def test_rejects_loose_hex(bad):
    with pytest.raises(ValidationError) as exc:
        normalize_signature_v(bad, 43113)
    assert exc.value.code == "InvalidSignature"


@pytest.mark.parametrize("v", [2, 26, 29, 34])
def test_rejects_unknown_v(v):
    with pytest.raises(ValidationError) as exc:
        normalize_signature_v(sig(v), 43113)
    assert exc.value.code == "InvalidSignatureV"
