"""
Tests for EIP-712 TransferWithAuthorization helpers.
"""

import pytest
from eth_account import Account

from a402.utils import (
    build_eip712_domain,
    build_eip712_message,
    create_nonce,
    create_validity_window,
    hex_to_bytes,
    recover_typed_data_signer,
    sign_typed_data,
    split_signature,
)
from conftest import MERCHANT, PAYER_KEY, RELAYER_CONTRACT

NONCE = bytes.fromhex("cd" * 32)


@pytest.fixture
def domain():
    return build_eip712_domain("A402", 43113, RELAYER_CONTRACT)


@pytest.fixture
def message():
    payer = Account.from_key(PAYER_KEY).address
    return build_eip712_message(payer, MERCHANT, 1_000_000, 0, 2_000_000_000, NONCE)


def test_domain_fields():
    domain = build_eip712_domain("A402", 43114, RELAYER_CONTRACT)
    assert domain == {
        "name": "A402",
        "version": "1",
        "chainId": 43114,
        "verifyingContract": RELAYER_CONTRACT,
    }


def test_recover_signer(domain, message):
    signature = sign_typed_data(PAYER_KEY, domain, message)
    recovered = recover_typed_data_signer(domain, message, hex_to_bytes(signature))
    assert recovered == Account.from_key(PAYER_KEY).address


@pytest.mark.parametrize(
    "field,tampered",
    [
        ("value", 1_000_001),
        ("to", "0x" + "33" * 20),
        ("nonce", bytes.fromhex("ce" * 32)),
    ],
)
def test_tampered_message_recovers_other_address(domain, message, field, tampered):
    signature = hex_to_bytes(sign_typed_data(PAYER_KEY, domain, message))
    changed = {**message, field: tampered}
    recovered = recover_typed_data_signer(domain, changed, signature)
    assert recovered != message["from"]


def test_other_chain_recovers_other_address(domain, message):
    signature = hex_to_bytes(sign_typed_data(PAYER_KEY, domain, message))
    mainnet = build_eip712_domain("A402", 43114, RELAYER_CONTRACT)
    assert recover_typed_data_signer(mainnet, message, signature) != message["from"]


def test_split_signature_normalizes_v():
    raw = bytes(range(64)) + bytes([1])
    sig = split_signature(raw)
    assert sig.v == 28
    assert sig.r == raw[:32]
    assert sig.s == raw[32:64]


def test_split_signature_keeps_27_28(domain, message):
    sig = split_signature(hex_to_bytes(sign_typed_data(PAYER_KEY, domain, message)))
    assert sig.v in (27, 28)
    assert len(sig.r) == 32
    assert len(sig.s) == 32


def test_split_signature_rejects_wrong_length():
    with pytest.raises(ValueError):
        split_signature(b"\x00" * 64)


def test_create_nonce_is_32_bytes_and_random():
    first, second = create_nonce(), create_nonce()
    assert first.startswith("0x")
    assert len(hex_to_bytes(first)) == 32
    assert first != second


def test_validity_window_includes_now():
    valid_after, valid_before = create_validity_window(600)
    assert valid_before - valid_after == 660
