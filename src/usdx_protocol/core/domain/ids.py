"""
Ids — Детерминированные идентификаторы операций

transferId и mintId — idempotency keys. Кодирование: каждое поле
приводится к 32-байтовому слову (int — big-endian, str — sha256 от utf-8),
слова конкатенируются, от результата берётся sha256.
"""

import hashlib
from typing import Union

_WORD_BYTES = 32


def _encode_word(value: Union[int, str]) -> bytes:
    if isinstance(value, bool):
        raise TypeError("bool is not an encodable word")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Cannot encode negative int: {value}")
        return value.to_bytes(_WORD_BYTES, "big")
    return hashlib.sha256(value.encode("utf-8")).digest()


def hash_words(*values: Union[int, str]) -> str:
    """sha256 от конкатенации 32-байтовых слов, hex с префиксом 0x."""
    payload = b"".join(_encode_word(v) for v in values)
    return "0x" + hashlib.sha256(payload).hexdigest()


def compute_transfer_id(
    source_chain_id: int,
    dest_chain_id: int,
    sender: str,
    recipient: str,
    amount: int,
    nonce: int,
    block_timestamp: int,
) -> str:
    """
    transferId = Hash(sourceChainId, destChainId, sender, recipient, amount, nonce, blockTimestamp).

    blockTimestamp входит в хэш: relayer не реконструирует id, а читает его
    из события TransferInitiated.
    """
    return hash_words(
        source_chain_id, dest_chain_id, sender, recipient, amount, nonce, block_timestamp
    )


def derive_request_mint_id(spoke_chain_id: int, request_id: int) -> str:
    """mintId для исполнения MintRequest — стабилен между ретраями relayer."""
    return hash_words("MintRequest", spoke_chain_id, request_id)
