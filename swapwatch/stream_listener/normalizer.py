"""
Transaction normalizer: raw stream envelopes to NormalizedTransaction.

Envelope shape (subscription update, as a dict):

    {
        "transaction": {
            "slot": 312345678,
            "transaction": {
                "signature": b"...",            # 64 bytes, or base58 text
                "transaction": {"signatures": [...], "message": {...}},
                "meta": {...},                  # may be missing entirely
            },
        },
        "blockTime": 1718000000,                # optional
    }

Account keys, signatures and instruction payloads may arrive either as raw
bytes (binary stream) or as base58 text (JSON-RPC stream); bytes are encoded
with base58, text passes through unchanged. normalize() is total: any
missing or malformed piece becomes its zero value so the decoder never sees
a partial structure.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import base58

from swapwatch.stream_listener.models import (
    CompiledInstruction,
    InnerInstructionGroup,
    NormalizedTransaction,
    TokenBalance,
    UiTokenAmount,
)

# System Program CreateAccountWithSeed instruction discriminator
CREATE_ACCOUNT_WITH_SEED_DISCRIMINATOR = 3

_BYTES_TYPES = (bytes, bytearray, memoryview)


def _as_dict(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _to_int(value: Any) -> int:
    """Narrow a wire integer (int, decimal string, float) to int; 0 when unusable."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            try:
                f = float(value)
            except ValueError:
                return 0
            return int(f) if math.isfinite(f) else 0
    return 0


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else 0.0
    if isinstance(value, str):
        try:
            f = float(value)
        except ValueError:
            return 0.0
        return f if math.isfinite(f) else 0.0
    return 0.0


def _is_byte_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value
    )


def encode_address(value: Any) -> str:
    """
    Encode a key/signature to base58 text.

    bytes-like and JSON byte arrays are encoded; strings pass through.
    Anything else yields "".
    """
    if isinstance(value, _BYTES_TYPES):
        return base58.b58encode(bytes(value)).decode("ascii")
    if isinstance(value, str):
        return value
    if _is_byte_list(value):
        return base58.b58encode(bytes(value)).decode("ascii")
    return ""


def _encode_data(value: Any) -> str:
    """Instruction payload to base58; text is assumed to already be base58."""
    return encode_address(value)


def _account_indexes(value: Any) -> tuple[int, ...]:
    """Copy an account-index list (bytes or int sequence) into a fresh tuple."""
    if isinstance(value, _BYTES_TYPES):
        return tuple(bytes(value))
    return tuple(_to_int(v) for v in _as_list(value))


def _instruction(raw: Any) -> CompiledInstruction:
    ix = _as_dict(raw)
    return CompiledInstruction(
        program_id_index=_to_int(ix.get("programIdIndex")),
        accounts=_account_indexes(ix.get("accounts")),
        data=_encode_data(ix.get("data")),
    )


def _inner_groups(raw: Any) -> tuple[InnerInstructionGroup, ...]:
    groups: list[InnerInstructionGroup] = []
    for item in _as_list(raw):
        group = _as_dict(item)
        groups.append(
            InnerInstructionGroup(
                index=_to_int(group.get("index")),
                instructions=tuple(_instruction(ix) for ix in _as_list(group.get("instructions"))),
            )
        )
    return tuple(groups)


def _ui_token_amount(raw: Any) -> UiTokenAmount:
    ui = _as_dict(raw)
    if not ui:
        return UiTokenAmount()
    amount = ui.get("amount")
    ui_amount_string = ui.get("uiAmountString")
    return UiTokenAmount(
        amount=str(_to_int(amount)) if amount is not None else "0",
        decimals=_to_int(ui.get("decimals")),
        ui_amount=_to_float(ui.get("uiAmount")),
        ui_amount_string=ui_amount_string if isinstance(ui_amount_string, str) else "0",
    )


def _token_balances(raw: Any) -> tuple[TokenBalance, ...]:
    balances: list[TokenBalance] = []
    for item in _as_list(raw):
        bal = _as_dict(item)
        balances.append(
            TokenBalance(
                account_index=_to_int(bal.get("accountIndex")),
                mint=encode_address(bal.get("mint")),
                owner=encode_address(bal.get("owner")),
                ui_token_amount=_ui_token_amount(bal.get("uiTokenAmount")),
            )
        )
    return tuple(balances)


def _account_keys(message: Mapping[str, Any], meta: Mapping[str, Any]) -> tuple[str, ...]:
    """
    Static account keys, then loaded writable + readonly addresses (v0 lookups).
    Handles both the binary-stream field names and the RPC loadedAddresses object.
    """
    keys: list[str] = []
    for key in _as_list(message.get("accountKeys")):
        if isinstance(key, Mapping):
            keys.append(encode_address(key.get("pubkey")))
        else:
            keys.append(encode_address(key))
    loaded = _as_dict(meta.get("loadedAddresses"))
    writable = _as_list(meta.get("loadedWritableAddresses")) or _as_list(loaded.get("writable"))
    readonly = _as_list(meta.get("loadedReadonlyAddresses")) or _as_list(loaded.get("readonly"))
    keys.extend(encode_address(k) for k in writable)
    keys.extend(encode_address(k) for k in readonly)
    return tuple(keys)


def _version(info: Mapping[str, Any], message: Mapping[str, Any]) -> str | int:
    raw = info.get("version")
    if raw == 0 or raw == "0":
        return 0
    if message.get("versioned") or _as_list(message.get("addressTableLookups")):
        return 0
    return "legacy"


def _unwrap(envelope: Any) -> tuple[Mapping[str, Any], Mapping[str, Any], Mapping[str, Any], Mapping[str, Any]]:
    """Return (update, info, message, meta) with {} standing in for anything missing."""
    root = _as_dict(envelope)
    update = _as_dict(root.get("transaction"))
    info = _as_dict(update.get("transaction"))
    tx = _as_dict(info.get("transaction"))
    message = _as_dict(tx.get("message"))
    meta = _as_dict(info.get("meta"))
    return update, info, message, meta


def normalize(envelope: Any, received_at: float | None = None) -> NormalizedTransaction:
    """
    Build a NormalizedTransaction from a raw stream envelope. Never raises.

    received_at (unix seconds) is used as block time when the envelope carries
    none, which is the case for processed-commitment stream updates.
    """
    root = _as_dict(envelope)
    update, info, message, meta = _unwrap(envelope)
    tx = _as_dict(info.get("transaction"))

    signatures = tuple(s for s in (encode_address(v) for v in _as_list(tx.get("signatures"))) if s)
    signature = encode_address(info.get("signature")) or (signatures[0] if signatures else "")

    block_time = _to_int(root.get("blockTime") or info.get("blockTime"))
    if block_time <= 0 and received_at is not None:
        block_time = _to_int(math.floor(received_at)) if math.isfinite(received_at) else 0

    err = meta.get("err")
    return NormalizedTransaction(
        signature=signature,
        slot=_to_int(update.get("slot") or root.get("slot")),
        block_time=max(block_time, 0),
        account_keys=_account_keys(message, meta),
        instructions=tuple(_instruction(ix) for ix in _as_list(message.get("instructions"))),
        inner_instructions=_inner_groups(meta.get("innerInstructions")),
        pre_balances=tuple(_to_int(b) for b in _as_list(meta.get("preBalances"))),
        post_balances=tuple(_to_int(b) for b in _as_list(meta.get("postBalances"))),
        pre_token_balances=_token_balances(meta.get("preTokenBalances")),
        post_token_balances=_token_balances(meta.get("postTokenBalances")),
        log_messages=tuple(m for m in _as_list(meta.get("logMessages")) if isinstance(m, str)),
        fee=_to_int(meta.get("fee")),
        err=err if err else None,
        version=_version(info, message),
        signatures=signatures,
    )


def is_create_account_with_seed(envelope: Any) -> bool:
    """True when the first top-level instruction payload starts with discriminator 3."""
    _, _, message, _ = _unwrap(envelope)
    instructions = _as_list(message.get("instructions"))
    if not instructions:
        return False
    data = _as_dict(instructions[0]).get("data")
    if isinstance(data, _BYTES_TYPES):
        raw = bytes(data)
    elif _is_byte_list(data):
        raw = bytes(data)
    elif isinstance(data, str) and data:
        try:
            raw = base58.b58decode(data)
        except ValueError:
            return False
    else:
        return False
    return bool(raw) and raw[0] == CREATE_ACCOUNT_WITH_SEED_DISCRIMINATOR
