"""
Result Codec - native Python values <-> Soroban SCVal.

``ContractValue`` is the only shape contract arguments and return values
take inside the client.  It is a closed tagged union: one ``ScType`` tag per
supported wire type, and anything else is rejected on the way in and on the
way out.

Amounts are plain ints in the token's smallest unit here.  Decimal display
formatting lives in ``sente.utils`` and never touches this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from stellar_sdk import StrKey, scval
from stellar_sdk import xdr as stellar_xdr

from ..errors import CodecError, CodecFailure

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
I128_MIN = -(2**127)
I128_MAX = 2**127 - 1


class ScType(str, Enum):
    ADDRESS = "address"
    BOOL = "bool"
    U32 = "u32"
    U64 = "u64"
    I128 = "i128"
    STRING = "string"
    VOID = "void"


_WIRE_TYPES = {
    stellar_xdr.SCValType.SCV_ADDRESS: ScType.ADDRESS,
    stellar_xdr.SCValType.SCV_BOOL: ScType.BOOL,
    stellar_xdr.SCValType.SCV_U32: ScType.U32,
    stellar_xdr.SCValType.SCV_U64: ScType.U64,
    stellar_xdr.SCValType.SCV_I128: ScType.I128,
    stellar_xdr.SCValType.SCV_STRING: ScType.STRING,
    stellar_xdr.SCValType.SCV_VOID: ScType.VOID,
}


@dataclass(frozen=True)
class ContractValue:
    type: ScType
    value: Any = None

    def __repr__(self) -> str:
        return f"{self.type.value}({self.value!r})"


def _resolve_type(declared: Union[ScType, str]) -> ScType:
    if isinstance(declared, ScType):
        return declared
    try:
        return ScType(str(declared).lower())
    except ValueError:
        raise CodecError(
            CodecFailure.UNSUPPORTED_TYPE,
            f"Unsupported contract type {declared!r}; expected one of "
            f"{', '.join(t.value for t in ScType)}",
        ) from None


def _check_int(value: Any, lo: int, hi: int, type_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CodecError(
            CodecFailure.INVALID_VALUE,
            f"{type_name} expects an int, got {type(value).__name__}",
        )
    if not lo <= value <= hi:
        raise CodecError(CodecFailure.INVALID_VALUE, f"{value} is out of range for {type_name}")
    return value


def _check_address(value: Any) -> str:
    if not isinstance(value, str):
        raise CodecError(
            CodecFailure.INVALID_VALUE,
            f"address expects a strkey string, got {type(value).__name__}",
        )
    if not (StrKey.is_valid_ed25519_public_key(value) or StrKey.is_valid_contract(value)):
        raise CodecError(CodecFailure.INVALID_VALUE, f"Invalid account or contract address: {value}")
    return value


def encode(native: Any, declared: Union[ScType, str]) -> ContractValue:
    """Validate a native value against its declared wire type."""
    sc_type = _resolve_type(declared)

    if sc_type is ScType.ADDRESS:
        return ContractValue(sc_type, _check_address(native))
    if sc_type is ScType.BOOL:
        if not isinstance(native, bool):
            raise CodecError(CodecFailure.INVALID_VALUE, f"bool expects True/False, got {native!r}")
        return ContractValue(sc_type, native)
    if sc_type is ScType.U32:
        return ContractValue(sc_type, _check_int(native, 0, U32_MAX, "u32"))
    if sc_type is ScType.U64:
        return ContractValue(sc_type, _check_int(native, 0, U64_MAX, "u64"))
    if sc_type is ScType.I128:
        return ContractValue(sc_type, _check_int(native, I128_MIN, I128_MAX, "i128"))
    if sc_type is ScType.STRING:
        if not isinstance(native, str):
            raise CodecError(CodecFailure.INVALID_VALUE, f"string expects str, got {type(native).__name__}")
        return ContractValue(sc_type, native)
    # VOID
    if native is not None:
        raise CodecError(CodecFailure.INVALID_VALUE, f"void expects None, got {native!r}")
    return ContractValue(sc_type, None)


def decode(value: ContractValue) -> Any:
    if not isinstance(value, ContractValue):
        raise CodecError(
            CodecFailure.UNSUPPORTED_TYPE,
            f"decode expects a ContractValue, got {type(value).__name__}",
        )
    return value.value


def to_scval(value: ContractValue) -> stellar_xdr.SCVal:
    sc_type = value.type
    if sc_type is ScType.ADDRESS:
        return scval.to_address(value.value)
    if sc_type is ScType.BOOL:
        return scval.to_bool(value.value)
    if sc_type is ScType.U32:
        return scval.to_uint32(value.value)
    if sc_type is ScType.U64:
        return scval.to_uint64(value.value)
    if sc_type is ScType.I128:
        return scval.to_int128(value.value)
    if sc_type is ScType.STRING:
        return scval.to_string(value.value)
    return scval.to_void()


def from_scval(sc_val: stellar_xdr.SCVal) -> ContractValue:
    sc_type = _WIRE_TYPES.get(sc_val.type)
    if sc_type is None:
        raise CodecError(
            CodecFailure.UNSUPPORTED_TYPE,
            f"Unsupported wire type {sc_val.type.name} in contract value",
        )

    if sc_type is ScType.ADDRESS:
        return ContractValue(sc_type, scval.from_address(sc_val).address)
    if sc_type is ScType.BOOL:
        return ContractValue(sc_type, scval.from_bool(sc_val))
    if sc_type is ScType.U32:
        return ContractValue(sc_type, scval.from_uint32(sc_val))
    if sc_type is ScType.U64:
        return ContractValue(sc_type, scval.from_uint64(sc_val))
    if sc_type is ScType.I128:
        return ContractValue(sc_type, scval.from_int128(sc_val))
    if sc_type is ScType.STRING:
        raw = scval.from_string(sc_val)
        text = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
        return ContractValue(sc_type, text)
    return ContractValue(ScType.VOID, None)


def from_xdr(encoded: str) -> ContractValue:
    """Decode a base64 SCVal as returned by the execution endpoint."""
    try:
        sc_val = stellar_xdr.SCVal.from_xdr(encoded)
    except Exception as exc:  # noqa: BLE001 - malformed XDR from the wire
        raise CodecError(CodecFailure.INVALID_VALUE, f"Malformed contract value XDR: {exc}") from exc
    return from_scval(sc_val)


def to_xdr(value: ContractValue) -> str:
    return to_scval(value).to_xdr()
