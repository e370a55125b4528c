"""msgspec-backed encoders shared by logging, caching and parameter coercion."""

from typing import Any, Literal, overload

import msgspec

__all__ = ("decode_json", "decode_msgpack", "encode_json", "encode_msgpack")

_json_encoder = msgspec.json.Encoder(enc_hook=str)
_json_decoder = msgspec.json.Decoder()
_msgpack_encoder = msgspec.msgpack.Encoder(enc_hook=str)
_msgpack_decoder = msgspec.msgpack.Decoder()


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode ``data`` as JSON.

    Values msgspec cannot encode natively are converted with :func:`str`.
    """
    encoded = _json_encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    return _json_decoder.decode(data)


def encode_msgpack(data: Any) -> bytes:
    return _msgpack_encoder.encode(data)


def decode_msgpack(data: bytes) -> Any:
    return _msgpack_decoder.decode(data)
