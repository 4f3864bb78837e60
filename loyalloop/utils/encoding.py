"""
msgpack encoding for state snapshots and signed calls.

Token amounts carry 18 decimals and routinely exceed the 64-bit range
msgpack supports natively, so oversized integers travel as an ext type.
"""
import msgpack

BIGINT_EXT_CODE = 1


def _default(obj):
    if isinstance(obj, int):
        return msgpack.ExtType(BIGINT_EXT_CODE, str(obj).encode('ascii'))
    raise TypeError(f"Cannot serialize object of type {type(obj).__name__}")


def _ext_hook(code: int, data: bytes):
    if code == BIGINT_EXT_CODE:
        return int(data.decode('ascii'))
    return msgpack.ExtType(code, data)


def packb(obj) -> bytes:
    """Pack a Python object, including big integers."""
    return msgpack.packb(obj, default=_default, use_bin_type=True)


def unpackb(data: bytes):
    """Unpack bytes produced by packb()."""
    return msgpack.unpackb(
        data,
        ext_hook=_ext_hook,
        raw=False,
        strict_map_key=False,
    )
