"""Typed views of fixed-size binary records such as disk sectors."""

from __future__ import annotations

import struct
from typing import Any, ClassVar, Literal, NamedTuple, TypeVar

from typing_extensions import Annotated, get_args, get_origin, get_type_hints

from .base import ValidationError

__all__ = ["ByteStruct"]


INT_FORMATS = {1: "B", 2: "H", 4: "I", 8: "Q"}
INTERNAL_NAMES = (
    "__bytestruct_fields__",
    "__bytestruct_format__",
    "__bytestruct_size__",
    "__bytestruct_cached__",
)

_Bs = TypeVar("_Bs", bound="ByteStruct")


class _Field(NamedTuple):
    """Metadata about a field of a `ByteStruct`.

    - `kind`: `int` or `bytes`.
    - `size`: Size of the field in bytes.
    """

    kind: type
    size: int


def _field_format(name: str, type_: Any) -> tuple[_Field, str]:
    """Return the field descriptor and `struct` format specifier of the field
    `name` annotated with `type_`.
    """
    if get_origin(type_) is not Annotated:
        raise TypeError(
            f"Unannotated type {type_} of field {name!r} is not allowed for "
            f"ByteStruct"
        )

    kind, size, *_ = get_args(type_)
    if not isinstance(size, int):
        raise TypeError("Field size must be specified as int")
    if size < 1:
        raise ValueError("Field size must be greater than or equal to 1")

    if kind is int:
        if size not in INT_FORMATS:
            raise ValueError(
                f"Invalid int field size {size}, must be one of "
                f"{tuple(INT_FORMATS)}"
            )
        return _Field(int, size), INT_FORMATS[size]
    if kind is bytes:
        return _Field(bytes, size), f"{size}s"

    raise TypeError(
        f"Annotated type {kind} of field {name!r} is not allowed for ByteStruct"
    )


class _ByteStructMeta(type):
    """Metaclass of `ByteStruct`.

    Analyzes the type annotations of a `ByteStruct` subclass and sets
    `__bytestruct_fields__` (field names mapped to `_Field`),
    `__bytestruct_format__` (the `struct` format string) and
    `__bytestruct_size__` (size of the packed form in bytes).
    """

    def __new__(
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ) -> _ByteStructMeta:
        return super().__new__(mcs, name, bases, namespace)

    def __init__(
        cls,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        byteorder: Literal["<", ">", "!", "="] = "<",
    ):
        super().__init__(name, bases, namespace)
        if not bases:
            return  # cls is ByteStruct

        format_ = byteorder
        fields = {}

        for field_name, type_ in get_type_hints(cls, include_extras=True).items():
            if field_name in INTERNAL_NAMES or get_origin(type_) is ClassVar:
                continue
            fields[field_name], specifier = _field_format(field_name, type_)
            format_ += specifier

        cls.__bytestruct_fields__ = fields
        cls.__bytestruct_format__ = format_
        cls.__bytestruct_size__ = struct.calcsize(format_)

    def __len__(cls) -> int:
        """Size of the packed form of the `ByteStruct` in bytes."""
        return cls.__bytestruct_size__


class ByteStruct(metaclass=_ByteStructMeta):
    """Packed binary record with named fields.

    Every subclass must be a frozen `dataclass`. Fields are declared with
    `typing_extensions.Annotated`::

        @dataclasses.dataclass(frozen=True)
        class Header(ByteStruct, byteorder='<'):

            jump: Annotated[bytes, 3]   # 3 raw bytes
            sectors: Annotated[int, 4]  # unsigned int of size 4 bytes

    Values are validated against their formats when an instance is created.
    Custom validation logic can be added by overriding `validate()`.

    Integers are unsigned. Bytes which are not interpreted are declared as
    `bytes` fields so that they survive a read-modify-write cycle.
    """

    # Populated per class
    __bytestruct_fields__: "dict[str, _Field]"
    __bytestruct_format__: str
    __bytestruct_size__: int

    # Populated per instance
    __bytestruct_cached__: bytes

    def __post_init__(self) -> None:
        params: Any = getattr(self, "__dataclass_params__", None)
        if params is None or not params.frozen:
            raise TypeError("ByteStruct subclass must be a frozen dataclass")
        if "__bytestruct_cached__" not in self.__dict__:
            self._validate_and_cache()
        self.validate()

    def _validate_and_cache(self) -> None:
        """Validate field values against the defined formats and cache the packed
        form of the instance.
        """
        values = []
        for name, field in self.__bytestruct_fields__.items():
            value = getattr(self, name)
            if field.kind is bytes and len(value) != field.size:
                raise ValidationError(
                    f"Value of field {name!r} must be of length {field.size} bytes, "
                    f"got {len(value)} bytes"
                )
            values.append(value)

        try:
            packed = struct.pack(self.__bytestruct_format__, *values)
        except (struct.error, OverflowError) as e:
            raise ValidationError(
                f"Value out of range (format is {self.__bytestruct_format__!r})"
            ) from e

        # Avoid __setattr__() here because this is a frozen dataclass.
        self.__dict__["__bytestruct_cached__"] = packed

    def validate(self) -> None:
        """Custom validation logic, executed after the field values have been
        validated against their formats.
        """

    @classmethod
    def from_bytes(cls: type[_Bs], b: bytes) -> _Bs:
        """Parse structure from `bytes`."""
        if cls is ByteStruct:
            raise TypeError(f"Cannot directly instantiate {cls.__name__}")

        size = cls.__bytestruct_size__
        if len(b) != size:
            raise ValueError(f"Structure is {size} bytes long, got {len(b)} bytes")

        return cls(*struct.unpack(cls.__bytestruct_format__, b))

    def __bytes__(self) -> bytes:
        """Packed form of the `ByteStruct` instance."""
        return self.__bytestruct_cached__

    def __len__(self) -> int:
        """Size of the packed form of the `ByteStruct` in bytes."""
        return self.__bytestruct_size__
