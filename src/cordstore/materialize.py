"""
Decoding raw documents into caller-typed values and encoding them back.

The element type of a materialization is chosen by the caller. It is either
a document type (pydantic model, dataclass, TypedDict, dict, ...) or
``Ref[DocumentType]``, in which case every decoded value is wrapped in a
fresh ``Ref`` cell.
"""
import dataclasses
import datetime
import decimal
import enum
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, get_args, get_origin

from bson import Binary, Decimal128
from bson.binary import UUID_SUBTYPE
from pydantic import BaseModel, PydanticUserError, TypeAdapter, ValidationError

from .errors import DecodeError, DestinationTypeError, EncodeError

T = TypeVar("T")


@dataclass
class Ref(Generic[T]):
    """
    A mutable reference cell around a document value.

    Used as the element type of a destination when callers want to share
    and update decoded documents in place, e.g. ``List[Ref[User]]``.
    """
    value: T


@dataclass(frozen=True)
class ElementShape:
    """Resolved element type of a materialization."""
    target: Any
    by_reference: bool
    adapter: TypeAdapter

    def decode(self, raw: Mapping) -> Any:
        """
        Decode one raw document into a fresh element.

        Raises:
            DecodeError: If the document does not fit the target type
        """
        try:
            value = self.adapter.validate_python(from_bson(raw))
        except ValidationError as exc:
            raise DecodeError("decode document", exc) from exc
        return Ref(value) if self.by_reference else value


def resolve_element(document_type: Any) -> ElementShape:
    """
    Work out what to decode into for ``document_type``.

    ``Ref[X]`` resolves to ``X`` with reference wrapping, anything else
    resolves to itself.

    Raises:
        DestinationTypeError: If no decoder can be built for the target type
    """
    by_reference = False
    target = document_type
    if get_origin(document_type) is Ref or document_type is Ref:
        args = get_args(document_type)
        if not args:
            raise DestinationTypeError(
                "resolve element type", message="Ref element type needs a parameter, e.g. Ref[User]"
            )
        target = args[0]
        by_reference = True

    if isinstance(target, TypeVar):
        raise DestinationTypeError("resolve element type", message=f"unbound type variable {target!r}")

    try:
        adapter = TypeAdapter(target)
    except (PydanticUserError, TypeError) as exc:
        raise DestinationTypeError("resolve element type", exc) from exc

    return ElementShape(target=target, by_reference=by_reference, adapter=adapter)


def to_bson(value: Any) -> Any:
    """
    Rewrite Python values BSON has no encoding for into ones it has.

    ``Decimal`` becomes ``Decimal128``, a plain ``date`` becomes a midnight
    ``datetime``, enums are stored by value, UUIDs as standard binary and
    tuples or sets as arrays. Anything else is left for the driver.
    """
    if isinstance(value, Mapping):
        return {key: to_bson(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_bson(item) for item in value]
    if isinstance(value, enum.Enum):
        return to_bson(value.value)
    if isinstance(value, decimal.Decimal):
        try:
            return Decimal128(value)
        except (ArithmeticError, ValueError) as exc:
            raise EncodeError("encode document", exc) from exc
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, uuid.UUID):
        return Binary.from_uuid(value)
    return value


def from_bson(value: Any) -> Any:
    """Turn ``Decimal128`` and UUID binaries read from the store back into Python values."""
    if isinstance(value, Mapping):
        return {key: from_bson(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_bson(item) for item in value]
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Binary) and value.subtype == UUID_SUBTYPE:
        return value.as_uuid()
    return value


def encode_document(document: Any) -> dict:
    """
    Convert a document into a mapping the driver can store.

    Raises:
        EncodeError: If the value cannot be represented as a document
    """
    if isinstance(document, Ref):
        document = document.value

    if isinstance(document, BaseModel):
        return to_bson(document.model_dump(by_alias=True))
    if isinstance(document, Mapping):
        return to_bson(document)
    if dataclasses.is_dataclass(document) and not isinstance(document, type):
        return to_bson(dataclasses.asdict(document))

    try:
        encoded = TypeAdapter(type(document)).dump_python(document)
    except (PydanticUserError, TypeError) as exc:
        raise EncodeError("encode document", exc) from exc
    if not isinstance(encoded, Mapping):
        raise EncodeError(
            "encode document", message=f"{type(document).__name__} does not encode to a mapping"
        )
    return to_bson(encoded)


def is_operator_document(update: Any) -> bool:
    """
    Whether ``update`` already uses update operators such as ``$set``.

    Raises:
        EncodeError: If operators and plain fields are mixed at the top level
    """
    if not isinstance(update, Mapping) or not update:
        return False
    operators = [str(key).startswith("$") for key in update]
    if all(operators):
        return True
    if any(operators):
        raise EncodeError(
            "encode update",
            message=f"update mixes operators and plain fields: {sorted(map(str, update))}"
        )
    return False
