"""Base class giving domain objects structural ``==``, ``hash()`` and ``repr()``.

Fields are the variable annotations declared directly on the concrete class, in
declaration order. Annotations inherited from ancestor classes are not part of an
object's identity, and neither is any field whose name contains ``$``; tooling that
injects bookkeeping attributes into classes uses that character.

Subclasses that are also dataclasses must pass ``eq=False, repr=False`` so the
generated methods do not replace the ones defined here::

    @dataclass(eq=False, repr=False)
    class Customer(DomainObject):
        name: str
        orders: list[Order]
"""

import inspect
import typing
from collections.abc import Iterable, Mapping, MutableSequence, Set
from dataclasses import dataclass
from typing import Any

from trace_tools.errors import FieldAccessError

MARKER = "$"

_HASH_MASK = 0xFFFFFFFF


def _qualified_name(cls):
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_class_var(annotation):
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def _hash_value(value):
    if value is None:
        return 0
    try:
        return hash(value)
    except TypeError:
        # unhashable containers hash by content
        if isinstance(value, Mapping):
            return sum(_hash_value(key) ^ _hash_value(item) for key, item in value.items()) & _HASH_MASK
        if isinstance(value, Set):
            return sum(_hash_value(item) for item in value) & _HASH_MASK
        if isinstance(value, Iterable):
            result = 1
            for item in value:
                result = (31 * result + _hash_value(item)) & _HASH_MASK
            return result
        raise


@dataclass(frozen=True)
class Field:
    name: str
    annotation: Any = None

    @property
    def type_label(self) -> str:
        if isinstance(self.annotation, type) and typing.get_origin(self.annotation) is None:
            return self.annotation.__name__
        return str(self.annotation)

    def get(self, owner):
        try:
            return getattr(owner, self.name)
        except AttributeError:
            # declared but never assigned
            return None
        except Exception as exc:
            raise FieldAccessError(f"cannot read field {self.name!r} of {_qualified_name(type(owner))}") from exc


class DomainObject:
    @classmethod
    def declared_own_fields(cls) -> list[Field]:
        fields = []
        for name, annotation in inspect.get_annotations(cls).items():
            if MARKER in name or _is_class_var(annotation):
                continue
            fields.append(Field(name, annotation))
        return fields

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, DomainObject):
            return NotImplemented
        if _qualified_name(type(self)) != _qualified_name(type(other)):
            return False

        for field in self.declared_own_fields():
            this_value = field.get(self)
            that_value = field.get(other)
            if this_value is None:
                if that_value is not None:
                    return False
            elif not this_value == that_value:
                return False
        return True

    def __hash__(self):
        result = 0
        for field in self.declared_own_fields():
            result = (31 * result + _hash_value(field.get(self))) & _HASH_MASK
        return result

    def __repr__(self):
        rendered = ", ".join(
            f"{field.name}='{self.render_field_value(field)}'" for field in self.declared_own_fields()
        )
        return f"{_qualified_name(type(self))}{{{rendered}}}"

    def render_field_value(self, field: Field) -> str:
        """Render one field for ``repr()``.

        List-like values are shown as their declared type and size only, since a
        long list makes log lines unreadable. Override to show content.
        """
        value = field.get(self)
        if isinstance(value, MutableSequence):
            value = f"{field.type_label} {{content omitted; size={len(value)}}}"
        return str(value)
