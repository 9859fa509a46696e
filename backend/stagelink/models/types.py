import enum
from typing import Type

from sqlalchemy import Column
from sqlalchemy import Enum as SAEnum


class LowercaseEnum(SAEnum):
    """Enum column that stores ``value`` strings in lowercase.

    Input may be a member or any casing of its value ("Accepted",
    "ACCEPTED"). Values outside the enum fail at bind time.
    """

    def __init__(self, enum_cls: Type[enum.Enum], **kwargs):
        self._enum_cls = enum_cls
        self._enum_kwargs = kwargs.copy()
        kwargs.setdefault("values_callable", lambda members: [m.value for m in members])
        kwargs.setdefault("name", enum_cls.__name__.lower())
        super().__init__(enum_cls, **kwargs)

    def adapt(self, impltype, **kw):
        return LowercaseEnum(self._enum_cls, **{**self._enum_kwargs, **kw})

    def _lower_value(self, value):
        if isinstance(value, self._enum_cls):
            return value.value
        text = str(value).lower()
        if text not in self._allowed_values:
            raise ValueError(f"{text!r} is not a valid {self._enum_cls.__name__}")
        return text

    @property
    def _allowed_values(self) -> set:
        return {m.value for m in self._enum_cls}

    def bind_processor(self, dialect):
        parent = super().bind_processor(dialect)

        def process(value):
            if value is None:
                return None
            value = self._lower_value(value)
            return parent(value) if parent else value

        return process

    def result_processor(self, dialect, coltype):
        parent = super().result_processor(dialect, coltype)

        def process(value):
            if isinstance(value, str):
                value = value.lower()
            return parent(value) if parent and value is not None else value

        return process


def enum_column(enum_cls: Type[enum.Enum], default=None, **kwargs) -> Column:
    """Non-null lowercase enum column, named after the enum class."""
    kwargs.setdefault("nullable", False)
    return Column(LowercaseEnum(enum_cls), default=default, **kwargs)
