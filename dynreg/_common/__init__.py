import re
import typing as t
from collections import abc
from collections.abc import Hashable
from copy import deepcopy

from typing_extensions import Self

_object_setattr = object.__setattr__
_setattr = setattr


def private_setattr(
    klass=None,
    *,
    name: str = "setattr",
    setattr=True,
    setattr_fn=_object_setattr,
):
    """Block public attribute assignment on instances of the decorated class.

    The class gets a name-mangled `__setattr` method (eg. `self.__setattr(a=1)`)
    that bypasses the block. Private (mangled) attributes can still be set
    directly.
    """

    def decorator(cls_):
        def setter(self: Self, name=None, value=None, /, **kw):
            name and kw.setdefault(name, value)
            for k, v in kw.items():
                setattr_fn(self, k, v)

        def __setattr__(self: Self, name: str, value):
            if self._privateattr_regex.search(name):
                return setattr_fn(self, name, value)
            getattr(self, name)
            raise AttributeError(
                f"`cannot set {name!r} on frozen {self.__class__.__qualname__!r}."
            )

        _base__init_subclass__ = cls_.__init_subclass__

        def __init_subclass__(cls: type[Self], **kwargs):
            if not hasattr(cls, fn := f'_{cls.__name__.lstrip("_")}__{name}'):
                _setattr(cls, fn, setter)
            pre = r"|".join(f'_{c.__name__.lstrip("_")}__' for c in cls.__mro__)
            cls._privateattr_regex = re.compile(f"^(?:{pre}).+")
            _base__init_subclass__(**kwargs)

        cls_.__init_subclass__ = classmethod(__init_subclass__)

        pre = r"|".join(f'_{c.__name__.lstrip("_")}__' for c in cls_.__mro__)
        cls_._privateattr_regex = re.compile(f"^(?:{pre}).+")

        if not hasattr(cls_, fn := f'_{cls_.__name__.lstrip("_")}__{name}'):
            _setattr(cls_, fn, setter)

        if setattr and cls_.__setattr__ is _object_setattr:
            cls_.__setattr__ = __setattr__

        return cls_

    return decorator if klass is None else decorator(klass)


class MissingType:

    __slots__ = ()

    __value__: t.ClassVar["MissingType"] = None

    def __new__(cls):
        return cls.__value__

    @classmethod
    def _makenew__(cls, name):
        if cls.__value__ is None:
            cls.__value__ = object.__new__(cls)
        return cls()

    def __bool__(self):
        return False

    def __str__(self):
        return ""

    def __repr__(self):
        return f"Missing"

    def __reduce__(self):
        return self.__class__, ()  # pragma: no cover

    def __eq__(self, x):
        return x is self

    def __hash__(self):
        return id(self)


Missing = MissingType._makenew__("Missing")


_T_Key = t.TypeVar("_T_Key")
_T_Val = t.TypeVar("_T_Val", covariant=True)


class ReadonlyDict(dict[_T_Key, _T_Val]):
    """A readonly `dict` subclass.

    Raises:
        TypeError: on any attempted modification
    """

    __slots__ = ()

    def not_mutable(self, *a, **kw):
        raise TypeError(f"readonly type: {self} ")

    __delitem__ = __setitem__ = setdefault = not_mutable
    clear = pop = popitem = update = __ior__ = not_mutable
    del not_mutable

    @classmethod
    def fromkeys(cls, it: abc.Iterable[_T_Key], value: _T_Val = None):
        return cls((k, value) for k in it)

    def __reduce__(self):
        return (
            self.__class__,
            (dict(self),),
        )

    def copy(self):
        return self.__class__(self)

    __copy__ = copy

    def __deepcopy__(self, memo=None):
        return self.__class__(deepcopy(dict(self), memo))

    __or = dict[_T_Key, _T_Val].__or__

    def __or__(self, o):
        return self.__class__(self.__or(o))


class FrozenDict(ReadonlyDict[_T_Key, _T_Val]):
    """An hashable `ReadonlyDict`"""

    __slots__ = ("_v_hash",)

    def __hash__(self):
        try:
            ash = self._v_hash
        except AttributeError:
            ash = None
            items = self._eval_hashable()
            if items is not None:
                try:
                    ash = hash(items)
                except TypeError:
                    pass
            _object_setattr(self, "_v_hash", ash)

        if ash is None:
            raise TypeError(f"un-hashable type: {self.__class__.__name__!r}")

        return ash

    def _eval_hashable(self) -> Hashable:
        return (*((k, self[k]) for k in sorted(self)),)
