import typing as t
from types import GenericAlias

import attr

from ._common import FrozenDict


_T = t.TypeVar("_T")


@attr.s(slots=True, frozen=True)
class Factory(t.Generic[_T]):
    """Creates instances of an exported implementation.

    Attributes:
        implementation_type (type): the class to instantiate
        metadata (FrozenDict): the export's metadata
        is_lazy (bool): whether the factory was created for a lazy registration
    """

    implementation_type: type[_T] = attr.ib()
    metadata: FrozenDict[str, t.Any] = attr.ib(factory=FrozenDict, converter=FrozenDict)
    is_lazy: bool = attr.ib(default=False, kw_only=True)

    __class_getitem__ = classmethod(GenericAlias)

    def create(self, *args, **kwds) -> _T:
        return self.implementation_type(*args, **kwds)

    __call__ = create


@attr.s(slots=True, frozen=True)
class DynamicRegistration(t.Generic[_T]):
    """A registration served to a container when it has no static registration
    for a service.

    The container is expected to select registrations by `service_key`.
    """

    factory: Factory[_T] = attr.ib()
    service_key: t.Any = attr.ib(default=None, kw_only=True)

    __class_getitem__ = classmethod(GenericAlias)

    @property
    def implementation_type(self) -> type[_T]:
        return self.factory.implementation_type

    @property
    def metadata(self) -> FrozenDict[str, t.Any]:
        return self.factory.metadata
