"""Exports.

Classes declare the services they provide with `@export()`:

    @export(IWebService, key="now", name="GetNow")
    class GetNow(IWebService):
        ...

`scan()` turns the declarations found in an assembly into
`ExportedRegistrationInfo` records that carry type names rather than types,
so they can be indexed without holding on to the classes.
"""
import typing as t
from collections import abc
from collections.abc import Callable
from logging import getLogger
from threading import Lock

import attr
from typing_extensions import Self

from ._common import FrozenDict
from .assemblies import Assembly
from .exceptions import MalformedExportError, UnresolvableTypeError
from .names import simple_type_name, type_name
from .registrations import Factory


logger = getLogger(__name__)

_T = t.TypeVar("_T")

EXPORTS_ATTR = "__exports__"


@attr.s(slots=True, frozen=True)
class ExportDeclaration:
    """An `@export()` as declared on the exporting class."""

    service_type: t.Any = attr.ib()
    service_key: t.Any = attr.ib(default=None)
    metadata: FrozenDict[str, t.Any] = attr.ib(factory=FrozenDict, converter=FrozenDict)


def export(service_type=None, /, *, key=None, **metadata):
    """Class decorator declaring that the class provides `service_type`.

    Decorators can be stacked to export several services or keys.

    Args:
        service_type (type, optional): the exported service. Defaults to the
            decorated class.
        key (Any, optional): distinguishes this export from others of the same
            service type.
        **metadata: arbitrary values attached to the export.
    """

    def decorator(cls: type[_T]) -> type[_T]:
        if not isinstance(cls, type):
            raise TypeError(f"`@export()` can only decorate classes not {cls!r}")

        decl = ExportDeclaration(
            cls if service_type is None else service_type, key, metadata
        )
        setattr(cls, EXPORTS_ATTR, (decl, *cls.__dict__.get(EXPORTS_ATTR, ())))
        return cls

    return decorator


@attr.s(slots=True, frozen=True)
class UniqueServiceKey:
    """Replaces a service key already exported for the same service type."""

    key: t.Any = attr.ib()
    index: int = attr.ib()


class ServiceKeyStore:
    """Tracks service keys exported per service type to keep them unique."""

    __slots__ = ("_counts", "_lock")

    def __init__(self) -> None:
        self._counts: dict[tuple[str, t.Any], int] = {}
        self._lock = Lock()

    def ensure_unique_service_key(self, service_type_full_name: str, key):
        """Get a key for `service_type_full_name` no other export has used yet.

        The first export of a key keeps it. `None` keys are never changed.
        """
        if key is None:
            return key

        ident = simple_type_name(service_type_full_name), key
        with self._lock:
            count = self._counts.get(ident, 0)
            self._counts[ident] = count + 1
        return key if count == 0 else UniqueServiceKey(key, count)

    def __len__(self):
        return len(self._counts)


@attr.s(slots=True, frozen=True)
class ExportInfo:
    """One service exported by an implementation."""

    service_type_full_name: str = attr.ib()
    service_key: t.Any = attr.ib(default=None)


@attr.s(slots=True, frozen=True)
class ExportedRegistrationInfo:
    """Everything needed to register an exporting implementation.

    Attributes:
        implementation_type_full_name (str): short name of the implementation
        exports (tuple[ExportInfo]): the services it exports
        metadata (FrozenDict): metadata of all its exports, merged
        is_lazy (bool): whether it should only be loaded when first resolved
    """

    implementation_type_full_name: str = attr.ib()
    exports: tuple[ExportInfo] = attr.ib(converter=tuple)
    metadata: FrozenDict[str, t.Any] = attr.ib(factory=FrozenDict, converter=FrozenDict)
    is_lazy: bool = attr.ib(default=False, kw_only=True)

    def ensure_unique_service_keys(self, key_store: ServiceKeyStore) -> Self:
        exports = tuple(
            attr.evolve(
                x,
                service_key=key_store.ensure_unique_service_key(
                    x.service_type_full_name, x.service_key
                ),
            )
            for x in self.exports
        )
        return attr.evolve(self, exports=exports)

    def make_lazy(self) -> Self:
        return self if self.is_lazy else attr.evolve(self, is_lazy=True)

    def create_factory(self, get_type: Callable[[str], t.Optional[type]]) -> Factory:
        """Create the implementation's factory.

        Args:
            get_type (Callable[[str], type]): resolves the implementation's
                type name.

        Raises:
            UnresolvableTypeError: if `get_type` fails to resolve the name.
        """
        if (tp := get_type(self.implementation_type_full_name)) is None:
            raise UnresolvableTypeError(self.implementation_type_full_name)
        return Factory(tp, self.metadata, is_lazy=self.is_lazy)


Scanner = Callable[[abc.Iterable[Assembly]], abc.Iterable[ExportedRegistrationInfo]]


def _export_info(assembly: Assembly, impl: type, decl) -> ExportInfo:
    if not isinstance(decl, ExportDeclaration):
        raise MalformedExportError(impl, decl, f"expected an `ExportDeclaration`")

    service_type = decl.service_type
    origin = t.get_origin(service_type) or service_type
    if not isinstance(origin, type):
        raise MalformedExportError(
            impl, service_type, "service type must be a class or a generic alias"
        )
    elif not (getattr(origin, "_is_protocol", False) or issubclass(impl, origin)):
        raise MalformedExportError(
            impl,
            service_type,
            f"`{impl.__qualname__}` is not a subclass of `{origin.__qualname__}`",
        )

    try:
        hash(decl.service_key)
    except TypeError as e:
        raise MalformedExportError(
            impl, service_type, f"service key {decl.service_key!r} is not hashable"
        ) from e

    try:
        name = assembly.qualify(service_type)
    except TypeError as e:
        raise MalformedExportError(impl, service_type, str(e)) from e
    return ExportInfo(name, decl.service_key)


def _scan_assembly(assembly: Assembly):
    for impl in assembly.types():
        if declared := impl.__dict__.get(EXPORTS_ATTR):
            metadata = {}
            for decl in declared:
                metadata.update(getattr(decl, "metadata", ()))
            yield ExportedRegistrationInfo(
                type_name(impl),
                (_export_info(assembly, impl, decl) for decl in declared),
                metadata,
            )


def scan(assemblies: abc.Iterable[Assembly]) -> list[ExportedRegistrationInfo]:
    """Collect the exports declared by classes in the given assemblies.

    Raises:
        MalformedExportError: if a declared export is invalid.
    """
    return [rec for asm in assemblies for rec in _scan_assembly(asm)]
