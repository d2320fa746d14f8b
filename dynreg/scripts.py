"""Dynamic registrations for runtime compiled scripts.

Scripts get compiled into many small assemblies long after the container has
been built. Instead of rebuilding the container every time one is added,
`ScriptRegistry` indexes the assembly's exports by service type and serves
them to the container through its dynamic registrations hook:

    registry = ScriptRegistry()
    registry.index_assembly(Assembly.from_source("scripts", source))
    container.add_dynamic_registrations(registry.get_dynamic_registrations)
"""
import typing as t
from collections import abc
from logging import getLogger
from threading import Lock

import attr
from typing_extensions import Self

from . import signals
from ._common import ReadonlyDict, private_setattr
from .assemblies import Assembly, get_type
from .exceptions import UnresolvableTypeError
from .history import LookupHistory
from .exports import ExportedRegistrationInfo, Scanner, ServiceKeyStore, scan
from .names import lookup_name, simple_type_name
from .registrations import DynamicRegistration

logger = getLogger(__name__)

_dict_setdefault = dict.setdefault

TypeResolver = abc.Callable[[Assembly, str], t.Optional[type]]


@attr.s(slots=True, frozen=True)
class ScriptData:
    """The unit a `KeyedRegistration` was discovered in.

    Attributes:
        assembly (Assembly): the scanned assembly
        service_types (tuple[str]): short names of the service types indexed
        registrations (tuple[ExportedRegistrationInfo]): the registrations
        type_resolver (TypeResolver): resolves type names captured from `assembly`
    """

    assembly: Assembly = attr.ib()
    service_types: tuple[str] = attr.ib(converter=tuple)
    registrations: tuple[ExportedRegistrationInfo] = attr.ib(converter=tuple)
    type_resolver: TypeResolver = attr.ib(default=get_type, kw_only=True, repr=False)

    def get_type(self, name: str) -> type:
        """Resolve a type name captured while scanning this data's assembly.

        Raises:
            UnresolvableTypeError: if the name no longer resolves.
        """
        if (tp := self.type_resolver(self.assembly, name)) is None:
            logger.error(f"failed to resolve {name!r} from {self.assembly!r}")
            raise UnresolvableTypeError(name, self.assembly)
        return tp

    def __str__(self):
        return f"Types: {', '.join(self.service_types)}, Assembly: {self.assembly.full_name}"


class KeyedRegistration:
    """An indexed export of a service type.

    The `DynamicRegistration` is only created when first requested. Concurrent
    first requests may each create one. They are equivalent.
    """

    __slots__ = ("key", "registration", "script_data", "_dynamic_registration")

    key: t.Any
    registration: ExportedRegistrationInfo
    script_data: ScriptData

    def __init__(
        self, key, registration: ExportedRegistrationInfo, script_data: ScriptData
    ) -> None:
        self.key = key
        self.registration = registration
        self.script_data = script_data
        self._dynamic_registration = None

    @property
    def is_materialized(self) -> bool:
        return self._dynamic_registration is not None

    @property
    def dynamic_registration(self) -> DynamicRegistration:
        if (reg := self._dynamic_registration) is None:
            factory = self.registration.create_factory(self.script_data.get_type)
            reg = self._dynamic_registration = DynamicRegistration(
                factory, service_key=self.key
            )
        return reg

    def __str__(self):
        return str(self.script_data)

    def __repr__(self):
        return f"{self.__class__.__name__}(key={self.key!r}, {self.script_data!s})"


class KeyedRegistrations:
    """The registrations indexed under one service type."""

    __slots__ = ("lock", "_items")

    lock: Lock

    def __init__(self) -> None:
        self.lock = Lock()
        self._items: list[KeyedRegistration] = []

    def append(self, item: KeyedRegistration):
        with self.lock:
            self._items.append(item)

    def snapshot(self) -> tuple[KeyedRegistration, ...]:
        with self.lock:
            return tuple(self._items)

    def dynamic_registrations(self) -> tuple[DynamicRegistration, ...]:
        with self.lock:
            return tuple(r.dynamic_registration for r in self._items)

    def __len__(self):
        return len(self._items)

    def __repr__(self):
        return f"{self.__class__.__name__}({len(self)})"


class _RegistrationIndex(ReadonlyDict[str, KeyedRegistrations]):
    __slots__ = ()

    def __missing__(self, key: str) -> KeyedRegistrations:
        return _dict_setdefault(self, key, KeyedRegistrations())


def _service_type_key(service_type) -> t.Optional[str]:
    if isinstance(service_type, str):
        return simple_type_name(service_type)
    return lookup_name(service_type)


@private_setattr
class ScriptRegistry:
    """Indexes the exports of script assemblies by service type and serves them
    as dynamic registrations.

    Both `index_assembly()` and `get_dynamic_registrations()` are safe to call
    from any number of threads. Registrations under one service type are
    guarded by their own lock.

    Attributes:
        registrations (ReadonlyDict[str, KeyedRegistrations]): the index
        key_store (ServiceKeyStore): keeps exported service keys unique
        scanner (Scanner): collects the exports of an assembly
        type_resolver (TypeResolver): resolves implementation type names
        history (LookupHistory, None): lookup history when tracked

    Args:
        scanner (Scanner, optional): defaults to `exports.scan`
        type_resolver (TypeResolver, optional): defaults to `assemblies.get_type`
        key_store (ServiceKeyStore, optional): defaults to a new store
        track_history (bool, optional): record every lookup in `history`
    """

    __slots__ = (
        "registrations",
        "key_store",
        "scanner",
        "type_resolver",
        "history",
        "__weakref__",
    )

    registrations: ReadonlyDict[str, KeyedRegistrations]
    key_store: ServiceKeyStore
    scanner: Scanner
    type_resolver: TypeResolver
    history: t.Optional[LookupHistory]

    def __init__(
        self,
        *,
        scanner: Scanner = scan,
        type_resolver: TypeResolver = get_type,
        key_store: ServiceKeyStore = None,
        track_history: bool = False,
    ) -> None:
        self.__setattr(
            registrations=_RegistrationIndex(),
            key_store=ServiceKeyStore() if key_store is None else key_store,
            scanner=scanner,
            type_resolver=type_resolver,
            history=None,
        )
        if track_history:
            self.__setattr(history=LookupHistory(self))

    def index_assembly(self, assembly: Assembly) -> None:
        """Scan `assembly` and index its registrations by service type name.

        Errors raised by the scanner propagate. Entries indexed before the
        error remain indexed.

        Args:
            assembly (Assembly): the assembly to scan
        """
        records = [
            r.ensure_unique_service_keys(self.key_store).make_lazy()
            for r in self.scanner((assembly,))
        ]

        count = 0
        for record in records:
            for export in record.exports:
                name = simple_type_name(export.service_type_full_name)
                self.registrations[name].append(
                    KeyedRegistration(
                        export.service_key,
                        record,
                        ScriptData(
                            assembly,
                            (name,),
                            (record,),
                            type_resolver=self.type_resolver,
                        ),
                    )
                )
                count += 1

        logger.debug(f"indexed {count} registration(s) from {assembly!r}")
        signals.on_assembly_indexed.send(self, assembly=assembly, count=count)

    def get_dynamic_registrations(
        self, service_type, service_key=None
    ) -> t.Optional[tuple[DynamicRegistration, ...]]:
        """Get the dynamic registrations of `service_type`.

        All registrations of the service type are returned whatever the
        `service_key`. Selecting by key is left to the container.

        Args:
            service_type (type): the requested service
            service_key (Any, optional): the requested key

        Returns:
            registrations (tuple[DynamicRegistration], None): the registrations
                or `None` if the service type has none or cannot be registered
                at all.
        """
        if (name := lookup_name(service_type)) is None:
            return None

        regs = self.registrations.get(name)
        if signals.on_dynamic_lookup.receivers:
            signals.on_dynamic_lookup.send(
                self, service_type=name, found=regs is not None
            )

        if regs is None:
            return None
        return regs.dynamic_registrations()

    __call__ = get_dynamic_registrations

    def service_types(self) -> abc.KeysView[str]:
        return self.registrations.keys()

    def count(self, service_type) -> int:
        """The number of registrations indexed under `service_type`."""
        regs = self.registrations.get(_service_type_key(service_type))
        return 0 if regs is None else len(regs)

    def __contains__(self, service_type) -> bool:
        return _service_type_key(service_type) in self.registrations

    def __len__(self):
        return len(self.registrations)

    def __repr__(self):
        return f"{self.__class__.__name__}({len(self)} service types)"
