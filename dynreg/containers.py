import typing as t
from collections import abc
from functools import partial
from logging import getLogger

from typing_extensions import Self

from . import signals
from ._common import Missing, ReadonlyDict, private_setattr
from .assemblies import Assembly, get_type
from .exceptions import AmbiguousServiceError, ServiceNotFoundError
from .exports import Scanner, ServiceKeyStore, scan
from .names import lookup_name, simple_type_name, type_name
from .registrations import DynamicRegistration, Factory
from .scripts import TypeResolver


logger = getLogger(__name__)

_dict_setdefault = dict.setdefault

DynamicRegistrationProvider = abc.Callable[
    [t.Any, t.Any], t.Optional[abc.Iterable[DynamicRegistration]]
]


@private_setattr
class Container:
    """A mapping of service types to their registrations.

    Services are registered statically with `register()` and
    `register_exports()`. When a service has no static registration the
    container asks its dynamic registration providers and selects the
    candidates by service key itself.

    Attributes:
        name (str): The container's name
        registrations (ReadonlyDict[str, list[DynamicRegistration]]): static
            registrations by service type name
        dynamic_registrations (tuple[DynamicRegistrationProvider]): providers
            consulted for services without static registrations
    """

    __slots__ = (
        "name",
        "registrations",
        "dynamic_registrations",
        "scanner",
        "type_resolver",
        "key_store",
        "__weakref__",
    )

    name: str
    registrations: ReadonlyDict[str, list[DynamicRegistration]]
    dynamic_registrations: tuple[DynamicRegistrationProvider]

    def __init__(
        self,
        name: str = None,
        *,
        scanner: Scanner = scan,
        type_resolver: TypeResolver = get_type,
        key_store: ServiceKeyStore = None,
    ) -> None:
        if name and not name.isidentifier():
            raise ValueError(f"name must be a valid identifier not {name!r}")

        self.__setattr(
            name=name or f"__anonymous__",
            registrations=ReadonlyDict(),
            dynamic_registrations=(),
            scanner=scanner,
            type_resolver=type_resolver,
            key_store=ServiceKeyStore() if key_store is None else key_store,
        )
        signals.on_container_create.send(self.__class__, container=self)

    def _add(self, name: str, registration: DynamicRegistration):
        _dict_setdefault(self.registrations, name, []).append(registration)

    def register(
        self, service_type, implementation: type = None, *, key=None, **metadata
    ) -> DynamicRegistration:
        """Register `implementation` as a provider of `service_type`.

        Args:
            service_type (type): the service
            implementation (type, optional): the class to instantiate. Defaults
                to `service_type`.
            key (Any, optional): the service key
            **metadata: metadata attached to the registration

        Returns:
            registration (DynamicRegistration):
        """
        reg = DynamicRegistration(
            Factory(service_type if implementation is None else implementation, metadata),
            service_key=key,
        )
        self._add(type_name(service_type), reg)
        return reg

    def register_exports(self, *assemblies: Assembly) -> Self:
        """Scan the assemblies and register all their exports.

        Unlike dynamic registrations, factories are created immediately.
        """
        for asm in assemblies:
            for record in self.scanner((asm,)):
                record = record.ensure_unique_service_keys(self.key_store)
                factory = record.create_factory(partial(self.type_resolver, asm))
                for export in record.exports:
                    self._add(
                        simple_type_name(export.service_type_full_name),
                        DynamicRegistration(factory, service_key=export.service_key),
                    )
        return self

    def add_dynamic_registrations(self, *providers: DynamicRegistrationProvider) -> Self:
        """Add providers to consult for services without static registrations.

        A provider is called with the service type and requested key and returns
        the candidate registrations or `None`.
        """
        self.__setattr(dynamic_registrations=self.dynamic_registrations + providers)
        return self

    def get_registrations(
        self, service_type, service_key=Missing
    ) -> tuple[DynamicRegistration, ...]:
        """Get the registrations of `service_type`.

        Args:
            service_type (type): the service
            service_key (Any, optional): only return registrations with this key.
                All registrations are returned if omitted.

        Returns:
            registrations (tuple[DynamicRegistration]):
        """
        if not (regs := self.registrations.get(lookup_name(service_type))):
            key = None if service_key is Missing else service_key
            regs = [
                r
                for provider in self.dynamic_registrations
                for r in provider(service_type, key) or ()
            ]

        if service_key is Missing:
            return tuple(regs)
        return tuple(r for r in regs if r.service_key == service_key)

    def resolve(self, service_type, service_key=None):
        """Create an instance of `service_type`.

        Without a `service_key` only unkeyed registrations are considered.

        Raises:
            ServiceNotFoundError: if the service has no registrations
            AmbiguousServiceError: if more than one registration matches
        """
        regs = self.get_registrations(service_type, service_key)
        if not regs:
            raise ServiceNotFoundError(service_type, service_key)
        elif len(regs) > 1:
            raise AmbiguousServiceError(service_type, service_key, regs)
        return regs[0].factory()

    def resolve_all(self, service_type) -> list:
        """Create an instance of every registration of `service_type`."""
        return [r.factory() for r in self.get_registrations(service_type)]

    def __contains__(self, service_type) -> bool:
        return not not self.get_registrations(service_type)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"
