import typing as t

import attr


class DynRegException(Exception):
    """Base class for all internal exceptions."""


@attr.s()
class MalformedExportError(TypeError, DynRegException):
    """Raised by the scanner when a class declares an export it cannot honour.

    Args:
        implementation (type): the exporting class
        service_type (Any): the declared service type
        reason (str): what is wrong with the export
    """

    implementation: type = attr.ib(default=None)
    service_type: t.Any = attr.ib(default=None)
    reason: str = attr.ib(default="")


@attr.s()
class UnresolvableTypeError(TypeError, DynRegException):
    """Raised when a type name captured while scanning an assembly can no
    longer be resolved to a class.

    Args:
        type_name (str): the name that failed to resolve
        assembly (Assembly): the assembly the name was captured from
    """

    type_name: str = attr.ib(default=None)
    assembly: "Assembly" = attr.ib(default=None)


@attr.s()
class ServiceNotFoundError(KeyError, DynRegException):
    """Raised by `~Container` when a service has no registration.

    Args:
        service_type (Any): the missing service
        service_key (Any): the requested key
    """

    service_type: t.Any = attr.ib(default=None)
    service_key: t.Any = attr.ib(default=None)


@attr.s()
class AmbiguousServiceError(LookupError, DynRegException):
    """Raised by `~Container` when a single service is requested but several
    registrations match.
    """

    service_type: t.Any = attr.ib(default=None)
    service_key: t.Any = attr.ib(default=None)
    candidates: tuple["DynamicRegistration"] = attr.ib(default=(), converter=tuple)


from .assemblies import Assembly
from .registrations import DynamicRegistration
