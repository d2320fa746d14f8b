from ._common import Missing


from .names import simple_type_name, type_name, lookup_name, qualified_type_name


from .exceptions import (
    DynRegException,
    MalformedExportError,
    UnresolvableTypeError,
    ServiceNotFoundError,
    AmbiguousServiceError,
)


from . import signals
from .assemblies import Assembly, find_type, get_type
from .exports import export, scan, ExportInfo, ExportedRegistrationInfo, ServiceKeyStore
from .registrations import DynamicRegistration, Factory
from .history import LookupHistory
from .scripts import ScriptRegistry
from .containers import Container
