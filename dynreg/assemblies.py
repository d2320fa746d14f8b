import sys
import typing as t
from collections import abc
from importlib import import_module
from logging import getLogger
from types import ModuleType

from typing_extensions import Self

from ._common import private_setattr
from .names import assembly_full_name, parse_type_name, qualified_type_name, type_name


logger = getLogger(__name__)


def _load_module(module: t.Union[str, ModuleType]) -> ModuleType:
    if isinstance(module, str):
        return import_module(module)
    elif isinstance(module, ModuleType):
        return module
    raise TypeError(
        f"expected a module or module name not `{module.__class__.__qualname__}`"
    )


def _declared_types(
    values: abc.Iterable[t.Any], module: str, seen: set
) -> abc.Iterator[type]:
    for v in values:
        if isinstance(v, type) and v.__module__ == module and not v in seen:
            seen.add(v)
            yield v
            yield from _declared_types(vars(v).values(), module, seen)


@private_setattr
class Assembly:
    """A named and versioned unit of code that services get exported from.

    An assembly wraps one or more modules. Scripts compiled at runtime are
    wrapped with `Assembly.from_source()`.

    Attributes:
        name (str): the assembly's name
        version (str): the assembly's version
        culture (str): the assembly's culture
        public_key_token (str, None): the assembly's public key token
        modules (tuple[ModuleType]): the modules declaring the assembly's types
        full_name (str): name, version, culture and public key token

    Args:
        name (str): the assembly's name. Only word characters and dots.
        *modules (ModuleType, str): modules or importable module names
    """

    __slots__ = (
        "name",
        "version",
        "culture",
        "public_key_token",
        "modules",
        "full_name",
        "_types",
        "__weakref__",
    )

    name: str
    version: str
    culture: str
    public_key_token: t.Optional[str]
    modules: tuple[ModuleType]
    full_name: str

    def __init__(
        self,
        name: str,
        *modules: t.Union[str, ModuleType],
        version: str = "0.0.0.0",
        culture: str = "neutral",
        public_key_token: str = None,
    ) -> None:
        self.__setattr(
            name=name,
            version=version,
            culture=culture,
            public_key_token=public_key_token,
            full_name=assembly_full_name(name, version, culture, public_key_token),
            modules=tuple(map(_load_module, modules)),
            _types=None,
        )

    @classmethod
    def from_source(
        cls: type[Self], name: str, source: str, *, module: str = None, **kwds
    ) -> Self:
        """Compile `source` into a new module and wrap it in an assembly.

        The module is not added to `sys.modules`.

        Args:
            name (str): the assembly's name
            source (str): python source code
            module (str, optional): the module's name. Defaults to `name`.
            **kwds: passed to the assembly's constructor.

        Returns:
            assembly (Assembly):
        """
        mod = ModuleType(module or name)
        mod.__file__ = f"<{name}>"
        exec(compile(source, mod.__file__, "exec"), mod.__dict__)
        return cls(name, mod, **kwds)

    @property
    def type_map(self) -> dict[str, type]:
        """A mapping of short type names to the types declared in this assembly."""
        if (types := self._types) is None:
            types = {type_name(tp): tp for tp in self.types()}
            self.__setattr(_types=types)
        return types

    def types(self) -> abc.Iterator[type]:
        """Iterate over the classes declared in this assembly's modules,
        nested classes included.
        """
        seen = set()
        for mod in self.modules:
            yield from _declared_types(vars(mod).values(), mod.__name__, seen)

    def get_type(self, name: str) -> t.Optional[type]:
        """Get a type declared in this assembly by its short name.

        Generic names resolve when the origin is declared here. Their
        arguments may come from anywhere (see `get_type()`).

        Returns:
            tp (type, None): the type or `None` if it wasn't found.
        """
        if (tp := self.type_map.get(name)) is not None:
            return tp

        origin, args = parse_type_name(name)
        if args and (tp := self.type_map.get(origin)) is not None:
            params = tuple(get_type(self, a) for a in args)
            if not any(p is None for p in params):
                return tp[params]

    def qualify(self, tp) -> str:
        """Get the assembly-qualified name of `tp` as declared from this assembly."""
        return qualified_type_name(tp, self)

    def __contains__(self, tp) -> bool:
        origin = t.get_origin(tp) or tp
        return isinstance(origin, type) and self.type_map.get(type_name(origin)) is origin

    def __eq__(self, o) -> bool:
        if isinstance(o, Assembly):
            return o is self
        return NotImplemented

    def __ne__(self, o) -> bool:
        if isinstance(o, Assembly):
            return not o is self
        return NotImplemented

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.full_name!r})"


def _find_class(name: str) -> t.Optional[type]:
    parts = name.split(".")
    for i in range(len(parts) - 1, 0, -1):
        if (obj := sys.modules.get(".".join(parts[:i]))) is None:
            continue
        for part in parts[i:]:
            if (obj := getattr(obj, part, None)) is None:
                break
        if isinstance(obj, type):
            return obj


def find_type(name: str) -> t.Optional[type]:
    """Search all loaded modules for a type by its short name.

    Args:
        name (str): the type's short name. eg `builtins.list`1[builtins.int]`

    Returns:
        tp (type, None): the type or `None` if it wasn't found.
    """
    origin, args = parse_type_name(name)
    if (tp := _find_class(origin)) is None or not args:
        return tp

    params = tuple(map(find_type, args))
    if not any(p is None for p in params):
        return tp[params]


def get_type(assembly: Assembly, name: str) -> t.Optional[type]:
    """Resolve a type name captured while scanning `assembly`.

    Asks the assembly first then falls back to searching all loaded modules.
    """
    tp = assembly.get_type(name)
    if tp is None:
        tp = find_type(name)
    return tp
