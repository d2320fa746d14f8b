"""Type names.

Exports capture their service types as assembly-qualified names, eg.

    pkg.handlers.Handler`1[[pkg.models.User, models, Version=1.0.0.0, Culture=neutral, PublicKeyToken=null]], handlers, Version=1.0.0.0, Culture=neutral, PublicKeyToken=null

while lookups present the type's short form

    pkg.handlers.Handler`1[pkg.models.User]

`simple_type_name()` reduces the former to the latter so both sides of the
index agree regardless of which assembly (and version) declared a type.
"""
import re
import sys
import typing as t

from logging import getLogger


logger = getLogger(__name__)

_intern = sys.intern

# 1. removes the ", asm, Version=1.2.3.4, Culture=neutral, PublicKeyToken=null" parts
# 2. removes the extra square brackets around type arguments: "[[A],[B]]" -> "[A,B]"
_assembly_qualifier_re = re.compile(
    r"""
    , \s* [\w.]+ (?: , \s* \w+ = [\w.-]+ )+ \]?
    | \[ (?=\[)
    | (?<=,) \[
    """,
    re.VERBOSE,
)

_assembly_name_re = re.compile(r"^[\w.]+$")


def simple_type_name(qualified: t.Optional[str]) -> t.Optional[str]:
    """Strip assembly names, versions, cultures and public key tokens from an
    assembly-qualified type name.

    The result is always interned.

    Args:
        qualified (str, None): the assembly-qualified type name.

    Returns:
        name (str, None): the type's short form or `None` if `qualified` is `None`.
    """
    if qualified is None:
        return None

    comma = qualified.find(",")
    if comma < 0:
        return _intern(qualified)

    if qualified.find("[") < 0:
        return _intern(qualified[:comma])

    return _intern(_assembly_qualifier_re.sub("", qualified))


def type_name(tp) -> str:
    """Get the short form of a class or parameterized generic.

        type_name(User)               # 'pkg.models.User'
        type_name(dict[str, User])    # 'builtins.dict`2[builtins.str,pkg.models.User]'

    Raises:
        TypeError: if `tp` is neither a class nor a generic alias of one.
    """
    if args := t.get_args(tp):
        origin = t.get_origin(tp)
        return f"{type_name(origin)}`{len(args)}[{','.join(map(type_name, args))}]"
    elif isinstance(tp, type):
        return f"{tp.__module__}.{tp.__qualname__}"
    raise TypeError(f"expected a class or generic alias not `{tp!r}`")


def lookup_name(tp) -> t.Optional[str]:
    """The short form `tp` is looked up by, or `None` when no registration can
    exist for it, as for `Optional[X]`, `Callable[[X], Y]` or `list["X"]`.
    """
    try:
        return type_name(tp)
    except TypeError:
        return None


def assembly_full_name(
    name: str,
    version: str = "0.0.0.0",
    culture: str = "neutral",
    public_key_token: t.Optional[str] = None,
) -> str:
    if not _assembly_name_re.search(name):
        raise ValueError(f"invalid assembly name {name!r}")
    return (
        f"{name}, Version={version}, Culture={culture}, "
        f"PublicKeyToken={public_key_token or 'null'}"
    )


def default_assembly_name(tp) -> str:
    """The assembly name of a type no known assembly declares: its top-level
    package.
    """
    origin = t.get_origin(tp) or tp
    return assembly_full_name(origin.__module__.partition(".")[0])


def qualified_type_name(tp, assembly: "Assembly" = None) -> str:
    """Get the assembly-qualified name of a class or parameterized generic.

    Types declared in `assembly` are qualified with it. Everything else is
    qualified with its top-level package.

    Args:
        tp (type): the class or generic alias
        assembly (Assembly, optional): the assembly being described

    Returns:
        name (str):
    """
    origin = t.get_origin(tp) or tp
    if assembly is not None and origin in assembly:
        suffix = assembly.full_name
    else:
        suffix = default_assembly_name(origin)

    if args := t.get_args(tp):
        params = ",".join(f"[{qualified_type_name(a, assembly)}]" for a in args)
        return f"{type_name(origin)}`{len(args)}[{params}], {suffix}"
    return f"{type_name(tp)}, {suffix}"


def parse_type_name(name: str) -> tuple[str, tuple[str, ...]]:
    """Split the short form of a generic into its origin and argument names.

        parse_type_name('builtins.dict`2[builtins.str,builtins.list`1[builtins.int]]')
        # ('builtins.dict', ('builtins.str', 'builtins.list`1[builtins.int]'))

    Non-generic names are returned with no arguments.

    Raises:
        ValueError: if `name` is not a well formed short type name.
    """
    head, sep, rest = name.partition("[")
    if not sep:
        return name, ()

    origin, tick, arity = head.rpartition("`")
    if not (tick and arity.isdigit() and rest[-1:] == "]"):
        raise ValueError(f"malformed generic type name {name!r}")

    args, depth, start, body = [], 0, 0, rest[:-1]
    for i, ch in enumerate(body):
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth < 0:
                raise ValueError(f"unbalanced brackets in {name!r}")
        elif ch == "," and depth == 0:
            args.append(body[start:i])
            start = i + 1
    args.append(body[start:])

    if depth or int(arity) != len(args) or not all(args):
        raise ValueError(f"malformed generic type name {name!r}")
    return origin, tuple(args)


if t.TYPE_CHECKING:  # pragma: no cover
    from .assemblies import Assembly
