import typing as t
from itertools import count
from unittest.mock import MagicMock

import pytest

from dynreg import Assembly, ScriptRegistry
from dynreg.exports import ExportedRegistrationInfo, ExportInfo


@pytest.fixture
def new_args():
    return ()


@pytest.fixture
def new_kwargs():
    return {}


@pytest.fixture
def new(cls, new_args, new_kwargs):
    return lambda *a, **kw: cls(*a, *new_args[len(a) :], **{**new_kwargs, **kw})


@pytest.fixture
def services_assembly():
    return Assembly("services", "tests.scripts.services", version="1.0.0.0")


@pytest.fixture
def scripts_assembly():
    return Assembly("scripts", "tests.scripts.web_services", version="2.1.0.0")


_script_ids = count()


SCRIPT_HEADER = """
from dynreg import export
from tests.scripts.services import IWebService


class IScriptService:
    pass

"""

SCRIPT_EXPORT = """
@export({service}, key={key!r}, name={name!r})
class Service{i}({service}):
    pass

"""


@pytest.fixture
def make_script():
    """Compile an assembly of `n` classes exporting `service`.

    `service` is either `IWebService`, shared by all scripts, or
    `IScriptService` which each script declares for itself.
    """

    def make(n: int = 1, service: str = "IWebService", key=None) -> Assembly:
        name = f"script_{next(_script_ids)}"
        body = "".join(
            SCRIPT_EXPORT.format(service=service, key=key, name=f"{name}.{i}", i=i)
            for i in range(n)
        )
        return Assembly.from_source(name, SCRIPT_HEADER + body)

    return make


@pytest.fixture
def MockScanner():
    def make(*records: ExportedRegistrationInfo):
        return MagicMock(wraps=lambda assemblies: list(records))

    return make


@pytest.fixture
def MockTypeResolver():
    def make(tp: t.Any = object):
        return MagicMock(wraps=lambda asm, name: tp)

    return make


@pytest.fixture
def make_record():
    def make(impl: str = "pkg.Impl", *exports, **metadata):
        exports = exports or ("pkg.IService, pkg, Version=1.0.0.0",)
        return ExportedRegistrationInfo(
            impl,
            (
                x if isinstance(x, ExportInfo) else ExportInfo(x)
                for x in exports
            ),
            metadata,
        )

    return make
