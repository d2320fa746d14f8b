import typing as t
from unittest.mock import MagicMock

import pytest

from dynreg import Container, ScriptRegistry, signals
from dynreg.exceptions import AmbiguousServiceError, ServiceNotFoundError
from dynreg.exports import UniqueServiceKey
from dynreg.registrations import DynamicRegistration

from .scripts import web_services
from .scripts.services import IHandler, ILogger, IWebService, MemoryLogger, Order, User


xfail = pytest.mark.xfail
parametrize = pytest.mark.parametrize


@pytest.fixture
def cls():
    return Container


@pytest.fixture
def static_container(new, services_assembly, scripts_assembly):
    sub: Container = new()
    sub.register(ILogger, MemoryLogger)
    return sub.register_exports(services_assembly, scripts_assembly)


@pytest.fixture
def dynamic_container(new, scripts_assembly):
    sub: Container = new()
    sub.register(ILogger, MemoryLogger)
    registry = ScriptRegistry()
    registry.index_assembly(scripts_assembly)
    return sub.add_dynamic_registrations(registry.get_dynamic_registrations)


def get_web_service(container: Container, name: str) -> IWebService:
    for reg in container.get_registrations(IWebService):
        if reg.metadata.get("name") == name:
            return reg.factory()


class ContainerTests:
    def test_basic(self, new):
        sub = new("web")
        assert isinstance(sub, Container)
        assert sub.name == "web"
        assert new().name == "__anonymous__"
        assert sub.dynamic_registrations == ()
        assert "web" in repr(sub)

    @xfail(raises=ValueError, strict=True)
    def test_xfail_invalid_name(self, new):
        new("not valid")

    @xfail(raises=AttributeError, strict=True)
    def test_xfail_immutable(self, new):
        new().dynamic_registrations = ()

    def test_create_signal(self, new):
        receiver = MagicMock()
        with signals.on_container_create.connected_to(receiver, sender=Container):
            sub = new()
        receiver.assert_called_once_with(Container, container=sub)

    def test_register(self, new):
        sub: Container = new()
        reg = sub.register(ILogger, MemoryLogger, key="mem", level="info")
        assert isinstance(reg, DynamicRegistration)
        assert reg.service_key == "mem"
        assert reg.metadata == {"level": "info"}
        assert sub.get_registrations(ILogger) == (reg,)
        assert isinstance(sub.resolve(ILogger, "mem"), MemoryLogger)

        default = sub.register(ILogger, MemoryLogger)
        assert sub.get_registrations(ILogger) == (reg, default)
        assert sub.get_registrations(ILogger, None) == (default,)
        assert isinstance(sub.resolve(ILogger), MemoryLogger)
        assert ILogger in sub
        assert not User in sub

    def test_register_self(self, new):
        sub: Container = new()
        sub.register(MemoryLogger)
        assert isinstance(sub.resolve(MemoryLogger), MemoryLogger)

    @xfail(raises=ServiceNotFoundError, strict=True)
    def test_xfail_not_found(self, new):
        new().resolve(IWebService)

    @xfail(raises=ServiceNotFoundError, strict=True)
    def test_xfail_key_not_found(self, new):
        sub: Container = new()
        sub.register(ILogger, MemoryLogger)
        sub.resolve(ILogger, "nope")

    def test_not_found_error(self, new):
        with pytest.raises(ServiceNotFoundError) as e:
            new().resolve(IWebService, "x")
        assert e.value.service_type is IWebService
        assert e.value.service_key == "x"


@parametrize("container", ["static_container", "dynamic_container"])
class ResolutionTests:
    @pytest.fixture
    def sub(self, container, request: pytest.FixtureRequest) -> Container:
        return request.getfixturevalue(container)

    def test_import_web_service(self, sub: Container):
        log = sub.resolve(ILogger)
        services = sub.resolve_all(IWebService)
        log.info("Imported web services: %s", len(services))
        assert log.records == ["Imported web services: 3"]

        now = get_web_service(sub, "GetNow")
        assert isinstance(now, web_services.GetNow)
        assert now.get(None)["iso_time"]

    def test_resolve_by_key(self, sub: Container):
        assert isinstance(sub.resolve(IWebService, "echo"), web_services.Echo)
        assert isinstance(sub.resolve(IWebService, "nested"), web_services.Outer.Nested)
        assert isinstance(sub.resolve(IWebService), web_services.GetNow)
        assert isinstance(sub.resolve(IHandler[Order], "orders"), web_services.AuditHandler)
        assert isinstance(sub.resolve(IHandler[User]), web_services.AuditHandler)
        assert isinstance(sub.resolve(web_services.Clock), web_services.Clock)

    def test_get_registrations(self, sub: Container):
        assert len(sub.get_registrations(IWebService)) == 3
        [echo] = sub.get_registrations(IWebService, "echo")
        assert echo.implementation_type is web_services.Echo
        assert sub.get_registrations(IWebService, "no-such-key") == ()
        assert sub.get_registrations(IHandler[int]) == ()

    @parametrize(
        "tp", [t.Optional[IWebService], t.Callable[[int], str], list["IWebService"]]
    )
    def test_get_registrations_unregistrable(self, sub: Container, tp):
        assert sub.get_registrations(tp) == ()
        assert sub.get_registrations(tp, "echo") == ()
        with pytest.raises(ServiceNotFoundError):
            sub.resolve(tp)

    @xfail(raises=ServiceNotFoundError, strict=True)
    def test_xfail_not_found(self, sub: Container):
        sub.resolve(IHandler[Order])


class DynamicRegistrationsTests:
    def test_static_first(self, new, scripts_assembly):
        provider = MagicMock(return_value=None)
        sub: Container = new()
        sub.register_exports(scripts_assembly)
        sub.add_dynamic_registrations(provider)
        sub.resolve(IWebService, "echo")
        provider.assert_not_called()
        assert sub.get_registrations(User) == ()
        provider.assert_called_once_with(User, None)

    def test_provider_receives_key(self, new):
        provider = MagicMock(return_value=None)
        sub: Container = new().add_dynamic_registrations(provider)
        sub.get_registrations(User, "k")
        sub.get_registrations(User, None)
        sub.get_registrations(User)
        assert [c.args for c in provider.call_args_list] == [
            (User, "k"),
            (User, None),
            (User, None),
        ]

    def test_many_providers(self, new, scripts_assembly, make_script):
        first, second = ScriptRegistry(), ScriptRegistry()
        first.index_assembly(scripts_assembly)
        second.index_assembly(make_script(2))
        sub: Container = new().add_dynamic_registrations(first, second.get_dynamic_registrations)
        assert len(sub.dynamic_registrations) == 2
        assert len(sub.get_registrations(IWebService)) == 3 + 2
        assert len(sub.resolve_all(IWebService)) == 5

    def test_unique_keys(self, new, make_script):
        sub: Container = new()
        sub.register_exports(make_script(1, key="k"), make_script(1, key="k"))
        keys = [r.service_key for r in sub.get_registrations(IWebService)]
        assert keys == ["k", UniqueServiceKey("k", 1)]
        assert sub.resolve(IWebService, "k").__class__.__name__ == "Service0"

    def test_ambiguous(self, new, make_script):
        sub: Container = new()
        sub.register_exports(make_script(2))
        with pytest.raises(AmbiguousServiceError) as e:
            sub.resolve(IWebService)
        assert e.value.service_key is None
        assert len(e.value.candidates) == 2
