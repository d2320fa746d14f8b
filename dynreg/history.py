import typing as t
from threading import Lock

from blinker import ANY

from . import signals


class LookupHistory:
    """Records dynamic registration lookups.

    Attributes:
        lookups (list[str]): every looked up service type name, in order
        succeeded (list[str]): the looked up names that had registrations

    Args:
        registry (ScriptRegistry, optional): only record lookups made on this
            registry. Defaults to all registries.
    """

    __slots__ = ("lookups", "succeeded", "sender", "_lock", "__weakref__")

    lookups: list[str]
    succeeded: list[str]

    def __init__(self, registry: "ScriptRegistry" = None) -> None:
        self.lookups = []
        self.succeeded = []
        self.sender = ANY if registry is None else registry
        self._lock = Lock()
        signals.on_dynamic_lookup.connect(self._record, sender=self.sender)

    def _record(self, sender, *, service_type: str, found: bool, **kw):
        with self._lock:
            self.lookups.append(service_type)
            found and self.succeeded.append(service_type)

    def disconnect(self):
        signals.on_dynamic_lookup.disconnect(self._record, sender=self.sender)

    def clear(self):
        with self._lock:
            self.lookups.clear()
            self.succeeded.clear()

    def __len__(self):
        return len(self.lookups)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(lookups={len(self.lookups)}, "
            f"succeeded={len(self.succeeded)})"
        )


if t.TYPE_CHECKING:  # pragma: no cover
    from .scripts import ScriptRegistry
