"""
Object-level notifications for tensionchart.

A component declares what it announces as a method decorated with @signal;
the method's parameters define what every connected callback must accept.

    class LiveStore:
        @signal
        def store_changed(self, store: ItemStore) -> None:
            '''After the live snapshot is replaced.'''

    live.store_changed.connect(render)
    live.store_changed(new_store)
"""
import inspect
import weakref
from typing import Any, Callable, List


class SignalError(Exception):
    """A callback does not fit the signal it is connected to."""


def _describe(params: List[inspect.Parameter]) -> str:
    names = []
    for param in params:
        if param.annotation is inspect.Parameter.empty:
            names.append(param.name)
        else:
            names.append(f"{param.name}: {getattr(param.annotation, '__name__', param.annotation)}")
    return f"({', '.join(names)})"


class Signal:
    """Callbacks bound to one declared notification of one object."""

    def __init__(self, name: str, declaration: Callable) -> None:
        self.name = name
        self._params = [
            param for key, param in inspect.signature(declaration).parameters.items() if key != "self"
        ]
        self._callbacks: List[Callable] = []

    def connect(self, callback: Callable) -> None:
        """Register callback; connecting it twice has no effect."""
        if callback not in self._callbacks:
            self._check(callback)
            self._callbacks.append(callback)

    def disconnect(self, callback: Callable) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _check(self, callback: Callable) -> None:
        try:
            params = list(inspect.signature(callback).parameters.values())
        except (TypeError, ValueError):
            return
        if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
            return

        if len(params) != len(self._params):
            raise SignalError(
                f"'{self.name}' passes {_describe(self._params)}; "
                f"callback takes {_describe(params)}"
            )

        for position, (declared, accepted) in enumerate(zip(self._params, params)):
            sent, wanted = declared.annotation, accepted.annotation
            if inspect.Parameter.empty in (sent, wanted) or sent == wanted:
                continue
            # Only plain classes are compared; typing constructs pass through
            if isinstance(sent, type) and isinstance(wanted, type) and not issubclass(sent, wanted):
                raise SignalError(
                    f"'{self.name}' argument {position} is {sent.__name__}; "
                    f"callback expects {wanted.__name__}"
                )

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        for callback in list(self._callbacks):
            callback(*args, **kwargs)


class SignalDescriptor:
    """Hands each owning instance its own Signal, released with the instance."""

    def __init__(self, declaration: Callable) -> None:
        self.declaration = declaration
        self.name = declaration.__name__
        self._signals: "weakref.WeakKeyDictionary[Any, Signal]" = weakref.WeakKeyDictionary()

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        bound = self._signals.get(obj)
        if bound is None:
            bound = self._signals[obj] = Signal(self.name, self.declaration)
        return bound

    def __set__(self, obj, value) -> None:
        raise SignalError(f"Signal '{self.name}' cannot be reassigned")


def signal(declaration: Callable) -> SignalDescriptor:
    """Declare a method as a signal; its body is never run."""
    return SignalDescriptor(declaration)
