"""
Signal system for okrtree.

Godot-like signals with decorator-based declaration. Controllers and task
lists use them to surface notices and state changes without knowing who
renders them (the CLI, a test collector, or nobody at all).

Usage:
    class TaskList:
        @signal
        def notice(self, level: str, message: str) -> None:
            '''Emitted when something should be shown to the user.'''
            pass

    tasks = TaskList()
    tasks.notice.connect(lambda level, message: print(level, message))
    tasks.notice("error", "Failed to load")  # or tasks.notice.emit(...)
"""
import inspect
import weakref
from typing import Any, Callable, List


class SignalError(Exception):
    """Exception raised for signal-related errors."""
    pass


class Signal:
    """
    A per-instance list of callbacks.

    Calling the signal emits it. Callbacks must take as many positional
    parameters as the declaring method (or *args).
    """

    def __init__(self, name: str = "", signature: Any = None) -> None:
        self.name = name
        self._callbacks: List[Callable] = []
        self._arity = None
        if signature is not None:
            params = inspect.signature(signature).parameters
            self._arity = len([p for p in params if p != 'self'])

    def connect(self, callback: Callable) -> None:
        """
        Connect a callback; connecting the same callback twice is a no-op.

        Raises:
            SignalError: If the callback takes the wrong number of parameters.
        """
        if callback in self._callbacks:
            return
        if self._arity is not None:
            self._check_arity(callback)
        self._callbacks.append(callback)

    def _check_arity(self, callback: Callable) -> None:
        try:
            params = list(inspect.signature(callback).parameters.values())
        except (ValueError, TypeError):
            # Built-ins without introspectable signatures
            return
        if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
            return
        if len(params) != self._arity:
            names = ", ".join(p.name for p in params)
            raise SignalError(
                f"Callback for signal '{self.name}' takes ({names}), "
                f"but the signal emits {self._arity} argument(s)"
            )

    def disconnect(self, callback: Callable) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, *args, **kwargs) -> None:
        for callback in list(self._callbacks):
            callback(*args, **kwargs)

    def __call__(self, *args, **kwargs) -> None:
        self.emit(*args, **kwargs)

    def __contains__(self, callback: Callable) -> bool:
        return callback in self._callbacks


class SignalDescriptor:
    """
    Hands out one Signal per owning instance.

    Owners are held weakly so discarded controllers and task lists do not
    stay alive through their signals.
    """

    def __init__(self, name: str, signature: Any = None) -> None:
        self.name = name
        self.signature = signature
        self.instance_signals: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        if obj not in self.instance_signals:
            self.instance_signals[obj] = Signal(name=self.name, signature=self.signature)
        return self.instance_signals[obj]

    def __set__(self, obj, value) -> None:
        raise SignalError(f"Cannot reassign signal '{self.name}'")


def signal(func=None):
    """
    Decorator to declare a method as a signal.

    The method body is documentation only; its parameters fix the arity
    callbacks must accept.
    """
    if func is None:
        # Called as @signal()
        def decorator(f):
            return signal(f)
        return decorator

    return SignalDescriptor(name=func.__name__, signature=func)
