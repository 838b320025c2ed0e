"""
Base callback implementation and callback list manager.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, NamedTuple, Protocol, Sequence, runtime_checkable

from loguru import logger

from ..core.context import TrainingContext
from ..errors import BoostCallbackError, ConfigurationError, PreconditionError

# Callbacks moved to the end of the registry, in this order, whenever present.
# early_stop must precede cv_predict because the latter reads best_iteration.
DEFAULT_TAIL_ORDER: tuple[str, ...] = ("early_stop", "cv_predict")


class Callback(ABC):
    """
    Base class for boosting-loop callbacks.

    A callback is invoked once per boosting iteration, either before
    (``is_pre_iteration = True``) or after the engine performs the
    boosting step. Callbacks that also need to act once after the loop
    ends implement ``on_finalize`` (see ``SupportsFinalize``).

    Instances carry private per-run state and must not be reused
    across training runs.
    """

    name: str = "callback"
    is_pre_iteration: bool = False

    def __call__(self, ctx: TrainingContext) -> None:
        self.on_iteration(ctx)

    @abstractmethod
    def on_iteration(self, ctx: TrainingContext) -> None:
        """Called before or after each boosting iteration."""

    def _call_args(self) -> dict[str, Any]:
        """Constructor arguments, used to render the creating call."""
        return {}

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self._call_args().items())
        return f"{self.__class__.__name__}({args})"


@runtime_checkable
class SupportsFinalize(Protocol):
    """Capability of callbacks that run once after the boosting loop."""

    def on_finalize(self, ctx: TrainingContext) -> None: ...


class CategorizedCallbacks(NamedTuple):
    pre_iter: list[Callback]
    post_iter: list[Callback]
    finalize: list[Callback]


def add_callback(
    callbacks: Iterable[Callback],
    callback: Callback,
    tail_order: Sequence[str] = DEFAULT_TAIL_ORDER,
) -> list[Callback]:
    """
    Append a callback and re-apply the tail relocation policy.

    For each name in ``tail_order`` the first callback with that name is
    moved to the end of the list, so with the default policy early
    stopping ends up just before cv-predict, which is always last.

    Args:
        callbacks: Current ordered callbacks
        callback: Callback to add
        tail_order: Names to relocate to the tail, in order

    Returns:
        New ordered list of callbacks
    """
    result = list(callbacks)
    result.append(callback)
    for name in tail_order:
        for i, cb in enumerate(result):
            if cb.name == name:
                result.append(result.pop(i))
                break
    return result


def categorize_callbacks(callbacks: Iterable[Callback]) -> CategorizedCallbacks:
    """Split callbacks into pre-iteration, post-iteration and finalizer sets.

    A post-iteration callback with a finalizer appears in both
    ``post_iter`` and ``finalize``.
    """
    callbacks = list(callbacks)
    return CategorizedCallbacks(
        pre_iter=[cb for cb in callbacks if cb.is_pre_iteration],
        post_iter=[cb for cb in callbacks if not cb.is_pre_iteration],
        finalize=[cb for cb in callbacks if isinstance(cb, SupportsFinalize)],
    )


def _validate_callbacks(callbacks: Any) -> list[str]:
    if isinstance(callbacks, CallbackList):
        callbacks = callbacks.callbacks
    if isinstance(callbacks, (str, bytes)) or not isinstance(callbacks, Sequence):
        raise ConfigurationError.malformed_callbacks(
            "`callbacks` must be a sequence of callbacks"
        )
    names = []
    for cb in callbacks:
        if not callable(cb):
            raise ConfigurationError.malformed_callbacks(
                f"{cb!r} is not a callable callback"
            )
        name = getattr(cb, "name", None)
        if not isinstance(name, str) or name == "":
            raise ConfigurationError.malformed_callbacks(
                "all callbacks must have a non-empty `name` attribute"
            )
        names.append(name)
    if len(set(names)) != len(names):
        raise ConfigurationError.malformed_callbacks(
            f"callback names must be unique, got {names}"
        )
    return names


def has_callbacks(callbacks: Any, query_names: Sequence[str]) -> bool:
    """
    Check whether callbacks with all of the given names are present.

    Raises:
        ConfigurationError: If the callback list or the query is malformed
    """
    names = _validate_callbacks(callbacks)
    if (
        isinstance(query_names, (str, bytes))
        or len(query_names) == 0
        or any(not isinstance(q, str) or q == "" for q in query_names)
    ):
        raise ConfigurationError.malformed_callbacks(
            "query_names must be a non-empty sequence of non-empty names"
        )
    return all(q in names for q in query_names)


class CallbackList:
    """
    Manager for the callbacks of one training run.

    Handles callback registration, ordering, and execution. Execution
    order within each phase is registry order after tail relocation.
    """

    def __init__(
        self,
        callbacks: Iterable[Callback] | None = None,
        tail_order: Sequence[str] = DEFAULT_TAIL_ORDER,
    ):
        """
        Initialize callback list.

        Args:
            callbacks: Optional callbacks, registered in order
            tail_order: Names relocated to the end of the list
        """
        self.tail_order = tuple(tail_order)
        self.callbacks: list[Callback] = []
        self._categories: CategorizedCallbacks | None = None
        self._finalized = False

        for callback in callbacks or []:
            self.add(callback)

    def add(self, callback: Callback) -> "CallbackList":
        """Register a callback, keeping the tail ordering invariant."""
        if not isinstance(callback, Callback):
            raise ConfigurationError.malformed_callbacks(
                f"{callback!r} is not a Callback instance"
            )
        self.callbacks = add_callback(self.callbacks, callback, self.tail_order)
        self._categories = None
        return self

    def extend(self, callbacks: Iterable[Callback]) -> "CallbackList":
        """Register multiple callbacks."""
        for callback in callbacks:
            self.add(callback)
        return self

    def remove(self, callback: Callback) -> None:
        """Remove a callback from the list."""
        self.callbacks.remove(callback)
        self._categories = None

    def names(self) -> list[str]:
        """Callback names in execution order."""
        return [cb.name for cb in self.callbacks]

    def calls(self) -> list[str]:
        """Rendered constructor calls of the registered callbacks."""
        return [repr(cb) for cb in self.callbacks]

    def get(self, name: str) -> Callback | None:
        """Look up a callback by name; later duplicates shadow earlier ones."""
        return {cb.name: cb for cb in self.callbacks}.get(name)

    def has(self, query_names: Sequence[str]) -> bool:
        """Whether all named callbacks are registered."""
        return has_callbacks(self, query_names)

    def categorize(self) -> CategorizedCallbacks:
        """Callbacks split by invocation phase."""
        if self._categories is None:
            self._categories = categorize_callbacks(self.callbacks)
        return self._categories

    def run_pre_iteration(self, ctx: TrainingContext) -> None:
        """Called before each boosting iteration."""
        for callback in self.categorize().pre_iter:
            self._invoke(callback, "on_iteration", ctx)

    def run_post_iteration(self, ctx: TrainingContext) -> None:
        """Called after each boosting iteration."""
        for callback in self.categorize().post_iter:
            self._invoke(callback, "on_iteration", ctx)

    def run_finalize(self, ctx: TrainingContext) -> None:
        """Called once after the boosting loop ends, including early stops."""
        if self._finalized:
            raise PreconditionError(
                "Callbacks have already been finalized for this training run",
                iteration=ctx.iteration,
            )
        self._finalized = True
        for callback in self.categorize().finalize:
            self._invoke(callback, "on_finalize", ctx)

    def _invoke(self, callback: Callback, hook: str, ctx: TrainingContext) -> None:
        try:
            getattr(callback, hook)(ctx)
        except BoostCallbackError:
            # already logged when raised
            raise
        except Exception as e:
            logger.error(
                f"Error in {callback.__class__.__name__}.{hook} "
                f"at iteration {ctx.iteration}: {e}"
            )
            raise

    def __contains__(self, name: object) -> bool:
        return any(cb.name == name for cb in self.callbacks)

    def __len__(self) -> int:
        """Get number of callbacks."""
        return len(self.callbacks)

    def __getitem__(self, index: int) -> Callback:
        """Get callback by index."""
        return self.callbacks[index]

    def __iter__(self) -> Iterator[Callback]:
        """Iterate over callbacks."""
        return iter(self.callbacks)
