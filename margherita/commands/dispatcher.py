import inspect
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from pydantic import TypeAdapter
from pydantic.dataclasses import dataclass

from margherita.commands.app_state import AppState
from margherita.commands.command_registry import look_up_command
from margherita.config.logger import get_logger
from margherita.config.settings import global_settings
from margherita.errors import InvalidCommand, is_fatal, SelfExplanatoryError

log = get_logger(__name__)

_result_adapter: TypeAdapter[Any] = TypeAdapter(Any)


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None


def error_message(exception: Exception) -> str:
    """
    One human-readable line for the user. Self-explanatory errors already carry a good
    message; anything else is labeled with its type.
    """
    if isinstance(exception, SelfExplanatoryError):
        return str(exception)
    return f"{type(exception).__name__}: {exception}"


class CommandDispatcher:
    """
    Runs commands by name for the front end. Commands run on a worker pool so slow file
    operations never block the caller or each other, and every outcome comes back as a
    `CommandResult` whose error, if any, is a plain message.
    """

    def __init__(self, state: AppState, max_workers: Optional[int] = None) -> None:
        self.state = state
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers or global_settings().max_workers,
            thread_name_prefix="margherita-command",
        )

    def __enter__(self) -> "CommandDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def run(self, command_name: str, /, **args: Any) -> CommandResult:
        """
        Run a command on the current thread.
        """
        try:
            command = look_up_command(command_name)
            try:
                inspect.signature(command).bind(self.state, **args)
            except TypeError as e:
                raise InvalidCommand(f"Invalid arguments for `{command_name}`: {e}") from e

            value = command(self.state, **args)
            return CommandResult(ok=True, value=_result_adapter.dump_python(value, mode="json"))
        except Exception as e:
            if is_fatal(e):
                log.error("Command `%s` failed: %s", command_name, e, exc_info=e)
            else:
                log.warning("Command `%s` failed: %s", command_name, e)
            return CommandResult(ok=False, error=error_message(e))

    def submit(self, command_name: str, /, **args: Any) -> "Future[CommandResult]":
        return self.executor.submit(self.run, command_name, **args)

    def call(self, command_name: str, /, **args: Any) -> CommandResult:
        """
        Run a command on the worker pool and wait for its result.
        """
        return self.submit(command_name, **args).result()

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)


## Tests


def test_error_message():
    from margherita.errors import WorkspaceIOError

    assert error_message(WorkspaceIOError("Could not read 'a b.md'")) == "Could not read 'a b.md'"
    assert error_message(KeyError("x")) == "KeyError: 'x'"
