from typing import Any, Callable, Dict

from margherita.config.logger import get_logger
from margherita.errors import InvalidCommand

log = get_logger(__name__)


CommandFunction = Callable[..., Any]

_commands: Dict[str, CommandFunction] = {}


def app_command(func: CommandFunction) -> CommandFunction:
    """
    Register a function as a command the front end can call by name.
    """
    _commands[func.__name__] = func
    return func


def all_commands() -> Dict[str, CommandFunction]:
    """
    All commands, sorted by name.
    """
    return dict(sorted(_commands.items()))


def look_up_command(name: str) -> CommandFunction:
    cmd = _commands.get(name)
    if not cmd:
        raise InvalidCommand(f"Command `{name}` not found")
    return cmd
