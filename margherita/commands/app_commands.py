"""
The operations the front end can call. Each takes the application state first and
plain arguments after, and returns values the dispatcher can serialize.
"""

from typing import List

from pydantic.dataclasses import dataclass

from margherita.commands.app_state import AppState
from margherita.commands.command_registry import app_command
from margherita.errors import InvalidInput
from margherita.workspace.workspace_manager import DocumentContent, SaveRequest, WorkspaceEntry


@dataclass(frozen=True)
class ParsedContent:
    html: str


def _check_str(arg_name: str, value: object) -> str:
    if not isinstance(value, str):
        raise InvalidInput(f"Expected text for `{arg_name}` but got {type(value).__name__}")
    return value


@app_command
def ensure_workspace(state: AppState) -> str:
    """
    Create the workspace directory if needed and return its absolute path.
    """
    return str(state.workspace.ensure_workspace().absolute())


@app_command
def list_files(state: AppState) -> List[WorkspaceEntry]:
    return state.workspace.list()


@app_command
def read_file(state: AppState, path: str) -> DocumentContent:
    return state.workspace.read(_check_str("path", path))


@app_command
def save_file(state: AppState, name: str, content: str) -> str:
    request = SaveRequest(name=_check_str("name", name), content=_check_str("content", content))
    return state.workspace.save(request)


@app_command
def parse_markdown(state: AppState, input: str) -> ParsedContent:
    # `input` is the argument name the front end sends.
    return ParsedContent(html=state.render_cache.render(_check_str("input", input)))
