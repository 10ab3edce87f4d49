from dataclasses import dataclass, field

from margherita.render.render_cache import RenderCache
from margherita.workspace.workspace_manager import WorkspaceManager


@dataclass
class AppState:
    """
    The application's long-lived objects. The host creates one at startup and every
    command receives it.
    """

    workspace: WorkspaceManager = field(default_factory=WorkspaceManager)
    render_cache: RenderCache = field(default_factory=RenderCache)
