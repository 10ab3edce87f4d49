# Import all command modules to ensure commands are registered.

import margherita.commands.app_commands  # noqa: F401
