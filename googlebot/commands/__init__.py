"""Command registry for !commands.

A command is registered under a path of one or more words, e.g. ("google",).
Incoming message bodies that start with the command prefix are split into
tokens; the command with the longest path matching the leading tokens runs
with the remaining tokens as its arguments.
"""
from __future__ import annotations
import importlib
import logging
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Awaitable, Any, Union

from ..errors import CommandError
from ..messages import OutboundMessage, TextNotice

logger = logging.getLogger(__name__)

HandlerResult = Union[OutboundMessage, str, None]
Handler = Callable[..., Awaitable[HandlerResult]]


@dataclass
class Command:
    """Represents a registered command."""
    path: tuple[str, ...]
    description: str
    handler: Handler

    @property
    def name(self) -> str:
        return " ".join(self.path)


def split_args(text: str) -> list[str]:
    """Split a command line shell-style, falling back to whitespace splitting."""
    try:
        return shlex.split(text)
    except ValueError:
        # Unbalanced quotes
        return text.split()


class CommandRegistry:
    """Registry for dynamically loaded commands."""

    def __init__(self, prefix: str = "!"):
        self.prefix = prefix
        self._commands: dict[tuple[str, ...], Command] = {}

    def register(self, path: tuple[str, ...], description: str, handler: Handler) -> None:
        """Register a command with the registry."""
        path = tuple(p.lower() for p in path)
        if not path:
            raise ValueError("Command path must not be empty")
        self._commands[path] = Command(
            path=path,
            description=description,
            handler=handler
        )
        logger.info(f"Registered command: {' '.join(path)}")

    def match(self, tokens: list[str]) -> Optional[tuple[Command, list[str]]]:
        """Find the command with the longest path prefixing tokens.

        Returns:
            (command, remaining args) or None if nothing matches
        """
        lowered = [t.lower() for t in tokens]
        best: Optional[Command] = None
        for path, cmd in self._commands.items():
            if tuple(lowered[:len(path)]) == path:
                if best is None or len(path) > len(best.path):
                    best = cmd
        if best is None:
            return None
        return best, tokens[len(best.path):]

    async def execute(self, body: str,
                      matrix_context: Optional[dict[str, Any]] = None) -> Optional[OutboundMessage]:
        """Run the command addressed by body, if any.

        Args:
            body: The message body, including the command prefix
            matrix_context: Optional dictionary passed through to handlers.
                           Keys: 'client', 'room', 'event', 'config'

        Returns:
            The message to send back, or None if body is not a known command
        """
        body_stripped = body.strip()
        if not body_stripped.startswith(self.prefix):
            return None

        tokens = split_args(body_stripped[len(self.prefix):])
        found = self.match(tokens)
        if found is None:
            logger.debug(f"No command matches {tokens[:1]}")
            return None
        cmd, args = found

        try:
            logger.debug(f"Executing command: {cmd.name} args={args}")
            result = await cmd.handler(args, matrix_context=matrix_context)
        except CommandError as e:
            logger.warning(f"Command {cmd.name} failed: {e}")
            return TextNotice(str(e))
        except Exception:
            logger.exception(f"Error executing command {cmd.name}")
            return TextNotice(f"Error executing command '{cmd.name}'. Check logs for details.")

        if isinstance(result, str):
            return TextNotice(result)
        return result

    def list_commands(self) -> list[tuple[str, str]]:
        """Return list of (name, description) for all commands."""
        return [(cmd.name, cmd.description) for cmd in self._commands.values()]

    def clear(self) -> None:
        """Clear all registered commands."""
        self._commands.clear()


# Global registry instance
_registry = CommandRegistry()


def command(path: Union[str, tuple[str, ...]], description: str):
    """Decorator to register a command handler.

    Usage:
        @command(path="google", description="Search Google")
        async def google_handler(args: list[str], matrix_context=None):
            ...
    """
    if isinstance(path, str):
        path = tuple(path.split())

    def decorator(func: Handler):
        _registry.register(path, description, func)
        return func
    return decorator


def load_commands() -> None:
    """Import (or reload) every command module in this package."""
    commands_dir = Path(__file__).parent

    _registry.clear()

    for file_path in sorted(commands_dir.glob("*.py")):
        if file_path.name == "__init__.py":
            continue

        module_name = f"{__name__}.{file_path.stem}"
        try:
            if module_name in sys.modules:
                importlib.reload(sys.modules[module_name])
            else:
                importlib.import_module(module_name)
            logger.info(f"Loaded command module: {module_name}")
        except Exception:
            logger.exception(f"Failed to load command module: {module_name}")


async def execute_command(body: str,
                          matrix_context: Optional[dict[str, Any]] = None) -> Optional[OutboundMessage]:
    """Execute a command based on message body. This is the main entry point."""
    return await _registry.execute(body, matrix_context=matrix_context)


def get_registry() -> CommandRegistry:
    """Get the global command registry instance."""
    return _registry


# Auto-load commands on import
load_commands()
