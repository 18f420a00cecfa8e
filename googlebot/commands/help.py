"""Help command - lists the available commands."""
from __future__ import annotations
from typing import Optional
from . import command, get_registry
from ..messages import TextNotice


@command(path="help", description="List available commands")
async def help_handler(args: list[str], matrix_context: Optional[dict] = None) -> TextNotice:
    registry = get_registry()
    lines = ["Available commands:"]
    for name, description in sorted(registry.list_commands()):
        lines.append(f"  {registry.prefix}{name} - {description}")
    return TextNotice("\n".join(lines))
