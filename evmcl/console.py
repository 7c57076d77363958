# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""Global console instance for evmcl command line output."""
from rich.console import Console
from rich.theme import Theme

EVMCL_THEME = Theme(
    {
        "command": "bold cyan",
        "helper": "magenta",
        "variable": "green",
        "argument": "yellow",
        "muted": "dim",
        "error": "bold red",
    }
)

console = Console(color_system="truecolor", theme=EVMCL_THEME)
