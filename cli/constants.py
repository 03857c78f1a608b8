"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["shard", "get", "unshard", "size", "health", "recover", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#F45935 bold",
        "command": "#0088ff bold",
    }
)

RED_ORANGE = "\033[38;2;244;89;53m"
GREEN = "\033[38;2;80;200;120m"
RESET = "\033[0m"

WELCOME_TITLE = f"{RED_ORANGE}SDS Gateway console{RESET}"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "sds> "

USAGE = "usage: sds-gateway [--debug] [--config PATH] [command [args...]]"

HELP_TEXT = """Available commands:
  shard <path> [object-name]          Upload a file to the SDS and replace it with a pointer
  get <pointer-file> <output-path>    Download the object behind a pointer file
  unshard <pointer-file>              Restore a pointer file to its original content
  size [--strict] <object-id>         Show the logical size of an SDS object
  health                              Show the status of the SDS storage nodes
  recover <root>                      Rebuild a pointer tree under <root> from the SDS inventory
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Examples:
  shard data/report.pdf reports/2024/report.pdf
  get data/report.pdf /tmp/report.pdf
  size 65a1f0c2e4b0a1b2c3d4e5f6
  recover /var/lib/sds-pointers"""
