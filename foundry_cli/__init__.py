"""
Foundry Tools CLI - command-line interface for the Foundry agent tools.

Provides subcommands for:
- foundry-tools tools          - List tools and whether their executables are installed
- foundry-tools call NAME ARGS - Run a single tool with JSON arguments
- foundry-tools shell          - Run tools interactively (keeps anvil alive between calls)
- foundry-tools doctor         - Check executables, packages and configuration
- foundry-tools config         - Show and edit configuration
"""

__version__ = "0.1.0"
