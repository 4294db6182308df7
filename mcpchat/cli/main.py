"""
MCPChat CLI - Interactive chat interface.

Run `mcpchat` to chat, or `mcpchat "Hello Ann"` for a single message.
Every message is answered from scratch; nothing is remembered between them.
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from mcpchat import __version__
from mcpchat.core.orchestrator import Orchestrator
from mcpchat.errors import MCPChatError
from mcpchat.validation.config import Config

console = Console()

EXIT_KEYWORDS = {"quit", "exit", "/exit", "/quit", "/q"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


class ChatREPL:
    """
    Interactive chat loop.

    Holds only the orchestrator; each message builds a fresh conversation.
    """

    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator
        self.running = True

    def _print_banner(self):
        console.print(Panel(
            f"[bold blue]MCP Chat Agent[/bold blue] [dim]v{__version__}[/dim]\n"
            "[dim]Type 'quit' to exit[/dim]\n\n"
            "[bold]Available commands:[/bold]\n"
            "  Hello \\[name]   (will use the MCP hello_world tool)\n"
            "  /tools         List tools offered by the MCP server\n"
            "  /help          Show this help\n"
            "  Any other message (regular chat)",
            border_style="blue",
            padding=(1, 2),
        ))
        console.print()

    def _print_tools(self):
        """Fetch and show the server's tool catalog."""
        try:
            channel = self.orchestrator.channel
            channel.initialize(self.orchestrator.protocol_version)
            tools = channel.list_tools()
        except MCPChatError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            return

        if not tools:
            console.print("[dim]The MCP server offers no tools.[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Tool", style="cyan")
        table.add_column("Description")
        table.add_column("Parameters", style="dim")
        for tool in tools:
            params = ", ".join(tool.input_schema.get("properties", {}).keys())
            table.add_row(tool.name, tool.description, params or "(none)")
        console.print(table)

    def _execute_message(self, message: str):
        try:
            with console.status("[bold blue]Thinking...[/bold blue]", spinner="dots"):
                answer = self.orchestrator.process_message(message)
        except MCPChatError as e:
            console.print(f"[bold]Agent:[/bold] [red]Error: {escape(str(e))}[/red]")
            return
        console.print(Text.assemble(("Agent: ", "bold"), answer))

    def _handle_command(self, cmd: str) -> None:
        command = cmd.split(maxsplit=1)[0].lower()
        if command in ("/help", "/?"):
            self._print_banner()
        elif command == "/tools":
            self._print_tools()
        else:
            console.print(f"[yellow]Unknown command: {command}[/yellow]")
            console.print("[dim]Type /help for available commands[/dim]")

    def run(self):
        """Run the interactive loop until quit, Ctrl+D or Ctrl+C."""
        self._print_banner()

        while self.running:
            try:
                console.print("[bold green]You: [/bold green]", end="")
                user_input = input().strip()
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            if not user_input:
                continue

            if user_input.lower() in EXIT_KEYWORDS:
                break

            if user_input.startswith("/"):
                self._handle_command(user_input)
            else:
                self._execute_message(user_input)
            console.print()

        console.print("Goodbye!")


@click.command()
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--init", "init", is_flag=True, help="Create ~/.mcpchat/config.yaml and exit")
@click.option("--verbose", is_flag=True, help="Log protocol traffic and state changes")
@click.option("--server", "server", default=None, help="Path to the MCP server executable")
@click.option("--endpoint", default=None, help="Model generate endpoint URL")
@click.option(
    "--insecure",
    is_flag=True,
    help="Skip TLS certificate verification for the model endpoint (unsafe)",
)
@click.argument("message", required=False, nargs=-1)
def cli(
    version: bool,
    init: bool,
    verbose: bool,
    server: Optional[str],
    endpoint: Optional[str],
    insecure: bool,
    message: tuple,
) -> None:
    """
    MCPChat - chat with a model that can call MCP tools.

    Run without arguments to start interactive mode.

    \b
    Examples:
        mcpchat                       # Start interactive chat
        mcpchat "Hello Ann"           # Answer one message
        mcpchat --server ./tools-srv  # Use another tool server
    """
    if version:
        console.print(f"MCPChat v{__version__}")
        return

    _configure_logging(verbose)

    if init:
        path = Config.create_default_global()
        console.print(f"[green]Config at {path}[/green]")
        return

    try:
        config = Config.load()
        config.override("server", command=server)
        config.override("model", endpoint=endpoint, verify_tls=False if insecure else None)
        orchestrator = Orchestrator.from_config(config)
    except MCPChatError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if message:
        try:
            answer = orchestrator.process_message(" ".join(message))
        except MCPChatError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            sys.exit(1)
        console.print(answer, markup=False)
        return

    ChatREPL(orchestrator).run()


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
