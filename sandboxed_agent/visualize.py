"""
Terminal transcript renderer
"""

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text
from rich.tree import Tree

from .conversation import Message, Role, ToolCall

ROLE_STYLES = {
    Role.SYSTEM: "dim white",
    Role.USER: "cyan",
    Role.ASSISTANT: "green",
    Role.TOOL: "yellow",
}


def format_json(data: Any, max_length: int = 500) -> str:
    """Format data as JSON string, truncating if too long."""
    json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    if len(json_str) > max_length:
        json_str = json_str[:max_length] + "\n  ... (truncated)"
    return json_str


def truncate(text: str, limit: int = 1000) -> str:
    if len(text) > limit:
        return text[:limit] + "\n... (truncated)"
    return text


def parse_tool_content(content: str) -> Any:
    try:
        return json.loads(content)
    except ValueError:
        return content


def is_error_payload(data: Any) -> bool:
    return isinstance(data, dict) and "error" in data


def render_tool_call(call: ToolCall, tree: Tree) -> None:
    """Render a requested tool call."""
    tool_node = tree.add(f"[yellow]Tool Call:[/yellow] [bold yellow]{escape(call.name)}[/bold yellow]")
    tool_node.add(f"[dim white]ID:[/dim white] {escape(call.id)}")

    arguments = parse_tool_content(call.arguments)
    if isinstance(arguments, dict) and "code" in arguments and isinstance(arguments["code"], str):
        code_node = tool_node.add("[green]Code:[/green]")
        code_node.add(Syntax(truncate(arguments["code"]), "python", theme="monokai", line_numbers=True))
    elif arguments:
        input_node = tool_node.add("[green]Arguments:[/green]")
        if isinstance(arguments, str):
            input_node.add(Text(truncate(arguments), style="white"))
        else:
            input_node.add(Syntax(format_json(arguments), "json", theme="monokai", line_numbers=False))


def render_tool_result(message: Message, tree: Tree) -> None:
    """Render a tool message."""
    data = parse_tool_content(message.content)
    status = "[red]Error[/red]" if is_error_payload(data) else "[green]Success[/green]"
    result_node = tree.add(f"[yellow]Tool Result:[/yellow] {status}")
    result_node.add(f"[dim white]Tool Call ID:[/dim white] {escape(str(message.tool_call_id))}")

    if isinstance(data, dict) and data.get("logs"):
        logs_node = result_node.add("[cyan]Logs:[/cyan]")
        logs_node.add(Text(truncate("\n".join(str(line) for line in data["logs"]), 2000), style="white"))

    output_node = result_node.add("[cyan]Output:[/cyan]")
    if isinstance(data, str):
        output_node.add(Text(truncate(data), style="white"))
    else:
        output_node.add(Syntax(format_json(data), "json", theme="monokai", line_numbers=False))


def build_message_tree(message: Message) -> Tree:
    style = ROLE_STYLES.get(message.role, "white")
    tree = Tree(f"[bold {style}]{message.role.value}[/]")

    if message.role is Role.TOOL:
        render_tool_result(message, tree)
        return tree

    if message.content:
        tree.add(Text(truncate(message.content), style="white"))
    for call in message.tool_calls:
        render_tool_call(call, tree)
    return tree


def visualize_message(message: Message, console: Console | None = None) -> None:
    """Visualize a single transcript message in the terminal."""
    if console is None:
        console = Console()

    style = ROLE_STYLES.get(message.role, "white")
    panel = Panel(
        build_message_tree(message),
        border_style=style,
        expand=False,
    )
    console.print(panel)


def show_warning(text: str, console: Console | None = None) -> None:
    (console or Console()).print(Panel(Text(text), title="[bold]Warning[/bold]", border_style="yellow", expand=False))


def show_error(error: BaseException | str, console: Console | None = None) -> None:
    (console or Console()).print(Panel(Text(str(error)), title="[bold]Error[/bold]", border_style="red", expand=False))


class visualize:
    """
    Transcript listener that renders every appended message.

    Usage:
        viz = visualize(auto_show=True)
        agent = AgentOrchestrator.from_settings(settings, on_message=viz.capture)
    """

    def __init__(self, auto_show: bool = True, console: Console | None = None, show_system: bool = False):
        """
        Initialize the visualizer.

        Args:
            auto_show: Whether to render messages as they are captured (default: True)
            console: Console to print to (default: a new stdout console)
            show_system: Whether to render the system prompt
        """
        self.auto_show = auto_show
        self.show_system = show_system
        self.messages: list[Message] = []
        self.console = console or Console()

    def _should_show(self, message: Message) -> bool:
        return self.show_system or message.role is not Role.SYSTEM

    def capture(self, message: Message) -> None:
        """Capture a message (usable as an on_message callback)."""
        self.messages.append(message)

        if self.auto_show and self._should_show(message):
            visualize_message(message, self.console)

    def show_all(self) -> None:
        """Show all captured messages."""
        for message in self.messages:
            if self._should_show(message):
                visualize_message(message, self.console)
