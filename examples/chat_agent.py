#!/usr/bin/env python3
"""
Interactive Agent Example

Chat with a tool-calling agent from the terminal. The agent can search the
web, call an AI Pipe proxy and evaluate Python code in an isolated sandbox.

Usage:
    # Single question
    python chat_agent.py "What is 2**32? Use code."

    # Interactive mode
    python chat_agent.py -i

    # Verbose logging
    python chat_agent.py -i -v

    # Disable visualization (print final answers only)
    python chat_agent.py -i --no-viz

Environment:
    OPENAI_API_KEY (required), OPENAI_BASE_URL, AGENT_MODEL, AGENT_MAX_LOOPS,
    GOOGLE_API_KEY, GOOGLE_CSE_ID, AIPIPE_BASE_URL, AIPIPE_TOKEN,
    SANDBOX_TIMEOUT_MS
"""

import asyncio
import logging

from rich.console import Console
from rich.prompt import Prompt

from sandboxed_agent import AgentError, AgentOrchestrator, AgentSettings
from sandboxed_agent.visualize import show_error, show_warning, visualize

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logging.getLogger('httpcore').setLevel(logging.WARNING)
logging.getLogger('httpx').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

console = Console()


async def ask(agent: AgentOrchestrator, question: str, enable_viz: bool) -> None:
    try:
        result = await agent.run_turn(question)
    except AgentError as e:
        # Endpoint failures abort the turn; the session stays usable
        show_error(e, console)
        return

    if result.warning:
        show_warning(result.warning, console)
    if not enable_viz:
        console.print(f"[bold green]Agent:[/bold green] {result.content}")


async def interactive_mode(agent: AgentOrchestrator, enable_viz: bool) -> None:
    console.print("[bold blue]Sandboxed Agent[/bold blue] - type /quit to exit, /loops N to change the loop bound")

    while True:
        user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]").strip()

        if user_input.lower() in ("/quit", "/exit", "quit", "exit"):
            break
        if user_input.startswith("/loops"):
            value = user_input.removeprefix("/loops").strip()
            agent.config.max_loops = value or agent.config.max_loops
            console.print(f"[yellow]Max tool loops: {agent.config.max_loops}[/yellow]")
            continue
        if not user_input:
            continue

        await ask(agent, user_input, enable_viz)


async def run(args) -> None:
    settings = AgentSettings.from_env()
    if args.model:
        settings.orchestrator.model = args.model
    if args.max_loops is not None:
        settings.orchestrator.max_loops = args.max_loops

    enable_viz = not args.no_viz
    viz = visualize(auto_show=enable_viz, console=console)
    agent = AgentOrchestrator.from_settings(settings, on_message=viz.capture)

    try:
        if args.interactive or not args.question:
            await interactive_mode(agent, enable_viz)
        else:
            await ask(agent, args.question, enable_viz)
    finally:
        await agent.aclose()


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Sandboxed Agent Demo")
    parser.add_argument("question", nargs="?", help="Question to ask (omit for interactive mode)")
    parser.add_argument("-i", "--interactive", action="store_true", help="Interactive mode")
    parser.add_argument("--model", help="Model identifier")
    parser.add_argument("--max-loops", type=int, help="Max tool loops per turn")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--no-viz", action="store_true", help="Disable visualization")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
