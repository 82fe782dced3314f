"""
Interactive CLI adapter.

Architectural role:
- Terminal front end for one agent.
- Runs the pipeline in-process by default; with `--server URL` it posts each
  line to a running HTTP adapter instead.

Request lifecycle (per user turn):
1. Read stdin.
2. Handle local control commands (`exit`/`quit`).
3. Build an `Input` (`source=cli`, room `<agentId>_<userId>`) and process it,
   or POST it to `<server>/agent/input`.
4. Print the reply.

Input validation behavior:
- Empty input is ignored.

Error handling strategy:
- EOF and keyboard interrupts terminate the loop without a traceback.
- HTTP transport failures are printed and the loop continues.
"""

import argparse
import asyncio
import logging
import sys

import requests

from conduit.core.types import Input, InputSource, InputType


logger = logging.getLogger(__name__)


# =========================================================
# UTF-8 SAFE STDOUT
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except (AttributeError, OSError, ValueError):
        pass


class PrintingSink:
    """Sink that prints the terminal response to stdout."""

    def __init__(self, name: str):
        self.name = name

    async def send(self, content) -> None:
        print(f"\n{self.name}: {content}\n")

    async def json(self, content) -> None:
        print(f"\n{self.name}: {content}\n")

    async def error(self, message: str) -> None:
        print(f"\n{self.name}: {message}\n")


def post_to_server(server: str, input: Input, timeout: float = 180) -> str:
    """Send one input to a running HTTP adapter and return the reply text."""
    res = requests.post(
        f"{server.rstrip('/')}/agent/input",
        json={"input": input.model_dump(mode="json", by_alias=True, exclude_none=True)},
        timeout=timeout,
    )
    if res.headers.get("content-type", "").startswith("application/json"):
        data = res.json()
        if isinstance(data, dict) and "error" in data:
            return data["error"]
        return str(data)
    return res.text


def build_input(text: str, user_id: str, agent_id: str) -> Input:
    return Input(
        source=InputSource.CLI,
        user_id=user_id,
        agent_id=agent_id,
        room_id=f"{agent_id}_{user_id}",
        type=InputType.TEXT,
        text=text,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Chat with an agent from the terminal.")
    parser.add_argument("--server", help="Base URL of a running HTTP adapter")
    parser.add_argument("--user", default="cli-user", help="User id sent with every message")
    parser.add_argument("--agent", default="stern", help="Agent id to talk to")
    return parser.parse_args(argv)


# =========================================================
# MAIN LOOP
# =========================================================

def main(argv=None):
    args = parse_args(argv)

    framework = agent = None
    if not args.server:
        from conduit.api.main import build_runtime
        from conduit.config import load_settings

        settings = load_settings()
        logging.basicConfig(level=settings.log_level)
        framework, agents = build_runtime(settings)
        agent = next((a for a in agents if a.agent_id == args.agent), None)
        if agent is None:
            print(f"Agent '{args.agent}' not found.")
            return

    print(f"\nChatting with {agent.name if agent else args.agent}")
    print("Type 'exit' to quit")
    print("-" * 60)

    while True:
        try:
            text = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break

        if not text:
            continue

        if text.lower() in ("exit", "quit"):
            print("Goodbye.")
            break

        message = build_input(text, args.user, args.agent)

        if args.server:
            try:
                reply = post_to_server(args.server, message)
            except requests.RequestException as exc:
                print(f"\nRequest failed: {exc}\n")
                continue
            print(f"\n{args.agent}: {reply}\n")
            continue

        asyncio.run(framework.process(message, agent, PrintingSink(agent.name)))


if __name__ == "__main__":
    main()
