"""CLI entry point for the Thoughtful AI support agent.

This provides a simple terminal-based chat interface for testing and
development. For production, use the FastAPI server (support_agent/server.py).

Usage:
    uv run python -m support_agent.main                    # normal mode (quiet)
    uv run python -m support_agent.main --debug            # debug mode (shows API calls)
    uv run python -m support_agent.main --mode retrieval   # pre-retrieval instead of tool calls
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv
from langchain_core.messages import AnyMessage, HumanMessage

from support_agent.agent import MAX_AGENT_STEPS, create_support_agent, get_reply_text
from support_agent.config import RETRIEVAL_MODE, RETRIEVAL_MODES
from support_agent.knowledge.matcher import Matcher
from support_agent.knowledge.store import EmbeddingStore
from support_agent.services.embeddings import ProviderError, get_embedding_provider

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("openai").setLevel(logging.WARNING)

    logging.getLogger("support_agent").setLevel(logging.DEBUG if debug else logging.INFO)


async def _chat_loop(mode: str) -> None:
    store = EmbeddingStore(get_embedding_provider())
    try:
        await store.initialize()
    except ProviderError as e:
        print(f"  (knowledge base not ready yet: {e}; will retry on your first question)\n")

    agent = create_support_agent(Matcher(store), mode=mode)
    history: list[AnyMessage] = []

    while True:
        try:
            user_input = (await asyncio.to_thread(input, "You: ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye! Thanks for chatting with Thoughtful AI.")
            break

        if user_input.lower() == "new":
            history = []
            print("\n>> Conversation cleared.\n")
            continue

        history.append(HumanMessage(content=user_input))
        try:
            result = await agent.ainvoke(
                {"messages": history},
                config={"recursion_limit": MAX_AGENT_STEPS},
            )
        except ProviderError as e:
            history.pop()
            logger.exception("Knowledge base lookup failed")
            print(f"\nAgent: Sorry, I couldn't reach the knowledge base ({e}). Please try again.\n")
            continue
        except Exception as e:
            history.pop()
            logger.exception("Error processing message")
            print(f"\nAgent: I'm sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start a fresh conversation.\n")
            continue

        messages = result.get("messages", [])
        if not messages:
            history.pop()
            print("Agent: I'm sorry, I wasn't able to generate a response. Please try again.\n")
            continue

        # Keep only the human/final-AI turns; tool traffic stays inside the graph
        history.append(messages[-1])
        match = result.get("knowledge_match")
        if match:
            logger.info("Answered from knowledge base (%.0f%%): %s",
                        match["similarity"] * 100, match["question"])
        print(f"\nAgent: {get_reply_text(messages[-1])}\n")


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Thoughtful AI Support Agent CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--mode", choices=RETRIEVAL_MODES, default=RETRIEVAL_MODE,
        help="How the knowledge base reaches the model (default: %(default)s)",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Thoughtful AI Support Agent - CLI Chat")
    print("=" * 60)
    print(f"  Knowledge base mode: {args.mode}")
    print("  Commands: 'quit' to exit, 'new' for a new conversation.")
    print("=" * 60 + "\n")

    asyncio.run(_chat_loop(args.mode))


if __name__ == "__main__":
    main()
