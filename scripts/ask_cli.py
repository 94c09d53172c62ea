"""CLI script for querying the shopping assistant.

Useful for checking retrieval and replies against the live catalog. Either
lists the products the similarity search finds for a phrase, or asks the
assistant and prints its reply with the product cards.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from stylechat.api.deps import Services, build_services
from stylechat.assistant.models import ChatContext
from stylechat.config import settings

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


async def _close(services: Services) -> None:
    if hasattr(services.embedder, "aclose"):
        await services.embedder.aclose()


async def show_matches(query: str, top_k: int) -> None:
    """Print the catalog items most similar to ``query`` with their scores."""
    services = build_services(settings)
    try:
        scored = await services.search.search_or_raise(query, top_k)
    finally:
        await _close(services)

    print(f"\nTop {len(scored)} products for: {query!r}")
    for rank, entry in enumerate(scored, start=1):
        item = entry.item
        print(f"  {rank}. [{entry.score:.4f}] {item.name} by {item.brand or 'Generic'} - ₹{item.price}")


async def ask(message: str, user_id: Optional[str]) -> None:
    """Print the assistant's reply to ``message``."""
    services = build_services(settings)
    try:
        reply = await services.responder.respond(
            message, ChatContext(session_id="cli", user_id=user_id)
        )
    finally:
        await _close(services)

    print(f"\nAssistant: {reply.message}")
    for card in reply.products or []:
        print(f"  - {card.name} (₹{card.price}) {card.url}")


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Query the shopping assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ask_cli.py "floral summer dress"
  python scripts/ask_cli.py "linen shirt" --search --top-k 5
  python scripts/ask_cli.py "what goes with white sneakers?" --user-id 652f1c...
        """
    )

    parser.add_argument(
        "message",
        type=str,
        help="Message or search phrase"
    )

    parser.add_argument(
        "--search",
        action="store_true",
        help="Only list matching products with scores, without calling the language model"
    )

    parser.add_argument(
        "--top-k",
        type=int,
        default=settings.CHAT_CONTEXT_PRODUCTS,
        help=f"Number of products to list with --search (default: {settings.CHAT_CONTEXT_PRODUCTS})"
    )

    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="Storefront user id, adds the shopper's name and cart size to the context"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        if args.search:
            asyncio.run(show_matches(args.message, args.top_k))
        else:
            asyncio.run(ask(args.message, args.user_id))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()


if __name__ == "__main__":
    main()
