"""Command-line interface for embedding the product catalog.

This script embeds every product in the catalog with the configured
embedding provider and stores the normalized vectors with the products, so
the chat assistant's similarity search can find them.

Example:
    Embed the catalog in the MongoDB configured in .env:
        $ python scripts/generate_embeddings.py

    Embed with a shorter pause between provider calls:
        $ python scripts/generate_embeddings.py --delay 0.25 --verbose
"""

import argparse
import asyncio
import logging
import sys

from stylechat.assistant.embed_job import DEFAULT_DELAY_S, run_embedding_job
from stylechat.assistant.providers import HuggingFaceEmbeddings
from stylechat.assistant.stores import MongoCatalogStore, get_database
from stylechat.config import settings


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the script.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace object containing parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Generate product embeddings for the chat assistant's similarity search.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Embed every product in the configured database
  python scripts/generate_embeddings.py

  # Use another database on the same server
  python scripts/generate_embeddings.py --db-name jazzup_staging
        """,
    )

    parser.add_argument(
        "--db-name",
        type=str,
        default=settings.MONGO_DB_NAME,
        help=f"MongoDB database holding the products collection (default: {settings.MONGO_DB_NAME})",
    )

    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_DELAY_S,
        help=f"Seconds to wait between provider calls (default: {DEFAULT_DELAY_S})",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


async def _run(db_name: str, delay: float) -> int:
    logger = logging.getLogger(__name__)
    config = settings.model_copy(update={"MONGO_DB_NAME": db_name})
    catalog = MongoCatalogStore(get_database(config))
    embedder = HuggingFaceEmbeddings.from_settings(config)

    try:
        report = await run_embedding_job(catalog, embedder, delay_s=delay)
    finally:
        await embedder.aclose()

    logger.info("=" * 50)
    logger.info(f"Successfully processed: {report.processed} products")
    if report.failed:
        logger.info(f"Failed: {report.failed} products ({', '.join(report.failed_ids)})")
    logger.info("=" * 50)
    return 0


def main() -> int:
    """Main entry point for the embedding script.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        args = parse_arguments()
        setup_logging(verbose=args.verbose)
        logger = logging.getLogger(__name__)

        logger.info("=" * 50)
        logger.info("Embedding Configuration")
        logger.info("=" * 50)
        logger.info(f"Database:        {args.db_name}")
        logger.info(f"Embedding model: {settings.EMBEDDING_MODEL}")
        logger.info(f"Delay:           {args.delay}s")
        logger.info("=" * 50)

        return asyncio.run(_run(args.db_name, args.delay))

    except ValueError as e:
        logging.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Embedding interrupted by user")
        return 130
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
