# pipeline.py

import argparse
import logging
import sys

from opelo import images, roster, storage
from opelo.config import configure_logging, get_settings
from opelo.errors import RosterError

logger = logging.getLogger("opelo.pipeline")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain the One Piece Elo roster")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the characters table")
    sub.add_parser("sync", help="Replace the roster with a fresh scrape of the wiki")

    p_images = sub.add_parser("images", help="Fill image_path from each character's page")
    p_images.add_argument("--delay-ms", type=int, default=None,
                          help="Pause between page requests (default IMAGE_DELAY_MS)")

    p_export = sub.add_parser("export", help="Write the roster to a .csv or .json snapshot")
    p_export.add_argument("path")

    p_seed = sub.add_parser("seed", help="Append characters from a .csv or .json snapshot")
    p_seed.add_argument("path")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=3000)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("opelo.api.main:app", host=args.host, port=args.port)
        return 0

    handle = storage.Storage(args.database_url or settings.database_url, echo=settings.db_echo)
    try:
        with handle:
            if args.command == "sync":
                # 1. Scrape the listing page and swap the roster in one transaction
                entries = roster.refresh_roster(handle)
                print(f"Saved {len(entries)} characters")
            elif args.command == "images":
                # 2. Walk every character page for its thumbnail
                delay = settings.image_delay_ms if args.delay_ms is None else args.delay_ms
                summary = images.update_character_images(handle, delay_ms=delay)
                print(summary.to_dict())
            elif args.command == "export":
                count = storage.export_roster(handle, args.path)
                print(f"Exported {count} characters to {args.path}")
            elif args.command == "seed":
                result = roster.seed_roster(handle, storage.load_roster_snapshot(args.path))
                print(f"Added {result['added']} characters, {result['failed']} failed")
            else:
                print("Characters table ready")
    except (RosterError, ValueError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
