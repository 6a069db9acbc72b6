"""TuneBridge command line interface.

serve     run the local audio proxy until interrupted
resolve   resolve a track id and print its local proxy URL
cache     resolve, then pull the whole track into the in-memory cache
download  resolve and save a track to disk
"""

from __future__ import annotations

import argparse
import logging
import time

from tunebridge.config import CONFIG_FILE, ConfigManager
from tunebridge.errors import StreamError
from tunebridge.logging_setup import configure_logging
from tunebridge.service import StreamService

LOG = logging.getLogger("tunebridge")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tunebridge")
    ap.add_argument("--config", default=CONFIG_FILE, help="Path to config.json (default: next to the entry script).")
    ap.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the local audio proxy.")

    p = sub.add_parser("resolve", help="Resolve a track id to a local proxy URL.")
    p.add_argument("track_id")
    p.add_argument("--quality", choices=["very_high", "high", "normal"], default=None)
    p.add_argument("--serve", action="store_true", help="Keep the proxy running after resolving.")

    p = sub.add_parser("cache", help="Resolve a track and cache its audio in memory.")
    p.add_argument("track_id")

    p = sub.add_parser("download", help="Resolve a track and write it to disk.")
    p.add_argument("track_id")
    p.add_argument("--title", required=True)
    p.add_argument("--artist", required=True)
    p.add_argument("--dest", default=None, help="Base directory (default: Music, then Downloads).")
    p.add_argument("--quality", choices=["very_high", "high", "normal"], default=None)
    return ap


def _serve_forever() -> None:
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass


def run(args: argparse.Namespace, service: StreamService) -> int:
    if args.command == "serve":
        service.start()
        print(service.proxy.base_url)
        _serve_forever()
        return 0

    if args.command == "resolve":
        if args.serve:
            service.start()
        print(service.resolve_stream(args.track_id, args.quality))
        if args.serve:
            _serve_forever()
        return 0

    if args.command == "cache":
        service.resolve_stream(args.track_id)
        service.cache_audio(args.track_id)
        print(f"cached={service.get_cached_audio(args.track_id)}")
        return 0

    if args.command == "download":
        print(service.download_track(args.track_id, args.title, args.artist, args.dest, args.quality))
        return 0

    return 2


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = ConfigManager(args.config)
    configure_logging(args.log_level or config.get("log_level", "INFO"))

    service = StreamService(config.config)
    try:
        return run(args, service)
    except (StreamError, ValueError) as e:
        LOG.error("%s", e)
        return 1
    except OSError as e:
        LOG.error("I/O error: %s", e)
        return 1
    finally:
        service.stop()
