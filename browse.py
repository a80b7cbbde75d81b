#!/usr/bin/env python3
"""
browse.py - Command-line catalog browser

Lists films (full catalog or search), festivals near a position, and the
user's favorites / watched / to-watch memberships. Never issues credentials:
`login` only stores a token obtained elsewhere.

Examples:
  python browse.py films
  python browse.py films --search "la haine"
  python browse.py festivals --near "48.8566, 2.3522"
  python browse.py festivals --near "48.8566, 2.3522" --select 3
  python browse.py lists
  python browse.py toggle favorites 64b7f0c2e4
  python browse.py login --user-id 64a0... --token eyJhbGci...
  python browse.py logout
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path

from cinefest.browser import CatalogBrowser
from cinefest.config import load_config
from cinefest.enrichment import CatalogQuery
from cinefest.errors import ConfigError
from cinefest.geolocation import LocationProvider, parse_coordinate
from cinefest.membership import ToggleStatus
from cinefest.models import MembershipKind
from cinefest.session import Session, SessionStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

FLAG_LETTERS = {
    MembershipKind.FAVORITES: 'F',
    MembershipKind.WATCHED: 'W',
    MembershipKind.TO_WATCH: 'T',
}


class TerminalViewport:
    """Viewport sink that reports where the map would fly to"""

    def center_on(self, coordinate, zoom_hint):
        print(f"  [map] centered on {coordinate.lat:.5f}, {coordinate.lon:.5f} (zoom {zoom_hint})")


def _auth_required():
    print("Login required: run `python browse.py login --user-id ID --token TOKEN`")


def _flags(flags) -> str:
    return ''.join(FLAG_LETTERS[kind] if flags[kind] else '-' for kind in MembershipKind)


def print_films(browser: CatalogBrowser):
    rows = browser.rows()
    if not rows:
        print("No films.")
        return
    for item, flags in rows:
        year = f" ({item.year})" if item.year else ''
        director = f" — {item.director}" if item.director else ''
        poster = item.poster_url() or 'no poster'
        print(f"[{_flags(flags)}] {item.id}  {item.title}{year}{director}  <{poster}>")


def print_festivals(browser: CatalogBrowser):
    items = browser.selection.items
    if not items:
        print("No festivals.")
        return
    for index, item in enumerate(items):
        marker = '>' if index == browser.selection.selected_index else ' '
        details = ' | '.join(part for part in [item.full_address(), item.period, item.discipline] if part)
        print(f"{marker} {index:3d}  {item.title}  {details}")


def print_stats(browser: CatalogBrowser):
    print("\n" + "=" * 60)
    print("ENRICHMENT STATISTICS")
    print("=" * 60)
    for stat, count in sorted(browser.pipeline.stats.items()):
        print(f"  {stat:30s}: {count:4d}")

    cache_stats = getattr(browser.metadata_source, 'get_cache_stats', None)
    if cache_stats:
        stats = cache_stats()
        print(f"\nTMDb cache: {stats['cache_size']} entries, "
              f"{stats['hits']} hits ({stats['hit_rate']:.0f}% hit rate)")
    print("=" * 60)


async def run(args, config) -> int:
    session_store = SessionStore(Path(config['session_path']))

    if args.command == 'login':
        session_store.save(Session(user_id=args.user_id, token=args.token))
        print(f"Session stored for user {args.user_id}")
        return 0

    location_provider = None
    if getattr(args, 'near', None):
        coordinate = parse_coordinate(args.near)
        if coordinate is None:
            logger.error(f"Invalid coordinate: {args.near!r} (expected 'lat, lon')")
            return 1
        location_provider = LocationProvider(override=coordinate)

    browser = CatalogBrowser(
        config,
        session_store=session_store,
        viewport=TerminalViewport(),
        on_auth_required=_auth_required,
        on_notice=lambda message: print(f"! {message}"),
        location_provider=location_provider,
    )

    if args.command == 'logout':
        browser.logout()
        print("Logged out.")
        return 0

    await browser.start()

    if args.command == 'films':
        query = CatalogQuery.search(args.search) if args.search else CatalogQuery.all()
        result = await browser.load(query)
        print_films(browser)
        print_stats(browser)
        return 0 if result.ok else 1

    if args.command == 'festivals':
        result = await browser.load_nearby()
        if result.ok and args.select is not None:
            try:
                browser.selection.select_from_list(args.select)
            except IndexError as e:
                logger.error(str(e))
                return 1
        print_festivals(browser)
        return 0 if result.ok else 1

    if args.command == 'lists':
        if not browser.memberships.authenticated:
            _auth_required()
            return 1
        for kind in MembershipKind:
            ids = sorted(browser.memberships.sets[kind])
            print(f"{kind.value:10s} ({len(ids)}): {', '.join(ids) if ids else '-'}")
        return 0

    if args.command == 'toggle':
        kind = MembershipKind.parse(args.kind)
        outcome = await browser.toggle_membership(kind, args.item_id)
        if outcome.status is ToggleStatus.CONFIRMED:
            state = 'added to' if outcome.member else 'removed from'
            print(f"{outcome.item_id} {state} {kind.value}")
            return 0
        return 1

    return 1


def main():
    parser = argparse.ArgumentParser(
        description='Browse films and festivals, manage favorites / watched / to-watch lists',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split('Examples:', 1)[1] if __doc__ else None,
    )
    parser.add_argument('--config', type=Path, default=Path('config.yaml'),
                        help='Configuration file (default: config.yaml)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    films = subparsers.add_parser('films', help='List the film catalog')
    films.add_argument('--search', '-s', help='Free-text search instead of the full catalog')

    festivals = subparsers.add_parser('festivals', help='List festivals nearest to a position')
    festivals.add_argument('--near', help="'lat, lon' (default: config location, then IP geolocation)")
    festivals.add_argument('--select', type=int, help='Select the festival at this index')

    subparsers.add_parser('lists', help='Show membership lists')

    toggle = subparsers.add_parser('toggle', help='Toggle an item in a membership list')
    toggle.add_argument('kind', choices=['favorites', 'watched', 'to-watch'],
                        help='Membership list')
    toggle.add_argument('item_id', help='Catalog item identifier')

    login = subparsers.add_parser('login', help='Store an externally issued session token')
    login.add_argument('--user-id', required=True)
    login.add_argument('--token', required=True)

    subparsers.add_parser('logout', help='Forget the stored session token')

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, str(config['log_level']).upper(), logging.INFO)
    logging.getLogger().setLevel(level)

    return asyncio.run(run(args, config))


if __name__ == '__main__':
    sys.exit(main())
