import argparse
import asyncio
import sys
from typing import List, Optional

import httpx
import uvicorn

from .config import settings
from .groups import partition_sites
from .main import configure_logging, create_app
from .models import SiteConfig, SiteConfigError, StatusCategory
from .monitor import SiteMonitor
from .sites import load_site_config


async def check_once(config: SiteConfig, client: Optional[httpx.AsyncClient] = None) -> bool:
    """Probe every site once, print the grouped result, return True if all primaries are Online."""
    groups = partition_sites(config.sites, config.group_descriptions)
    http = client or httpx.AsyncClient()
    try:
        monitors = {s.url: SiteMonitor(s, http) for g in groups for s in g.sites}
        await asyncio.gather(*(m.probe() for m in monitors.values()))
    finally:
        if client is None:
            await http.aclose()

    all_up = True
    for g in groups:
        print(f"{g.title}" + (f" - {g.subtitle}" if g.subtitle else ""))
        for site in g.sites:
            mon = monitors[site.url]
            label = mon.status_label()
            marker = "  -" if site.is_mirror else "  *"
            line = f"{marker} {site.name:<30} {label.text:<16} {site.url}"
            if mon.observation.error:
                line += f"  ({mon.observation.error})"
            print(line)
            if not site.is_mirror and label.category is not StatusCategory.ONLINE:
                all_up = False
    return all_up


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mirrorpulse",
        description="Status dashboard for groups of primary and mirror sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mirrorpulse serve --sites res/sites.yaml --port 8000
  mirrorpulse check --sites res/sites.json
        """
    )
    parser.add_argument('--log-level', type=str, default=None, help='Logging level (default: MP_LOG_LEVEL)')
    sub = parser.add_subparsers(dest='command', required=True)

    serve = sub.add_parser('serve', help='Run the dashboard server')
    serve.add_argument('--sites', type=str, default=settings.SITES_PATH, help='Path to sites YAML/JSON file')
    serve.add_argument('--host', type=str, default=settings.HOST)
    serve.add_argument('--port', type=int, default=settings.PORT)

    check = sub.add_parser('check', help='Probe every site once and print the result')
    check.add_argument('--sites', type=str, default=settings.SITES_PATH, help='Path to sites YAML/JSON file')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_site_config(args.sites)
        if args.command == 'check':
            return 0 if asyncio.run(check_once(config)) else 1
        app = create_app(config=config, sites_path=args.sites)
    except SiteConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    uvicorn.run(app, host=args.host, port=args.port,
                log_level=(args.log_level or settings.LOG_LEVEL).lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
