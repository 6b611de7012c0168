#!/usr/bin/env python3
"""
Command line entry point of site_fetch.

Commands:
  fetch URL   Fetch one URL (following same-host redirects) and print the pages
  config      Show the effective configuration

Common options:
  --config PATH       YAML/JSON config (FetcherConfig defaults if omitted)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stdout only if omitted)
  --log-format FORMAT Logging format string

fetch options:
  --referer URL       Referer header for the first request
  --depth INT         Crawl depth recorded on the pages
  --json PATH         Save the page summaries to a JSON file
  --store PATH        Snapshot the pages into a KeyedStore file
  --pretty            Indent JSON output

Example:
  site_fetch --config configs/default.yaml fetch https://example.com --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from site_fetch import __version__
from site_fetch.config import FetcherConfig, load_config
from site_fetch.engine import start_fetch
from site_fetch.logger import init_logging
from site_fetch.report import page_summary, render_json
from site_fetch.storage import KeyedStore

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='site_fetch, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML/JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stdout if omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """site_fetch command group."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path) if config_path else FetcherConfig()
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('fetch', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--referer', '-r', default=None, help='Referer header for the first request')
@click.option('--depth', '-d', type=click.IntRange(min=0), default=0, show_default=True,
              help='Crawl depth recorded on the pages')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save the page summaries to a JSON file'
)
@click.option(
    '--store', '-s', 'store_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Snapshot the fetched pages into this store file (replaced if present)'
)
@click.option('--pretty', is_flag=True, help='Indent JSON output (2 spaces)')
@click.pass_context
def fetch(ctx, url, referer, depth, json_output, store_path, pretty):
    """Fetch URL and report every page of its redirect chain."""
    cfg = ctx.obj['config']
    pages = asyncio.run(start_fetch(cfg, url, referer, depth))
    summaries = [page_summary(p) for p in pages]

    if store_path:
        try:
            with KeyedStore(store_path) as store:
                store.merge({p.url: p.to_snapshot() for p in pages})
            click.echo(f'Stored {len(pages)} page(s) in {store_path}')
        except Exception as e:
            print_error(f'Failed to store pages: {e}')

    if json_output:
        try:
            saved = render_json(summaries, json_output)
            click.echo(f'JSON report: {saved}')
        except Exception as e:
            print_error(f'Failed to save JSON: {e}')
    else:
        click.echo(json.dumps(summaries, ensure_ascii=False, indent=2 if pretty else None))

    if not pages[-1].fetched:
        ctx.exit(1)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
