#!/usr/bin/env python3
"""
Einlass CLI

Run files and folders through an upload queue from the command line:
admission, bounded-concurrency scheduling and a local copy transport.
"""

import asyncio
import logging
import sys
from typing import Dict, Optional, Tuple

import click

from . import __version__
from .config import QueueConfig, load_config, setup_logging
from .core.context import Context
from .core.errors import EinlassError
from .core.events import QueueEvent
from .core.status import FileStatus
from .transports import LocalCopyTransport

logger = logging.getLogger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with queue options')
@click.version_option(version=__version__, prog_name='Einlass')
@click.pass_context
def cli(ctx, verbose: bool, debug: bool, config_path: Optional[str]):
    """
    Einlass - admission and scheduling for upload queues

    Filter candidate files, queue them and upload them a few at a time.
    """
    if debug:
        setup_logging(QueueConfig(log_level='DEBUG'))
    elif verbose:
        setup_logging(QueueConfig(log_level='INFO', log_format='%(asctime)s - %(levelname)s - %(message)s'))
    else:
        # Production mode - only show warnings and errors
        setup_logging(QueueConfig(log_level='WARNING', log_format='%(levelname)s: %(message)s'))

    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


def _queue_options(threads, accept, size_limit, capacity, prevent_duplicate, single) -> Dict:
    """Command line flags as config overrides; unset flags keep file/env values"""
    return {
        'threads': threads,
        'accept': accept,
        'size_limit': size_limit,
        'queue_capacity': capacity,
        'prevent_duplicate': True if prevent_duplicate else None,
        'multiple': False if single else None,
    }


def _admission_options(func):
    func = click.option('--single', is_flag=True, help='Admit at most one file per batch')(func)
    func = click.option('--prevent-duplicate', is_flag=True,
                        help='Reject files already in the queue')(func)
    func = click.option('--capacity', type=int, help='Maximum number of queued files')(func)
    func = click.option('--size-limit', help='Maximum file size, e.g. 500k or 2m')(func)
    func = click.option('--accept', help='Accepted extensions, e.g. "jpg,png"')(func)
    return func


@cli.command()
@click.argument('sources', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--dest', '-d', required=True, type=click.Path(file_okay=False),
              help='Directory to upload into')
@click.option('--threads', '-t', type=int, help='Concurrent uploads')
@_admission_options
@click.pass_context
def upload(ctx, sources: Tuple[str, ...], dest: str, threads: Optional[int], accept, size_limit,
           capacity, prevent_duplicate, single):
    """Upload files and folders into DEST"""
    try:
        config = load_config(ctx.obj.get('config_path'), auto_pending=True,
                             **_queue_options(threads, accept, size_limit, capacity,
                                              prevent_duplicate, single))
    except EinlassError as e:
        click.echo(f"❌ {e.user_friendly_message}: {e.message}")
        sys.exit(2)

    failed = asyncio.run(_upload(sources, dest, config))
    if failed:
        sys.exit(1)


async def _upload(sources: Tuple[str, ...], dest: str, config: QueueConfig) -> int:
    """Run the whole pipeline; returns the number of files that did not upload"""
    context = Context(config, transport=LocalCopyTransport(dest))
    context.on(QueueEvent.FILE_FILTERED,
               lambda file, error: click.echo(f"   ⏭️  {file.name}: {error.reason}"))
    context.on(QueueEvent.UPLOAD_START, lambda: click.echo("⏳ Uploading..."))

    try:
        click.echo(f"📁 Collecting from {len(sources)} source(s)")
        result = context.get_directory_collector().collect_paths(sources)
        click.echo(f"   Admitted: {len(result.admitted)}, rejected: {len(result.rejected)}")

        await context.join()

        for file in context.stat.get_files():
            if file.status == FileStatus.COMPLETE:
                click.echo(f"   ✅ {file.name} -> {file.current_session.result}")
            elif file.status == FileStatus.ERROR:
                click.echo(f"   ❌ {file.name}: {file.error.message}")
    finally:
        await context.close()

    summary = context.stat.to_dict()
    click.echo(f"\n📊 Complete: {summary['complete']}, error: {summary['error']}, "
               f"interrupted: {summary['interrupt']}, total: {summary['total']}")
    logger.info(f"Upload run finished: {summary}")
    return summary['error'] + summary['interrupt']


@cli.command()
@click.argument('sources', nargs=-1, required=True, type=click.Path(exists=True))
@_admission_options
@click.pass_context
def check(ctx, sources: Tuple[str, ...], accept, size_limit, capacity, prevent_duplicate, single):
    """Run admission only and report which files would be queued"""
    try:
        config = load_config(ctx.obj.get('config_path'), auto_pending=False,
                             **_queue_options(None, accept, size_limit, capacity,
                                              prevent_duplicate, single))
    except EinlassError as e:
        click.echo(f"❌ {e.user_friendly_message}: {e.message}")
        sys.exit(2)

    context = Context(config)
    reasons = {}

    def remember(file, error):
        reasons[id(file)] = error.reason

    context.on(QueueEvent.FILE_FILTERED, remember)

    result = context.get_directory_collector().collect_paths(sources)
    for file in result.admitted:
        click.echo(f"✅ {file.name} ({file.size} bytes)")
    for file in result.rejected:
        click.echo(f"❌ {file.name}: {reasons.get(id(file), 'rejected')}")
    if result.stopped:
        click.echo("⚠️  Collection stopped early (queue full or single-file mode)")

    click.echo(f"\n📊 {len(result.admitted)} admitted, {len(result.rejected)} rejected")


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n⚠️  Interrupted by user")
        sys.exit(130)
    except Exception as e:
        click.echo(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
