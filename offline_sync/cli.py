"""
Command Line Interface

This module hosts the offline content service from a terminal: it syncs URLs,
checks and prints their offline copies, and summarises the offline store.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .core.config import DEFAULT_SETTINGS_NAME, load_config
from .core.errors import IndexLoadError, OfflineSyncError
from .core.logger import initialize_logging, shutdown_logging
from .core.notifications import NotificationSink, SyncProgress
from .core.service import OfflineContentService


class ConsoleSink(NotificationSink):
    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def progress(self, progress: SyncProgress) -> None:
        if progress.is_complete:
            print(f"[{progress.completed}/{progress.total}] {progress.current_item}", file=self.stream)
        else:
            print(f"[{progress.completed}/{progress.total}] Downloading: {progress.current_item}",
                  file=self.stream)


def _read_url_file(path: Path) -> list[str]:
    urls = []
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            urls.append(line)
    return urls


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='offline-sync',
        description='Keep a set of web pages available offline.',
    )
    parser.add_argument(
        '--data-dir',
        type=Path,
        default=Path('data'),
        help='Application data directory; content goes in <data-dir>/offline_content',
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help=f"JSON settings file (default: <data-dir>/{DEFAULT_SETTINGS_NAME})",
    )
    parser.add_argument('--log-dir', type=Path, default=None)
    parser.add_argument('-v', '--verbose', action='store_true')
    sub = parser.add_subparsers(dest='cmd', required=True)

    sync_p = sub.add_parser('sync', help='Download pages and store them offline')
    sync_p.add_argument('urls', nargs='*')
    sync_p.add_argument(
        '--from-file',
        type=Path,
        default=None,
        help="File with one URL per line ('#' starts a comment)",
    )
    sync_p.add_argument('--concurrency', type=int, default=None)
    sync_p.add_argument(
        '--error-report',
        type=Path,
        default=None,
        help='Write a report of per-URL failures to this path',
    )

    check_p = sub.add_parser('check', help='Report which URLs are available offline')
    check_p.add_argument('urls', nargs='+')

    show_p = sub.add_parser('show', help='Print the offline copy of a URL')
    show_p.add_argument('url')
    show_p.add_argument('--out', type=Path, default=None)

    sub.add_parser('stats', help='Summarise the offline store')
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config_path = args.config or (args.data_dir / DEFAULT_SETTINGS_NAME)
    try:
        config = load_config(str(config_path))
    except OfflineSyncError as e:
        print(str(e), file=sys.stderr)
        return 2

    if getattr(args, 'concurrency', None) is not None:
        if args.concurrency < 1:
            print('--concurrency must be at least 1', file=sys.stderr)
            return 2
        config.concurrency = args.concurrency

    log_dir = args.log_dir or Path(config.log_dir)
    initialize_logging(str(log_dir), 'DEBUG' if args.verbose else config.log_level)
    try:
        return _run(args, config)
    finally:
        shutdown_logging()


def _run(args: argparse.Namespace, config) -> int:
    service = OfflineContentService(args.data_dir, sink=ConsoleSink(), config=config)
    try:
        if args.cmd == 'sync':
            urls = list(args.urls)
            if args.from_file is not None:
                try:
                    urls.extend(_read_url_file(args.from_file))
                except OSError as e:
                    print(str(e), file=sys.stderr)
                    return 2
            if not urls:
                print('sync: no URLs given', file=sys.stderr)
                return 2
            try:
                service.download_and_store(urls)
            except OfflineSyncError as e:
                print(f"sync failed: {e}", file=sys.stderr)
                return 1
            finally:
                if args.error_report is not None:
                    service.engine.error_tracker.save_error_report(args.error_report)
            summary = service.engine.error_tracker.get_error_summary()
            print(f"sync: attempted={len(urls)} failed={summary['total_errors']}")
            return 0

        if args.cmd == 'check':
            for url, available in zip(args.urls, service.check_offline_availability(args.urls)):
                print(f"{'yes' if available else 'no'}\t{url}")
            return 0

        if args.cmd == 'show':
            try:
                content = service.get_offline_content_raw(args.url)
            except OfflineSyncError as e:
                print(str(e), file=sys.stderr)
                return 1
            if content is None:
                print(f"not available offline: {args.url}", file=sys.stderr)
                return 1
            if args.out is None:
                sys.stdout.write(content)
                return 0
            try:
                with open(args.out, 'w', encoding='utf-8', newline='') as f:
                    f.write(content)
            except OSError as e:
                print(f"show: cannot write {args.out}: {e}", file=sys.stderr)
                return 1
            return 0

        if args.cmd == 'stats':
            engine = service.engine
            try:
                entries = len(engine.index_store.load())
            except IndexLoadError as e:
                print(str(e), file=sys.stderr)
                entries = 0
            stats = engine.files.get_output_stats()
            print(
                'stats: '
                f"indexed={entries} "
                f"artifacts={stats['artifact_files']} "
                f"bytes={stats['total_size']} "
                f"dir={stats['offline_dir']}"
            )
            return 0
    finally:
        service.close()

    return 2
