# src/main.py — v2
"""CLI entry point — resolve page images and maintain the derived-image cache.

Usage:
    ragcurator thumbnail <page_id>
    ragcurator preview <page_id>
    ragcurator full <page_id>
    ragcurator prefetch <document_id>
    ragcurator sources <document_id>
    ragcurator cache-size
    ragcurator clear-cache [--namespace-only]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from ragcurator.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ragcurator",
        description=f"ragcurator v{__version__} - page image cache for RAG dataset curation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    for name, help_text, func in (
        ("thumbnail", "Resolve a page thumbnail", _cmd_thumbnail),
        ("preview", "Resolve a page preview", _cmd_preview),
        ("full", "Resolve a page at full resolution", _cmd_full),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("page_id", type=int, help="Page id")
        p.set_defaults(func=func, needs_workspace=True)

    p_prefetch = subparsers.add_parser(
        "prefetch", help="Generate missing thumbnails for a document",
    )
    p_prefetch.add_argument("document_id", type=int, help="Document id")
    p_prefetch.set_defaults(func=_cmd_prefetch, needs_workspace=True)

    p_sources = subparsers.add_parser(
        "sources", help="List page source files and chunk ids of a document",
    )
    p_sources.add_argument("document_id", type=int, help="Document id")
    p_sources.set_defaults(func=_cmd_sources, needs_workspace=True)

    p_source = subparsers.add_parser(
        "source", help="Show the file a document was ingested from",
    )
    p_source.add_argument("document_id", type=int, help="Document id")
    p_source.set_defaults(func=_cmd_source, needs_workspace=True)

    p_size = subparsers.add_parser("cache-size", help="Show total cache size")
    p_size.set_defaults(func=_cmd_cache_size, needs_workspace=False)

    p_clear = subparsers.add_parser("clear-cache", help="Clear cached images")
    p_clear.add_argument(
        "--namespace-only", action="store_true",
        help="Only clear the current workspace's namespace",
    )
    p_clear.set_defaults(func=_cmd_clear_cache, needs_workspace=False)

    return parser


async def _run(args: argparse.Namespace) -> int:
    """Build the service, open the workspace if needed, run the command."""
    from ragcurator.api.facade import ImageService
    from ragcurator.catalog.catalog_factory import create_catalog
    from ragcurator.config.settings import Settings

    settings = Settings()
    _setup_logging(settings, args.verbose)

    service = ImageService(settings)
    needs_workspace = args.needs_workspace or getattr(args, "namespace_only", False)
    if needs_workspace:
        service.connect(await create_catalog(settings))
    try:
        return await args.func(service, args)
    finally:
        await service.disconnect()


async def _cmd_thumbnail(service, args: argparse.Namespace) -> int:
    print(await service.resolve_thumbnail(args.page_id))
    return 0


async def _cmd_preview(service, args: argparse.Namespace) -> int:
    print(await service.resolve_preview(args.page_id))
    return 0


async def _cmd_full(service, args: argparse.Namespace) -> int:
    print(await service.resolve_full_image(args.page_id))
    return 0


async def _cmd_prefetch(service, args: argparse.Namespace) -> int:
    generated = await service.prefetch_thumbnails(args.document_id)
    print(f"Generated {generated} thumbnails")
    return 0


async def _cmd_sources(service, args: argparse.Namespace) -> int:
    for info in await service.page_sources(args.document_id):
        chunks = ",".join(str(c) for c in info.chunk_ids) or "-"
        print(f"{info.page_num:>5}  page={info.page_id}  chunks={chunks}  {info.source_path or '-'}")
    return 0


async def _cmd_source(service, args: argparse.Namespace) -> int:
    path = await service.document_source_path(args.document_id)
    if path is None:
        print(f"Document {args.document_id} has no source file", file=sys.stderr)
        return 1
    print(path)
    return 0


async def _cmd_cache_size(service, args: argparse.Namespace) -> int:
    print(_format_size(await service.cache_size_bytes()))
    return 0


async def _cmd_clear_cache(service, args: argparse.Namespace) -> int:
    if args.namespace_only:
        await service.clear_namespace_cache()
        print(f"Cleared cache namespace {service.namespace}")
    else:
        await service.clear_all_caches()
        print("Cleared all caches")
    return 0


def _format_size(size: int) -> str:
    """Human-readable byte count."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{size} B"
        value /= 1024
    return f"{size} B"


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from ragcurator.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
