#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from glance import __version__
from glance.cli.output import ProgressBar, Spinner, make_console, print_summary
from glance.config.settings import GlanceConfig, load_prompt_template
from glance.errors import ConfigError, ProviderCloseError, ScanError
from glance.llm.factory import build_failover_client
from glance.llm.service import Generator
from glance.logging_setup import configure_logging
from glance.orchestrator import Orchestrator, RunReport

logger = logging.getLogger("glance.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glance",
        description="Generate a .glance.md summary for every directory in a tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("directory", help="Root directory to summarize")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate every summary, even if up to date",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument(
        "--prompt-file",
        metavar="PATH",
        help="Custom prompt template (default: ./prompt.txt, then built-in)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> GlanceConfig:
    """
    CLI flags over environment over defaults.

    Raises:
        ConfigError: On bad settings or missing credentials.
    """
    return (
        GlanceConfig.from_env()
        .with_target_dir(args.directory)
        .with_force(args.force)
        .with_verbose(args.verbose)
        .with_prompt_template(load_prompt_template(args.prompt_file))
        .validate()
    )


async def _run(config: GlanceConfig, console) -> RunReport:
    client = build_failover_client(config)
    generator = Generator(client, template=config.prompt_template, count_tokens=config.verbose)
    orchestrator = Orchestrator(config, generator)
    try:
        with Spinner(f"Scanning {config.target_dir}...", console=console):
            scan_result = orchestrator.scan()
        logger.debug("Found %d directories", len(scan_result))
        with ProgressBar(console=console) as progress:
            orchestrator.on_progress = progress
            return await orchestrator.process(scan_result)
    finally:
        try:
            await generator.close()
        except ProviderCloseError as e:
            logger.warning("%s", e)


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    console = make_console(stderr=True)
    configure_logging(verbose=args.verbose, console=console)

    try:
        config = load_config(args)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    try:
        report = asyncio.run(_run(config, console))
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    except ScanError as e:
        logger.error("Directory scan failed: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    print_summary(report, console=make_console())
    return 0


if __name__ == "__main__":
    sys.exit(main())
