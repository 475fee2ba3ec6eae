from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Callable, Dict, Optional

from .config import load_config
from .context import RunContext
from .errors import InstallerError
from .lib.command import CommandRunner
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .state_store import new_record, save_record
from .steps import (
    ConfigureSystemStep,
    CreateDatasetsStep,
    CreatePoolsStep,
    InstallBaseStep,
    PartitionStep,
    PrepareHostStep,
    PreflightStep,
    ResolveDiskStep,
    TeardownStep,
    ZfsCacheStep,
)

logger = logging.getLogger(__name__)


DEFAULT_RECORD_PATH = PATHS.record_default


def build_steps(*, prepare_host: bool = False):
    steps = [PrepareHostStep()] if prepare_host else []
    return steps + [
        PreflightStep(),
        ResolveDiskStep(),
        PartitionStep(),
        CreatePoolsStep(),
        CreateDatasetsStep(),
        InstallBaseStep(),
        ConfigureSystemStep(),
        ZfsCacheStep(),
        TeardownStep(),
    ]


def run(
    *,
    config_path: str,
    record_path: str = DEFAULT_RECORD_PATH,
    runner: Optional[CommandRunner] = None,
    confirm: Callable[[str], str] = input,
    steps=None,
    stop_after: Optional[str] = None,
    prepare_host: bool = False,
) -> Dict[str, Any]:
    """Provision the target disk. Returns the run record."""

    cfg = load_config(config_path)
    ctx = RunContext(
        config=cfg,
        runner=runner or CommandRunner(),
        confirm=confirm,
        record=new_record(cfg.redacted()),
    )

    try:
        run_pipeline(
            ctx=ctx,
            steps=steps if steps is not None else build_steps(prepare_host=prepare_host),
            stop_after=stop_after,
        )
        logger.info("Debian installation completed successfully")
        return ctx.record
    finally:
        ctx.release()
        try:
            save_record(record_path, ctx.record)
        except OSError as e:
            # never mask the error that ended the run
            logger.warning("Could not write run record %s: %s", record_path, e)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="zfs-bootstrap",
        description="Install Debian onto an encrypted ZFS root on a single UEFI disk.",
    )
    p.add_argument("config", help="Path to the configuration file (KEY=value or YAML)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the installer log")
    p.add_argument("--record", default=DEFAULT_RECORD_PATH, help="Path to the run record (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Log commands and writes without executing them")
    p.add_argument(
        "--prepare-host",
        action="store_true",
        help="Install the host tools (debootstrap, zfsutils-linux, ...) before provisioning",
    )
    p.add_argument("--stop-after", default=None, help="Stop after step_id (e.g. 35_create_datasets)")
    p.add_argument("--verbose", action="store_true", help="Show command output on the console")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        run(
            config_path=args.config,
            record_path=args.record,
            runner=CommandRunner(dry_run=bool(args.dry_run)),
            stop_after=args.stop_after,
            prepare_host=bool(args.prepare_host),
        )
    except InstallerError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except (EOFError, KeyboardInterrupt):
        print("\nOperation canceled.", file=sys.stderr)
        return 1

    print("You can now reboot into the new system. Remember to change the root password after logging in.")
    return 0
