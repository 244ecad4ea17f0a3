"""
hwinventory Collector Functions and Command Line

Ties the probes, the fan-out collector and the export pipeline together.
Every collector kind shares the same surface:

    hwinventory <kind> [--computer-name a,b] [--export-format CSV|JSON|TXT|XML|HTML]
                       [--export-path FILE_OR_DIR] [--raw]

Without an export format the records are printed as JSON. With one, the
records are written to a file and its path is printed. ``--raw`` returns the
unprocessed platform facts and never exports.

Usage:
    hwinventory disk --computer-name web01,web02 --export-format CSV
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .collector import FanOutCollector
from .errors import InvalidFormat, InventoryError
from .exporter import ExportFormat, ExportPipeline
from .formats import json_default
from .probes import PROBES, BaseHostProbe, get_probe
from .records import CollectionResult, RecordSet
from .utils import RuntimeSettings, get_default_config, load_config, setup_logging

# Module logger
logger = logging.getLogger("hwinventory.inventory")

# Formats that carry the installed-software header line
ANNOTATED_FORMATS = (ExportFormat.CSV, ExportFormat.JSON, ExportFormat.TXT)


def software_annotation(targets: Iterable[str]):
    """Header line naming the queried targets, for text-like formats only."""
    names = ", ".join(str(t) for t in targets)

    def annotate(fmt: ExportFormat) -> Optional[str]:
        if fmt in ANNOTATED_FORMATS:
            return f"# Installed software on: {names}"
        return None

    return annotate


class InventoryCollector:
    """
    Runs one collector kind end to end.

    Holds the resolved configuration, the injected runtime settings and the
    two core components so a caller can collect several kinds in a row
    without re-reading configuration.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        settings: Optional[RuntimeSettings] = None,
        collector: Optional[FanOutCollector] = None,
        pipeline: Optional[ExportPipeline] = None,
    ):
        self.config = config or get_default_config()
        self.settings = settings or RuntimeSettings.from_config(self.config)
        self.collector = collector or FanOutCollector(self.settings)
        self.pipeline = pipeline or ExportPipeline(self.settings)
        self.last_result: Optional[CollectionResult] = None

    def run(
        self,
        kind: Union[str, BaseHostProbe],
        computer_names: Union[str, Iterable[str], None] = None,
        export_format: Optional[str] = None,
        export_path: Optional[str] = None,
        raw: bool = False,
    ) -> Union[RecordSet, Path]:
        """
        Collect ``kind`` from every computer and optionally export it.

        The format is validated before any host is queried, so a typo never
        costs a full fan-out.

        Returns:
            The collected RecordSet, or the export path when exporting

        Raises:
            InvalidFormat, PathResolutionError, WriteError: From the export step
        """
        probe = kind if isinstance(kind, BaseHostProbe) else get_probe(kind, self.config)

        if export_format is not None and not raw:
            ExportFormat.parse(export_format)

        result = self.collector.collect(computer_names, probe, raw=raw)
        self.last_result = result

        if result.all_failed:
            logger.error(f"{probe.kind}: every target failed")

        if raw or export_format is None:
            return result.records

        annotation = software_annotation(result.targets) if probe.kind == "software" else None
        return self.pipeline.export(
            result.records,
            export_format,
            export_path,
            entity_name=probe.entity_name,
            annotation=annotation,
        )


def _run_kind(
    kind: str,
    computer_names: Union[str, Iterable[str], None],
    export_format: Optional[str],
    export_path: Optional[str],
    raw: bool,
    config: Optional[Dict[str, Any]],
) -> Union[RecordSet, Path]:
    return InventoryCollector(config).run(kind, computer_names, export_format, export_path, raw)


def get_motherboard_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """Motherboard manufacturer, product, version and serial number."""
    return _run_kind("motherboard", computer_names, export_format, export_path, raw, config)


def get_disk_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """One record per mounted volume with capacity and usage."""
    return _run_kind("disk", computer_names, export_format, export_path, raw, config)


def get_os_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """Operating system name, version, architecture and last boot time."""
    return _run_kind("os", computer_names, export_format, export_path, raw, config)


def get_cpu_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """Processor model, core counts and clock speeds."""
    return _run_kind("cpu", computer_names, export_format, export_path, raw, config)


def get_bios_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """Firmware vendor, version and release date."""
    return _run_kind("bios", computer_names, export_format, export_path, raw, config)


def get_gpu_info(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """One record per display adapter."""
    return _run_kind("gpu", computer_names, export_format, export_path, raw, config)


def get_installed_software(computer_names=None, export_format=None, export_path=None, raw=False, config=None):
    """Installed packages, deduplicated by name and sorted."""
    return _run_kind("software", computer_names, export_format, export_path, raw, config)


# =============================================================================
# Command Line
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hwinventory",
        description="hwinventory - Collect hardware and software inventory from local and remote hosts"
    )
    parser.add_argument(
        "kind",
        choices=sorted(PROBES),
        help="What to collect"
    )
    parser.add_argument(
        "--computer-name",
        type=str,
        default=None,
        help="Comma separated hosts to query (default: this host)"
    )
    parser.add_argument(
        "--export-format",
        type=str,
        default=None,
        help="Write results to a file: CSV, JSON, TXT, XML or HTML"
    )
    parser.add_argument(
        "--export-path",
        type=str,
        default=None,
        help="Export file or directory (default: system temp directory)"
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Return unprocessed platform facts; disables export"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the hwinventory command."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.verbose:
        config["debug"]["verbose"] = True
    setup_logging(config)

    inventory = InventoryCollector(config)

    try:
        result = inventory.run(
            args.kind,
            computer_names=args.computer_name,
            export_format=args.export_format,
            export_path=args.export_path,
            raw=args.raw,
        )
    except InvalidFormat as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (InventoryError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if isinstance(result, Path):
        print(result)
    else:
        json.dump(result.to_list(), sys.stdout, indent=2, default=json_default)
        sys.stdout.write("\n")

    collection = inventory.last_result
    if collection is not None:
        for failure in collection.failures:
            print(f"Failed: {failure.target}: {failure.reason}", file=sys.stderr)
        if collection.all_failed:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
