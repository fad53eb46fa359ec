"""FastCS FT232R EPICS server entry point.

Launches a FastCS server that exposes the FT232R CBUS pins via EPICS PVs.

Usage:
    python -m fastcs_ft232r --device loc://0x1234 --pv-prefix BL99I-EA-FTDI-01:
"""

from argparse import ArgumentParser, Namespace
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .cli import add_logging_options, configure_logging
from .ft232r_controller import Ft232RController

__all__ = ["main"]

GUI_TITLE = "FT232R CBUS GPIO"


def build_parser() -> ArgumentParser:
    """Argument parser for the EPICS server."""
    parser = ArgumentParser(description="FastCS FT232R EPICS Server")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    parser.add_argument(
        "--device",
        type=str,
        required=True,
        help="Device URL (e.g., loc://0x1234, sn://A12345, sim://bench)",
    )

    epics = parser.add_argument_group("EPICS")
    epics.add_argument(
        "--pv-prefix",
        type=str,
        default="FT232R",
        help="EPICS PV prefix (default: FT232R)",
    )
    epics.add_argument(
        "--gui",
        type=Path,
        default=None,
        help="Generate Phoebus screen file (e.g., ft232r.bob)",
    )
    epics.add_argument(
        "--gui-title",
        type=str,
        default=GUI_TITLE,
        help=f"Title of the generated screen (default: {GUI_TITLE})",
    )

    add_logging_options(parser)
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Run without the interactive shell",
    )
    return parser


def _epics_transport(parsed_args: Namespace):
    from fastcs.transports.epics.ca import EpicsCATransport
    from fastcs.transports.epics.options import EpicsGUIOptions, EpicsIOCOptions

    gui_options = None
    if parsed_args.gui:
        gui_options = EpicsGUIOptions(
            output_path=parsed_args.gui, title=parsed_args.gui_title
        )
    return EpicsCATransport(
        gui=gui_options,
        epicsca=EpicsIOCOptions(pv_prefix=parsed_args.pv_prefix),
    )


def main(args: Sequence[str] | None = None) -> None:
    """Launch the FastCS FT232R EPICS server."""
    parsed_args = build_parser().parse_args(args)
    configure_logging(parsed_args.log_level)

    try:
        from fastcs.launch import FastCS

        transport = _epics_transport(parsed_args)
    except ImportError as e:
        print(f"Error: FastCS EPICS transport not available: {e}")
        print("Please install with: pip install 'fastcs-ft232r[epics]'")
        return

    controller = Ft232RController(url=parsed_args.device)
    FastCS(controller, [transport]).run(interactive=not parsed_args.no_interactive)


if __name__ == "__main__":
    main()
