import argparse
import logging
import sys

from .errors import GMCError
from .find import DEFAULT_SPEED, find_ports, resolve_port
from .utils import setup_logging, start_of_today

EXIT_USAGE = 3
EXIT_PORT = 4


class _Parser(argparse.ArgumentParser):
    """Usage errors exit with EXIT_USAGE so they never collide with device exit codes."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--alldata",
        action="store_true",
        help="Keep every decoded reading (default: only today's)",
    )
    parser.add_argument(
        "--output",
        "-o",
        default="/tmp/gmc.png",
        help="PNG plot path (default: /tmp/gmc.png). Pass an empty string to skip plotting.",
    )
    parser.add_argument(
        "--csv", default=None, help="Optional CSV file for the decoded readings"
    )


def _report(log, ns) -> int:
    """Filter, print statistics and write outputs. Returns the exit status."""
    from .stats import format_summary, summarize

    if not ns.alldata:
        log = log.since(start_of_today())

    if len(log) == 0:
        print("!--no data available", file=sys.stderr)
        return 0

    for line in format_summary(summarize(log)):
        print(line, file=sys.stderr)

    if ns.csv:
        log.to_dataframe().to_csv(ns.csv, index=False)
        print(f"Wrote {len(log)} readings to {ns.csv}.")

    if ns.output:
        from .view import plot_log

        plot_log(log, ns.output, verbose=True)
    return 0


def main(argv=None):
    parser = _Parser(prog="opengmc", description="GMC Geiger counter log utilities")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log every device exchange"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # find subcommand
    p_find = subparsers.add_parser("find", help="List serial ports, GMC candidates first")

    def handle_find(ns):
        find_ports(verbose=True)
        return 0

    p_find.set_defaults(func=handle_find)

    # download subcommand
    p_dl = subparsers.add_parser(
        "download", help="Read the whole log from a connected counter and decode it"
    )
    p_dl.add_argument(
        "--port", required=False, help="Serial device (e.g. /dev/ttyUSB0). Omit to autodiscover."
    )
    p_dl.add_argument(
        "--speed",
        type=int,
        default=DEFAULT_SPEED,
        help=f"Baud rate (default: {DEFAULT_SPEED})",
    )
    p_dl.add_argument(
        "--raw", default=None, help="Optional file to save the raw 64k flash buffer"
    )
    _add_output_args(p_dl)

    def handle_download(ns):
        from .download import download

        if ns.speed <= 0:
            parser.error("--speed must be positive")

        port = ns.port
        if not port:
            try:
                port = resolve_port(verbose=False)
            except ValueError as e:
                print(f"!--{e}", file=sys.stderr)
                return EXIT_PORT
            print(f"Autodiscovered device: {port}")

        result = download(port=port, speed=ns.speed, rawfile=ns.raw, verbose=True)
        return _report(result.log, ns)

    p_dl.set_defaults(func=handle_download)

    # decode subcommand
    p_dec = subparsers.add_parser(
        "decode", help="Decode a raw flash buffer previously saved with --raw"
    )
    p_dec.add_argument("rawfile", help="Raw buffer file")
    _add_output_args(p_dec)

    def handle_decode(ns):
        from .decode import decode_buffer
        from .log import assemble
        from .utils import load_raw

        raw = load_raw(ns.rawfile)
        if not raw:
            print(f"!--{ns.rawfile} is empty", file=sys.stderr)
            return EXIT_USAGE
        return _report(assemble(decode_buffer(raw)), ns)

    p_dec.set_defaults(func=handle_decode)

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("Interrupted.")
        return 130
    except GMCError as e:
        print(f"!--{e}", file=sys.stderr)
        return e.exit_code
    except OSError as e:
        # Port missing, permission denied or unreadable file
        print(f"!--{e}", file=sys.stderr)
        return EXIT_PORT


if __name__ == "__main__":
    sys.exit(main())
