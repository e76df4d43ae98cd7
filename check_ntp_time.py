#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import argparse
import sys

from checks.ntp_time import NTPTimeCheck
from core.config import ConfigError, ConfigGenerator, load_config
from core.engine import CheckEngine
from core.states import State
from core.thresholds import ThresholdError
from log.result_logger import setup_logging


class PluginArgumentParser(argparse.ArgumentParser):
    """ Usage errors exit with the UNKNOWN state."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(State.UNKNOWN, f"{self.prog}: error: {message}\n")


def build_parser():
    parser = PluginArgumentParser(
        prog="check_ntp_time",
        description="This plugin checks the clock offset between the local "
        "host and a remote NTP server.",
        epilog="Example: check_ntp_time -H ntpserv -w 0.5 -c 1")
    parser.add_argument("-H", "--hostname", help="Host name or address")
    parser.add_argument("-p", "--port", help="Port number (default: 123)")
    family = parser.add_mutually_exclusive_group()
    family.add_argument("-4", "--use-ipv4",
                        dest="address_family",
                        action="store_const",
                        const="ipv4",
                        help="Use IPv4 connection")
    family.add_argument("-6", "--use-ipv6",
                        dest="address_family",
                        action="store_const",
                        const="ipv6",
                        help="Use IPv6 connection")
    parser.add_argument("-q", "--quiet",
                        action="store_true",
                        default=None,
                        help="Returns CRITICAL instead of UNKNOWN if "
                        "offset cannot be found")
    parser.add_argument("-w", "--warning",
                        help="Offset to result in warning status (seconds)")
    parser.add_argument("-c", "--critical",
                        help="Offset to result in critical status (seconds)")
    parser.add_argument("-o", "--time-offset",
                        type=int,
                        help="Expected offset of the ntp server relative to "
                        "local server (seconds)")
    parser.add_argument("-t", "--timeout",
                        type=int,
                        help="Seconds before connection times out "
                        "(default: 10)")
    parser.add_argument("-v", "--verbose",
                        action="count",
                        default=0,
                        help="Show details for command-line debugging")
    parser.add_argument("-C", "--config", help="Path to the configuration file")
    parser.add_argument("-g", "--generate-config",
                        action="store_true",
                        help="Generate configuration file")
    parser.add_argument("--watch",
                        action="store_true",
                        help="Run the check every period seconds")
    return parser


def overrides_from_args(args):
    return {
        'Ntp': {
            'hostname': args.hostname,
            'port': args.port,
            'warning': args.warning,
            'critical': args.critical,
            'timeout': args.timeout,
            'time_offset': args.time_offset,
            'address_family': args.address_family,
            'unknown_as_critical': args.quiet,
        }
    }


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.generate_config:
        if not args.config:
            parser.error(
                "Configuration file path is required to generate configuration.")
        config_gen = ConfigGenerator(args.config)
        config_gen.write_config_file(config_gen.generate_config())
        print(f"Configuration generated successfully using {args.config}")
        return State.OK

    try:
        config = load_config(args.config, overrides_from_args(args))
        engine = CheckEngine(config)
        engine.add_check(NTPTimeCheck)
    except (ConfigError, ThresholdError) as error:
        parser.error(str(error))

    try:
        if args.watch:
            engine.run_periodically()
            return State.OK
        results = engine.run_checks(print_output=True)
    except KeyboardInterrupt:
        return State.UNKNOWN
    finally:
        engine.close()
    if not results:
        print("NTP UNKNOWN: check is disabled")
        return State.UNKNOWN
    return max(result.state for result in results)


if __name__ == "__main__":
    sys.exit(main())
