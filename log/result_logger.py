#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import socket
import logging
import sys

DIAGNOSTIC_FORMAT = '%(levelname)s %(name)s: %(message)s'

_diagnostic_handler = None


def setup_logging(verbosity=0, stream=None):
    """Send diagnostics to stderr; -v shows INFO, -vv and more DEBUG."""
    global _diagnostic_handler
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    root = logging.getLogger()
    if _diagnostic_handler is not None:
        root.removeHandler(_diagnostic_handler)
    _diagnostic_handler = logging.StreamHandler(stream or sys.stderr)
    _diagnostic_handler.setFormatter(logging.Formatter(DIAGNOSTIC_FORMAT))
    root.addHandler(_diagnostic_handler)
    root.setLevel(level)
    return _diagnostic_handler


class ResultLogger:
    """ Log class for check results."""

    def __init__(self, log_file):
        self.log_file = log_file
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        formatter = logging.Formatter(
            '%(asctime)s - %(hostname)s - %(message)s')
        self.file_handler = logging.FileHandler(log_file, encoding="utf-8")
        self.file_handler.setFormatter(formatter)
        self.logger.addHandler(self.file_handler)

    def log_result(self, result):
        hostname = socket.gethostname()
        self.logger.info(str(result), extra={'hostname': hostname})

    def close(self):
        self.logger.removeHandler(self.file_handler)
        self.file_handler.close()
