#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import logging
import threading

import schedule

from log.result_logger import ResultLogger

logger = logging.getLogger(__name__)


class CheckEngine:
    """ Run checks once or periodically and log their results."""

    def __init__(self, config):
        self.checks = []
        self.disabled_checks = []
        self.config = config
        self.period = config.getint('Setting', 'period', fallback=60)
        log_file_path = config.get('Setting', 'log_file_path', fallback=None)
        self.result_logger = ResultLogger(log_file_path) if log_file_path else None
        self.scheduler = schedule.Scheduler()

    def add_check(self, check_class):
        check_name = check_class.__name__.lower()
        enabled = self.config.getboolean('Setting', check_name, fallback=True)
        if enabled:
            self.checks.append(check_class(self.config))
        else:
            logger.info("check %s is disabled", check_name)
            self.disabled_checks.append(check_class)

    def run_checks(self, print_output=False):
        results = []
        for check in self.checks:
            result = check.run()
            if self.result_logger:
                self.result_logger.log_result(result)
            if print_output:
                print(result, flush=True)
            results.append(result)
        return results

    def run_periodically(self, stop_event=None, print_output=True):
        """Run every check each ``period`` seconds until ``stop_event``."""
        stop_event = stop_event or threading.Event()
        self.scheduler.every(self.period).seconds.do(self.run_checks,
                                                     print_output=print_output)
        # first run right away, then on schedule
        self.scheduler.run_all()
        while not stop_event.is_set():
            self.scheduler.run_pending()
            stop_event.wait(1)
        self.scheduler.clear()

    def close(self):
        if self.result_logger:
            self.result_logger.close()
