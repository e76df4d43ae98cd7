#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import configparser

DEFAULT_TIMEOUT = 10


class ConfigError(ValueError):
    """ Invalid or incomplete configuration."""


def load_config(config_file=None, overrides=None):
    """Read the ini file (if any) and apply command line overrides.

    ``overrides`` maps section names to dicts of options; ``None`` values
    are left out so the file or the defaults apply.
    """
    config = configparser.ConfigParser()
    config.read_dict(ConfigGenerator.defaults())
    if config_file:
        if not config.read(config_file):
            raise ConfigError(f"Can not read configuration file {config_file}")
    for section, values in (overrides or {}).items():
        for key, value in values.items():
            if value is not None:
                config.set(section, key, str(value))
    return config


class ConfigGenerator:
    """ Generate configuration file."""

    def __init__(self, filename):
        self.filename = filename

    @staticmethod
    def defaults():
        return {
            'Setting': {
                'period': 60,
                'log_file_path': '',
                'ntptimecheck': True,
            },
            'Ntp': {
                'hostname': '',
                'port': 123,
                'warning': '60',
                'critical': '120',
                'timeout': DEFAULT_TIMEOUT,
                'time_offset': 0,
                'address_family': 'any',
                'unknown_as_critical': False,
                'samples': 4,
            },
        }

    def generate_config(self):
        config = ''
        for section, values in self.defaults().items():
            config += f"[{section}]\n"
            for key, value in values.items():
                config += f"{key} = {value}\n"
            config += "\n"
        return config

    def write_config_file(self, config):
        with open(self.filename, 'w', encoding="utf-8") as file:
            file.write(config)
