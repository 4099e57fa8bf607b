#!/usr/bin/env python3
"""
Output Formatting Module for the Storefront CLI

Provides table, JSON and YAML rendering of command results.
"""

import json
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import click
import yaml
from tabulate import tabulate


OUTPUT_FORMATS = ['table', 'json', 'yaml']


class OutputFormatter:
    """Universal output formatter for CLI results."""

    def __init__(self, format_type: str = 'table', color_output: bool = True):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
            color_output: Enable colored output when writing to a terminal
        """
        if format_type not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {format_type}")

        self.format_type = format_type
        self.color_output = color_output and sys.stdout.isatty()

    def format(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data according to the configured format type."""
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        return self.format_table(data, headers)

    def format_json(self, data: Any) -> str:
        return json.dumps(data, indent=2, default=self._json_encoder)

    def format_yaml(self, data: Any) -> str:
        # Round-trip through JSON so enums and datetimes become plain scalars
        plain = json.loads(self.format_json(data))
        return yaml.safe_dump(plain, default_flow_style=False, sort_keys=False)

    def format_table(self, data: Any, headers: Optional[List[str]] = None) -> str:
        if isinstance(data, dict):
            return self._format_dict_table(data)
        elif isinstance(data, list):
            return self._format_list_table(data, headers)
        return str(data)

    def _format_dict_table(self, data: Dict[str, Any]) -> str:
        """Format dictionary as a key-value table."""
        if not data:
            return "No data available"

        table_data = [[self._colorize(str(k), 'key'), self._format_value(v)]
                      for k, v in data.items()]
        return tabulate(table_data, tablefmt='plain')

    def _format_list_table(self, data: List[Any], headers: Optional[List[str]] = None) -> str:
        """Format list as a table."""
        if not data:
            return "No data available"

        if isinstance(data[0], dict):
            if headers is None:
                headers = list(data[0].keys())

            table_data = [
                [self._format_value(item.get(h, '')) for h in headers]
                for item in data
            ]
            colored_headers = [self._colorize(h, 'header') for h in headers]
            return tabulate(table_data, headers=colored_headers, tablefmt='simple')

        return '\n'.join(str(item) for item in data)

    def _format_value(self, value: Any) -> str:
        """Format individual value for display."""
        if value is None:
            return self._colorize('null', 'null')
        elif isinstance(value, bool):
            return self._colorize('true' if value else 'false', 'bool')
        elif isinstance(value, Enum):
            return str(value.value)
        elif isinstance(value, (int, float)):
            return self._colorize(str(value), 'number')
        elif isinstance(value, datetime):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        elif isinstance(value, dict):
            return ', '.join(f"{k}={self._format_value(v)}" for k, v in value.items())
        elif isinstance(value, list):
            return ', '.join(str(item) for item in value) if value else '-'

        val_str = str(value)
        if len(val_str) > 100:
            val_str = val_str[:97] + '...'
        return val_str

    def _colorize(self, text: str, color_type: str) -> str:
        if not self.color_output:
            return text

        styles = {
            'header': {'fg': 'blue', 'bold': True},
            'key': {'fg': 'cyan', 'bold': True},
            'number': {'fg': 'yellow'},
            'bool': {'fg': 'magenta'},
            'null': {'fg': 'bright_black'},
        }
        return click.style(text, **styles.get(color_type, {}))

    def _json_encoder(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, 'model_dump'):
            return obj.model_dump(mode='json')
        return str(obj)


def format_output(data: Any, format_type: str = 'table', headers: Optional[List[str]] = None) -> str:
    """Convenience wrapper around OutputFormatter."""
    return OutputFormatter(format_type).format(data, headers)
