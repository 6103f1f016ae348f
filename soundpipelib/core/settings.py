#!/usr/bin/env python3

import math
import os
from soundpipelib.core.errors import ConfigError

DEFAULT_DURATION_TOLERANCE = 3.0
DEFAULT_FILE_SCAN_PATTERN = "*.mkv"

ENV_DURATION_TOLERANCE = 'SOUNDPIPELINE_DURATION_TOLERANCE'
ENV_FILE_SCAN_PATTERN = 'SOUNDPIPELINE_FILE_SCAN_PATTERN'

#============================================

def parse_tolerance(raw_value, source: str) -> float:
	if isinstance(raw_value, bool):
		raise ConfigError(f"{source}: duration tolerance must be a number")
	try:
		value = float(raw_value)
	except (TypeError, ValueError):
		raise ConfigError(f"{source}: duration tolerance must be a number, got '{raw_value}'")
	if not math.isfinite(value) or value <= 0:
		raise ConfigError(f"{source}: duration tolerance must be positive, got '{raw_value}'")
	return value

#============================================

def parse_scan_pattern(raw_value, source: str) -> str:
	if not isinstance(raw_value, str) or raw_value.strip() == "":
		raise ConfigError(f"{source}: file scan pattern must be a non-empty string")
	return raw_value.strip()

#============================================

def build_settings(yaml_settings: dict = None, cli_tolerance=None,
	cli_scan_pattern: str = None, environ: dict = None) -> dict:
	"""
	Merge run settings; CLI flags beat environment, environment beats YAML.

	Args:
		yaml_settings: The settings mapping from the configuration, or None.
		cli_tolerance: Value of --duration-tolerance, or None.
		cli_scan_pattern: Value of --file-scan-pattern, or None.
		environ: Environment mapping, defaults to os.environ.

	Returns:
		dict: duration_tolerance and file_scan_pattern.
	"""
	if environ is None:
		environ = os.environ
	if yaml_settings is None:
		yaml_settings = {}
	if not isinstance(yaml_settings, dict):
		raise ConfigError("settings must be a mapping")
	unknown = sorted(set(yaml_settings.keys()) - {'duration_tolerance', 'file_scan_pattern'})
	if len(unknown) > 0:
		raise ConfigError(f"unknown settings: {', '.join(unknown)}")
	tolerance = DEFAULT_DURATION_TOLERANCE
	if yaml_settings.get('duration_tolerance') is not None:
		tolerance = parse_tolerance(yaml_settings['duration_tolerance'],
			"settings.duration_tolerance")
	if environ.get(ENV_DURATION_TOLERANCE, '') != '':
		tolerance = parse_tolerance(environ[ENV_DURATION_TOLERANCE], ENV_DURATION_TOLERANCE)
	if cli_tolerance is not None:
		tolerance = parse_tolerance(cli_tolerance, "--duration-tolerance")
	scan_pattern = DEFAULT_FILE_SCAN_PATTERN
	if yaml_settings.get('file_scan_pattern') is not None:
		scan_pattern = parse_scan_pattern(yaml_settings['file_scan_pattern'],
			"settings.file_scan_pattern")
	if environ.get(ENV_FILE_SCAN_PATTERN, '') != '':
		scan_pattern = parse_scan_pattern(environ[ENV_FILE_SCAN_PATTERN], ENV_FILE_SCAN_PATTERN)
	if cli_scan_pattern is not None:
		scan_pattern = parse_scan_pattern(cli_scan_pattern, "--file-scan-pattern")
	return {
		'duration_tolerance': tolerance,
		'file_scan_pattern': scan_pattern,
	}
