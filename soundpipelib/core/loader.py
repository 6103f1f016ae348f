#!/usr/bin/env python3

import os
import yaml
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.formats import OUTPUT_EXTENSIONS

SYNTAX_NAME = 'soundpipeline'
SUPPORTED_SYNTAX_VERSIONS = (1,)

STEP_TYPES = ('extract', 'split', 'transcode', 'tag', 'cleanup')
STEP_TYPE_ALIASES = {
	'ffmpeg': 'extract',
}

TAG_TEXT_FIELDS = ('title', 'artist', 'album', 'album_artist', 'genre', 'comment')
TAG_INT_FIELDS = ('track', 'track_total', 'disk', 'disk_total', 'year')

#============================================

class PipelineConfig():
	def __init__(self):
		self.yaml_file = None
		self.data = {}
		self.settings = {}
		self.formats = None
		self.steps = []

	#============================
	def has_step_type(self, step_type: str) -> bool:
		return any(step['type'] == step_type for step in self.steps)

#============================================

class ConfigLoader():
	def __init__(self, yaml_file: str):
		self.yaml_file = yaml_file

	#============================
	def load(self) -> PipelineConfig:
		config = PipelineConfig()
		config.yaml_file = self.yaml_file
		config.data = self._load_yaml()
		self._validate_required_keys(config.data)
		config.settings = self._parse_settings(config.data.get('settings'))
		config.steps = self._parse_steps(config.data.get('steps'))
		formats_data = config.data.get('formats')
		if formats_data is not None:
			config.formats = self._parse_formats(formats_data)
		elif config.has_step_type('transcode'):
			raise ConfigError("formats section is required when a transcode step is present")
		return config

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise ConfigError(f"configuration file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 7:
			raise ConfigError("yaml file is larger than 10MB")
		try:
			with open(self.yaml_file, 'r') as data_file:
				data = yaml.safe_load(data_file)
		except yaml.YAMLError as error:
			raise ConfigError(f"could not parse {self.yaml_file}: {error}")
		if not isinstance(data, dict):
			raise ConfigError("configuration must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		syntax = data.get('syntax')
		if syntax is None:
			raise ConfigError("missing required key: syntax")
		if syntax != SYNTAX_NAME:
			raise ConfigError(f"unrecognized syntax '{syntax}', expected '{SYNTAX_NAME}'")
		version = data.get('syntax_version')
		if version is None:
			raise ConfigError("missing required key: syntax_version")
		if isinstance(version, bool) or version not in SUPPORTED_SYNTAX_VERSIONS:
			supported = ", ".join(str(value) for value in SUPPORTED_SYNTAX_VERSIONS)
			raise ConfigError(
				f"unsupported syntax_version '{version}', supported versions: {supported}"
			)
		if 'steps' not in data:
			raise ConfigError("missing required key: steps")

	#============================
	def _parse_settings(self, settings) -> dict:
		if settings is None:
			return {}
		if not isinstance(settings, dict):
			raise ConfigError("settings must be a mapping")
		return dict(settings)

	#============================
	def _parse_formats(self, formats) -> dict:
		if not isinstance(formats, dict):
			raise ConfigError("formats must be a mapping")
		available = formats.get('available')
		if not isinstance(available, list) or len(available) == 0:
			raise ConfigError("formats.available must be a non-empty list")
		options = []
		for index, option in enumerate(available, start=1):
			if not isinstance(option, dict):
				raise ConfigError(f"formats.available[{index}] must be a mapping")
			name = option.get('format')
			if not isinstance(name, str) or name == "":
				raise ConfigError(f"formats.available[{index}] is missing format")
			if name not in OUTPUT_EXTENSIONS:
				raise ConfigError(f"formats.available[{index}]: unsupported format '{name}', "
					f"supported formats: {', '.join(OUTPUT_EXTENSIONS)}")
			bitrates = option.get('bitrates')
			if bitrates is not None:
				if not isinstance(bitrates, list):
					raise ConfigError(f"formats.available[{index}].bitrates must be a list")
				bitrates = [str(value) for value in bitrates]
			bit_depths = option.get('bit_depths')
			if bit_depths is not None:
				if not isinstance(bit_depths, list):
					raise ConfigError(f"formats.available[{index}].bit_depths must be a list")
				bit_depths = [self._require_int(value,
					f"formats.available[{index}].bit_depths") for value in bit_depths]
			default_bitrate = option.get('default_bitrate')
			if default_bitrate is not None:
				default_bitrate = str(default_bitrate)
			default_bit_depth = option.get('default_bit_depth')
			if default_bit_depth is not None:
				default_bit_depth = self._require_int(default_bit_depth,
					f"formats.available[{index}].default_bit_depth")
			options.append({
				'format': name,
				'bitrates': bitrates,
				'default_bitrate': default_bitrate,
				'bit_depths': bit_depths,
				'default_bit_depth': default_bit_depth,
			})
		default_name = formats.get('default')
		if default_name is not None and not isinstance(default_name, str):
			raise ConfigError("formats.default must be a string")
		return {
			'default': default_name,
			'available': options,
		}

	#============================
	def _parse_steps(self, steps) -> list:
		if not isinstance(steps, list) or len(steps) == 0:
			raise ConfigError("steps must be a non-empty list")
		parsed = []
		for index, step in enumerate(steps, start=1):
			if not isinstance(step, dict):
				raise ConfigError(f"step {index} must be a mapping")
			raw_type = step.get('type')
			step_type = STEP_TYPE_ALIASES.get(raw_type, raw_type)
			if step_type not in STEP_TYPES:
				raise ConfigError(f"step {index}: unknown step type '{raw_type}'")
			label = f"step {index} ({step_type})"
			if step_type == 'extract':
				parsed.append(self._parse_extract(step, label))
			elif step_type == 'split':
				parsed.append(self._parse_split(step, label))
			elif step_type == 'transcode':
				parsed.append(self._parse_transcode(step, label))
			elif step_type == 'tag':
				parsed.append(self._parse_tag(step, label))
			else:
				parsed.append(self._parse_cleanup(step, label))
		return parsed

	#============================
	def _parse_extract(self, step: dict, label: str) -> dict:
		args = step.get('args', [])
		if not isinstance(args, list):
			raise ConfigError(f"{label}: args must be a list")
		duration = step.get('input_duration', step.get('expected_duration'))
		if duration is not None:
			duration = str(duration)
		return {
			'type': 'extract',
			'input': self._require_str(step, 'input', label),
			'output': self._require_str(step, 'output', label),
			'args': [str(value) for value in args],
			'input_duration': duration,
		}

	#============================
	def _parse_split(self, step: dict, label: str) -> dict:
		files = self._require_list(step, 'files', label)
		segments = []
		for index, entry in enumerate(files, start=1):
			if not isinstance(entry, dict):
				raise ConfigError(f"{label}: files[{index}] must be a mapping")
			entry_label = f"{label} files[{index}]"
			segments.append({
				'file': self._require_str(entry, 'file', entry_label, allow_empty=True),
				'start': self._require_str(entry, 'start', entry_label),
				'end': self._require_str(entry, 'end', entry_label),
			})
		return {
			'type': 'split',
			'input': self._require_str(step, 'input', label),
			'output_dir': self._optional_str(step, 'output_dir', label),
			'files': segments,
		}

	#============================
	def _parse_transcode(self, step: dict, label: str) -> dict:
		files = self._require_list(step, 'files', label)
		patterns = []
		for index, entry in enumerate(files, start=1):
			if not isinstance(entry, str) or entry == "":
				raise ConfigError(f"{label}: files[{index}] must be a non-empty string")
			patterns.append(entry)
		return {
			'type': 'transcode',
			'input_dir': self._optional_str(step, 'input_dir', label),
			'output_dir': self._optional_str(step, 'output_dir', label),
			'files': patterns,
		}

	#============================
	def _parse_tag(self, step: dict, label: str) -> dict:
		files = self._require_list(step, 'files', label)
		entries = []
		for index, entry in enumerate(files, start=1):
			if not isinstance(entry, dict):
				raise ConfigError(f"{label}: files[{index}] must be a mapping")
			entry_label = f"{label} files[{index}]"
			tag_entry = {
				'file': self._require_str(entry, 'file', entry_label),
				'album_art': self._optional_str(entry, 'album_art', entry_label, None),
			}
			for field in TAG_TEXT_FIELDS:
				value = entry.get(field)
				tag_entry[field] = None if value is None else str(value)
			for field in TAG_INT_FIELDS:
				value = entry.get(field)
				if value is not None:
					value = self._require_int(value, f"{entry_label} {field}")
				tag_entry[field] = value
			entries.append(tag_entry)
		return {
			'type': 'tag',
			'input_dir': self._optional_str(step, 'input_dir', label),
			'files': entries,
		}

	#============================
	def _parse_cleanup(self, step: dict, label: str) -> dict:
		files = self._require_list(step, 'files', label)
		targets = []
		for index, entry in enumerate(files, start=1):
			if not isinstance(entry, str) or entry == "":
				raise ConfigError(f"{label}: files[{index}] must be a non-empty string")
			targets.append(entry)
		return {
			'type': 'cleanup',
			'files': targets,
		}

	#============================
	def _require_str(self, data: dict, key: str, label: str,
		allow_empty: bool = False) -> str:
		value = data.get(key)
		if value is None:
			raise ConfigError(f"{label}: missing required field '{key}'")
		if not isinstance(value, str):
			raise ConfigError(f"{label}: field '{key}' must be a string")
		if value == "" and not allow_empty:
			raise ConfigError(f"{label}: field '{key}' must not be empty")
		return value

	#============================
	def _optional_str(self, data: dict, key: str, label: str, default: str = '') -> str:
		value = data.get(key)
		if value is None:
			return default
		if not isinstance(value, str):
			raise ConfigError(f"{label}: field '{key}' must be a string")
		return value

	#============================
	def _require_list(self, data: dict, key: str, label: str) -> list:
		value = data.get(key)
		if value is None:
			raise ConfigError(f"{label}: missing required field '{key}'")
		if not isinstance(value, list):
			raise ConfigError(f"{label}: field '{key}' must be a list")
		return value

	#============================
	def _require_int(self, value, label: str) -> int:
		if isinstance(value, bool) or not isinstance(value, int):
			raise ConfigError(f"{label} must be an integer, got '{value}'")
		return value

#============================================

def load_config(yaml_file: str) -> PipelineConfig:
	loader = ConfigLoader(yaml_file)
	return loader.load()
