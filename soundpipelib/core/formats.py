#!/usr/bin/env python3

import dataclasses
from rich.prompt import Prompt
from soundpipelib.core.errors import ConfigError

LOSSLESS_FORMATS = ('flac', 'alac')
PASS_THROUGH_FORMATS = ('', 'wav')

OUTPUT_EXTENSIONS = {
	'mp3': 'mp3',
	'aac': 'm4a',
	'flac': 'flac',
	'alac': 'm4a',
	'wav': 'wav',
}

DISPLAY_NAMES = {
	'mp3': "MP3",
	'aac': "AAC (M4A)",
	'flac': "FLAC (Lossless)",
	'alac': "ALAC (Apple Lossless)",
	'wav': "WAV (PCM)",
}

#============================================

@dataclasses.dataclass(frozen=True)
class SelectedFormat:
	format: str
	bitrate: str = None
	bit_depth: int = None

	#============================
	def is_pass_through(self) -> bool:
		return self.format in PASS_THROUGH_FORMATS

#============================================

NO_FORMAT = SelectedFormat('')

#============================================

def output_extension(format_name: str) -> str:
	extension = OUTPUT_EXTENSIONS.get(format_name)
	if extension is None:
		raise ConfigError(f"unsupported output format: {format_name}")
	return extension

#============================================

def transcode_output_name(filename: str, format_name: str) -> str:
	"""
	Name of the file a transcode step writes for one input file.

	Args:
		filename: Input file name; only the basename is used.
		format_name: Selected output format.

	Returns:
		str: Basename with a trailing .wav removed and the new extension added.
	"""
	base_name = filename.replace('\\', '/').split('/')[-1]
	if base_name.endswith('.wav'):
		base_name = base_name[:-len('.wav')]
	return f"{base_name}.{output_extension(format_name)}"

#============================================

def find_format_option(formats: dict, format_name: str) -> dict:
	for option in formats.get('available', []):
		if option['format'] == format_name:
			if format_name not in OUTPUT_EXTENSIONS:
				raise ConfigError(f"unsupported output format: {format_name}")
			return option
	names = ", ".join(option['format'] for option in formats.get('available', []))
	raise ConfigError(
		f"format '{format_name}' is not available, available formats: {names}"
	)

#============================================

def parse_format_string(format_text: str, formats: dict) -> SelectedFormat:
	"""
	Parse an override such as mp3, mp3:320k, flac:16bit or alac:24bit.

	Args:
		format_text: Override string from the command line.
		formats: Parsed formats section of the configuration.

	Returns:
		SelectedFormat: The resolved selection.
	"""
	parts = format_text.strip().split(':', 1)
	format_name = parts[0]
	param = parts[1] if len(parts) > 1 else None
	option = find_format_option(formats, format_name)
	bitrate = None
	bit_depth = None
	if param is None:
		bitrate = option.get('default_bitrate')
		if format_name in LOSSLESS_FORMATS:
			bit_depth = option.get('default_bit_depth') or 24
		return SelectedFormat(format_name, bitrate, bit_depth)
	if param.endswith('bit'):
		if format_name not in LOSSLESS_FORMATS:
			raise ConfigError(f"format '{format_name}' does not support bit depth specification")
		depth_text = param[:-len('bit')]
		if not depth_text.isdigit():
			raise ConfigError(f"invalid bit depth format: {param}")
		bit_depth = int(depth_text)
		allowed = option.get('bit_depths') or [16, 24]
		if bit_depth not in allowed:
			allowed_text = ", ".join(f"{depth}bit" for depth in allowed)
			raise ConfigError(
				f"bit depth '{param}' is not available for format '{format_name}', "
				f"available bit depths: {allowed_text}"
			)
		return SelectedFormat(format_name, None, bit_depth)
	bitrates = option.get('bitrates')
	if not bitrates:
		raise ConfigError(f"format '{format_name}' does not support bitrate specification")
	if param not in bitrates:
		raise ConfigError(
			f"bitrate '{param}' is not available for format '{format_name}', "
			f"available bitrates: {', '.join(bitrates)}"
		)
	return SelectedFormat(format_name, param, None)

#============================================

def _display_name(format_name: str) -> str:
	return DISPLAY_NAMES.get(format_name, format_name.upper())

#============================================

def select_format(formats: dict, ask=None) -> SelectedFormat:
	"""
	Ask the operator for an output format, then a bitrate or bit depth.

	Args:
		formats: Parsed formats section of the configuration.
		ask: Callable (question, choices, default) -> choice; defaults to a
			rich prompt.

	Returns:
		SelectedFormat: The resolved selection.
	"""
	if ask is None:
		ask = _rich_ask
	available = formats.get('available', [])
	if len(available) == 0:
		raise ConfigError("formats.available is empty, cannot select a format")
	names = [option['format'] for option in available]
	default_name = formats.get('default')
	if default_name not in names:
		default_name = names[0]
	for option in available:
		suffix = " (Default)" if option['format'] == default_name else ""
		print(f"  {option['format']}: {_display_name(option['format'])}{suffix}")
	format_name = ask("Select output format", names, default_name)
	option = find_format_option(formats, format_name)
	bitrate = None
	bit_depth = None
	bitrates = option.get('bitrates')
	if bitrates:
		if len(bitrates) == 1:
			bitrate = bitrates[0]
		else:
			default_bitrate = option.get('default_bitrate')
			if default_bitrate not in bitrates:
				default_bitrate = bitrates[0]
			bitrate = ask(f"Select bitrate for {_display_name(format_name)}",
				list(bitrates), default_bitrate)
	if format_name in LOSSLESS_FORMATS:
		depths = [str(depth) for depth in (option.get('bit_depths') or [16, 24])]
		default_depth = str(option.get('default_bit_depth') or 24)
		if default_depth not in depths:
			default_depth = depths[-1]
		if len(depths) == 1:
			bit_depth = int(depths[0])
		else:
			bit_depth = int(ask(f"Select bit depth for {_display_name(format_name)}",
				depths, default_depth))
	return SelectedFormat(format_name, bitrate, bit_depth)

#============================================

def _rich_ask(question: str, choices: list, default: str) -> str:
	return Prompt.ask(question, choices=choices, default=default)
