#!/usr/bin/env python3

import functools
import os
import re
import subprocess
import threading
import tqdm
from soundpipelib.core import utils
from soundpipelib.core import formats
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.errors import StepError

DURATION_BANNER_RE = re.compile(r"Duration:\s*([0-9]+):([0-9]{2}):([0-9]{2}(?:\.[0-9]+)?)")
STDERR_TAIL_LINES = 20

#============================================

def parse_clock(text: str):
	"""
	Parse an HH:MM:SS[.frac] clock value to seconds, or None when invalid.
	"""
	parts = text.strip().split(':')
	if len(parts) != 3:
		return None
	try:
		hours = int(parts[0])
		minutes = int(parts[1])
		seconds = float(parts[2])
	except ValueError:
		return None
	if hours < 0 or minutes < 0 or seconds < 0:
		return None
	return hours * 3600 + minutes * 60 + seconds

#============================================

def parse_duration_banner(line: str):
	match = DURATION_BANNER_RE.search(line)
	if match is None:
		return None
	return parse_clock(f"{match.group(1)}:{match.group(2)}:{match.group(3)}")

#============================================

def parse_progress_line(line: str):
	"""
	Split one '-progress' key=value line.

	Returns:
		tuple: (key, value), or None for lines without '='.
	"""
	text = line.strip()
	if '=' not in text:
		return None
	(key, value) = text.split('=', 1)
	return (key.strip(), value.strip())

#============================================

def progress_seconds(key: str, value: str):
	"""
	Convert an out_time progress field to seconds, or None for other keys.
	"""
	# ffmpeg reports out_time_ms in microseconds, same as out_time_us
	if key in ('out_time_us', 'out_time_ms'):
		try:
			return int(value) / 1000000.0
		except ValueError:
			return None
	if key == 'out_time':
		return parse_clock(value)
	return None

#============================================

def _drain_stderr(stream, lines: list, state: dict) -> None:
	for line in stream:
		lines.append(line.rstrip('\n'))
		if state.get('total') is None:
			duration = parse_duration_banner(line)
			if duration is not None and duration > 0:
				state['total'] = duration
	return

#============================================

def run_ffmpeg_with_progress(cmd: list, description: str = "ffmpeg",
	total_seconds: float = None) -> None:
	"""
	Run ffmpeg with '-progress pipe:1' and show a tqdm bar.

	Progress lines are read from stdout while a reader thread drains stderr
	and picks up the Duration banner when no total was given.

	Args:
		cmd: Full ffmpeg command list.
		description: Label for the progress bar.
		total_seconds: Known input duration, or None.
	"""
	showcmd = utils.show_command(cmd)
	try:
		proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
			text=True, errors='replace')
	except OSError as error:
		raise StepError(f"could not start ffmpeg: {error}")
	stderr_lines = []
	state = {'total': total_seconds}
	reader = threading.Thread(target=_drain_stderr, args=(proc.stderr, stderr_lines, state),
		daemon=True)
	reader.start()
	bar = tqdm.tqdm(total=total_seconds, desc=description, unit='s',
		disable=utils.is_quiet_mode())
	current = 0.0
	with bar:
		for line in proc.stdout:
			parsed = parse_progress_line(line)
			if parsed is None:
				continue
			(key, value) = parsed
			if bar.total is None and state.get('total') is not None:
				bar.total = state['total']
				bar.refresh()
			seconds = progress_seconds(key, value)
			if seconds is not None and seconds > current:
				if bar.total is not None:
					seconds = min(seconds, bar.total)
				bar.update(seconds - current)
				current = seconds
			if key == 'progress' and value == 'end' and bar.total is not None:
				bar.update(max(bar.total - current, 0))
				current = bar.total
		returncode = proc.wait()
	reader.join()
	if returncode != 0:
		tail = "\n".join(stderr_lines[-STDERR_TAIL_LINES:])
		raise StepError(f"ffmpeg exited with status {returncode}: {showcmd}\n{tail}")
	return

#============================================

@functools.lru_cache(maxsize=1)
def probe_encoders() -> frozenset:
	"""
	List the encoder names the installed ffmpeg reports.
	"""
	proc = utils.run_process(["ffmpeg", "-hide_banner", "-encoders"],
		capture_output=True, echo=utils.is_verbose_mode())
	return parse_encoder_list(proc.stdout)

#============================================

def parse_encoder_list(text: str) -> frozenset:
	names = set()
	in_table = False
	for line in text.splitlines():
		stripped = line.strip()
		if stripped.startswith('------'):
			in_table = True
			continue
		if not in_table or stripped == "":
			continue
		fields = stripped.split()
		if len(fields) >= 2:
			names.add(fields[1])
	return frozenset(names)

#============================================

def aac_encoder_name(encoders=None) -> str:
	if encoders is None:
		try:
			encoders = probe_encoders()
		except RuntimeError as error:
			utils.print_debug(f"encoder probe failed, using aac: {error}")
			encoders = frozenset()
	if 'aac_at' in encoders:
		return 'aac_at'
	return 'aac'

#============================================

def codec_args_for_format(selected, aac_encoder: str = 'aac') -> list:
	"""
	Build ffmpeg codec arguments for a selected output format.

	Args:
		selected: SelectedFormat with format, bitrate and bit depth.
		aac_encoder: Encoder used for aac output.

	Returns:
		list: Arguments placed between the input and output paths.
	"""
	bit_depth = selected.bit_depth
	if selected.format == 'mp3':
		args = ['-c:a', 'libmp3lame']
		if selected.bitrate:
			args += ['-b:a', selected.bitrate]
		return args
	if selected.format == 'aac':
		args = ['-c:a', aac_encoder]
		if selected.bitrate:
			args += ['-b:a', selected.bitrate]
		return args
	if selected.format == 'flac':
		if bit_depth == 16:
			return ['-c:a', 'flac', '-sample_fmt', 's16']
		return ['-c:a', 'flac', '-sample_fmt', 's32', '-bits_per_raw_sample', '24']
	if selected.format == 'alac':
		if bit_depth == 16:
			return ['-c:a', 'alac', '-sample_fmt', 's16p']
		return ['-c:a', 'alac', '-sample_fmt', 's32p']
	if selected.format == 'wav':
		if bit_depth == 24:
			return ['-c:a', 'pcm_s24le']
		return ['-c:a', 'pcm_s16le']
	raise ConfigError(f"unsupported output format: {selected.format}")

#============================================

def extract_audio(input_file: str, output_file: str, args: list,
	total_seconds: float = None) -> str:
	"""
	Run one extract step through ffmpeg, passing args through verbatim.

	Args:
		input_file: Source media path.
		output_file: Output path.
		args: Extra ffmpeg arguments from the configuration.
		total_seconds: Expected duration for the progress bar, if known.

	Returns:
		str: Output path.
	"""
	if not os.path.isfile(input_file):
		raise StepError(f"input file not found: {input_file}")
	cmd = ["ffmpeg", "-y", "-i", input_file]
	cmd += list(args)
	cmd += ["-progress", "pipe:1", "-nostats", output_file]
	run_ffmpeg_with_progress(cmd, description=os.path.basename(output_file),
		total_seconds=total_seconds)
	if not os.path.isfile(output_file):
		raise StepError(f"ffmpeg reported success but {output_file} was not created")
	return output_file

#============================================

def transcode_file(input_file: str, output_dir: str, selected,
	aac_encoder: str = 'aac') -> str:
	"""
	Encode one file into output_dir using the selected format.

	Returns:
		str: Output path.
	"""
	output_name = formats.transcode_output_name(os.path.basename(input_file), selected.format)
	output_file = os.path.join(output_dir, output_name)
	cmd = ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error", "-i", input_file]
	cmd += codec_args_for_format(selected, aac_encoder)
	cmd.append(output_file)
	try:
		utils.run_process(cmd, capture_output=True)
	except RuntimeError as error:
		raise StepError(str(error))
	if not os.path.isfile(output_file):
		raise StepError(f"ffmpeg reported success but {output_file} was not created")
	return output_file
