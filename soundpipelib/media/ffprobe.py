#!/usr/bin/env python3

import json
import math
import os
from soundpipelib.core import utils
from soundpipelib.core.errors import ProbeError

#============================================

def get_duration(media_file: str) -> float:
	"""
	Probe a media file's container duration using ffprobe.

	Args:
		media_file: Media file path.

	Returns:
		float: Duration in seconds.
	"""
	if not os.path.isfile(media_file):
		raise ProbeError(f"file not found: {media_file}")
	try:
		utils.check_dependency("ffprobe")
	except RuntimeError as error:
		raise ProbeError(str(error))
	cmd = [
		"ffprobe", "-v", "error",
		"-show_entries", "format=duration",
		"-of", "json",
		media_file,
	]
	try:
		proc = utils.run_process(cmd, capture_output=True, echo=utils.is_verbose_mode())
	except RuntimeError as error:
		raise ProbeError(f"ffprobe failed for {media_file}: {error}")
	return parse_duration_json(proc.stdout, media_file)

#============================================

def parse_duration_json(stdout_text: str, media_file: str = '') -> float:
	try:
		data = json.loads(stdout_text)
	except json.JSONDecodeError:
		raise ProbeError(f"unparseable ffprobe output for {media_file}")
	if not isinstance(data, dict):
		raise ProbeError(f"unparseable ffprobe output for {media_file}")
	raw_value = data.get('format', {}).get('duration')
	if raw_value is None:
		raise ProbeError(f"no duration reported by ffprobe for {media_file}")
	try:
		duration = float(raw_value)
	except (TypeError, ValueError):
		raise ProbeError(f"invalid duration '{raw_value}' from ffprobe for {media_file}")
	if not math.isfinite(duration) or duration < 0:
		raise ProbeError(f"invalid duration '{raw_value}' from ffprobe for {media_file}")
	return duration
