#!/usr/bin/env python3

"""
Sample-accurate WAV splitting.

The source is read once, front to back, with the standard library wave
reader. Frames before a segment are discarded in chunks, the frames inside
it are copied to a new file with the source's channel count, sample width
and rate. Boundaries are converted to frame indices by rounding, never
truncating, so long segment lists do not drift.
"""

import os
import wave
import tqdm
from soundpipelib.core import utils
from soundpipelib.core import timecode
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.errors import StepError

CHUNK_FRAMES = 65536

#============================================

def normalize_segments(segments: list) -> list:
	"""
	Parse segment timestamps, sort by start and reject overlaps.

	Args:
		segments: Dicts with file, start and end timestamp strings.

	Returns:
		list: New dicts that also carry start_seconds and end_seconds.
	"""
	normalized = []
	for segment in segments:
		if segment['file'] == '':
			raise StepError("empty filename in split configuration")
		try:
			start_seconds = timecode.parse_timestamp(segment['start'])
			end_seconds = timecode.parse_timestamp(segment['end'])
		except ConfigError as error:
			raise StepError(f"{segment['file']}: {error}")
		if end_seconds <= start_seconds:
			raise StepError(f"{segment['file']}: end time must be after start time")
		entry = dict(segment)
		entry['start_seconds'] = start_seconds
		entry['end_seconds'] = end_seconds
		normalized.append(entry)
	normalized.sort(key=lambda item: item['start_seconds'])
	for previous, current in zip(normalized, normalized[1:]):
		if previous['end_seconds'] > current['start_seconds']:
			raise StepError(
				f"segments overlap: '{previous['file']}' ends at {previous['end']} "
				f"but '{current['file']}' starts at {current['start']}"
			)
	return normalized

#============================================

def _discard_frames(reader, frame_count: int, frame_size: int) -> int:
	discarded = 0
	while discarded < frame_count:
		data = reader.readframes(min(CHUNK_FRAMES, frame_count - discarded))
		if len(data) == 0:
			break
		discarded += len(data) // frame_size
	return discarded

#============================================

def _copy_frames(reader, writer, frame_count: int, frame_size: int) -> int:
	copied = 0
	while copied < frame_count:
		data = reader.readframes(min(CHUNK_FRAMES, frame_count - copied))
		if len(data) == 0:
			break
		writer.writeframes(data)
		copied += len(data) // frame_size
	return copied

#============================================

def split_wav(input_file: str, output_dir: str, segments: list) -> list:
	"""
	Split one WAV file into timestamp-bounded segment files.

	Args:
		input_file: Source WAV path.
		output_dir: Directory for the segment files, created when missing.
		segments: Dicts with file, start and end timestamp strings.

	Returns:
		list: One dict per segment with path, frames and truncated.
	"""
	normalized = normalize_segments(segments)
	if not os.path.isfile(input_file):
		raise StepError(f"input file not found: {input_file}")
	if output_dir and not os.path.isdir(output_dir):
		os.makedirs(output_dir)
	results = []
	try:
		reader = wave.open(input_file, 'rb')
	except (wave.Error, EOFError) as error:
		raise StepError(f"cannot read {input_file} as PCM wav: {error}")
	with reader:
		channels = reader.getnchannels()
		sample_width = reader.getsampwidth()
		sample_rate = reader.getframerate()
		frame_size = channels * sample_width
		utils.print_debug(f"{input_file}: {channels} channels, {sample_width * 8} bit, "
			f"{sample_rate} Hz, {reader.getnframes()} frames")
		position = 0
		for segment in tqdm.tqdm(normalized, desc="split", unit="file",
			disable=utils.is_quiet_mode()):
			start_frame = timecode.seconds_to_frame(segment['start_seconds'], sample_rate)
			end_frame = timecode.seconds_to_frame(segment['end_seconds'], sample_rate)
			if start_frame > position:
				position += _discard_frames(reader, start_frame - position, frame_size)
			wanted = end_frame - max(start_frame, position)
			output_file = os.path.join(output_dir, segment['file'])
			try:
				with wave.open(output_file, 'wb') as writer:
					writer.setnchannels(channels)
					writer.setsampwidth(sample_width)
					writer.setframerate(sample_rate)
					copied = _copy_frames(reader, writer, max(wanted, 0), frame_size)
			except (wave.Error, OSError) as error:
				raise StepError(f"failed to write {output_file}: {error}")
			position += copied
			truncated = copied < wanted
			if truncated:
				utils.print_warning(
					f"{segment['file']}: source ended early, wrote {copied} of {wanted} frames"
				)
			results.append({
				'file': segment['file'],
				'path': output_file,
				'frames': copied,
				'samples': copied * channels,
				'truncated': truncated,
			})
	return results
