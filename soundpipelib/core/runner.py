#!/usr/bin/env python3

import glob
import os
import shutil
from soundpipelib.core import utils
from soundpipelib.core import timecode
from soundpipelib.core import formats
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.errors import StepError
from soundpipelib.media import ffmpeg
from soundpipelib.media import tagging
from soundpipelib.media import wav_split

TAG_FIELDS = ('title', 'artist', 'album', 'album_artist', 'track', 'track_total',
	'disk', 'disk_total', 'genre', 'year', 'comment')

#============================================

class PipelineRunner():
	def __init__(self, steps: list, working_dir: str, selected_format=None):
		self.steps = steps
		self.working_dir = working_dir
		if selected_format is None:
			selected_format = formats.NO_FORMAT
		self.selected_format = selected_format
		self._aac_encoder = None

	#============================
	def run(self) -> None:
		"""
		Execute every step in order; the first failure stops the run.
		"""
		if not os.path.isdir(self.working_dir):
			os.makedirs(self.working_dir)
		total = len(self.steps)
		for index, step in enumerate(self.steps, start=1):
			utils.print_info(f"step {index}/{total}: {step['type']}")
			try:
				self.run_step(step)
			except StepError as error:
				raise StepError(f"step {index}/{total} ({step['type']}) failed: {error}")
			utils.print_info(f"step {index}/{total}: {step['type']} complete")
		return

	#============================
	def run_step(self, step: dict) -> None:
		if step['type'] == 'extract':
			self._run_extract(step)
		elif step['type'] == 'split':
			self._run_split(step)
		elif step['type'] == 'transcode':
			self._run_transcode(step)
		elif step['type'] == 'tag':
			self._run_tag(step)
		elif step['type'] == 'cleanup':
			self._run_cleanup(step)
		else:
			raise StepError(f"unknown step type: {step['type']}")
		return

	#============================
	def _path(self, path: str) -> str:
		return utils.resolve_path(self.working_dir, path)

	#============================
	def _ensure_dir(self, directory: str) -> str:
		full_path = self._path(directory)
		if not os.path.isdir(full_path):
			try:
				os.makedirs(full_path)
			except OSError as error:
				raise StepError(f"cannot create directory {full_path}: {error}")
		return full_path

	#============================
	def _run_extract(self, step: dict) -> None:
		input_file = self._path(step['input'])
		output_file = self._path(step['output'])
		output_dir = os.path.dirname(output_file)
		if output_dir and not os.path.isdir(output_dir):
			os.makedirs(output_dir)
		total_seconds = None
		if step.get('input_duration') is not None:
			try:
				total_seconds = timecode.parse_duration(step['input_duration'])
			except ConfigError:
				total_seconds = None
		ffmpeg.extract_audio(input_file, output_file, step['args'],
			total_seconds=total_seconds)

	#============================
	def _run_split(self, step: dict) -> None:
		input_file = self._path(step['input'])
		output_dir = self._ensure_dir(step['output_dir'] or '.')
		results = wav_split.split_wav(input_file, output_dir, step['files'])
		for item in results:
			utils.print_debug(f"wrote {item['path']} ({item['frames']} frames)")

	#============================
	def _expand_files(self, directory: str, entries: list) -> list:
		matches = []
		for entry in entries:
			if utils.has_glob_chars(entry):
				found = sorted(path for path in glob.glob(os.path.join(glob.escape(directory), entry))
					if os.path.isfile(path))
			else:
				candidate = os.path.join(directory, entry)
				found = [candidate] if os.path.isfile(candidate) else []
			if len(found) == 0:
				raise StepError(f"no files matching '{entry}' in {directory}")
			matches.extend(found)
		return matches

	#============================
	def _run_transcode(self, step: dict) -> None:
		if self.selected_format.format == '':
			raise StepError("transcode step requires a selected output format")
		input_dir = self._path(step['input_dir'] or '.')
		output_dir = self._ensure_dir(step['output_dir'] or '.')
		if self._aac_encoder is None and self.selected_format.format == 'aac':
			self._aac_encoder = ffmpeg.aac_encoder_name()
		input_files = self._expand_files(input_dir, step['files'])
		for input_file in input_files:
			output_file = ffmpeg.transcode_file(input_file, output_dir, self.selected_format,
				aac_encoder=self._aac_encoder or 'aac')
			utils.print_debug(f"created {output_file} ({os.path.getsize(output_file)} bytes)")

	#============================
	def _run_tag(self, step: dict) -> None:
		input_dir = self._path(step['input_dir'] or '.')
		for entry in step['files']:
			targets = self._expand_files(input_dir, [entry['file']])
			tags = {field: entry.get(field) for field in TAG_FIELDS}
			art_file = None
			if entry.get('album_art'):
				art_file = self._path(entry['album_art'])
			for target in targets:
				utils.print_debug(f"tagging {target}")
				tagging.write_tags(target, tags, art_file)

	#============================
	def _run_cleanup(self, step: dict) -> None:
		attempted = 0
		failed = 0
		for target in step['files']:
			target_path = self._path(target)
			if os.path.lexists(target_path):
				paths = [target_path]
			else:
				pattern = utils.resolve_path(glob.escape(self.working_dir), target)
				paths = sorted(glob.glob(pattern))
			if len(paths) == 0:
				utils.print_warning(f"cleanup target not found: {target}")
				continue
			for path in paths:
				attempted += 1
				try:
					if os.path.isdir(path) and not os.path.islink(path):
						shutil.rmtree(path)
					else:
						os.remove(path)
					utils.print_debug(f"removed {path}")
				except OSError as error:
					failed += 1
					utils.print_warning(f"failed to remove {path}: {error}")
		if attempted > 0 and failed == attempted:
			raise StepError("every cleanup removal failed")
