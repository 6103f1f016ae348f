#!/usr/bin/env python3

"""
Dry-run validation of a step list.

The validator replays every step against a VirtualFileTree seeded from the
working directory, so a pipeline that would fail on a missing input is
rejected before any transcoding starts. Nothing on disk is touched.
"""

import glob
import os
from soundpipelib.core import utils
from soundpipelib.core import timecode
from soundpipelib.core import formats
from soundpipelib.core.file_tree import VirtualFileTree
from soundpipelib.core.file_tree import normalize_components

#============================================

class ValidationResult():
	def __init__(self):
		self.is_valid = True
		self.errors = []
		self.warnings = []

	#============================
	def add_error(self, message: str) -> None:
		self.is_valid = False
		self.errors.append(message)

	#============================
	def add_warning(self, message: str) -> None:
		self.warnings.append(message)

#============================================

def _join_dir(directory: str, name: str) -> str:
	if directory in ('', '.'):
		return name
	return f"{directory}/{name}"

#============================================

class PipelineValidator():
	def __init__(self, working_dir: str, selected_format=None):
		self.working_dir = working_dir
		if selected_format is None:
			selected_format = formats.NO_FORMAT
		self.selected_format = selected_format
		self.tree = None
		self.result = None

	#============================
	def validate(self, steps: list) -> ValidationResult:
		self.result = ValidationResult()
		self.tree = VirtualFileTree()
		if os.path.exists(self.working_dir):
			if not os.path.isdir(self.working_dir):
				self.result.add_error(f"working directory {self.working_dir} is not a directory")
			else:
				self.tree.scan_disk(self.working_dir)
		else:
			utils.print_debug(f"working directory {self.working_dir} will be created during execution")
		for index, step in enumerate(steps, start=1):
			label = f"step {index} ({step['type']})"
			utils.print_debug(f"validating {label}")
			if step['type'] == 'extract':
				self._check_extract(step, label)
			elif step['type'] == 'split':
				self._check_split(step, label)
			elif step['type'] == 'transcode':
				self._check_transcode(step, label)
			elif step['type'] == 'tag':
				self._check_tag(step, label)
			elif step['type'] == 'cleanup':
				self._check_cleanup(step, label)
			else:
				self.result.add_error(f"{label}: unknown step type")
		has_transcode = any(step['type'] == 'transcode' for step in steps)
		if not self.selected_format.is_pass_through() and not has_transcode:
			self.result.add_warning(
				f"output format '{self.selected_format.format}' specified "
				"but no transcode step found in pipeline"
			)
		utils.print_debug(f"validation completed: {len(self.result.errors)} errors, "
			f"{len(self.result.warnings)} warnings")
		return self.result

	#============================
	def _tree_path(self, path: str) -> str:
		"""
		Key a step path in the tree.

		Absolute paths inside the working directory become relative so they
		meet the scanned files. Other absolute paths are keyed by their
		components like any relative path.
		"""
		if os.path.isabs(path):
			base_dir = os.path.abspath(self.working_dir)
			try:
				relative = os.path.relpath(os.path.normpath(path), base_dir)
			except ValueError:
				relative = os.pardir
			if relative != os.pardir and not relative.startswith(os.pardir + os.sep):
				path = relative
		return '/'.join(normalize_components(path))

	#============================
	def _available(self, path: str) -> bool:
		if self.tree.exists(self._tree_path(path)):
			return True
		return os.path.exists(utils.resolve_path(self.working_dir, path))

	#============================
	def _find_files(self, directory: str, pattern: str) -> list:
		matches = self.tree.find_in_directory(self._tree_path(directory), pattern)
		if len(matches) == 0 and os.path.isabs(directory):
			# outside the working directory only the disk knows
			matches = sorted(path for path in glob.glob(os.path.join(glob.escape(directory), pattern))
				if os.path.isfile(path))
		return matches

	#============================
	def _require_input(self, path: str, label: str) -> None:
		if not self._available(path):
			self.result.add_error(
				f"{label}: input file '{path}' does not exist "
				"and will not be created by previous steps"
			)

	#============================
	def _register_output(self, path: str, label: str) -> None:
		if not self.tree.add_file(self._tree_path(path)):
			self.result.add_error(f"{label}: output file '{path}' conflicts with an existing directory")

	#============================
	def _register_output_dir(self, directory: str, label: str) -> None:
		tree_dir = self._tree_path(directory)
		if tree_dir == '':
			return
		if not self.tree.add_directory(tree_dir):
			self.result.add_error(f"{label}: output directory '{directory}' conflicts with an existing file")

	#============================
	def _check_extract(self, step: dict, label: str) -> None:
		self._require_input(step['input'], label)
		self._register_output(step['output'], label)

	#============================
	def _check_split(self, step: dict, label: str) -> None:
		self._require_input(step['input'], label)
		self._register_output_dir(step['output_dir'], label)
		ranges = []
		for segment in step['files']:
			if segment['file'] == '':
				self.result.add_error(f"{label}: empty filename in split configuration")
			start_ok = timecode.is_valid_timestamp(segment['start'])
			end_ok = timecode.is_valid_timestamp(segment['end'])
			if not start_ok:
				self.result.add_error(
					f"{label}: invalid start timestamp '{segment['start']}' for file "
					f"'{segment['file']}', expected H:MM:SS.fff or H:MM:SS.ffffff"
				)
			if not end_ok:
				self.result.add_error(
					f"{label}: invalid end timestamp '{segment['end']}' for file "
					f"'{segment['file']}', expected H:MM:SS.fff or H:MM:SS.ffffff"
				)
			if start_ok and end_ok:
				start = timecode.parse_timestamp(segment['start'])
				end = timecode.parse_timestamp(segment['end'])
				if end <= start:
					self.result.add_error(
						f"{label}: end time must be after start time for file '{segment['file']}'"
					)
				else:
					ranges.append((start, end, segment['file']))
			if segment['file'] != '':
				self._register_output(_join_dir(step['output_dir'], segment['file']), label)
		ranges.sort(key=lambda item: item[0])
		for previous, current in zip(ranges, ranges[1:]):
			if previous[1] > current[0]:
				self.result.add_error(
					f"{label}: segments overlap: '{previous[2]}' ends at "
					f"{timecode.format_timestamp(previous[1])} but '{current[2]}' starts at "
					f"{timecode.format_timestamp(current[0])}"
				)

	#============================
	def _check_transcode(self, step: dict, label: str) -> None:
		self._register_output_dir(step['output_dir'], label)
		for entry in step['files']:
			if utils.has_glob_chars(entry):
				matches = [path for path in self._find_files(step['input_dir'], entry)
					if not self.tree.is_directory(path)]
				if len(matches) == 0:
					self.result.add_error(
						f"{label}: no files matching pattern '{entry}' "
						f"in directory '{step['input_dir']}'"
					)
			else:
				input_path = _join_dir(step['input_dir'], entry)
				self._require_input(input_path, label)
				matches = [input_path]
			if self.selected_format.format not in formats.OUTPUT_EXTENSIONS:
				continue
			for match in matches:
				output_name = formats.transcode_output_name(match, self.selected_format.format)
				self._register_output(_join_dir(step['output_dir'], output_name), label)

	#============================
	def _check_tag(self, step: dict, label: str) -> None:
		for entry in step['files']:
			matches = self._find_files(step['input_dir'], entry['file'])
			if len(matches) == 0:
				self.result.add_error(
					f"{label}: no files matching pattern '{entry['file']}' "
					f"in directory '{step['input_dir']}'"
				)
			else:
				utils.print_debug(f"{label}: {len(matches)} files match '{entry['file']}'")
			album_art = entry.get('album_art')
			if not album_art:
				continue
			if not self.tree.exists(self._tree_path(album_art)) and not (
				os.path.isabs(album_art) and os.path.exists(album_art)):
				self.result.add_warning(f"{label}: album art file '{album_art}' does not exist")

	#============================
	def _check_cleanup(self, step: dict, label: str) -> None:
		for target in step['files']:
			tree_target = self._tree_path(target)
			if utils.has_glob_chars(target):
				matches = self.tree.find_matching(tree_target)
			elif self.tree.exists(tree_target):
				matches = [tree_target]
			else:
				matches = []
			if len(matches) == 0:
				self.result.add_warning(f"{label}: path '{target}' may not exist when cleanup runs")
			for match in matches:
				utils.print_debug(f"{label}: will remove '{match}'")
				self.tree.remove(match)
			if not utils.has_glob_chars(target):
				self.tree.remove(tree_target)

#============================================

def validate_pipeline(steps: list, selected_format, working_dir: str) -> ValidationResult:
	validator = PipelineValidator(working_dir, selected_format)
	return validator.validate(steps)
