#!/usr/bin/env python3

import dataclasses
import os
from soundpipelib.core import utils
from soundpipelib.core import timecode
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.errors import ProbeError
from soundpipelib.core.errors import ReconciliationError
from soundpipelib.core.suggester import FileSuggester
from soundpipelib.media import ffprobe

#============================================

@dataclasses.dataclass
class DurationCheckInfo:
	step_index: int
	input_file: str
	expected_duration: str
	expected_seconds: float
	actual_seconds: float
	difference_seconds: float
	is_valid: bool

#============================================

class DurationCheckResult():
	def __init__(self):
		self.is_valid = True
		self.errors = []
		self.warnings = []
		self.checks = []

	#============================
	def add_error(self, message: str) -> None:
		self.is_valid = False
		self.errors.append(message)

	#============================
	def add_warning(self, message: str) -> None:
		self.warnings.append(message)

	#============================
	def add_check(self, check: DurationCheckInfo) -> None:
		self.checks.append(check)

	#============================
	def failed_checks(self) -> list:
		return [check for check in self.checks if not check.is_valid]

#============================================

class DurationChecker():
	def __init__(self, working_dir: str, tolerance: float, probe=None):
		self.working_dir = working_dir
		self.tolerance = tolerance
		if probe is None:
			probe = ffprobe.get_duration
		self.probe = probe

	#============================
	def check(self, steps: list) -> DurationCheckResult:
		"""
		Compare every extract step's declared input_duration with the real file.

		A missing input is recorded as a failed check so the suggester can
		look for a replacement. Probe failures are errors without a check.
		"""
		result = DurationCheckResult()
		for index, step in enumerate(steps, start=1):
			if step['type'] != 'extract' or step.get('input_duration') is None:
				continue
			label = f"step {index} (extract)"
			expected_text = step['input_duration']
			try:
				expected_seconds = timecode.parse_duration(expected_text)
			except ConfigError as error:
				raise ConfigError(f"{label}: invalid input_duration: {error}")
			input_file = step['input']
			input_path = utils.resolve_path(self.working_dir, input_file)
			if not os.path.exists(input_path):
				utils.print_debug(f"{label}: '{input_path}' does not exist, "
					"deferring to the file suggester")
				result.add_check(DurationCheckInfo(index, input_file, expected_text,
					expected_seconds, 0.0, expected_seconds, False))
				result.add_error(f"{label}: input file '{input_path}' does not exist")
				continue
			try:
				actual_seconds = self.probe(input_path)
			except ProbeError as error:
				result.add_error(f"{label}: failed to get duration for '{input_path}': {error}")
				continue
			difference = abs(expected_seconds - actual_seconds)
			is_valid = difference < self.tolerance
			result.add_check(DurationCheckInfo(index, input_file, expected_text,
				expected_seconds, actual_seconds, difference, is_valid))
			if is_valid:
				utils.print_debug(f"{label}: duration ok for '{input_file}', "
					f"expected {expected_seconds:.2f}s, actual {actual_seconds:.2f}s")
			else:
				result.add_error(
					f"{label}: duration mismatch for '{input_file}', expected "
					f"{expected_seconds:.2f}s ({expected_text}) but found {actual_seconds:.2f}s "
					f"(difference {difference:.2f}s)"
				)
		return result

#============================================

def reconcile_durations(steps: list, working_dir: str, tolerance: float,
	scan_pattern: str, probe=None, confirm=None) -> DurationCheckResult:
	"""
	Check durations and run at most one repair cycle.

	Each failing check gets one replacement suggestion. Confirmed
	replacements rewrite that step's input in place, then the check runs
	once more. There is no second repair attempt.

	Args:
		steps: Parsed step dicts, modified in place on replacement.
		working_dir: Base directory for relative paths.
		tolerance: Allowed difference in seconds.
		scan_pattern: Glob pattern for replacement candidates.
		probe: Duration probe callable.
		confirm: Confirmation callable (question, default) -> bool.

	Returns:
		DurationCheckResult: The passing result.
	"""
	checker = DurationChecker(working_dir, tolerance, probe=probe)
	result = checker.check(steps)
	for warning in result.warnings:
		utils.print_warning(warning)
	if result.is_valid:
		if len(result.checks) > 0:
			utils.print_info(f"duration check passed for {len(result.checks)} extract step(s)")
		return result
	utils.print_warning(f"duration check failed with {len(result.errors)} error(s)")
	for error in result.errors:
		utils.print_warning(error)
	suggester = FileSuggester(working_dir, tolerance, scan_pattern, probe=probe,
		confirm=confirm)
	modified = False
	for check in result.failed_checks():
		replacement = suggester.suggest(check.input_file, check.expected_seconds)
		if replacement is None:
			utils.print_warning(f"no suitable replacement found for '{check.input_file}'")
			continue
		step = steps[check.step_index - 1]
		utils.print_info(f"replaced '{step['input']}' with '{replacement}'")
		step['input'] = replacement
		modified = True
	if not modified:
		raise ReconciliationError("duration check failed and no replacement was made",
			errors=result.errors)
	utils.print_info("re-checking durations after replacement")
	result = checker.check(steps)
	if not result.is_valid:
		for error in result.errors:
			utils.print_error(error)
		raise ReconciliationError("duration check still failed after file replacements",
			errors=result.errors)
	utils.print_info("duration check passed after file replacements")
	return result
