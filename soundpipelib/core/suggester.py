#!/usr/bin/env python3

import dataclasses
import glob
import os
from rich.prompt import Confirm
from soundpipelib.core import utils
from soundpipelib.core.errors import ProbeError
from soundpipelib.media import ffprobe

#============================================

@dataclasses.dataclass
class FileSuggestion:
	file_path: str
	duration_seconds: float
	difference_seconds: float

#============================================

def _rich_confirm(question: str, default: bool) -> bool:
	return Confirm.ask(question, default=default)

#============================================

def scan_candidates(working_dir: str, scan_pattern: str, probe=None) -> list:
	"""
	Probe every file in working_dir that matches scan_pattern.

	Args:
		working_dir: Directory to scan.
		scan_pattern: Glob pattern relative to working_dir.
		probe: Callable returning a duration in seconds for a path.

	Returns:
		list: (relative_path, duration_seconds) tuples in sorted path order.
	"""
	if probe is None:
		probe = ffprobe.get_duration
	candidates = []
	for match in sorted(glob.glob(os.path.join(glob.escape(working_dir), scan_pattern))):
		if not os.path.isfile(match):
			continue
		try:
			duration = probe(match)
		except ProbeError as error:
			utils.print_warning(f"failed to get duration for {match}: {error}")
			continue
		candidates.append((os.path.relpath(match, working_dir), duration))
	utils.print_debug(f"scanned {working_dir}: {len(candidates)} files match {scan_pattern}")
	return candidates

#============================================

def find_best_match(candidates: list, target_seconds: float, tolerance: float):
	"""
	Pick the candidate closest to target_seconds within tolerance.

	Ties keep the first candidate seen.

	Args:
		candidates: (path, duration_seconds) tuples.
		target_seconds: Expected duration.
		tolerance: Maximum difference, exclusive.

	Returns:
		FileSuggestion or None.
	"""
	best = None
	for (path, duration) in candidates:
		difference = abs(duration - target_seconds)
		if difference >= tolerance:
			continue
		if best is None or difference < best.difference_seconds:
			best = FileSuggestion(path, duration, difference)
	return best

#============================================

class FileSuggester():
	def __init__(self, working_dir: str, tolerance: float, scan_pattern: str,
		probe=None, confirm=None):
		self.working_dir = working_dir
		self.tolerance = tolerance
		self.scan_pattern = scan_pattern
		self.probe = probe
		if confirm is None:
			confirm = _rich_confirm
		self.confirm = confirm

	#============================
	def suggest(self, original_file: str, expected_seconds: float):
		"""
		Offer the best replacement for original_file and ask for confirmation.

		Returns:
			str: Replacement path relative to the working directory, or None.
		"""
		original_path = utils.resolve_path(self.working_dir, original_file)
		file_exists = os.path.exists(original_path)
		if file_exists:
			utils.print_info(f"searching for files near {expected_seconds:.2f}s "
				f"to replace mismatched '{original_file}'")
		else:
			utils.print_info(f"searching for files to replace missing '{original_file}'")
		candidates = scan_candidates(self.working_dir, self.scan_pattern, self.probe)
		if len(candidates) == 0:
			utils.print_info(f"no files matching {self.scan_pattern} found for replacement")
			return None
		suggestion = find_best_match(candidates, expected_seconds, self.tolerance)
		if suggestion is None:
			utils.print_info(f"no replacement within {self.tolerance:.1f}s tolerance")
			return None
		if not self._ask(original_file, expected_seconds, suggestion, file_exists):
			utils.print_info("replacement declined")
			return None
		return suggestion.file_path

	#============================
	def _ask(self, original_file: str, expected_seconds: float,
		suggestion: FileSuggestion, file_exists: bool) -> bool:
		print("")
		if file_exists:
			print("duration mismatch detected")
			print(f"  original file: {original_file}")
		else:
			print("missing file detected")
			print(f"  original file: {original_file} (not found)")
		print(f"  expected duration: {expected_seconds:.2f}s")
		print(f"  suggested file: {suggestion.file_path}")
		print(f"  file duration: {suggestion.duration_seconds:.2f}s")
		print(f"  difference from expected: {suggestion.difference_seconds:.2f}s")
		if file_exists:
			question = "Would you like to use this file instead?"
		else:
			question = "Would you like to use this file?"
		return bool(self.confirm(question, True))

#============================================

def suggest_replacement(working_dir: str, original_file: str, expected_seconds: float,
	tolerance: float, scan_pattern: str, probe=None, confirm=None):
	suggester = FileSuggester(working_dir, tolerance, scan_pattern, probe=probe,
		confirm=confirm)
	return suggester.suggest(original_file, expected_seconds)
