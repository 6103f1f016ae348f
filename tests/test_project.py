#!/usr/bin/env python3

import os
import sys
import tempfile
import unittest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from wav_utils import make_ramp_samples, write_wav

import soundpipeline_cli
from soundpipelib.core import utils
from soundpipelib.core import formats
from soundpipelib.core.errors import ReconciliationError
from soundpipelib.core.errors import ValidationError
from soundpipelib.core.project import SoundPipelineProject

#============================================

SPLIT_CONFIG = """
syntax: soundpipeline
syntax_version: 1
steps:
  - type: split
    input: {input}
    output_dir: tracks
    files:
      - {{file: a.wav, start: "0:00:00.000", end: "0:00:01.000"}}
      - {{file: b.wav, start: "0:00:01.000", end: "0:00:02.000"}}
  - {{type: cleanup, files: [tracks]}}
"""

EXTRACT_CONFIG = """
syntax: soundpipeline
syntax_version: 1
steps:
  - {type: extract, input: old.mkv, output: audio.wav, args: [-vn], input_duration: "0:00:10"}
  - {type: cleanup, files: [audio.wav]}
"""

TRANSCODE_CONFIG = """
syntax: soundpipeline
syntax_version: 1
formats:
  default: mp3
  available:
    - {format: mp3, bitrates: [192k, 320k], default_bitrate: 320k}
    - {format: flac, bit_depths: [16, 24], default_bit_depth: 24}
steps:
  - {type: transcode, input_dir: tracks, output_dir: out, files: ["*.wav"]}
"""

#============================================

def _write_config(temp_dir: str, text: str) -> str:
	path = os.path.join(temp_dir, "soundpipeline.yml")
	with open(path, 'w') as yaml_file:
		yaml_file.write(text)
	return path

#============================================

def _touch(path: str) -> None:
	with open(path, 'w') as handle:
		handle.write("x")

#============================================

class FakeProbe():
	def __init__(self, durations: dict):
		self.durations = durations
		self.calls = []

	def __call__(self, path: str) -> float:
		self.calls.append(os.path.basename(path))
		return self.durations[os.path.basename(path)]

#============================================

class SoundPipelineProjectTest(unittest.TestCase):
	def setUp(self) -> None:
		utils.set_quiet_mode(True)

	def tearDown(self) -> None:
		utils.set_quiet_mode(False)
		utils.set_verbose_mode(False)

	#============================================
	def test_dry_run_leaves_files_alone(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			write_wav(os.path.join(temp_dir, "audio.wav"), make_ramp_samples(3000, 1), 1, 1000)
			config = _write_config(temp_dir, SPLIT_CONFIG.format(input="audio.wav"))
			project = SoundPipelineProject(config, working_dir=temp_dir, dry_run=True)
			project.run()
			self.assertEqual(project.selected_format, formats.NO_FORMAT)
			self.assertFalse(os.path.exists(os.path.join(temp_dir, "tracks")))

	#============================================
	def test_full_run_splits_and_cleans(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			write_wav(os.path.join(temp_dir, "audio.wav"), make_ramp_samples(3000, 1), 1, 1000)
			config = _write_config(temp_dir, SPLIT_CONFIG.format(input="audio.wav"))
			SoundPipelineProject(config, working_dir=temp_dir).run()
			self.assertTrue(os.path.isfile(os.path.join(temp_dir, "audio.wav")))
			self.assertFalse(os.path.exists(os.path.join(temp_dir, "tracks")))

	#============================================
	def test_validation_errors_are_raised(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			config = _write_config(temp_dir, SPLIT_CONFIG.format(input="missing.wav"))
			project = SoundPipelineProject(config, working_dir=temp_dir, dry_run=True)
			with self.assertRaises(ValidationError) as context:
				project.run()
			self.assertEqual(len(context.exception.errors), 1)
			self.assertIn("missing.wav", context.exception.errors[0])

	#============================================
	def test_missing_source_is_replaced(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			_touch(os.path.join(temp_dir, "new.mkv"))
			_touch(os.path.join(temp_dir, "other.mkv"))
			config = _write_config(temp_dir, EXTRACT_CONFIG)
			probe = FakeProbe({'new.mkv': 10.4, 'other.mkv': 55.0})
			project = SoundPipelineProject(config, working_dir=temp_dir, dry_run=True,
				assume_yes=True, probe=probe, environ={})
			project.run()
			self.assertEqual(project.steps[0]['input'], "new.mkv")

	#============================================
	def test_declined_replacement_fails(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			_touch(os.path.join(temp_dir, "new.mkv"))
			config = _write_config(temp_dir, EXTRACT_CONFIG)
			probe = FakeProbe({'new.mkv': 10.4})
			project = SoundPipelineProject(config, working_dir=temp_dir, dry_run=True,
				probe=probe, confirm=lambda question, default: False, environ={})
			with self.assertRaisesRegex(ReconciliationError, "no replacement was made"):
				project.run()
			self.assertEqual(project.steps[0]['input'], "old.mkv")

	#============================================
	def test_cli_tolerance_overrides_default(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			_touch(os.path.join(temp_dir, "new.mkv"))
			config = _write_config(temp_dir, EXTRACT_CONFIG)
			probe = FakeProbe({'new.mkv': 10.4})
			project = SoundPipelineProject(config, working_dir=temp_dir, dry_run=True,
				assume_yes=True, probe=probe, duration_tolerance=0.25, environ={})
			with self.assertRaises(ReconciliationError):
				project.run()

	#============================================
	def test_format_override(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			config = _write_config(temp_dir, TRANSCODE_CONFIG)
			project = SoundPipelineProject(config, working_dir=temp_dir,
				format_override="flac:16bit")
			selected = project.resolve_format()
			self.assertEqual(selected, formats.SelectedFormat('flac', None, 16))

	#============================================
	def test_interactive_format_selection(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			config = _write_config(temp_dir, TRANSCODE_CONFIG)
			project = SoundPipelineProject(config, working_dir=temp_dir,
				ask=lambda question, choices, default: default)
			selected = project.resolve_format()
			self.assertEqual(selected, formats.SelectedFormat('mp3', '320k'))

	#============================================
	def test_override_without_transcode_is_ignored(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			config = _write_config(temp_dir, SPLIT_CONFIG.format(input="audio.wav"))
			project = SoundPipelineProject(config, working_dir=temp_dir, format_override="mp3")
			self.assertEqual(project.resolve_format(), formats.NO_FORMAT)

	#============================================
	def test_cli_main_exit_codes(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			missing = os.path.join(temp_dir, "missing.yml")
			self.assertEqual(soundpipeline_cli.main([missing, '-q']), 1)
			self.assertEqual(soundpipeline_cli.main(['-w', temp_dir, '-q']), 1)
			write_wav(os.path.join(temp_dir, "audio.wav"), make_ramp_samples(3000, 1), 1, 1000)
			_write_config(temp_dir, SPLIT_CONFIG.format(input="audio.wav"))
			self.assertEqual(soundpipeline_cli.main(['-w', temp_dir, '-n', '-q']), 0)
			self.assertFalse(os.path.exists(os.path.join(temp_dir, "tracks")))

	#============================================
	def test_cli_parse_args(self) -> None:
		args = soundpipeline_cli.parse_args(['pipe.yml', '-f', 'mp3:192k', '-t', '1.5',
			'-p', '*.mp4', '-n', '-y'])
		self.assertEqual(args.config, 'pipe.yml')
		self.assertEqual(args.format_override, 'mp3:192k')
		self.assertEqual(args.duration_tolerance, 1.5)
		self.assertEqual(args.file_scan_pattern, '*.mp4')
		self.assertTrue(args.dry_run)
		self.assertTrue(args.assume_yes)
		self.assertFalse(args.verbose)


if __name__ == '__main__':
	unittest.main()
