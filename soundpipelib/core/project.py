#!/usr/bin/env python3

import os
from soundpipelib.core import utils
from soundpipelib.core import formats
from soundpipelib.core.errors import ConfigError
from soundpipelib.core.errors import ValidationError
from soundpipelib.core.loader import ConfigLoader
from soundpipelib.core.settings import build_settings
from soundpipelib.core.durations import reconcile_durations
from soundpipelib.core.validator import validate_pipeline
from soundpipelib.core.runner import PipelineRunner

#============================================

class SoundPipelineProject():
	def __init__(self, yaml_file: str, working_dir: str = None, format_override: str = None,
		duration_tolerance=None, file_scan_pattern: str = None, dry_run: bool = False,
		assume_yes: bool = False, probe=None, ask=None, confirm=None, environ: dict = None):
		loader = ConfigLoader(yaml_file)
		self.config = loader.load()
		if working_dir is None:
			working_dir = os.getcwd()
		self.working_dir = working_dir
		self.format_override = format_override
		self.dry_run = dry_run
		self.settings = build_settings(self.config.settings, cli_tolerance=duration_tolerance,
			cli_scan_pattern=file_scan_pattern, environ=environ)
		self.probe = probe
		self.ask = ask
		if assume_yes:
			confirm = _always_yes
		self.confirm = confirm
		self.steps = self.config.steps
		self.selected_format = None

	#============================
	def resolve_format(self) -> formats.SelectedFormat:
		if not self.config.has_step_type('transcode'):
			if self.format_override is not None:
				utils.print_warning("format override ignored, no transcode step in pipeline")
			utils.print_debug("no transcode step, skipping format selection")
			self.selected_format = formats.NO_FORMAT
			return self.selected_format
		if self.config.formats is None:
			raise ConfigError("formats section is required when a transcode step is present")
		if self.format_override is not None:
			self.selected_format = formats.parse_format_string(self.format_override,
				self.config.formats)
		else:
			self.selected_format = formats.select_format(self.config.formats, ask=self.ask)
		utils.print_info(f"selected format: {self.selected_format.format}"
			f" bitrate: {self.selected_format.bitrate}"
			f" bit depth: {self.selected_format.bit_depth}")
		return self.selected_format

	#============================
	def reconcile(self) -> None:
		reconcile_durations(self.steps, self.working_dir,
			self.settings['duration_tolerance'], self.settings['file_scan_pattern'],
			probe=self.probe, confirm=self.confirm)

	#============================
	def validate(self):
		result = validate_pipeline(self.steps, self.selected_format, self.working_dir)
		for warning in result.warnings:
			utils.print_warning(warning)
		for error in result.errors:
			utils.print_error(error)
		if not result.is_valid:
			raise ValidationError(
				f"pipeline validation failed with {len(result.errors)} error(s)",
				errors=result.errors, warnings=result.warnings)
		utils.print_info("pipeline validation successful")
		return result

	#============================
	def run(self) -> None:
		self.resolve_format()
		self.reconcile()
		self.validate()
		if self.dry_run:
			utils.print_info("dry run: validation complete")
			return
		runner = PipelineRunner(self.steps, self.working_dir, self.selected_format)
		runner.run()
		utils.print_info("soundpipeline completed successfully")

#============================================

def _always_yes(question: str, default: bool) -> bool:
	utils.print_info(f"{question} yes")
	return True
