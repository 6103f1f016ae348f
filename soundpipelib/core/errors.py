#!/usr/bin/env python3

#============================================

class PipelineError(RuntimeError):
	"""Base error for soundpipeline runs."""

#============================================

class ConfigError(PipelineError):
	"""Raised for a bad configuration document, setting, timestamp or format string."""

#============================================

class ValidationError(PipelineError):
	"""Raised when the dry-run validation reports one or more errors."""

	def __init__(self, message: str, errors: list = None, warnings: list = None):
		super().__init__(message)
		self.errors = list(errors or [])
		self.warnings = list(warnings or [])

#============================================

class ReconciliationError(PipelineError):
	"""Raised when duration checks still fail after the single repair cycle."""

	def __init__(self, message: str, errors: list = None):
		super().__init__(message)
		self.errors = list(errors or [])

#============================================

class ProbeError(PipelineError):
	"""Raised when the media probe cannot report a duration."""

#============================================

class StepError(PipelineError):
	"""Raised when a pipeline step fails while executing."""
