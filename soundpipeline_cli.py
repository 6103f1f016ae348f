#!/usr/bin/env python3

import argparse
import os
import sys
from soundpipelib.core import utils
from soundpipelib.core.errors import PipelineError
from soundpipelib.core.project import SoundPipelineProject

DEFAULT_CONFIG = 'soundpipeline.yml'

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Run an extract, split, transcode, tag and cleanup audio pipeline")
	parser.add_argument('config', nargs='?', default=None,
		help=f"pipeline yaml file (default: {DEFAULT_CONFIG} in the working directory)")
	parser.add_argument('-w', '--working-dir', dest='working_dir',
		help='directory all step paths are resolved against (default: current directory)')
	parser.add_argument('-f', '--format', dest='format_override',
		help='output format, e.g. mp3, mp3:320k, flac:16bit, alac:24bit')
	parser.add_argument('-t', '--duration-tolerance', dest='duration_tolerance', type=float,
		help='allowed difference in seconds between expected and actual durations')
	parser.add_argument('-p', '--file-scan-pattern', dest='file_scan_pattern',
		help='glob used to find replacement source files')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='check durations and validate only, do not run steps')
	parser.add_argument('-y', '--yes', dest='assume_yes', action='store_true',
		help='accept suggested replacement files without asking')
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='print debug messages')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print warnings and errors')
	parser.set_defaults(dry_run=False, assume_yes=False, verbose=False, quiet=False)
	args = parser.parse_args(argv)
	return args

#============================================

def resolve_config_path(config: str, working_dir: str) -> str:
	if config is None:
		config_path = os.path.join(working_dir, DEFAULT_CONFIG)
		if not os.path.isfile(config_path):
			raise PipelineError(f"no config given and {config_path} does not exist")
		return config_path
	return config

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	utils.set_verbose_mode(args.verbose)
	working_dir = args.working_dir or os.getcwd()
	try:
		config_path = resolve_config_path(args.config, working_dir)
		project = SoundPipelineProject(config_path, working_dir=working_dir,
			format_override=args.format_override,
			duration_tolerance=args.duration_tolerance,
			file_scan_pattern=args.file_scan_pattern,
			dry_run=args.dry_run, assume_yes=args.assume_yes)
		project.run()
	except PipelineError as error:
		utils.print_error(str(error))
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
