#!/usr/bin/env python3

import os
import shlex
import shutil
import subprocess
import sys

_QUIET_MODE = False
_VERBOSE_MODE = False

#============================================

def set_quiet_mode(enabled: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(enabled)
	return

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def set_verbose_mode(enabled: bool) -> None:
	global _VERBOSE_MODE
	_VERBOSE_MODE = bool(enabled)
	return

#============================================

def is_verbose_mode() -> bool:
	return _VERBOSE_MODE

#============================================

def print_info(message: str) -> None:
	if _QUIET_MODE:
		return
	print(message)
	return

#============================================

def print_debug(message: str) -> None:
	if _QUIET_MODE or not _VERBOSE_MODE:
		return
	print(f"debug: {message}")
	return

#============================================

def print_warning(message: str) -> None:
	sys.stderr.write(f"warning: {message}\n")
	return

#============================================

def print_error(message: str) -> None:
	sys.stderr.write(f"error: {message}\n")
	return

#============================================

def show_command(cmd: list) -> str:
	showcmd = shlex.join([str(part) for part in cmd])
	print_info(f"CMD: '{showcmd}'")
	return showcmd

#============================================

def run_process(cmd: list, capture_output: bool = True,
	echo: bool = True) -> subprocess.CompletedProcess:
	"""
	Run a subprocess command.

	Args:
		cmd: Command list to execute.
		capture_output: Capture stdout and stderr when True.
		echo: Print the CMD line before running.

	Returns:
		subprocess.CompletedProcess: The completed process.
	"""
	if echo:
		showcmd = show_command(cmd)
	else:
		showcmd = shlex.join([str(part) for part in cmd])
	try:
		proc = subprocess.run(cmd, capture_output=capture_output, text=True)
	except OSError as error:
		raise RuntimeError(f"could not run command: {showcmd}\n{error}")
	if proc.returncode != 0:
		stderr_text = (proc.stderr or "").strip()
		raise RuntimeError(f"command failed: {showcmd}\n{stderr_text}")
	return proc

#============================================

def check_dependency(cmd_name: str) -> None:
	if shutil.which(cmd_name) is None:
		raise RuntimeError(f"missing dependency: {cmd_name}")
	return

#============================================

def resolve_path(working_dir: str, path: str) -> str:
	"""
	Join a step path onto the working directory; absolute paths pass through.
	"""
	if os.path.isabs(path):
		return path
	return os.path.join(working_dir, path)

#============================================

def has_glob_chars(text: str) -> bool:
	return any(char in text for char in "*?[")
