#!/usr/bin/env python3

"""
convert_markers.py

Convert a tab-separated marker export (Name, Start, Duration columns) into
a soundpipeline split step.
"""

# Standard Library
import argparse
import decimal
import os
import re
import sys

# local repo modules
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)
from soundpipelib.core import timecode

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Convert marker CSV to a split step yaml")
	parser.add_argument('csv_file', help='tab-separated marker export')
	parser.add_argument('output_file', nargs='?', default=None,
		help='output yaml file (default: <csv name>_split.yml)')
	parser.add_argument('-i', '--input', dest='input_file', default='input_audio.wav',
		help='split step input wav')
	parser.add_argument('-d', '--output-dir', dest='output_dir', default='./splits',
		help='split step output directory')
	args = parser.parse_args()
	return args

#============================================

def yaml_quote(value: str) -> str:
	escaped = value.replace("\\", "\\\\").replace('"', '\\"')
	return f"\"{escaped}\""

#============================================

def parse_marker_time(raw_time: str) -> decimal.Decimal:
	"""
	Parse M:SS.fff or H:MM:SS.fff marker times into seconds.

	Args:
		raw_time: Time string from the marker export.

	Returns:
		decimal.Decimal: Time in seconds.
	"""
	value = raw_time.strip()
	parts = value.split(':')
	if len(parts) not in (2, 3):
		raise RuntimeError(f"invalid marker time: {raw_time}")
	try:
		seconds = decimal.Decimal(parts.pop())
		minutes = decimal.Decimal(parts.pop())
		hours = decimal.Decimal(parts.pop()) if len(parts) > 0 else decimal.Decimal(0)
	except decimal.InvalidOperation:
		raise RuntimeError(f"invalid marker time: {raw_time}")
	return hours * decimal.Decimal(3600) + minutes * decimal.Decimal(60) + seconds

#============================================

def sanitize_filename(name: str) -> str:
	cleaned = re.sub(r'[<>:"/\\|?*]', '', name)
	cleaned = re.sub(r'\s+', ' ', cleaned)
	return cleaned.strip()

#============================================

def _find_column(header: list, key: str) -> int:
	for index, column in enumerate(header):
		if key in column.lower():
			return index
	return -1

#============================================

def parse_markers(csv_text: str) -> list:
	"""
	Turn marker rows into split segments.

	Args:
		csv_text: Tab-separated text with a header row.

	Returns:
		list: Dicts with file, start and end.
	"""
	lines = [line for line in csv_text.splitlines() if line.strip() != '']
	if len(lines) < 2:
		raise RuntimeError("marker file must have a header and at least one data row")
	header = lines[0].split('\t')
	name_index = _find_column(header, 'name')
	start_index = _find_column(header, 'start')
	duration_index = _find_column(header, 'duration')
	if min(name_index, start_index, duration_index) < 0:
		raise RuntimeError("marker file must have Name, Start and Duration columns")
	needed = max(name_index, start_index, duration_index) + 1
	segments = []
	for line in lines[1:]:
		columns = line.split('\t')
		if len(columns) < needed:
			continue
		name = columns[name_index].strip()
		start_text = columns[start_index].strip()
		duration_text = columns[duration_index].strip()
		if name == '' or start_text == '' or duration_text == '':
			continue
		start = parse_marker_time(start_text)
		end = start + parse_marker_time(duration_text)
		segments.append({
			'file': sanitize_filename(name) + '.wav',
			'start': timecode.format_timestamp(start),
			'end': timecode.format_timestamp(end),
		})
	return segments

#============================================

def build_split_yaml(segments: list, input_file: str, output_dir: str) -> str:
	lines = [
		"# split step generated from marker export",
		"type: split",
		f"input: {yaml_quote(input_file)}",
		f"output_dir: {yaml_quote(output_dir)}",
		"files:",
	]
	for segment in segments:
		lines.append(f"  - file: {yaml_quote(segment['file'])}")
		lines.append(f"    start: {yaml_quote(segment['start'])}")
		lines.append(f"    end: {yaml_quote(segment['end'])}")
	return "\n".join(lines) + "\n"

#============================================

def default_output_path(csv_file: str) -> str:
	(base, extension) = os.path.splitext(csv_file)
	if extension.lower() == '.csv':
		return f"{base}_split.yml"
	return f"{csv_file}_split.yml"

#============================================

def main():
	args = parse_args()
	if not os.path.isfile(args.csv_file):
		raise RuntimeError(f"file not found: {args.csv_file}")
	with open(args.csv_file, 'r', encoding='utf-8') as csv_handle:
		csv_text = csv_handle.read()
	segments = parse_markers(csv_text)
	output_file = args.output_file or default_output_path(args.csv_file)
	with open(output_file, 'w', encoding='utf-8') as out_handle:
		out_handle.write(build_split_yaml(segments, args.input_file, args.output_dir))
	print(f"converted {len(segments)} tracks")
	print(f"output written to: {output_file}")


if __name__ == '__main__':
	main()
