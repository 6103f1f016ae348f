#!/usr/bin/env python3

"""
Timestamp and duration helpers.

Segment timestamps use H:MM:SS.fff or H:MM:SS.ffffff, expected durations
use h:mm:ss with optional decimals on the seconds field.
"""

import decimal
import re
from decimal import Decimal
from fractions import Fraction
from soundpipelib.core.errors import ConfigError

TIMESTAMP_RE = re.compile(r"([0-9]+):([0-9]{2}):([0-9]{2})\.([0-9]{3}|[0-9]{6})")

#============================================

def is_valid_timestamp(text) -> bool:
	if not isinstance(text, str):
		return False
	match = TIMESTAMP_RE.fullmatch(text)
	if match is None:
		return False
	if int(match.group(2)) >= 60:
		return False
	if int(match.group(3)) >= 60:
		return False
	return True

#============================================

def parse_timestamp(text) -> float:
	"""
	Parse a segment timestamp to seconds.

	Args:
		text: Timestamp such as 0:03:00.000 or 1:02:03.456789.

	Returns:
		float: Offset in seconds.
	"""
	if not is_valid_timestamp(text):
		raise ConfigError(
			f"invalid timestamp '{text}', expected H:MM:SS.fff or H:MM:SS.ffffff"
		)
	match = TIMESTAMP_RE.fullmatch(text)
	hours = Decimal(match.group(1))
	minutes = Decimal(match.group(2))
	seconds = Decimal(f"{match.group(3)}.{match.group(4)}")
	return float(hours * Decimal(3600) + minutes * Decimal(60) + seconds)

#============================================

def format_timestamp(seconds, digits: int = 3) -> str:
	"""
	Render seconds as H:MM:SS.fff (digits=3) or H:MM:SS.ffffff (digits=6).
	"""
	if digits not in (3, 6):
		raise ConfigError("timestamp precision must be 3 or 6 digits")
	value = Fraction(str(seconds))
	if value < 0:
		raise ConfigError(f"timestamp cannot be negative: {seconds}")
	scale = 10 ** digits
	units = round_half_up_fraction(value * scale)
	(whole_seconds, fraction) = divmod(units, scale)
	(hours, remainder) = divmod(whole_seconds, 3600)
	(minutes, secs) = divmod(remainder, 60)
	return f"{hours}:{minutes:02d}:{secs:02d}.{fraction:0{digits}d}"

#============================================

def parse_duration(text) -> float:
	"""
	Parse an expected duration in h:mm:ss form to seconds.

	Args:
		text: Duration such as 1:23:45 or 0:00:30.5.

	Returns:
		float: Duration in seconds.
	"""
	if not isinstance(text, str):
		raise ConfigError(f"invalid duration '{text}', expected h:mm:ss")
	parts = text.strip().split(':')
	if len(parts) != 3:
		raise ConfigError(f"invalid duration '{text}', expected h:mm:ss")
	values = []
	for label, part in zip(('hours', 'minutes', 'seconds'), parts):
		try:
			value = Decimal(part)
		except decimal.InvalidOperation:
			raise ConfigError(f"invalid {label} in duration '{text}'")
		if not value.is_finite() or value < 0:
			raise ConfigError(f"invalid {label} in duration '{text}'")
		values.append(value)
	(hours, minutes, seconds) = values
	if minutes >= 60:
		raise ConfigError(f"invalid minutes in duration '{text}', must be less than 60")
	if seconds >= 60:
		raise ConfigError(f"invalid seconds in duration '{text}', must be less than 60")
	return float(hours * Decimal(3600) + minutes * Decimal(60) + seconds)

#============================================

def round_half_up_fraction(value: Fraction) -> int:
	numerator = value.numerator
	denominator = value.denominator
	whole = numerator // denominator
	remainder = numerator - (whole * denominator)
	if remainder * 2 >= denominator:
		return whole + 1
	return whole

#============================================

def seconds_to_frame(seconds, sample_rate: int) -> int:
	"""
	Convert a seconds offset to the nearest frame index at sample_rate.
	"""
	return round_half_up_fraction(Fraction(str(seconds)) * sample_rate)
