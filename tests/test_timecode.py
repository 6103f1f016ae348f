#!/usr/bin/env python3

import os
import sys
from fractions import Fraction

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from soundpipelib.core import timecode
from soundpipelib.core.errors import ConfigError

#============================================

@pytest.mark.parametrize('text', [
	"0:00:00.000",
	"0:03:00.000",
	"1:02:03.456",
	"12:59:59.999",
	"0:00:01.123456",
])
def test_valid_timestamps(text):
	assert timecode.is_valid_timestamp(text)

#============================================

@pytest.mark.parametrize('text', [
	"0:60:00.000",
	"0:00:60.000",
	"0:00:01.12",
	"0:00:01.1234",
	"0:00:01",
	"00:01.000",
	"a:00:01.000",
	"",
	None,
])
def test_invalid_timestamps(text):
	assert not timecode.is_valid_timestamp(text)

#============================================

def test_parse_timestamp_values():
	assert timecode.parse_timestamp("0:03:00.000") == 180.0
	assert timecode.parse_timestamp("1:02:03.500") == 3723.5
	assert timecode.parse_timestamp("0:00:00.000001") == pytest.approx(0.000001)

#============================================

def test_parse_timestamp_rejects_bad_text():
	with pytest.raises(ConfigError):
		timecode.parse_timestamp("0:00:61.000")

#============================================

@pytest.mark.parametrize('text', ["0:00:00.000", "0:05:07.250", "2:10:00.999", "10:00:00.001"])
def test_timestamp_round_trip(text):
	assert timecode.format_timestamp(timecode.parse_timestamp(text)) == text

#============================================

def test_format_timestamp_carries_rounding():
	assert timecode.format_timestamp(59.9996) == "0:01:00.000"
	assert timecode.format_timestamp(3599.9999) == "1:00:00.000"
	assert timecode.format_timestamp(1.5, digits=6) == "0:00:01.500000"

#============================================

def test_format_timestamp_rejects_negative():
	with pytest.raises(ConfigError):
		timecode.format_timestamp(-1.0)

#============================================

def test_parse_duration():
	assert timecode.parse_duration("1:23:45") == 5025.0
	assert timecode.parse_duration("0:00:30.5") == 30.5
	assert timecode.parse_duration("0:42:10") == 2530.0

#============================================

@pytest.mark.parametrize('text', ["1:23", "1:60:00", "0:00:60", "a:b:c", "1:2:3:4", "-1:00:00"])
def test_parse_duration_rejects(text):
	with pytest.raises(ConfigError):
		timecode.parse_duration(text)

#============================================

def test_seconds_to_frame_rounds_half_up():
	assert timecode.seconds_to_frame(0.5, 3) == 2
	assert timecode.seconds_to_frame(1.0, 44100) == 44100
	assert timecode.seconds_to_frame(0.0000113, 44100) == 0
	assert timecode.seconds_to_frame(0.0000114, 44100) == 1
	assert timecode.round_half_up_fraction(Fraction(5, 2)) == 3
	assert timecode.round_half_up_fraction(Fraction(7, 3)) == 2
