#!/usr/bin/env python3

"""
Pytest coverage for the sample-accurate WAV splitter.
"""

# Standard Library
import os
import struct
import sys
import tempfile
import wave

# PIP3 modules
import numpy
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# tests helpers
TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from wav_utils import make_ramp_samples, read_wav, write_extensible_wav, write_wav

# local repo modules
from soundpipelib.core import utils
from soundpipelib.core.errors import StepError
from soundpipelib.media import wav_split

#============================================

@pytest.fixture(autouse=True)
def quiet_mode():
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)

#============================================

def test_split_is_sample_accurate():
	sample_rate = 1000
	channels = 2
	samples = make_ramp_samples(5000, channels)
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		write_wav(source, samples, channels, sample_rate)
		segments = [
			{'file': 'b.wav', 'start': "0:00:02.000", 'end': "0:00:03.500"},
			{'file': 'a.wav', 'start': "0:00:00.250", 'end': "0:00:01.000"},
		]
		out_dir = os.path.join(temp_dir, "tracks")
		results = wav_split.split_wav(source, out_dir, segments)
		assert [item['file'] for item in results] == ['a.wav', 'b.wav']
		(a_samples, a_channels, a_rate) = read_wav(os.path.join(out_dir, "a.wav"))
		assert a_channels == channels
		assert a_rate == sample_rate
		assert a_samples.size == (1000 - 250) * channels
		numpy.testing.assert_array_equal(a_samples, samples[250 * channels:1000 * channels])
		(b_samples, _, _) = read_wav(os.path.join(out_dir, "b.wav"))
		assert b_samples.size == (3500 - 2000) * channels
		numpy.testing.assert_array_equal(b_samples, samples[2000 * channels:3500 * channels])
		assert not any(item['truncated'] for item in results)

#============================================

def test_split_rounds_boundaries_to_nearest_frame():
	sample_rate = 8000
	samples = make_ramp_samples(8000, 1)
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		write_wav(source, samples, 1, sample_rate)
		# 0.000063s is just over half a frame at 8 kHz and rounds up to frame 1
		segments = [{'file': 'x.wav', 'start': "0:00:00.000063", 'end': "0:00:00.100000"}]
		results = wav_split.split_wav(source, temp_dir, segments)
		(out_samples, _, _) = read_wav(os.path.join(temp_dir, "x.wav"))
		assert results[0]['frames'] == 800 - 1
		numpy.testing.assert_array_equal(out_samples, samples[1:800])

#============================================

def test_split_truncates_last_segment_with_warning(capsys):
	sample_rate = 1000
	samples = make_ramp_samples(1500, 1)
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		write_wav(source, samples, 1, sample_rate)
		segments = [
			{'file': 'one.wav', 'start': "0:00:00.000", 'end': "0:00:01.000"},
			{'file': 'two.wav', 'start': "0:00:01.000", 'end': "0:00:02.000"},
		]
		results = wav_split.split_wav(source, temp_dir, segments)
		assert results[0]['frames'] == 1000
		assert results[1]['frames'] == 500
		assert results[1]['truncated']
		(two_samples, _, _) = read_wav(os.path.join(temp_dir, "two.wav"))
		numpy.testing.assert_array_equal(two_samples, samples[1000:1500])
		captured = capsys.readouterr()
		assert "source ended early" in captured.err

#============================================

def test_overlap_fails_before_any_output():
	samples = make_ramp_samples(3000, 1)
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		write_wav(source, samples, 1, 1000)
		out_dir = os.path.join(temp_dir, "tracks")
		segments = [
			{'file': 'one.wav', 'start': "0:00:00.000", 'end': "0:00:01.500"},
			{'file': 'two.wav', 'start': "0:00:01.000", 'end': "0:00:02.000"},
		]
		with pytest.raises(StepError, match="overlap"):
			wav_split.split_wav(source, out_dir, segments)
		assert not os.path.exists(out_dir)

#============================================

def test_adjacent_segments_are_allowed():
	segments = [
		{'file': 'one.wav', 'start': "0:00:00.000", 'end': "0:00:01.000"},
		{'file': 'two.wav', 'start': "0:00:01.000", 'end': "0:00:02.000"},
	]
	normalized = wav_split.normalize_segments(segments)
	assert [item['start_seconds'] for item in normalized] == [0.0, 1.0]
	assert 'start_seconds' not in segments[0]

#============================================

def test_bad_segments_are_rejected():
	with pytest.raises(StepError, match="end time must be after start time"):
		wav_split.normalize_segments(
			[{'file': 'a.wav', 'start': "0:00:02.000", 'end': "0:00:01.000"}])
	with pytest.raises(StepError, match="invalid timestamp"):
		wav_split.normalize_segments(
			[{'file': 'a.wav', 'start': "0:00:02", 'end': "0:00:03.000"}])

#============================================

def _write_float_wav(path: str) -> None:
	data = struct.pack('<4f', 0.0, 0.5, -0.5, 0.25)
	fmt_chunk = struct.pack('<HHIIHH', 3, 1, 1000, 4000, 4, 32)
	body = b'WAVE'
	body += b'fmt ' + struct.pack('<I', len(fmt_chunk)) + fmt_chunk
	body += b'data' + struct.pack('<I', len(data)) + data
	with open(path, 'wb') as handle:
		handle.write(b'RIFF' + struct.pack('<I', len(body)) + body)

#============================================

def test_float_wav_is_rejected():
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "float.wav")
		_write_float_wav(source)
		segments = [{'file': 'a.wav', 'start': "0:00:00.000", 'end': "0:00:00.002"}]
		with pytest.raises(StepError, match="PCM"):
			wav_split.split_wav(source, temp_dir, segments)

#============================================

def test_24_bit_stereo_copy():
	sample_rate = 2000
	frame_count = 400
	raw = bytes(range(256)) * ((frame_count * 6) // 256 + 1)
	raw = raw[:frame_count * 6]
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		with wave.open(source, 'wb') as handle:
			handle.setnchannels(2)
			handle.setsampwidth(3)
			handle.setframerate(sample_rate)
			handle.writeframes(raw)
		segments = [{'file': 'cut.wav', 'start': "0:00:00.050", 'end': "0:00:00.100"}]
		wav_split.split_wav(source, temp_dir, segments)
		with wave.open(os.path.join(temp_dir, "cut.wav"), 'rb') as handle:
			assert handle.getsampwidth() == 3
			assert handle.getnchannels() == 2
			data = handle.readframes(handle.getnframes())
		assert data == raw[100 * 6:200 * 6]

#============================================

def test_extensible_six_channel_24_bit_copy():
	sample_rate = 48000
	channels = 6
	frame_size = channels * 3
	frame_count = 4800
	raw = bytes((index * 7) % 251 for index in range(frame_count * frame_size))
	with tempfile.TemporaryDirectory() as temp_dir:
		source = os.path.join(temp_dir, "audio.wav")
		write_extensible_wav(source, raw, channels, sample_rate, 3, channel_mask=0x3F)
		segments = [{'file': 'cut.wav', 'start': "0:00:00.010", 'end': "0:00:00.050"}]
		results = wav_split.split_wav(source, temp_dir, segments)
		assert results[0]['frames'] == 1920
		with wave.open(os.path.join(temp_dir, "cut.wav"), 'rb') as handle:
			assert handle.getnchannels() == channels
			assert handle.getsampwidth() == 3
			assert handle.getframerate() == sample_rate
			data = handle.readframes(handle.getnframes())
		assert data == raw[480 * frame_size:2400 * frame_size]
