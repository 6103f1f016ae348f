#!/usr/bin/env python3

"""
Metadata tag writing with mutagen.

Supported containers are MP3, WAV and AIFF (ID3v2 frames), M4A (MP4 atoms)
and FLAC (Vorbis comments). Cover art is embedded as the front cover picture.
"""

import os
import mutagen
import mutagen.aiff
import mutagen.flac
import mutagen.id3
import mutagen.mp3
import mutagen.mp4
import mutagen.wave
from soundpipelib.core import utils
from soundpipelib.core.errors import StepError

IMAGE_MIME_TYPES = {
	'.jpg': 'image/jpeg',
	'.jpeg': 'image/jpeg',
	'.png': 'image/png',
	'.gif': 'image/gif',
	'.bmp': 'image/bmp',
}

FRONT_COVER = 3

# containers that carry an ID3v2 tag
ID3_TYPES = (mutagen.mp3.MP3, mutagen.wave.WAVE, mutagen.aiff.AIFF)

#============================================

def guess_image_mime(art_file: str) -> str:
	extension = os.path.splitext(art_file)[1].lower()
	mime_type = IMAGE_MIME_TYPES.get(extension)
	if mime_type is None:
		utils.print_warning(f"unknown image type for {art_file}, assuming image/jpeg")
		return 'image/jpeg'
	return mime_type

#============================================

def _number_pair(number, total) -> str:
	if total is None:
		return str(number)
	return f"{number}/{total}"

#============================================

def _read_art(art_file: str):
	if art_file is None:
		return None
	if not os.path.isfile(art_file):
		utils.print_warning(f"album art file not found: {art_file}, writing tags without it")
		return None
	with open(art_file, 'rb') as art_handle:
		data = art_handle.read()
	return (data, guess_image_mime(art_file))

#============================================

def _apply_id3(audio, tags: dict, art) -> None:
	if audio.tags is None:
		audio.add_tags()
	frames = audio.tags
	text_frames = (
		('title', mutagen.id3.TIT2),
		('artist', mutagen.id3.TPE1),
		('album', mutagen.id3.TALB),
		('album_artist', mutagen.id3.TPE2),
		('genre', mutagen.id3.TCON),
	)
	for field, frame_class in text_frames:
		if tags.get(field) is not None:
			frames.setall(frame_class.__name__, [frame_class(encoding=3, text=[tags[field]])])
	if tags.get('track') is not None:
		frames.setall('TRCK', [mutagen.id3.TRCK(encoding=3,
			text=[_number_pair(tags['track'], tags.get('track_total'))])])
	if tags.get('disk') is not None:
		frames.setall('TPOS', [mutagen.id3.TPOS(encoding=3,
			text=[_number_pair(tags['disk'], tags.get('disk_total'))])])
	if tags.get('year') is not None:
		frames.setall('TDRC', [mutagen.id3.TDRC(encoding=3, text=[str(tags['year'])])])
	if tags.get('comment') is not None:
		frames.setall('COMM', [mutagen.id3.COMM(encoding=3, lang='eng', desc='',
			text=[tags['comment']])])
	if art is not None:
		(data, mime_type) = art
		frames.setall('APIC', [mutagen.id3.APIC(encoding=3, mime=mime_type,
			type=FRONT_COVER, desc='Cover', data=data)])
	return

#============================================

def _apply_mp4(audio, tags: dict, art) -> None:
	if audio.tags is None:
		audio.add_tags()
	atoms = (
		('title', '\xa9nam'),
		('artist', '\xa9ART'),
		('album', '\xa9alb'),
		('album_artist', 'aART'),
		('genre', '\xa9gen'),
		('comment', '\xa9cmt'),
	)
	for field, atom in atoms:
		if tags.get(field) is not None:
			audio.tags[atom] = [tags[field]]
	if tags.get('track') is not None:
		audio.tags['trkn'] = [(tags['track'], tags.get('track_total') or 0)]
	if tags.get('disk') is not None:
		audio.tags['disk'] = [(tags['disk'], tags.get('disk_total') or 0)]
	if tags.get('year') is not None:
		audio.tags['\xa9day'] = [str(tags['year'])]
	if art is not None:
		(data, mime_type) = art
		image_format = mutagen.mp4.MP4Cover.FORMAT_JPEG
		if mime_type == 'image/png':
			image_format = mutagen.mp4.MP4Cover.FORMAT_PNG
		audio.tags['covr'] = [mutagen.mp4.MP4Cover(data, imageformat=image_format)]
	return

#============================================

def _apply_vorbis(audio, tags: dict, art) -> None:
	if audio.tags is None:
		audio.add_tags()
	fields = (
		('title', 'TITLE'),
		('artist', 'ARTIST'),
		('album', 'ALBUM'),
		('album_artist', 'ALBUMARTIST'),
		('genre', 'GENRE'),
		('comment', 'COMMENT'),
		('track', 'TRACKNUMBER'),
		('track_total', 'TRACKTOTAL'),
		('disk', 'DISCNUMBER'),
		('disk_total', 'DISCTOTAL'),
		('year', 'DATE'),
	)
	for field, key in fields:
		if tags.get(field) is not None:
			audio.tags[key] = [str(tags[field])]
	if art is not None:
		(data, mime_type) = art
		picture = mutagen.flac.Picture()
		picture.type = FRONT_COVER
		picture.mime = mime_type
		picture.desc = 'Cover'
		picture.data = data
		audio.clear_pictures()
		audio.add_picture(picture)
	return

#============================================

def write_tags(media_file: str, tags: dict, art_file: str = None) -> None:
	"""
	Write scalar tags and optional cover art into a media file in place.

	Args:
		media_file: MP3, WAV, AIFF, M4A or FLAC file.
		tags: Mapping of title, artist, album, album_artist, track,
			track_total, disk, disk_total, genre, year and comment; None
			values are left untouched.
		art_file: Cover image path, or None.
	"""
	try:
		audio = mutagen.File(media_file)
	except mutagen.MutagenError as error:
		raise StepError(f"cannot read tags from {media_file}: {error}")
	if audio is None:
		raise StepError(f"unsupported media file for tagging: {media_file}")
	art = _read_art(art_file)
	if isinstance(audio, ID3_TYPES):
		_apply_id3(audio, tags, art)
	elif isinstance(audio, mutagen.mp4.MP4):
		_apply_mp4(audio, tags, art)
	elif isinstance(audio, mutagen.flac.FLAC):
		_apply_vorbis(audio, tags, art)
	else:
		raise StepError(f"unsupported media file for tagging: {media_file}")
	try:
		audio.save()
	except mutagen.MutagenError as error:
		raise StepError(f"failed to write tags to {media_file}: {error}")
	return
