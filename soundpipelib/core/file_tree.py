#!/usr/bin/env python3

"""
In-memory model of the working directory used during validation.

Nodes live in flat lists indexed by integer id. A directory node maps
child names to node ids; a file node has no children. Node 0 is the root.
Removed subtrees are detached from their parent and never reused.
"""

import fnmatch
import os

FILE = 'file'
DIRECTORY = 'directory'
ROOT_ID = 0

#============================================

def normalize_components(path) -> list:
	"""
	Split a path into components, dropping empty and '.' parts.

	Args:
		path: String or path-like, with '/' or the host separator.

	Returns:
		list: Path components in order.
	"""
	text = os.fspath(path)
	if os.sep != '/':
		text = text.replace(os.sep, '/')
	while text.startswith('./'):
		text = text[2:]
	return [part for part in text.split('/') if part not in ('', '.')]

#============================================

def is_malformed_pattern(pattern: str) -> bool:
	index = 0
	while index < len(pattern):
		if pattern[index] == '[':
			close = pattern.find(']', index + 2)
			if close < 0:
				return True
			index = close
		index += 1
	return False

#============================================

class VirtualFileTree():
	def __init__(self):
		self._kinds = [DIRECTORY]
		self._children = [{}]

	#============================
	def _new_node(self, kind: str) -> int:
		self._kinds.append(kind)
		if kind == DIRECTORY:
			self._children.append({})
		else:
			self._children.append(None)
		return len(self._kinds) - 1

	#============================
	def _lookup(self, components: list):
		node_id = ROOT_ID
		for component in components:
			children = self._children[node_id]
			if children is None:
				return None
			node_id = children.get(component)
			if node_id is None:
				return None
		return node_id

	#============================
	def _ensure_parent(self, components: list):
		node_id = ROOT_ID
		for component in components:
			children = self._children[node_id]
			child_id = children.get(component)
			if child_id is None:
				child_id = self._new_node(DIRECTORY)
				children[component] = child_id
			elif self._kinds[child_id] != DIRECTORY:
				return None
			node_id = child_id
		return node_id

	#============================
	def add_file(self, path) -> bool:
		"""
		Register a file, creating missing parent directories.

		Returns False without changing the tree when the path, or one of
		its parents, is already taken by the other node kind.
		"""
		components = normalize_components(path)
		if len(components) == 0:
			return False
		parent_id = self._ensure_parent(components[:-1])
		if parent_id is None:
			return False
		name = components[-1]
		children = self._children[parent_id]
		existing = children.get(name)
		if existing is not None:
			return self._kinds[existing] == FILE
		children[name] = self._new_node(FILE)
		return True

	#============================
	def add_directory(self, path) -> bool:
		components = normalize_components(path)
		if len(components) == 0:
			return False
		return self._ensure_parent(components) is not None

	#============================
	def exists(self, path) -> bool:
		components = normalize_components(path)
		if len(components) == 0:
			return False
		return self._lookup(components) is not None

	#============================
	def is_file(self, path) -> bool:
		components = normalize_components(path)
		if len(components) == 0:
			return False
		node_id = self._lookup(components)
		return node_id is not None and self._kinds[node_id] == FILE

	#============================
	def is_directory(self, path) -> bool:
		components = normalize_components(path)
		if len(components) == 0:
			return False
		node_id = self._lookup(components)
		return node_id is not None and self._kinds[node_id] == DIRECTORY

	#============================
	def remove(self, path) -> bool:
		components = normalize_components(path)
		if len(components) == 0:
			return False
		parent_id = self._lookup(components[:-1])
		if parent_id is None:
			return False
		children = self._children[parent_id]
		if children is None or components[-1] not in children:
			return False
		del children[components[-1]]
		return True

	#============================
	def find_matching(self, pattern: str) -> list:
		"""
		Return every file or directory path matching a glob pattern.

		Paths are joined with '/' and matched case-sensitively; '*' also
		crosses directory separators. Malformed patterns match nothing.
		"""
		if is_malformed_pattern(pattern):
			return []
		results = []
		self._collect(ROOT_ID, '', pattern, results)
		return results

	#============================
	def _collect(self, node_id: int, prefix: str, pattern: str, results: list) -> None:
		for name, child_id in self._children[node_id].items():
			child_path = name if prefix == '' else f"{prefix}/{name}"
			if fnmatch.fnmatchcase(child_path, pattern):
				results.append(child_path)
			if self._kinds[child_id] == DIRECTORY:
				self._collect(child_id, child_path, pattern, results)
		return

	#============================
	def find_in_directory(self, directory, pattern: str) -> list:
		dir_text = '/'.join(normalize_components(directory))
		if dir_text == '':
			return self.find_matching(pattern)
		return self.find_matching(f"{dir_text}/{pattern}")

	#============================
	def scan_disk(self, base_dir: str) -> None:
		"""
		Seed the tree with everything that already exists under base_dir.
		"""
		for root, dirs, files in os.walk(base_dir):
			dirs.sort()
			rel_root = os.path.relpath(root, base_dir)
			for dir_name in dirs:
				self.add_directory(os.path.join(rel_root, dir_name))
			for file_name in sorted(files):
				self.add_file(os.path.join(rel_root, file_name))
		return
