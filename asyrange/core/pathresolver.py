import os
from asyrange.errors import PathTraversal, FileNotFound


class ResolvedPath:
	def __init__(self, absolute_path:str, within_root:bool):
		self.absolute_path = absolute_path
		self.within_root = within_root

	def __repr__(self):
		return 'ResolvedPath(absolute_path=%r, within_root=%s)' % (self.absolute_path, self.within_root)


class PathResolver:
	"""
	Confines request paths to a root directory.

	resolve() is purely lexical: the path is joined under root and normalized,
	the filesystem is not consulted. check() additionally looks at the
	filesystem, following symlinks, and is what file I/O should go through.
	"""
	def __init__(self, root:str):
		self.root = os.path.normpath(os.path.abspath(root))

	def _is_within(self, path:str, root:str):
		try:
			return os.path.commonpath([path, root]) == root
		except ValueError:
			# different drives
			return False

	def resolve(self, request_path:str) -> ResolvedPath:
		rel = request_path.replace('\\', '/')
		if rel.startswith('/'):
			rel = rel[1:]
		# an absolute remainder ("//etc/passwd") must not replace root in join()
		joined = os.path.join(self.root, *[p for p in rel.split('/') if p != ''])
		absolute_path = os.path.normpath(joined)
		if '\x00' in absolute_path:
			# no filesystem call accepts it
			return ResolvedPath(absolute_path, False)
		return ResolvedPath(absolute_path, self._is_within(absolute_path, self.root))

	def _real_within(self, path:str):
		return self._is_within(os.path.realpath(path), os.path.realpath(self.root))

	def check(self, request_path:str):
		"""
		Returns (ResolvedPath, err). err is None only when the request names an
		existing regular file whose real location is inside root.
		"""
		resolved = self.resolve(request_path)
		if not resolved.within_root:
			return resolved, PathTraversal(request_path)

		if not self._real_within(resolved.absolute_path):
			return resolved, PathTraversal(request_path, 'Requested path resolves outside of the served root')

		if not os.path.isfile(resolved.absolute_path):
			return resolved, FileNotFound(request_path)

		return resolved, None

	def check_writable(self, request_path:str):
		"""
		Returns (ResolvedPath, err) for a file about to be created or overwritten.
		The target may not exist yet, but if it does it must not be a symlink,
		and its parent directory must really be inside root.
		"""
		resolved = self.resolve(request_path)
		if not resolved.within_root:
			return resolved, PathTraversal(request_path)

		if os.path.islink(resolved.absolute_path):
			return resolved, PathTraversal(request_path, 'Refusing to write through a symlink')

		if not self._real_within(resolved.absolute_path):
			return resolved, PathTraversal(request_path, 'Requested path resolves outside of the served root')

		return resolved, None
