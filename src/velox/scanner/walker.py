"""Depth-first directory walker producing FileEntry records.

The walk is pre-order and uses an explicit stack of ``os.scandir``
iterators, so deep trees never hit the recursion limit. The root is
yielded first at depth 0.

Filesystem access goes through the module-level ``read_metadata`` and
``open_directory`` functions; tests replace them to simulate unreadable
entries regardless of the user running the suite.
"""

from __future__ import annotations

import logging
import os
import stat
import uuid
from collections.abc import Iterator

from velox.core.datetime_utils import timestamp_to_iso
from velox.core.formatting import format_file_size
from velox.scanner.models import FileEntry, ScanConfig

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."

# (st_dev, st_ino) identity of a directory, None when metadata is unreadable
_DirKey = tuple[int, int] | None


def read_metadata(path: str, *, follow_symlinks: bool) -> os.stat_result:
    """Stat a path. Raises OSError when metadata is unavailable."""
    return os.stat(path, follow_symlinks=follow_symlinks)


def open_directory(path: str) -> Iterator[os.DirEntry[str]]:
    """List a directory. Raises OSError when it cannot be read."""
    return os.scandir(path)


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def get_extension(name: str) -> str | None:
    """Return the final suffix without its dot, or None.

    Leading-dot names such as ".bashrc" have no extension.
    """
    _, ext = os.path.splitext(name)
    return ext[1:] or None


def to_display_text(value: str) -> str:
    """Decode a filesystem string lossily for output.

    Undecodable bytes, which ``os`` surfaces as lone surrogates, become
    U+FFFD so the text can be printed and serialized as JSON.
    """
    return os.fsencode(value).decode("utf-8", "replace")


def _dir_key(st: os.stat_result | None) -> _DirKey:
    if st is None:
        return None
    return (st.st_dev, st.st_ino)


def _make_entry(
    path: str,
    name: str,
    depth: int,
    st: os.stat_result | None,
    is_directory: bool,
    is_file: bool,
    is_symlink: bool,
) -> FileEntry:
    size = 0
    if st is not None and not is_directory:
        size = st.st_size
    display_name = to_display_text(name)
    return FileEntry(
        id=str(uuid.uuid4()),
        name=display_name,
        path=to_display_text(path),
        size=size,
        size_formatted=format_file_size(size),
        is_directory=is_directory,
        is_file=is_file,
        is_symlink=is_symlink,
        extension=get_extension(display_name),
        modified=timestamp_to_iso(st.st_mtime) if st is not None else None,
        created=(
            timestamp_to_iso(getattr(st, "st_birthtime", None))
            if st is not None
            else None
        ),
        depth=depth,
    )


def _safe_is_symlink(dir_entry: os.DirEntry[str]) -> bool:
    try:
        return dir_entry.is_symlink()
    except OSError:
        return False


def _fallback_kind(dir_entry: os.DirEntry[str]) -> tuple[bool, bool]:
    """Classify from the directory listing when stat failed."""
    try:
        is_dir = dir_entry.is_dir(follow_symlinks=False)
        is_file = dir_entry.is_file(follow_symlinks=False)
    except OSError:
        return False, False
    return is_dir, is_file


class DirectoryWalker:
    """Walks one directory tree according to a ScanConfig.

    Classification rules:
        - Directories report size 0.
        - Symlinks are leaves unless follow_symlinks is set; unfollowed
          links are neither file nor directory.
        - Followed links take their target's metadata. A link to an
          ancestor directory is yielded but not descended.
        - Unreadable metadata yields an entry with size 0 and no
          timestamps. An unreadable directory is yielded without children.
    """

    def __init__(self, root_path: str, config: ScanConfig) -> None:
        """Initialize the walker.

        Args:
            root_path: Absolute path of an existing directory.
            config: Depth, hidden and symlink options.
        """
        self.root_path = root_path
        self.config = config

    def __iter__(self) -> Iterator[FileEntry]:
        return self.walk()

    def walk(self) -> Iterator[FileEntry]:
        """Yield entries in depth-first pre-order."""
        root_entry, root_key = self._visit_root()
        yield root_entry

        if self.config.max_depth == 0 or not root_entry.is_directory:
            return

        root_iter = self._list(self.root_path)
        if root_iter is None:
            return

        # Parallel stacks: open iterators, child depth, ancestor identities
        stack: list[tuple[Iterator[os.DirEntry[str]], int]] = [(root_iter, 1)]
        ancestors: list[_DirKey] = [root_key]
        try:
            while stack:
                iterator, depth = stack[-1]
                try:
                    dir_entry = next(iterator)
                except StopIteration:
                    self._close(iterator)
                    stack.pop()
                    ancestors.pop()
                    continue
                except OSError as e:
                    logger.warning("Error reading directory entries: %s", e)
                    self._close(iterator)
                    stack.pop()
                    ancestors.pop()
                    continue

                if not self.config.include_hidden and is_hidden(dir_entry.name):
                    continue

                entry, descend, key = self._visit(dir_entry, depth, ancestors)
                yield entry

                if descend and depth < self.config.max_depth:
                    child_iter = self._list(dir_entry.path)
                    if child_iter is not None:
                        stack.append((child_iter, depth + 1))
                        ancestors.append(key)
        finally:
            for iterator, _ in stack:
                self._close(iterator)

    def _visit_root(self) -> tuple[FileEntry, _DirKey]:
        path = self.root_path
        name = os.path.basename(path.rstrip(os.sep)) or path
        try:
            st: os.stat_result | None = read_metadata(path, follow_symlinks=True)
        except OSError as e:
            logger.warning("Cannot read metadata for %s: %s", path, e)
            st = None

        is_directory = True if st is None else stat.S_ISDIR(st.st_mode)
        is_file = False if st is None else stat.S_ISREG(st.st_mode)
        entry = _make_entry(
            path,
            name,
            depth=0,
            st=st,
            is_directory=is_directory,
            is_file=is_file,
            is_symlink=os.path.islink(path),
        )
        return entry, _dir_key(st)

    def _visit(
        self,
        dir_entry: os.DirEntry[str],
        depth: int,
        ancestors: list[_DirKey],
    ) -> tuple[FileEntry, bool, _DirKey]:
        """Build the entry for one listed node.

        Returns:
            (entry, whether to descend, directory identity)
        """
        path = dir_entry.path
        is_symlink = _safe_is_symlink(dir_entry)
        follow = self.config.follow_symlinks or not is_symlink

        st: os.stat_result | None
        try:
            st = read_metadata(path, follow_symlinks=follow)
        except OSError as e:
            st = None
            if is_symlink and follow:
                # Dangling link: describe the link itself
                try:
                    st = read_metadata(path, follow_symlinks=False)
                    follow = False
                    logger.debug("Dangling symlink %s: %s", path, e)
                except OSError:
                    st = None
            if st is None:
                logger.warning("Cannot read metadata for %s: %s", path, e)

        if st is None:
            if is_symlink:
                is_directory, is_file = False, False
            else:
                is_directory, is_file = _fallback_kind(dir_entry)
        elif is_symlink and not follow:
            is_directory, is_file = False, False
        else:
            is_directory = stat.S_ISDIR(st.st_mode)
            is_file = stat.S_ISREG(st.st_mode)

        entry = _make_entry(
            path,
            dir_entry.name,
            depth=depth,
            st=st,
            is_directory=is_directory,
            is_file=is_file,
            is_symlink=is_symlink,
        )

        key = _dir_key(st) if is_directory else None
        descend = is_directory
        if descend and is_symlink and key is not None and key in ancestors:
            logger.warning("Symlink cycle detected at %s, not descending", path)
            descend = False
        return entry, descend, key

    def _list(self, path: str) -> Iterator[os.DirEntry[str]] | None:
        try:
            return open_directory(path)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", path, e)
            return None

    @staticmethod
    def _close(iterator: Iterator[os.DirEntry[str]]) -> None:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()


def walk(root_path: str, config: ScanConfig) -> Iterator[FileEntry]:
    """Convenience wrapper around DirectoryWalker.walk()."""
    return DirectoryWalker(root_path, config).walk()
