"""
Filesystem primitives.

Symbolic links are always copied and moved as links, never followed, so a
link whose target does not exist survives every operation unchanged.
"""

import os
import shutil
from pathlib import Path


def remove_path(path):
    """
    Remove a file, symbolic link or directory tree if it exists.

    Args:
        path: Path to remove
    """
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def copy_file_with_attributes(src_path, dest_path):
    """
    Copy a file or symbolic link preserving attributes (permissions, timestamps).

    Args:
        src_path: Source file path
        dest_path: Destination file path
    """
    src_path = Path(src_path)
    dest_path = Path(dest_path)

    dest_path.parent.mkdir(parents=True, exist_ok=True)

    # Whatever sits at the destination is replaced, a directory included
    if dest_path.is_symlink() or dest_path.exists():
        remove_path(dest_path)

    if src_path.is_symlink():
        os.symlink(os.readlink(src_path), dest_path)
    else:
        shutil.copy2(src_path, dest_path)


def copy_tree(src, dest, skip=None):
    """
    Copy the contents of src into dest, merging with what is already there.

    The top-level .git directory of src is never copied.

    Args:
        src: Source directory
        dest: Destination directory (created if missing)
        skip: Optional callable taking a POSIX path relative to src; matching
              files are not copied

    Returns:
        int: Number of files copied
    """
    src = Path(src)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)

    files_copied = 0

    for root, dirs, files in os.walk(src):
        root_path = Path(root)
        rel_root = root_path.relative_to(src)

        if rel_root == Path('.') and '.git' in dirs:
            dirs.remove('.git')

        # os.walk reports symlinks to directories as dirs; copy them as links
        for dirname in list(dirs):
            if (root_path / dirname).is_symlink():
                dirs.remove(dirname)
                files.append(dirname)

        for filename in files:
            rel_path = (rel_root / filename).as_posix()
            if skip is not None and skip(rel_path):
                continue

            copy_file_with_attributes(root_path / filename, dest / rel_root / filename)
            files_copied += 1

        # Create empty directories
        for dirname in dirs:
            target = dest / rel_root / dirname
            if target.is_symlink() or target.is_file():
                remove_path(target)
            target.mkdir(parents=True, exist_ok=True)

    return files_copied


def move_path(src, dest):
    """
    Move a file, symbolic link or directory, replacing anything at dest.

    Args:
        src: Existing path
        dest: Target path (parent directories are created)
    """
    src = Path(src)
    dest = Path(dest)

    if dest.is_symlink() or dest.exists():
        remove_path(dest)

    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest))
