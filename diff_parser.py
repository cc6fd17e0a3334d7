"""Collect the code under analysis: PR diffs via unidiff, or project files."""

import logging
import os
from dataclasses import dataclass, field

from unidiff import PatchSet

logger = logging.getLogger(__name__)

# Files larger than this are not read when scanning a whole project
MAX_FILE_BYTES = 512 * 1024


@dataclass
class FileDiff:
    """Changed code for a single file."""
    filename: str
    status: str                           # added, deleted, modified, renamed
    additions: int                        # count of added lines
    deletions: int                        # count of deleted lines
    added_lines: list[tuple[int, str]] = field(default_factory=list)   # (line_num, content)


def parse_diff(diff_text: str) -> list[FileDiff]:
    """
    Parse a unified diff into structured FileDiff objects.

    Args:
        diff_text: Raw unified diff string

    Returns:
        List of FileDiff objects, one per file
    """
    patch_set = PatchSet(diff_text)
    files = []

    for patched_file in patch_set:
        if patched_file.is_added_file:
            status = "added"
        elif patched_file.is_removed_file:
            status = "deleted"
        elif patched_file.is_rename:
            status = "renamed"
        else:
            status = "modified"

        added_lines = [
            (line.target_line_no, line.value.rstrip('\n'))
            for hunk in patched_file
            for line in hunk
            if line.is_added
        ]

        files.append(FileDiff(
            filename=patched_file.path,
            status=status,
            additions=patched_file.added,
            deletions=patched_file.removed,
            added_lines=added_lines,
        ))

    return files


# File extensions to skip during analysis
SKIP_EXTENSIONS = {
    '.md', '.txt', '.rst', '.adoc',           # Docs
    '.lock',                                   # Lock files
    '.png', '.jpg', '.jpeg', '.gif', '.svg', '.ico', '.webp',  # Images
    '.woff', '.woff2', '.ttf', '.eot',        # Fonts
    '.csv', '.xml',                           # Data
    '.min.js', '.min.css', '.map',            # Build artifacts
    '.exe', '.dll', '.so', '.dylib', '.pyc',  # Binary
    '.zip', '.tar', '.gz', '.pdf',            # Archives/docs
}

SKIP_FILENAMES = {
    'package-lock.json', 'yarn.lock', 'pnpm-lock.yaml',
    'Pipfile.lock', 'poetry.lock', 'composer.lock',
    'Gemfile.lock', 'Cargo.lock', 'uv.lock',
    '.gitignore', '.gitattributes', '.editorconfig',
    'LICENSE', 'LICENSE.md', 'LICENSE.txt',
}

SKIP_DIRECTORIES = {'node_modules/', 'vendor/', 'dist/', 'build/', '.git/', '__pycache__/', '.venv/'}


def should_review_file(filename: str) -> bool:
    """Check if file should be analysed based on name/extension."""
    for skip_dir in SKIP_DIRECTORIES:
        if filename.startswith(skip_dir) or f'/{skip_dir}' in filename:
            return False

    basename = filename.split('/')[-1]
    if basename in SKIP_FILENAMES:
        return False

    for ext in SKIP_EXTENSIONS:
        if filename.lower().endswith(ext):
            return False

    return True


def filter_files(files: list[FileDiff]) -> list[FileDiff]:
    """Drop skipped, deleted, and addition-free files."""
    return [
        file for file in files
        if should_review_file(file.filename)
        and file.status != 'deleted'
        and file.added_lines
    ]


def read_file_lines(path: str, filename: str) -> FileDiff | None:
    """Load a whole file as if every line were added. None for binaries."""
    try:
        if os.path.getsize(path) > MAX_FILE_BYTES:
            logger.debug("Skipping %s - larger than %d bytes", filename, MAX_FILE_BYTES)
            return None
        with open(path, encoding='utf-8') as f:
            lines = [(num, text.rstrip('\n')) for num, text in enumerate(f, 1)]
    except (UnicodeDecodeError, OSError) as e:
        logger.debug("Skipping %s: %s", filename, e)
        return None

    return FileDiff(
        filename=filename,
        status='added',
        additions=len(lines),
        deletions=0,
        added_lines=lines,
    )


def workspace_root() -> str:
    """Directory reported paths are relative to: the Actions workspace or cwd."""
    return os.path.abspath(os.getenv('GITHUB_WORKSPACE') or os.getcwd())


def project_prefix(project_path: str, root: str | None = None) -> str:
    """
    Location of *project_path* inside the workspace, with forward slashes.

    Empty when the project is the workspace itself or lies outside it.
    """
    root = root or workspace_root()
    relative = os.path.relpath(os.path.abspath(project_path), root).replace(os.sep, '/')
    if relative == '.' or relative == '..' or relative.startswith('../'):
        return ''
    return relative


def files_under(files: list[FileDiff], prefix: str) -> list[FileDiff]:
    """Keep the files inside the *prefix* directory (all of them for '')."""
    if not prefix:
        return list(files)
    return [file for file in files if file.filename.startswith(f'{prefix}/')]


def collect_project_files(project_path: str, root: str | None = None) -> list[FileDiff]:
    """
    Walk *project_path* and load every reviewable file.

    Used when there is no pull request diff to analyse. Paths are
    relative to the workspace root with forward slashes, so they match
    the paths GitHub shows for the repository. Sorted for a stable order.
    """
    if not os.path.isdir(project_path):
        raise FileNotFoundError(f"Project path not found: {project_path}")

    prefix = project_prefix(project_path, root)
    files = []
    for dirpath, dirs, names in os.walk(project_path):
        dirs[:] = sorted(d for d in dirs if f'{d}/' not in SKIP_DIRECTORIES)
        for name in sorted(names):
            full_path = os.path.join(dirpath, name)
            relative = os.path.relpath(full_path, project_path).replace(os.sep, '/')
            if not should_review_file(relative):
                continue
            filename = f'{prefix}/{relative}' if prefix else relative
            file = read_file_lines(full_path, filename)
            if file is not None and file.added_lines:
                files.append(file)

    return files
