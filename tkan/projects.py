"""
Project discovery.

A local project is any directory holding a .tkan.yaml board file. GitHub
projects are addressed as owner/number or owner/repo/number.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import LoadError
from .store import BOARD_FILENAME, LocalBackend

logger = logging.getLogger(__name__)

GITHUB_PREFIX = "github:"


@dataclass
class Project:
    name: str  # board name, or directory name if the board can't be read
    path: str  # board file, or github:owner/number
    dir: str

    @property
    def is_github(self) -> bool:
        return self.path.startswith(GITHUB_PREFIX)


def _project_in(directory: Path, filename: str = BOARD_FILENAME) -> Optional[Project]:
    board_file = directory / filename
    if not board_file.is_file():
        return None
    name = directory.name or str(directory)
    try:
        board = LocalBackend(str(board_file)).load_board()
        if board.name:
            name = board.name
    except LoadError as e:
        logger.warning(f"Project at {directory} has an unreadable board: {e}")
    return Project(name=name, path=str(board_file), dir=str(directory))


def scan_projects(start_dir: str, max_depth: int = 3,
                  filename: str = BOARD_FILENAME) -> List[Project]:
    """Find board files in start_dir and its subdirectories.

    Hidden directories are skipped, directories deeper than max_depth below
    start_dir are not entered, and a project directory is not searched for
    nested projects.
    """
    root = Path(start_dir).resolve()
    projects: List[Project] = []

    top = _project_in(root, filename)
    if top:
        projects.append(top)

    for current, dirnames, _ in os.walk(root):
        here = Path(current)
        depth = len(here.relative_to(root).parts)
        dirnames.sort()
        keep = []
        for d in dirnames:
            if d.startswith("."):
                continue
            if depth + 1 > max_depth:
                continue
            project = _project_in(here / d, filename)
            if project:
                projects.append(project)
                continue
            keep.append(d)
        dirnames[:] = keep

    return projects


def relative_location(project: Project, base_dir: str) -> str:
    """Where the project lives, for display."""
    if project.is_github:
        return project.dir
    try:
        rel = os.path.relpath(project.dir, base_dir)
    except ValueError:
        return project.dir
    if rel == ".":
        return "(current directory)"
    return rel


def parse_github_spec(spec: str) -> Tuple[str, Optional[str], int]:
    """Split owner/number or owner/repo/number. Raises ValueError."""
    if spec.startswith(GITHUB_PREFIX):
        spec = spec[len(GITHUB_PREFIX):]
    parts = [p for p in spec.split("/") if p]
    if len(parts) not in (2, 3):
        raise ValueError(
            f"invalid GitHub project {spec!r}; use owner/project-number or owner/repo/project-number"
        )
    owner = parts[0]
    repo = parts[1] if len(parts) == 3 else None
    try:
        number = int(parts[-1])
    except ValueError:
        raise ValueError(f"invalid project number: {parts[-1]!r}")
    return owner, repo, number


def github_project(owner: str, number: int, title: str = "", repo: Optional[str] = None) -> Project:
    where = f"{owner}/{repo}/{number}" if repo else f"{owner}/{number}"
    return Project(
        name=f"GitHub: {title or where}",
        path=f"{GITHUB_PREFIX}{where}",
        dir=f"GitHub ({owner})",
    )
