#!/usr/bin/env python3
"""
tkan: main entry point

Opens the first board found under the working directory (or a GitHub
project) in the terminal UI.

Usage:
    tkan                              # first .tkan.yaml under the current directory
    tkan --dir ~/work                 # scan another directory
    tkan --github octo-org/7          # GitHub project 7 of octo-org
    tkan --github octo-org/repo/7     # same, only items from that repository
    tkan --verbose                    # DEBUG logging to the log file
"""
import argparse
import logging
import os
import sys
from functools import partial
from pathlib import Path
from typing import List

from .app import TkanApp
from .config import Config
from .errors import ConfigError, LoadError, SaveError
from .github import GitHubBackend, list_github_projects
from .projects import Project, github_project, parse_github_spec, scan_projects
from .schema import default_board
from .session import BoardSession
from .store import Backend, LocalBackend

logger = logging.getLogger("tkan")


def setup_logging(cfg: Config, verbose: bool = False) -> None:
    """Log to a file; the terminal belongs to the UI."""
    level = logging.DEBUG if verbose else getattr(logging, str(cfg.log_level).upper(), logging.INFO)
    log_path = Path(cfg.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [tkan] %(levelname)s: %(message)s",
        handlers=[logging.FileHandler(log_path)],
    )


def backend_for(project: Project, cfg: Config) -> Backend:
    if project.is_github:
        owner, repo, number = parse_github_spec(project.path)
        return GitHubBackend(
            owner, number, repo=repo,
            token=cfg.github_token(),
            api_url=cfg.github_api_url,
            timeout=cfg.request_timeout,
        )
    return LocalBackend(project.path)


def github_projects(owner: str, cfg: Config) -> List[Project]:
    """Projects of a GitHub user or organization ("@me": the token's user). Raises LoadError."""
    found = list_github_projects(owner, token=cfg.github_token(), api_url=cfg.github_api_url,
                                 timeout=cfg.request_timeout)
    return [github_project(login, number, title) for login, number, title in found]


def open_project(project: Project, cfg: Config) -> BoardSession:
    """Load a project's board into a new session. Raises LoadError."""
    backend = backend_for(project, cfg)
    board = backend.load_board()
    logger.info(f"Opened {project.name!r} via {backend!r}")
    return BoardSession(board, backend, cfg)


def create_default_project(base_dir: str, cfg: Config) -> Project:
    """Write a sample board into base_dir. Raises SaveError."""
    path = os.path.join(base_dir, cfg.board_file)
    board = default_board()
    LocalBackend(path).save_board(board)
    logger.info(f"Created sample board at {path}")
    return Project(name=board.name, path=path, dir=base_dir)


def main(argv=None):
    ap = argparse.ArgumentParser(
        prog="tkan",
        description="Terminal kanban board with mouse drag-and-drop",
    )
    ap.add_argument(
        "--github", default=None, metavar="OWNER/[REPO/]NUMBER",
        help="Open a GitHub project instead of a local board",
    )
    ap.add_argument(
        "--dir", default=".",
        help="Directory to scan for .tkan.yaml boards (default: current directory)",
    )
    ap.add_argument(
        "--config", default=None,
        help="Path to config.yaml (default: ~/.config/tkan/config.yaml)",
    )
    ap.add_argument(
        "--verbose", "-v", action="store_true",
        help="Debug logging",
    )
    args = ap.parse_args(argv)

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"tkan: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(cfg, args.verbose)

    base_dir = os.path.abspath(os.path.expanduser(args.dir))
    projects = []

    if args.github:
        try:
            owner, repo, number = parse_github_spec(args.github)
        except ValueError as e:
            print(f"tkan: {e}", file=sys.stderr)
            sys.exit(2)
        if not cfg.github_token():
            print(f"tkan: warning: ${cfg.github_token_env} is not set; "
                  f"GitHub will likely refuse the request", file=sys.stderr)
        project = github_project(owner, number, repo=repo)
        # Local boards stay reachable from the project picker
        projects = scan_projects(base_dir, cfg.scan_depth, cfg.board_file)
    else:
        projects = scan_projects(base_dir, cfg.scan_depth, cfg.board_file)
        if not projects:
            try:
                projects = [create_default_project(base_dir, cfg)]
            except SaveError as e:
                print(f"tkan: cannot create a board: {e}", file=sys.stderr)
                sys.exit(1)
        project = projects[0]

    try:
        session = open_project(project, cfg)
    except LoadError as e:
        logger.error(f"Failed to load {project.path}: {e}")
        print(f"Error loading board: {e}", file=sys.stderr)
        sys.exit(1)

    app = TkanApp(
        session, projects,
        loader=partial(open_project, cfg=cfg),
        base_dir=base_dir,
        github_lister=partial(github_projects, cfg=cfg),
    )
    app.run()


if __name__ == "__main__":
    main()
