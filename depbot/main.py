"""depbot entry point.

Connects to the configured platform and runs one command against it.
Usage: depbot [--config PATH] [--check] repos | init-repo | branch-status BRANCH.
"""

import argparse
import logging
import sys
from pathlib import Path

from depbot.config import AppConfig, load_config
from depbot.git import GitRepo
from depbot.logging import DepbotLogging
from depbot.platform import Platform, get_platform
from depbot.platform.models import PlatformResult, RepoResult

LOG = logging.getLogger("depbot.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI: global options and one subcommand (repos is the default)."""
    argv = argv if argv is not None else sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="depbot",
        description="depbot - talk to GitHub or Gerrit through the platform adapters",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    sub = parser.add_subparsers(dest="subcommand")
    sub.add_parser("repos", help="List repositories the bot can access")
    sub.add_parser("init-repo", help="Initialize the configured repository and print its settings")
    status = sub.add_parser("branch-status", help="Print the aggregate status of a branch")
    status.add_argument("branch", help="Branch name")
    parsed = parser.parse_args(argv)
    if parsed.subcommand is None:
        parsed.subcommand = "repos"
    return parsed


def build_platform(config: AppConfig, git: GitRepo) -> Platform:
    """Create the configured adapter around the local clone collaborator."""
    if config.platform.name == "gerrit":
        return get_platform("gerrit", git=git, label_mappings=config.gerrit.label_mappings)
    return get_platform(config.platform.name, git=git)


def init_platform(platform: Platform, config: AppConfig) -> PlatformResult:
    if platform.name == "gerrit":
        return platform.init_platform(
            config.platform.endpoint or config.gerrit.endpoint,
            username=config.gerrit.username,
            password=config.gerrit_password_resolved,
        )
    return platform.init_platform(
        config.platform.endpoint or config.github.api_url,
        token=config.github_token_resolved,
        username=config.github.username,
        git_author=config.github.git_author,
    )


def _init_repo(platform: Platform, config: AppConfig) -> RepoResult:
    if not config.platform.repository:
        raise ValueError("platform.repository is not configured")
    return platform.init_repo(
        config.platform.repository,
        fork_mode=config.platform.fork_mode,
        fork_token=config.github.fork_token,
        ignore_pr_author=config.platform.ignore_pr_author,
    )


def run(args: argparse.Namespace, config: AppConfig) -> int:
    git = GitRepo(config.git.work_dir, git_author=config.github.git_author)
    platform = build_platform(config, git)
    result = init_platform(platform, config)
    git.set_git_author(result.git_author)
    LOG.info("Connected to %s as %s", result.endpoint, result.username)

    if args.subcommand == "repos":
        for repo in platform.get_repos():
            print(repo)
        return 0

    repo = _init_repo(platform, config)
    if args.subcommand == "init-repo":
        print(f"default_branch: {repo.default_branch}")
        print(f"is_fork: {str(repo.is_fork).lower()}")
        print(f"force_rebase: {str(platform.get_repo_force_rebase()).lower()}")
        return 0

    status = platform.get_branch_status(args.branch)
    print(status.value)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point: load config, set up logging, dispatch the subcommand."""
    args = parse_args(argv)
    config = load_config(args.config)

    if args.check:
        print("Config OK:", config.platform.name, config.platform.repository)
        return 0

    DepbotLogging(config.logging).setup()
    try:
        return run(args, config)
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        LOG.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
