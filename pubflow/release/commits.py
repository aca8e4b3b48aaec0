"""Commit-log summary printed before a release.

Issue references and commit ids are rendered as terminal links when the
package declares a browsable repository URL.
"""

from __future__ import annotations

import re

from pubflow.output.console import ConsoleProtocol, Style
from pubflow.release.model import CommitEntry

_ISSUE_RE = re.compile(r"(?<![\w/])((?:[\w.-]+/[\w.-]+)?#\d+)\b")


def _link(text: str, url: str) -> str:
    return f"[link={url}]{text}[/link]"


def linkify_issues(repo_url: str | None, message: str) -> str:
    if not repo_url:
        return message

    def _replace(m: re.Match[str]) -> str:
        issue = m.group(1)
        if issue.startswith("#"):
            return _link(issue, f"{repo_url}/issues/{issue[1:]}")
        slug, number = issue.split("#", 1)
        return _link(issue, f"https://github.com/{slug}/issues/{number}")

    return _ISSUE_RE.sub(_replace, message)


def linkify_commit(repo_url: str | None, sha: str) -> str:
    if not repo_url:
        return sha
    return _link(sha, f"{repo_url}/commit/{sha}")


def linkify_commit_range(repo_url: str | None, commit_range: str) -> str:
    if not repo_url:
        return commit_range
    return _link(commit_range, f"{repo_url}/compare/{commit_range}")


def print_commit_summary(
    *,
    console: ConsoleProtocol,
    commits: list[CommitEntry],
    repo_url: str | None,
    revision: str,
    release_branch: str,
    registry_url: str | None,
) -> None:
    console.header("Commits")
    for commit in commits:
        console.print(f"- {linkify_issues(repo_url, commit.message)}  {linkify_commit(repo_url, commit.sha)}")
    console.print(f"Commit range: {linkify_commit_range(repo_url, f'{revision}...{release_branch}')}", Style.DIM)
    if registry_url:
        console.print(f"Registry: {registry_url}", Style.DIM)
