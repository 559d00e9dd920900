"""Tests for repository reference parsing."""

from __future__ import annotations

import pytest

from repo_health_sync.evaluation.references import parse_repository_reference
from repo_health_sync.models import RepositoryReference


class TestParseRepositoryReference:
    def test_standard_url(self) -> None:
        result = parse_repository_reference("https://github.com/owner/repo")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_url_with_path(self) -> None:
        result = parse_repository_reference("https://github.com/owner/repo/tree/main/src")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_url_with_git_suffix(self) -> None:
        result = parse_repository_reference("https://github.com/owner/repo.git")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_url_with_query_and_fragment(self) -> None:
        assert parse_repository_reference(
            "https://github.com/owner/repo?tab=readme#install"
        ) == RepositoryReference(owner="owner", name="repo")

    def test_trailing_slash(self) -> None:
        result = parse_repository_reference("https://github.com/owner/repo/")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_www_and_http(self) -> None:
        result = parse_repository_reference("http://www.github.com/owner/repo")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_scp_form(self) -> None:
        result = parse_repository_reference("git@github.com:owner/repo.git")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_host_colon_form(self) -> None:
        result = parse_repository_reference("github.com:owner/repo")
        assert result == RepositoryReference(owner="owner", name="repo")

    def test_case_preserved(self) -> None:
        result = parse_repository_reference("https://GitHub.com/OpenAI/Whisper")
        assert result == RepositoryReference(owner="OpenAI", name="Whisper")

    def test_full_name(self) -> None:
        ref = parse_repository_reference("https://github.com/owner/repo")
        assert ref is not None
        assert ref.full_name == "owner/repo"

    def test_idempotent(self) -> None:
        ref = parse_repository_reference("git@github.com:Owner/Repo.git")
        assert ref is not None
        again = parse_repository_reference(f"https://github.com/{ref.full_name}")
        assert again == ref

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "   ",
            "not-a-url",
            "https://gitlab.com/owner/repo",
            "https://github.com/owner",
            "https://github.com/",
            "https://notgithub.com/owner/repo",
            None,
            42,
        ],
    )
    def test_unparsable_returns_none(self, value: object) -> None:
        assert parse_repository_reference(value) is None
